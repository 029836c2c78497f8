"""Wizard flow logic."""

from pathlib import Path

from rich.console import Console

from ginie.backends.compose import print_summary
from ginie.model.service import ServiceDescriptor, ServiceProtocol
from ginie.model.validation import is_ginie_project
from ginie.project_ops import add_service, create_project, load_project_state
from ginie.utils.files import COMPOSE_FILE
from ginie.utils.registry import VersionResolver
from ginie.wizard.prompts import (
    prompt_database,
    prompt_include_gateway,
    prompt_include_proxy,
    prompt_include_redis,
    prompt_project_name,
    prompt_protocol,
    prompt_service_name,
    prompt_service_names,
)

console = Console()


def _prompt_descriptor(name: str, protocol: ServiceProtocol) -> ServiceDescriptor:
    return ServiceDescriptor(
        name=name,
        protocol=protocol,
        database=prompt_database(name),
        include_redis=prompt_include_redis(name),
    )


def run_init_wizard(resolver: VersionResolver, base_dir: Path | None = None) -> Path:
    """Prompt for a new project and generate it."""
    if base_dir is None:
        base_dir = Path.cwd()

    name = prompt_project_name()
    protocol = prompt_protocol()
    include_gateway = prompt_include_gateway()
    # Nginx fronts the gateway, so only offer it when there is one
    include_proxy = prompt_include_proxy() if include_gateway else False

    descriptors = [_prompt_descriptor(service, protocol) for service in prompt_service_names()]

    console.print("\n[cyan]Checking for latest Docker image versions...[/cyan]")
    versions = resolver.resolve()

    project_dir = create_project(
        name,
        descriptors,
        protocol=protocol,
        include_gateway=include_gateway,
        include_proxy=include_proxy,
        versions=versions,
        base_dir=base_dir,
    )

    console.print(f"\n[bold green]Project {name} generated in {project_dir}[/bold green]")
    console.print("\n[bold]Next steps:[/bold]")
    console.print(f"  cd {project_dir.name}")
    console.print("  npm install")
    console.print("  docker compose up -d")
    return project_dir


def run_add_wizard(resolver: VersionResolver, base_dir: Path | None = None) -> None:
    """Prompt for one more microservice and add it to the current project."""
    if base_dir is None:
        base_dir = Path.cwd()

    project, _ = load_project_state(base_dir)
    console.print(f"[dim]Adding a microservice to project '{project.name}'[/dim]\n")

    protocol = prompt_protocol(default=project.protocol)
    descriptor = _prompt_descriptor(prompt_service_name(), protocol)

    versions = resolver.resolve()
    graph = add_service(descriptor, versions=versions, base_dir=base_dir)

    console.print(f"[green]Added {descriptor.name} microservice[/green]")
    print_summary(graph, base_dir / COMPOSE_FILE)


def run_wizard(resolver: VersionResolver, base_dir: Path | None = None) -> None:
    """Run the interactive wizard.

    Inside a generated project it adds a microservice, anywhere else it
    creates a new project.
    """
    if base_dir is None:
        base_dir = Path.cwd()

    console.print("\n[bold blue]Ginie-Micro Microservice Generator[/bold blue]\n")
    if is_ginie_project(base_dir):
        run_add_wizard(resolver, base_dir)
    else:
        run_init_wizard(resolver, base_dir)
