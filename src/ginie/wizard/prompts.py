"""Rich prompts for the interactive wizard."""

from rich.console import Console
from rich.prompt import Confirm, Prompt

from ginie.model.service import DatabaseKind, ServiceProtocol
from ginie.model.validation import ValidationError, validate_service_name

console = Console()

NO_DATABASE = "none"


def prompt_project_name() -> str:
    """Prompt for project name."""
    while True:
        name = Prompt.ask("[cyan]Project name[/cyan]").strip()
        if name:
            return name
        console.print("[red]Project name is required[/red]")


def prompt_protocol(default: ServiceProtocol = ServiceProtocol.REST) -> ServiceProtocol:
    """Prompt for communication protocol."""
    console.print("\n[bold]Communication protocol:[/bold]")
    console.print("[dim]  • rest: HTTP/JSON\n  • grpc: Protocol Buffers[/dim]\n")
    value = Prompt.ask(
        "[cyan]Protocol[/cyan]",
        choices=[p.value for p in ServiceProtocol],
        default=default.value,
    )
    return ServiceProtocol(value)


def prompt_include_gateway() -> bool:
    """Prompt for API gateway inclusion."""
    return Confirm.ask("[cyan]Include an API Gateway?[/cyan]", default=True)


def prompt_include_proxy() -> bool:
    """Prompt for Nginx reverse proxy inclusion."""
    return Confirm.ask("[cyan]Include Nginx load balancer?[/cyan]", default=False)


def prompt_service_name() -> str:
    """Prompt for one microservice name, until it is valid."""
    while True:
        name = Prompt.ask("[cyan]Microservice name[/cyan]").strip().lower()
        try:
            return validate_service_name(name)
        except ValidationError as e:
            console.print(f"[red]{e.message}[/red]")


def prompt_service_names() -> list[str]:
    """Prompt for a comma-separated list of initial microservices."""
    while True:
        raw = Prompt.ask("[cyan]Initial microservice names (comma-separated)[/cyan]")
        names = [n.strip().lower() for n in raw.split(",") if n.strip()]
        if not names:
            console.print("[red]At least one microservice is required[/red]")
            continue
        try:
            for name in names:
                validate_service_name(name)
        except ValidationError as e:
            console.print(f"[red]{e.message}[/red]")
            continue
        if len(set(names)) != len(names):
            console.print("[red]Microservice names must be unique[/red]")
            continue
        return names


def prompt_database(service_name: str) -> DatabaseKind | None:
    """Prompt for the database of a microservice."""
    value = Prompt.ask(
        f"[cyan]Database for {service_name}[/cyan]",
        choices=[d.value for d in DatabaseKind] + [NO_DATABASE],
        default=DatabaseKind.MONGODB.value,
    )
    return None if value == NO_DATABASE else DatabaseKind(value)


def prompt_include_redis(service_name: str) -> bool:
    """Prompt for Redis cache inclusion."""
    return Confirm.ask(f"[cyan]Include Redis for {service_name} caching?[/cyan]", default=True)
