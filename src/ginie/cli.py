"""CLI entry point for the microservice generator."""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from ginie.model.service import DatabaseKind, ServiceDescriptor, ServiceProtocol
from ginie.model.validation import GinieError, ValidationError
from ginie.utils.registry import DEFAULT_TIMEOUT, VersionResolver

app = typer.Typer(
    name="ginie",
    help="Ginie-Micro - microservice monorepo generator",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

NO_DATABASE = "none"


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
    offline: Annotated[
        bool,
        typer.Option("--offline", help="Skip registry lookups and use the fallback image versions"),
    ] = False,
    timeout: Annotated[
        float,
        typer.Option("--timeout", help="Timeout in seconds for each image version lookup"),
    ] = DEFAULT_TIMEOUT,
) -> None:
    """Ginie-Micro microservice generator."""
    from ginie.utils.log import configure_logging

    configure_logging(verbose)
    ctx.obj = VersionResolver(timeout=timeout, offline=offline)


def _handle_error(error: GinieError) -> None:
    """Handle generator errors with rich formatting."""
    console.print(f"[red]Error ({error.code}):[/red] {error.message}")
    raise typer.Exit(1)


def _resolver(ctx: typer.Context) -> VersionResolver:
    if isinstance(ctx.obj, VersionResolver):
        return ctx.obj
    return VersionResolver()


def _parse_database(value: str) -> DatabaseKind | None:
    if value == NO_DATABASE:
        return None
    try:
        return DatabaseKind(value)
    except ValueError:
        choices = ", ".join([d.value for d in DatabaseKind] + [NO_DATABASE])
        raise ValidationError("INVALID_DATABASE", f"Unknown database '{value}' (choose from {choices})") from None


def _parse_service_spec(spec: str, protocol: ServiceProtocol) -> ServiceDescriptor:
    """Parse NAME[:DATABASE[:redis]] into a descriptor."""
    parts = spec.split(":")
    if len(parts) > 3 or (len(parts) == 3 and parts[2] != "redis"):
        raise ValidationError(
            "INVALID_SERVICE_SPEC",
            f"Service '{spec}' must look like NAME[:DATABASE[:redis]]",
        )
    database = _parse_database(parts[1]) if len(parts) > 1 else DatabaseKind.MONGODB
    return ServiceDescriptor(
        name=parts[0].strip(),
        protocol=protocol,
        database=database,
        include_redis=len(parts) == 3,
    )


def _print_resolution_warnings(resolver: VersionResolver) -> None:
    for warning in resolver.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


@app.command()
def init(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Project name", metavar="PROJECT_NAME")],
    service: Annotated[
        Optional[list[str]],
        typer.Option(
            "--service",
            "-s",
            help="Initial microservice as NAME[:DATABASE[:redis]], repeatable",
        ),
    ] = None,
    protocol: Annotated[
        ServiceProtocol,
        typer.Option("--protocol", "-p", help="Communication protocol"),
    ] = ServiceProtocol.REST,
    gateway: Annotated[
        bool,
        typer.Option("--gateway/--no-gateway", help="Include an API gateway"),
    ] = True,
    proxy: Annotated[
        bool,
        typer.Option("--proxy/--no-proxy", help="Include an Nginx reverse proxy"),
    ] = False,
) -> None:
    """Create a new microservice monorepo.

    [bold]Example:[/bold]
        ginie init shop -s auth:mongodb:redis -s orders:postgres --proxy
    """
    from ginie.backends.compose import print_summary
    from ginie.project_ops import create_project, load_project_state
    from ginie.utils.files import COMPOSE_FILE

    try:
        descriptors = [_parse_service_spec(spec, protocol) for spec in service or []]

        resolver = _resolver(ctx)
        versions = resolver.resolve()
        _print_resolution_warnings(resolver)

        project_dir = create_project(
            name,
            descriptors,
            protocol=protocol,
            include_gateway=gateway,
            include_proxy=proxy,
            versions=versions,
        )
        _, graph = load_project_state(project_dir)
        print_summary(graph, project_dir / COMPOSE_FILE)
        console.print(f"[green]Project '{name}' created in {project_dir}[/green]")
    except GinieError as e:
        _handle_error(e)


@app.command()
def add(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Microservice name", metavar="SERVICE_NAME")],
    protocol: Annotated[
        Optional[ServiceProtocol],
        typer.Option("--protocol", "-p", help="Communication protocol (defaults to the project's)"),
    ] = None,
    database: Annotated[
        str,
        typer.Option("--database", "-d", help="mongodb, postgres, mysql or none"),
    ] = DatabaseKind.MONGODB.value,
    redis: Annotated[
        bool,
        typer.Option("--redis/--no-redis", help="Provision a Redis cache for the service"),
    ] = True,
    port: Annotated[
        Optional[list[str]],
        typer.Option("--port", help="HOST:CONTAINER port binding, repeatable"),
    ] = None,
) -> None:
    """Add a microservice to the project in the current directory.

    [bold]Example:[/bold]
        ginie add payments -d postgres --no-redis
    """
    from ginie.backends.compose import print_summary
    from ginie.model.validation import load_project
    from ginie.project_ops import add_service
    from ginie.utils.files import COMPOSE_FILE

    try:
        project = load_project()
        descriptor = ServiceDescriptor(
            name=name,
            protocol=protocol or project.protocol,
            database=_parse_database(database),
            include_redis=redis,
            ports=port or [],
        )

        resolver = _resolver(ctx)
        versions = resolver.resolve()
        _print_resolution_warnings(resolver)

        graph = add_service(descriptor, versions=versions)
        print_summary(graph, Path.cwd() / COMPOSE_FILE)
        console.print(f"[green]Added {name} microservice[/green]")
    except GinieError as e:
        _handle_error(e)


@app.command()
def wizard(ctx: typer.Context) -> None:
    """Interactive wizard: create a project, or add a service to the current one."""
    try:
        from ginie.wizard.flow import run_wizard

        resolver = _resolver(ctx)
        run_wizard(resolver)
        _print_resolution_warnings(resolver)
    except GinieError as e:
        _handle_error(e)
    except KeyboardInterrupt:
        console.print("\n[yellow]Wizard cancelled.[/yellow]")
        raise typer.Exit(0)


@app.command()
def show() -> None:
    """Show the project in the current directory."""
    from ginie.backends.compose import print_summary
    from ginie.project_ops import get_project_summary, load_project_state
    from ginie.utils.files import COMPOSE_FILE

    try:
        project, graph = load_project_state()
        summary = get_project_summary(project)

        table = Table(title=f"Project: {project.name}")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Name", summary["name"])
        table.add_row("Protocol", summary["protocol"])
        table.add_row("API Gateway", summary["gateway"])
        table.add_row("Nginx", summary["proxy"])
        table.add_row("Services", summary["services"])
        console.print(table)

        print_summary(graph, Path.cwd() / COMPOSE_FILE)
    except GinieError as e:
        _handle_error(e)


@app.command()
def versions(ctx: typer.Context) -> None:
    """Show the image versions new services would use."""
    from ginie.model.versions import IMAGE_REPOSITORIES

    resolver = _resolver(ctx)
    version_set = resolver.resolve()
    fallbacks = {w.image for w in resolver.warnings}

    table = Table(title="Image Versions")
    table.add_column("Image", style="cyan")
    table.add_column("Tag", style="green")
    table.add_column("Source", style="dim")
    for field, tag in version_set.to_dict().items():
        repository = IMAGE_REPOSITORIES[field]
        if resolver.offline or repository in fallbacks:
            source = "fallback"
        else:
            source = "registry"
        table.add_row(repository, tag, source)
    console.print(table)
    _print_resolution_warnings(resolver)


@app.command(name="update-images")
def update_images_cmd(ctx: typer.Context) -> None:
    """Update datastore, proxy and Node.js image tags to the latest versions."""
    from ginie.project_ops import update_images

    try:
        resolver = _resolver(ctx)
        version_set = resolver.resolve()
        _print_resolution_warnings(resolver)

        changes = update_images(version_set)
        if not changes:
            console.print("[green]All images are up to date.[/green]")
            return

        table = Table(title="Updated Images")
        table.add_column("Location", style="cyan")
        table.add_column("Old", style="red")
        table.add_column("New", style="green")
        for change in changes:
            table.add_row(change.location, change.old, change.new)
        console.print(table)
    except GinieError as e:
        _handle_error(e)


@app.command(name="security-check")
def security_check_cmd() -> None:
    """Run security checks on the current directory."""
    from ginie.utils.security import security_check

    try:
        for warning in security_check():
            console.print(f"[yellow]Warning:[/yellow] {warning}")
        console.print("[green]Security check passed[/green]")
    except GinieError as e:
        _handle_error(e)


@app.command()
def version() -> None:
    """Show version information."""
    from ginie import __version__

    console.print(f"ginie-micro version {__version__}")


if __name__ == "__main__":
    app()
