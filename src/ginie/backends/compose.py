"""Docker Compose topology builder and patcher."""

import copy
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from rich.console import Console
from rich.table import Table

from ginie.backends.base import base_service_name, service_to_compose_dict
from ginie.catalog.services import (
    GATEWAY_NETWORK,
    INTERNAL_NETWORK,
    NETWORKS,
    _api_gateway_service,
    _nginx_service,
    get_descriptor_services,
)
from ginie.model.service import ServiceDescriptor
from ginie.model.validation import (
    DERIVED_SUFFIXES,
    ConflictError,
    ValidationError,
    validate_port_binding,
    validate_service_name,
)
from ginie.model.versions import VersionSet

logger = logging.getLogger(__name__)
console = Console()


class TopologyOptions(BaseModel):
    """Global options of a first-time topology build."""

    include_gateway: bool = Field(default=True)
    include_proxy: bool = Field(default=False)


def validate_descriptor(descriptor: ServiceDescriptor) -> None:
    """Validate the name and port bindings of a descriptor."""
    validate_service_name(descriptor.name)
    for binding in descriptor.ports:
        validate_port_binding(binding)


def _network(name: str) -> dict[str, Any]:
    return dict(NETWORKS[name])


def build_topology(
    descriptors: Iterable[ServiceDescriptor],
    options: TopologyOptions | None = None,
    versions: VersionSet | None = None,
) -> dict[str, Any]:
    """Build a complete docker-compose graph.

    Args:
        descriptors: Services to include
        options: Gateway and proxy toggles
        versions: Image tags for datastore and proxy images

    Returns:
        Compose document with services, networks and volumes

    Raises:
        ValidationError: If a name is invalid, reserved or used twice
    """
    descriptors = list(descriptors)
    options = options or TopologyOptions()
    versions = versions or VersionSet()

    seen: set[str] = set()
    for descriptor in descriptors:
        validate_descriptor(descriptor)
        if descriptor.name in seen:
            raise ValidationError(
                "DUPLICATE_SERVICE",
                f"Service '{descriptor.name}' is listed more than once",
            )
        seen.add(descriptor.name)

    services: dict[str, Any] = {}
    volumes: dict[str, Any] = {}

    for descriptor in descriptors:
        for definition in get_descriptor_services(descriptor, versions):
            services[definition.name] = service_to_compose_dict(definition)
        if descriptor.database is not None:
            volumes[descriptor.volume_name] = {}

    if options.include_gateway:
        gateway = _api_gateway_service()
        services[gateway.name] = service_to_compose_dict(gateway)

    if options.include_proxy:
        nginx = _nginx_service(versions, include_gateway=options.include_gateway)
        services[nginx.name] = service_to_compose_dict(nginx)

    networks: dict[str, Any] = {}
    if options.include_gateway or options.include_proxy:
        networks[GATEWAY_NETWORK] = _network(GATEWAY_NETWORK)
    if descriptors or options.include_gateway:
        networks[INTERNAL_NETWORK] = _network(INTERNAL_NETWORK)

    return {
        "services": services,
        "networks": networks,
        "volumes": volumes,
    }


def existing_service_names(graph: dict[str, Any]) -> set[str]:
    """Return the descriptor names already present in a compose graph."""
    services = graph.get("services") or {}
    return {base_service_name(str(key), DERIVED_SUFFIXES) for key in services}


def patch_topology(
    existing: dict[str, Any],
    descriptor: ServiceDescriptor,
    versions: VersionSet | None = None,
) -> dict[str, Any]:
    """Append one service to an existing compose graph.

    The existing graph is not modified; a patched copy is returned in which
    every prior key keeps its value and position.

    Args:
        existing: Compose document as loaded from disk
        descriptor: Service to add
        versions: Image tags for the new datastore entries

    Returns:
        New compose document

    Raises:
        ValidationError: If the descriptor is invalid
        ConflictError: If the service name is already taken
    """
    validate_descriptor(descriptor)
    versions = versions or VersionSet()

    existing_volumes = existing.get("volumes") or {}
    if descriptor.name in existing_service_names(existing) or descriptor.volume_name in existing_volumes:
        raise ConflictError(
            "SERVICE_EXISTS",
            f"Service '{descriptor.name}' already exists in the deployment graph",
        )

    graph = copy.deepcopy(existing)
    if not isinstance(graph.get("services"), dict):
        graph["services"] = {}

    for definition in get_descriptor_services(descriptor, versions):
        graph["services"][definition.name] = service_to_compose_dict(definition)

    if descriptor.database is not None:
        if not isinstance(graph.get("volumes"), dict):
            graph["volumes"] = {}
        graph["volumes"][descriptor.volume_name] = {}

    if not isinstance(graph.get("networks"), dict):
        graph["networks"] = {}
    if INTERNAL_NETWORK not in graph["networks"]:
        graph["networks"][INTERNAL_NETWORK] = _network(INTERNAL_NETWORK)

    logger.debug("Patched topology with %s", descriptor.name)
    return graph


def print_summary(graph: dict[str, Any], compose_path: Path) -> None:
    """Print a summary table of the compose services."""
    table = Table(title="Deployment Topology")
    table.add_column("Service", style="cyan")
    table.add_column("Source", style="green")
    table.add_column("Networks", style="white")
    table.add_column("Depends On", style="white")

    for name, spec in (graph.get("services") or {}).items():
        spec = spec or {}
        if "image" in spec:
            source = str(spec["image"])
        else:
            build = spec.get("build") or {}
            source = str(build.get("context", build)) if isinstance(build, dict) else str(build)
        table.add_row(
            str(name),
            source,
            ", ".join(spec.get("networks") or []),
            ", ".join(spec.get("depends_on") or []) or "-",
        )

    console.print(table)
    console.print(f"[dim]{compose_path}[/dim]")
