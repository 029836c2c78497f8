"""Shared utilities for descriptor renderers."""

from typing import Any

from ginie.model.service import ServiceDefinition


def service_to_compose_dict(service: ServiceDefinition) -> dict[str, Any]:
    """Convert ServiceDefinition to docker-compose service dict.

    environment, networks and depends_on are always present so every
    entry carries the same keys; ports and volumes only when set.

    Args:
        service: Service definition

    Returns:
        Dictionary suitable for docker-compose services section
    """
    svc: dict[str, Any] = {}

    if service.build is not None:
        svc["build"] = {
            "context": service.build.context,
            "dockerfile": service.build.dockerfile,
        }
    if service.image:
        svc["image"] = service.image

    if service.ports:
        svc["ports"] = list(service.ports)

    if service.volumes:
        svc["volumes"] = list(service.volumes)

    svc["environment"] = list(service.environment)
    svc["networks"] = list(service.networks)
    svc["depends_on"] = list(service.depends_on)
    svc["restart"] = service.restart

    return svc


def base_service_name(entry_name: str, suffixes: tuple[str, ...]) -> str:
    """Strip a derived suffix from a compose entry name.

    Args:
        entry_name: Compose service key (e.g., 'auth-db')
        suffixes: Derived suffixes, longest match first

    Returns:
        The descriptor name the entry was derived from, or the entry name
        itself when it carries no derived suffix
    """
    for suffix in suffixes:
        if entry_name.endswith(suffix) and len(entry_name) > len(suffix):
            return entry_name[: -len(suffix)]
    return entry_name
