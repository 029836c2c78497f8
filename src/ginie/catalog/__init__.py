"""Service catalog for generated projects."""

from ginie.catalog.services import (
    DATABASE_PROFILES,
    NETWORKS,
    PROTOCOL_PROFILES,
    container_port,
    get_descriptor_services,
    service_directory,
)

__all__ = [
    "NETWORKS",
    "PROTOCOL_PROFILES",
    "DATABASE_PROFILES",
    "container_port",
    "get_descriptor_services",
    "service_directory",
]
