"""Data models for project generation."""

from ginie.model.project import ProjectConfig
from ginie.model.service import (
    BuildConfig,
    DatabaseKind,
    ServiceDefinition,
    ServiceDescriptor,
    ServiceProtocol,
)
from ginie.model.versions import VersionSet

__all__ = [
    "ProjectConfig",
    "ServiceDescriptor",
    "ServiceDefinition",
    "ServiceProtocol",
    "DatabaseKind",
    "BuildConfig",
    "VersionSet",
]
