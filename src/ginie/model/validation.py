"""Validation utilities and error types for project generation."""

import json
import re
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from ginie.model.project import PROJECT_NAME_MAX_LENGTH, ProjectConfig

NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")
PORT_PATTERN = re.compile(r"^\d{1,5}:\d{1,5}$")
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 30

RESERVED_NAMES = frozenset({"api", "app", "server", "client", "admin", "root", "system"})
# Compose entries and proxy routes owned by the generator itself
FIXED_ENTRY_NAMES = frozenset({"api-gateway", "api_gateway", "nginx", "health"})
DERIVED_SUFFIXES = ("-service", "-db", "-redis")

PROJECT_DIR = ".ginie"
PROJECT_FILE = "project.json"


class GinieError(Exception):
    """Base error with error code."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class ValidationError(GinieError):
    """Malformed or colliding input, raised before any mutation."""


class ConflictError(GinieError):
    """Service already present in the deployment graph."""


class PersistenceError(GinieError):
    """Descriptor file could not be read, parsed or written."""


class ResolutionWarning(UserWarning):
    """Image version lookup failed and a fallback version was used."""

    def __init__(self, image: str, fallback: str, reason: str) -> None:
        self.image = image
        self.fallback = fallback
        self.reason = reason
        super().__init__(f"Could not resolve latest {image} version ({reason}), using {fallback}")


def validate_service_name(name: str) -> str:
    """Validate a microservice name.

    Names are lowercase identifiers that must not collide with reserved
    words, with the generator's own entries, or with the suffixes used to
    derive database and cache entry names.

    Args:
        name: Candidate service name

    Returns:
        The validated name

    Raises:
        ValidationError: If the name is not acceptable
    """
    if not name or len(name) < NAME_MIN_LENGTH:
        raise ValidationError(
            "INVALID_NAME",
            f"Microservice name must be at least {NAME_MIN_LENGTH} characters long",
        )
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(
            "INVALID_NAME",
            f"Microservice name must be at most {NAME_MAX_LENGTH} characters long",
        )
    if ".." in name or "/" in name or "\\" in name:
        raise ValidationError(
            "INVALID_NAME",
            "Microservice name cannot contain path traversal characters",
        )
    if not NAME_PATTERN.match(name):
        raise ValidationError(
            "INVALID_NAME",
            f"'{name}' must start with a lowercase letter and contain only "
            "lowercase letters, numbers, hyphens and underscores",
        )
    if name in RESERVED_NAMES or name in FIXED_ENTRY_NAMES:
        raise ValidationError("RESERVED_NAME", f"Microservice name '{name}' is reserved")
    for suffix in DERIVED_SUFFIXES:
        if name.endswith(suffix):
            raise ValidationError(
                "RESERVED_NAME",
                f"Microservice name '{name}' cannot end with '{suffix}'",
            )
    return name


def validate_port_binding(binding: str) -> str:
    """Validate a host:container port binding."""
    if not PORT_PATTERN.match(binding):
        raise ValidationError("INVALID_PORT", f"Port binding '{binding}' must look like HOST:CONTAINER")
    for part in binding.split(":"):
        if not 0 < int(part) <= 65535:
            raise ValidationError("INVALID_PORT", f"Port {part} in '{binding}' is out of range")
    return binding


def sanitize_file_name(name: str) -> str:
    """Reduce a name to characters that are safe in a file name."""
    if not name:
        raise ValidationError("INVALID_NAME", "Invalid file name")

    sanitized = re.sub(r"[^a-zA-Z0-9_-]", "_", name)
    sanitized = sanitized.strip("_-")
    if not sanitized:
        raise ValidationError("INVALID_NAME", "File name became empty after sanitization")
    return sanitized[:PROJECT_NAME_MAX_LENGTH]


def validate_project_name(name: str) -> str:
    """Validate a project name, which is also its directory name.

    Raises:
        ValidationError: If the name is empty, too long or has no
            file-name-safe characters
    """
    if not name or not name.strip():
        raise ValidationError("INVALID_NAME", "Project name is required")
    if len(name) > PROJECT_NAME_MAX_LENGTH:
        raise ValidationError(
            "INVALID_NAME",
            f"Project name must be at most {PROJECT_NAME_MAX_LENGTH} characters long",
        )
    sanitize_file_name(name)
    return name


def project_config_path(base_dir: Path | None = None) -> Path:
    """Return the path of the project config file."""
    if base_dir is None:
        base_dir = Path.cwd()
    return base_dir / PROJECT_DIR / PROJECT_FILE


def is_ginie_project(base_dir: Path | None = None) -> bool:
    """Check whether a directory holds a generated project."""
    return project_config_path(base_dir).exists()


def load_project(base_dir: Path | None = None) -> ProjectConfig:
    """Load the project config from disk."""
    path = project_config_path(base_dir)
    if not path.exists():
        raise PersistenceError(
            "PROJECT_NOT_FOUND",
            f"No ginie project found at {path.parent.parent} (missing {PROJECT_DIR}/{PROJECT_FILE})",
        )
    try:
        with path.open() as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise PersistenceError("READ_FAILED", f"Could not read {path}: {e}") from e
    try:
        return ProjectConfig.model_validate(data)
    except PydanticValidationError as e:
        raise PersistenceError("READ_FAILED", f"Invalid project config {path}: {e}") from e


def save_project(project: ProjectConfig, base_dir: Path | None = None) -> Path:
    """Save the project config to disk."""
    from ginie.utils.files import atomic_write_text

    path = project_config_path(base_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    atomic_write_text(path, json.dumps(project.model_dump(mode="json"), indent=2) + "\n")
    return path
