"""Whole-file, atomic persistence of the generated descriptor files."""

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from ginie.model.validation import PersistenceError

logger = logging.getLogger(__name__)

COMPOSE_FILE = "docker-compose.yml"
NGINX_FILE = "nginx.conf"


def atomic_write_text(path: Path, content: str) -> Path:
    """Write text to a file so that readers see either the old or the new content.

    The content is written to a temporary file in the same directory and
    moved over the target with os.replace.

    Args:
        path: Destination file
        content: Full file content

    Returns:
        The destination path

    Raises:
        PersistenceError: If the file cannot be written
    """
    directory = path.parent
    try:
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
    except OSError as e:
        raise PersistenceError("WRITE_FAILED", f"Could not write {path}: {e}") from e

    tmp_path = Path(tmp_name)
    try:
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            os.chmod(tmp_path, path.stat().st_mode & 0o777)
        else:
            os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise PersistenceError("WRITE_FAILED", f"Could not write {path}: {e}") from e

    logger.debug("Wrote %s (%d bytes)", path, len(content))
    return path


def read_text(path: Path, missing_code: str = "READ_FAILED") -> str:
    """Read a whole text file.

    Raises:
        PersistenceError: With missing_code if the file does not exist,
            READ_FAILED if it cannot be read
    """
    if not path.exists():
        raise PersistenceError(missing_code, f"{path} not found")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PersistenceError("READ_FAILED", f"Could not read {path}: {e}") from e


def dump_compose(graph: dict[str, Any]) -> str:
    """Serialize a deployment graph as docker-compose YAML."""
    return yaml.safe_dump(graph, default_flow_style=False, sort_keys=False, indent=2)


def load_compose(path: Path) -> dict[str, Any]:
    """Load docker-compose.yml as a dictionary.

    Raises:
        PersistenceError: If the file is missing, unreadable or not a
            compose mapping
    """
    content = read_text(path, missing_code="COMPOSE_NOT_FOUND")
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise PersistenceError("COMPOSE_INVALID", f"{path} is not valid YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise PersistenceError("COMPOSE_INVALID", f"{path} must contain a mapping at top level")
    services = data.get("services")
    if services is not None and not isinstance(services, dict):
        raise PersistenceError("COMPOSE_INVALID", f"'services' in {path} must be a mapping")
    return data


def save_compose(path: Path, graph: dict[str, Any]) -> Path:
    """Write docker-compose.yml atomically."""
    return atomic_write_text(path, dump_compose(graph))


def load_nginx(path: Path) -> str:
    """Load nginx.conf as text."""
    return read_text(path, missing_code="PROXY_CONFIG_NOT_FOUND")


def save_nginx(path: Path, content: str) -> Path:
    """Write nginx.conf atomically."""
    return atomic_write_text(path, content)
