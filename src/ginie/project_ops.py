"""Project-level operations: initialize, add a service, update images."""

import copy
import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ginie.backends.compose import TopologyOptions, build_topology, patch_topology
from ginie.backends.nginx import build_proxy_config, patch_proxy_config
from ginie.catalog.services import MICROSERVICES_DIR, service_directory
from ginie.model.project import ProjectConfig
from ginie.model.service import ServiceDescriptor, ServiceProtocol
from ginie.model.validation import (
    ConflictError,
    GinieError,
    PersistenceError,
    ValidationError,
    load_project,
    sanitize_file_name,
    save_project,
    validate_project_name,
)
from ginie.model.versions import IMAGE_REPOSITORIES, VersionSet
from ginie.scaffold import scaffold_api_gateway, scaffold_microservice, scaffold_project_root
from ginie.utils.files import (
    COMPOSE_FILE,
    NGINX_FILE,
    atomic_write_text,
    load_compose,
    load_nginx,
    read_text,
    save_compose,
    save_nginx,
)

logger = logging.getLogger(__name__)

DOCKERFILE_FROM = re.compile(r"^FROM node:\S+", re.MULTILINE)


@dataclass
class ImageChange:
    """One image reference rewritten by update_images."""

    location: str
    old: str
    new: str


def create_project(
    name: str,
    descriptors: list[ServiceDescriptor],
    protocol: ServiceProtocol = ServiceProtocol.REST,
    include_gateway: bool = True,
    include_proxy: bool = False,
    versions: VersionSet | None = None,
    base_dir: Path | None = None,
) -> Path:
    """Generate a new monorepo.

    The compose graph and proxy config are built and validated in memory
    before anything is written.

    Args:
        name: Project name, also the directory name
        descriptors: Initial microservices
        protocol: Default protocol recorded for later additions
        include_gateway: Generate the API gateway
        include_proxy: Generate the Nginx reverse proxy
        versions: Image tags
        base_dir: Directory the project is created in. Defaults to cwd.

    Returns:
        Path of the project directory

    Raises:
        ValidationError: If the project directory exists or a descriptor is invalid
        PersistenceError: If a file cannot be written; the project directory
            is removed again
    """
    if base_dir is None:
        base_dir = Path.cwd()
    versions = versions or VersionSet()

    validate_project_name(name)
    project_dir = base_dir / sanitize_file_name(name)
    if project_dir.exists():
        raise ValidationError("PROJECT_EXISTS", f"Directory {project_dir} already exists")

    options = TopologyOptions(include_gateway=include_gateway, include_proxy=include_proxy)
    graph = build_topology(descriptors, options, versions)
    nginx_config = build_proxy_config(descriptors, include_gateway=include_gateway) if include_proxy else None
    project = ProjectConfig(
        name=name,
        protocol=protocol,
        include_gateway=include_gateway,
        include_proxy=include_proxy,
        services=list(descriptors),
    )

    project_dir.mkdir(parents=True)
    try:
        scaffold_project_root(project_dir, name, include_gateway)
        if include_gateway:
            scaffold_api_gateway(project_dir, versions)
        for descriptor in descriptors:
            scaffold_microservice(project_dir, descriptor, versions)

        save_compose(project_dir / COMPOSE_FILE, graph)
        if nginx_config is not None:
            save_nginx(project_dir / NGINX_FILE, nginx_config)
        save_project(project, project_dir)
    except (GinieError, OSError) as e:
        shutil.rmtree(project_dir, ignore_errors=True)
        if isinstance(e, GinieError):
            raise
        raise PersistenceError("WRITE_FAILED", f"Could not generate {project_dir}: {e}") from e

    logger.info("Created project %s with %d services", name, len(descriptors))
    return project_dir


def add_service(
    descriptor: ServiceDescriptor,
    versions: VersionSet | None = None,
    base_dir: Path | None = None,
) -> dict[str, Any]:
    """Add one microservice to an existing project.

    docker-compose.yml must exist; it is never regenerated here. The nginx
    config is only touched when the proxy was selected at init. If any
    write fails, files already written are restored and the new service
    directory is removed.

    Args:
        descriptor: Service to add
        versions: Image tags
        base_dir: Project root. Defaults to cwd.

    Returns:
        The patched compose graph

    Raises:
        ValidationError: If the descriptor is invalid
        ConflictError: If the service already exists
        PersistenceError: If a project file is missing or unreadable
    """
    if base_dir is None:
        base_dir = Path.cwd()
    versions = versions or VersionSet()

    project = load_project(base_dir)
    compose_path = base_dir / COMPOSE_FILE
    nginx_path = base_dir / NGINX_FILE

    # Previous content of every file this operation rewrites
    originals = {compose_path: read_text(compose_path, missing_code="COMPOSE_NOT_FOUND")}
    graph = patch_topology(load_compose(compose_path), descriptor, versions)

    nginx_config = None
    if project.include_proxy:
        current = load_nginx(nginx_path)
        patched = patch_proxy_config(current, [descriptor])
        if patched != current:
            nginx_config = patched
            originals[nginx_path] = current

    updated = project.model_copy(update={"services": [*project.services, descriptor]})

    service_dir = base_dir / MICROSERVICES_DIR / sanitize_file_name(service_directory(descriptor))
    if service_dir.exists():
        raise ConflictError("SERVICE_EXISTS", f"Directory {service_dir} already exists")

    written: list[Path] = []
    try:
        scaffold_microservice(base_dir, descriptor, versions)
        if nginx_config is not None:
            save_nginx(nginx_path, nginx_config)
            written.append(nginx_path)
        save_compose(compose_path, graph)
        written.append(compose_path)
        save_project(updated, base_dir)
    except (GinieError, OSError) as e:
        _rollback(written, originals, service_dir)
        if isinstance(e, GinieError):
            raise
        raise PersistenceError("WRITE_FAILED", f"Could not add {descriptor.name}: {e}") from e

    logger.info("Added service %s", descriptor.name)
    return graph


def _rollback(written: list[Path], originals: dict[Path, str], service_dir: Path) -> None:
    """Restore rewritten files and remove a partially scaffolded service."""
    for path in reversed(written):
        try:
            atomic_write_text(path, originals[path])
        except PersistenceError:
            logger.error("Could not restore %s after a failed update", path)
    shutil.rmtree(service_dir, ignore_errors=True)


def _image_field(image: str) -> str | None:
    """Version field of a known image reference, or None."""
    repository = image.split(":", 1)[0]
    for field, known in IMAGE_REPOSITORIES.items():
        if field != "runtime" and repository == known:
            return field
    return None


def update_images(versions: VersionSet, base_dir: Path | None = None) -> list[ImageChange]:
    """Point datastore, proxy and Node.js base images at the given versions.

    Only image tags change; no compose entry is added, removed or renamed.

    Args:
        versions: Image tags to apply
        base_dir: Project root. Defaults to cwd.

    Returns:
        The image references that were rewritten
    """
    if base_dir is None:
        base_dir = Path.cwd()

    changes: list[ImageChange] = []
    compose_path = base_dir / COMPOSE_FILE
    graph = load_compose(compose_path)
    updated = copy.deepcopy(graph)

    for name, spec in (updated.get("services") or {}).items():
        if not isinstance(spec, dict) or not isinstance(spec.get("image"), str):
            continue
        field = _image_field(spec["image"])
        if field is None:
            continue
        new_image = versions.image(field)
        if new_image != spec["image"]:
            changes.append(ImageChange(location=f"{COMPOSE_FILE}:{name}", old=spec["image"], new=new_image))
            spec["image"] = new_image

    if changes:
        save_compose(compose_path, updated)

    microservices_dir = base_dir / MICROSERVICES_DIR
    if microservices_dir.exists():
        for dockerfile in sorted(microservices_dir.glob("*/Dockerfile")):
            content = read_text(dockerfile)
            match = DOCKERFILE_FROM.search(content)
            new_from = f"FROM node:{versions.runtime}"
            if match is None or match.group(0) == new_from:
                continue
            atomic_write_text(dockerfile, DOCKERFILE_FROM.sub(new_from, content, count=1))
            changes.append(
                ImageChange(
                    location=str(dockerfile.relative_to(base_dir)),
                    old=match.group(0).removeprefix("FROM "),
                    new=new_from.removeprefix("FROM "),
                )
            )

    return changes


def get_project_summary(project: ProjectConfig) -> dict[str, str]:
    """Return key fields of a project for display."""
    return {
        "name": project.name,
        "protocol": project.protocol.value,
        "gateway": "Yes" if project.include_gateway else "No",
        "proxy": "Yes" if project.include_proxy else "No",
        "services": ", ".join(project.service_names()) or "-",
    }


def load_project_state(base_dir: Path | None = None) -> tuple[ProjectConfig, dict[str, Any]]:
    """Load the project config together with its compose graph."""
    if base_dir is None:
        base_dir = Path.cwd()
    return load_project(base_dir), load_compose(base_dir / COMPOSE_FILE)
