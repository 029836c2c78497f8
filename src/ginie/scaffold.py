"""Source tree scaffolding for generated projects."""

import json
import logging
from pathlib import Path
from typing import Any

from ginie.catalog.services import (
    API_GATEWAY_NAME,
    API_GATEWAY_PORT,
    MICROSERVICES_DIR,
    PROTOCOL_PROFILES,
    container_port,
    service_directory,
)
from ginie.model.service import ServiceDescriptor, ServiceProtocol
from ginie.model.validation import ConflictError, sanitize_file_name
from ginie.model.versions import VersionSet

logger = logging.getLogger(__name__)

DOCKERIGNORE = "node_modules\nnpm-debug.log\n.env\n"
GITIGNORE = "node_modules/\n.env\n.DS_Store\nlogs/\n*.log\n"

DEV_DEPENDENCIES = {
    "nodemon": "^3.0.1",
    "jest": "^29.6.4",
}

DEPENDENCIES: dict[ServiceProtocol, dict[str, str]] = {
    ServiceProtocol.REST: {
        "express": "^4.18.2",
        "cors": "^2.8.5",
        "helmet": "^7.0.0",
        "morgan": "^1.10.0",
        "dotenv": "^16.3.1",
    },
    ServiceProtocol.GRPC: {
        "@grpc/grpc-js": "^1.8.0",
        "@grpc/proto-loader": "^0.7.8",
        "google-protobuf": "^3.21.2",
    },
}

ENTRYPOINTS = {
    ServiceProtocol.REST: "src/app.js",
    ServiceProtocol.GRPC: "src/server.js",
}

# Empty source files; {name} is the service name
SOURCE_FILES: dict[ServiceProtocol, tuple[str, ...]] = {
    ServiceProtocol.REST: (
        "src/app.js",
        "src/config/database.js",
        "src/config/server.js",
        "src/controllers/{name}.controller.js",
        "src/models/{name}.model.js",
        "src/routes/{name}.routes.js",
        "src/routes/index.js",
        "src/services/{name}.service.js",
        "src/middleware/validation.js",
        "src/middleware/errorHandler.js",
        "src/utils/logger.js",
        "src/utils/helpers.js",
        "tests/{name}.test.js",
        "tests/setup.js",
    ),
    ServiceProtocol.GRPC: (
        "proto/{name}.proto",
        "src/server.js",
        "src/client.js",
        "src/config/grpc.js",
        "src/handlers/{name}.handler.js",
        "src/services/{name}.service.js",
        "src/utils/logger.js",
        "src/utils/helpers.js",
        "tests/{name}.test.js",
        "tests/server.test.js",
        "tests/client.test.js",
    ),
}

GATEWAY_FILES = (
    "src/app.js",
    "src/config/server.js",
    "src/config/proxy.js",
    "src/middleware/auth.js",
    "src/middleware/rateLimit.js",
    "src/middleware/validation.js",
    "src/routes/index.js",
    "src/routes/health.js",
    "src/services/serviceDiscovery.js",
    "src/utils/logger.js",
    "tests/app.test.js",
)

GATEWAY_ENV = f"""# API Gateway Configuration
NODE_ENV=development
PORT={API_GATEWAY_PORT}
LOG_LEVEL=info

# Service Discovery
SERVICE_DISCOVERY_TYPE=static

# Rate Limiting
RATE_LIMIT_WINDOW_MS=900000
RATE_LIMIT_MAX_REQUESTS=100

# CORS
CORS_ORIGIN=http://localhost:{API_GATEWAY_PORT}
CORS_CREDENTIALS=true
"""


def render_dockerfile(protocol: ServiceProtocol, runtime: str, port: int) -> str:
    """Render the Dockerfile of a Node.js service."""
    if protocol == ServiceProtocol.GRPC:
        install = "RUN npm install"
        copy = "COPY proto/ ./proto/\nCOPY src/ ./src/"
    else:
        install = "RUN npm install --only=production"
        copy = "COPY . ."

    return (
        f"FROM node:{runtime}\n"
        "\n"
        "WORKDIR /app\n"
        "\n"
        "COPY package*.json ./\n"
        "\n"
        f"{install}\n"
        "\n"
        f"{copy}\n"
        "\n"
        f"EXPOSE {port}\n"
        "\n"
        'CMD ["npm", "start"]\n'
    )


def service_package_json(descriptor: ServiceDescriptor) -> dict[str, Any]:
    """Build package.json of a microservice."""
    directory = service_directory(descriptor)
    entrypoint = ENTRYPOINTS[descriptor.protocol]
    scripts = {
        "start": f"node {entrypoint}",
        "dev": f"nodemon {entrypoint}",
        "test": "jest",
    }
    dev_dependencies = dict(DEV_DEPENDENCIES)

    if descriptor.protocol == ServiceProtocol.GRPC:
        scripts["generate:proto"] = (
            "grpc_tools_node_protoc --js_out=import_style=commonjs,binary:. --grpc_out=. "
            "--plugin=protoc-gen-grpc=./node_modules/.bin/grpc_tools_node_protoc_plugin "
            f"proto/{descriptor.name}.proto"
        )
        dev_dependencies = {"grpc-tools": "^1.12.4", **dev_dependencies}

    return {
        "name": directory,
        "version": "1.0.0",
        "description": f"{descriptor.name} {PROTOCOL_PROFILES[descriptor.protocol].description}",
        "main": entrypoint,
        "scripts": scripts,
        "dependencies": dict(DEPENDENCIES[descriptor.protocol]),
        "devDependencies": dev_dependencies,
    }


def monorepo_package_json(project_name: str, include_gateway: bool = True) -> dict[str, Any]:
    """Build the root package.json of the monorepo."""
    workspaces = [
        f"{MICROSERVICES_DIR}/*-microservice",
        f"{MICROSERVICES_DIR}/*-grpc-microservice",
    ]
    if include_gateway:
        workspaces.append(f"{MICROSERVICES_DIR}/{API_GATEWAY_NAME}")

    return {
        "name": project_name,
        "version": "1.0.0",
        "description": f"{project_name} microservices monorepo",
        "scripts": {
            "dev": 'concurrently "npm run dev --workspace=*"',
            "test": "jest",
            "ginie": "ginie add",
            "compose:up": "docker compose up -d",
            "compose:down": "docker compose down",
            "compose:logs": "docker compose logs -f",
        },
        "devDependencies": {},
        "workspaces": workspaces,
    }


def _write_json(path: Path, data: dict[str, Any]) -> None:
    path.write_text(json.dumps(data, indent=2) + "\n")


def _create_files(base_path: Path, files: tuple[str, ...], name: str) -> None:
    for relative in files:
        file_path = base_path / relative.format(name=name)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.touch()


def scaffold_microservice(project_dir: Path, descriptor: ServiceDescriptor, versions: VersionSet) -> Path:
    """Create the source tree of one microservice.

    Args:
        project_dir: Project root
        descriptor: Service to scaffold
        versions: Image tags, for the Dockerfile base image

    Returns:
        Path of the created service directory

    Raises:
        ConflictError: If the service directory already exists
    """
    base_path = project_dir / MICROSERVICES_DIR / sanitize_file_name(service_directory(descriptor))
    if base_path.exists():
        raise ConflictError("SERVICE_EXISTS", f"Directory {base_path} already exists")

    base_path.mkdir(parents=True)
    (base_path / "Dockerfile").write_text(
        render_dockerfile(descriptor.protocol, versions.runtime, container_port(descriptor))
    )
    (base_path / ".dockerignore").write_text(DOCKERIGNORE)
    (base_path / ".gitignore").write_text(GITIGNORE)
    (base_path / ".env").write_text("")
    (base_path / ".env.example").write_text("")
    _write_json(base_path / "package.json", service_package_json(descriptor))
    _create_files(base_path, SOURCE_FILES[descriptor.protocol], descriptor.name)

    logger.debug("Scaffolded %s", base_path)
    return base_path


def scaffold_api_gateway(project_dir: Path, versions: VersionSet) -> Path:
    """Create the source tree of the API gateway."""
    base_path = project_dir / MICROSERVICES_DIR / API_GATEWAY_NAME
    base_path.mkdir(parents=True, exist_ok=True)

    (base_path / "Dockerfile").write_text(render_dockerfile(ServiceProtocol.REST, versions.runtime, API_GATEWAY_PORT))
    (base_path / ".dockerignore").write_text(DOCKERIGNORE)
    (base_path / ".gitignore").write_text(GITIGNORE)
    (base_path / ".env").write_text(GATEWAY_ENV)
    (base_path / ".env.example").write_text(GATEWAY_ENV)
    _write_json(
        base_path / "package.json",
        {
            "name": API_GATEWAY_NAME,
            "version": "1.0.0",
            "description": "API Gateway for microservices",
            "main": "src/app.js",
            "scripts": {
                "start": "node src/app.js",
                "dev": "nodemon src/app.js",
                "test": "jest",
            },
            "dependencies": {
                "express": "^4.18.2",
                "http-proxy-middleware": "^2.0.6",
                "cors": "^2.8.5",
                "helmet": "^7.0.0",
                "morgan": "^1.10.0",
                "dotenv": "^16.3.1",
                "express-rate-limit": "^6.7.0",
            },
            "devDependencies": dict(DEV_DEPENDENCIES),
        },
    )
    _create_files(base_path, GATEWAY_FILES, API_GATEWAY_NAME)
    return base_path


def scaffold_project_root(project_dir: Path, project_name: str, include_gateway: bool) -> None:
    """Write the root files of a new monorepo."""
    (project_dir / MICROSERVICES_DIR).mkdir(parents=True, exist_ok=True)
    _write_json(project_dir / "package.json", monorepo_package_json(project_name, include_gateway))
    (project_dir / ".gitignore").write_text(GITIGNORE)
