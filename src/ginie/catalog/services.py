"""Service definitions catalog."""

from dataclasses import dataclass

from ginie.model.service import (
    BuildConfig,
    DatabaseKind,
    ServiceDefinition,
    ServiceDescriptor,
    ServiceProtocol,
)
from ginie.model.versions import VersionSet

GATEWAY_NETWORK = "gateway_network"
INTERNAL_NETWORK = "internal_network"

# Network definitions for Compose
NETWORKS = {
    GATEWAY_NETWORK: {"driver": "bridge"},
    INTERNAL_NETWORK: {"driver": "bridge", "internal": True},
}

API_GATEWAY_NAME = "api-gateway"
NGINX_NAME = "nginx"
API_GATEWAY_PORT = 3000
REDIS_PORT = 6379

MICROSERVICES_DIR = "microservices"


@dataclass(frozen=True)
class ProtocolProfile:
    """Per-protocol layout of a generated microservice."""

    directory_suffix: str
    container_port: int
    description: str


PROTOCOL_PROFILES: dict[ServiceProtocol, ProtocolProfile] = {
    ServiceProtocol.REST: ProtocolProfile(
        directory_suffix="microservice",
        container_port=3000,
        description="REST microservice",
    ),
    ServiceProtocol.GRPC: ProtocolProfile(
        directory_suffix="grpc-microservice",
        container_port=50051,
        description="gRPC microservice",
    ),
}


@dataclass(frozen=True)
class DatabaseProfile:
    """Image and container settings of a database kind."""

    version_field: str
    port: int
    data_path: str
    environment: tuple[str, ...]


DATABASE_PROFILES: dict[DatabaseKind, DatabaseProfile] = {
    DatabaseKind.MONGODB: DatabaseProfile(
        version_field="mongodb",
        port=27017,
        data_path="/data/db",
        environment=("MONGO_INITDB_DATABASE=admin",),
    ),
    DatabaseKind.POSTGRES: DatabaseProfile(
        version_field="postgres",
        port=5432,
        data_path="/var/lib/postgresql/data",
        environment=(
            "POSTGRES_DB=mydb",
            "POSTGRES_USER=user",
            "POSTGRES_PASSWORD=password",
        ),
    ),
    DatabaseKind.MYSQL: DatabaseProfile(
        version_field="mysql",
        port=3306,
        data_path="/var/lib/mysql",
        environment=(
            "MYSQL_DATABASE=mydb",
            "MYSQL_USER=user",
            "MYSQL_PASSWORD=password",
            "MYSQL_ROOT_PASSWORD=rootpassword",
        ),
    ),
}


def service_directory(descriptor: ServiceDescriptor) -> str:
    """Directory name of a microservice under microservices/."""
    profile = PROTOCOL_PROFILES[descriptor.protocol]
    return f"{descriptor.name}-{profile.directory_suffix}"


def container_port(descriptor: ServiceDescriptor) -> int:
    """Port the microservice listens on inside its container."""
    return PROTOCOL_PROFILES[descriptor.protocol].container_port


# ============================================================================
# Microservice entries
# ============================================================================


def _microservice_service(descriptor: ServiceDescriptor) -> ServiceDefinition:
    """Create the service entry of a microservice."""
    environment = ["NODE_ENV=development", f"PORT={container_port(descriptor)}"]
    depends_on: list[str] = []

    if descriptor.database is not None:
        db = DATABASE_PROFILES[descriptor.database]
        environment.extend(
            [
                f"DB_HOST={descriptor.database_name}",
                f"DB_PORT={db.port}",
                f"DB_NAME={descriptor.name}_db",
                "DB_USER=user",
                "DB_PASSWORD=password",
            ]
        )
        depends_on.append(descriptor.database_name)

    if descriptor.include_redis:
        environment.extend(
            [
                f"REDIS_HOST={descriptor.redis_name}",
                f"REDIS_PORT={REDIS_PORT}",
            ]
        )
        depends_on.append(descriptor.redis_name)

    return ServiceDefinition(
        name=descriptor.service_name,
        build=BuildConfig(context=f"./{MICROSERVICES_DIR}/{service_directory(descriptor)}"),
        environment=environment,
        networks=[INTERNAL_NETWORK],
        depends_on=depends_on,
        ports=list(descriptor.ports),
    )


def _database_service(descriptor: ServiceDescriptor, versions: VersionSet) -> ServiceDefinition:
    """Create the database entry of a microservice."""
    if descriptor.database is None:
        raise ValueError(f"Service '{descriptor.name}' has no database")

    db = DATABASE_PROFILES[descriptor.database]
    return ServiceDefinition(
        name=descriptor.database_name,
        image=versions.image(db.version_field),
        environment=list(db.environment),
        networks=[INTERNAL_NETWORK],
        volumes=[f"{descriptor.volume_name}:{db.data_path}"],
    )


def _redis_service(descriptor: ServiceDescriptor, versions: VersionSet) -> ServiceDefinition:
    """Create the cache entry of a microservice."""
    return ServiceDefinition(
        name=descriptor.redis_name,
        image=versions.image("redis"),
        networks=[INTERNAL_NETWORK],
    )


def get_descriptor_services(descriptor: ServiceDescriptor, versions: VersionSet) -> list[ServiceDefinition]:
    """Return every compose entry derived from one descriptor, in order."""
    services = [_microservice_service(descriptor)]
    if descriptor.database is not None:
        services.append(_database_service(descriptor, versions))
    if descriptor.include_redis:
        services.append(_redis_service(descriptor, versions))
    return services


# ============================================================================
# Infrastructure Services
# ============================================================================


def _api_gateway_service() -> ServiceDefinition:
    """Create API Gateway service definition.

    Routed services are discovered by the gateway at request time, so no
    dependency edges are wired here.
    """
    return ServiceDefinition(
        name=API_GATEWAY_NAME,
        build=BuildConfig(context=f"./{MICROSERVICES_DIR}/{API_GATEWAY_NAME}"),
        environment=["NODE_ENV=development", f"PORT={API_GATEWAY_PORT}"],
        networks=[GATEWAY_NETWORK, INTERNAL_NETWORK],
        depends_on=[],
        ports=[f"{API_GATEWAY_PORT}:{API_GATEWAY_PORT}"],
    )


def _nginx_service(versions: VersionSet, include_gateway: bool) -> ServiceDefinition:
    """Create Nginx reverse proxy service definition."""
    return ServiceDefinition(
        name=NGINX_NAME,
        image=versions.image("proxy"),
        networks=[GATEWAY_NETWORK],
        depends_on=[API_GATEWAY_NAME] if include_gateway else [],
        ports=["80:80", "443:443"],
        volumes=[
            "./nginx.conf:/etc/nginx/nginx.conf:ro",
            "./ssl:/etc/ssl:ro",
        ],
    )
