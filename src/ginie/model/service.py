"""Service models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ServiceProtocol(str, Enum):
    """Communication protocol of a microservice."""

    REST = "rest"  # HTTP/JSON request-response
    GRPC = "grpc"  # Protocol Buffers contract


class DatabaseKind(str, Enum):
    """Database provisioned alongside a microservice."""

    MONGODB = "mongodb"
    POSTGRES = "postgres"
    MYSQL = "mysql"


class ServiceDescriptor(BaseModel):
    """Generation parameters for one microservice."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    protocol: ServiceProtocol = Field(default=ServiceProtocol.REST)
    database: DatabaseKind | None = Field(default=None)
    include_redis: bool = Field(default=False, alias="includeRedis")
    ports: list[str] = Field(default_factory=list)

    @property
    def service_name(self) -> str:
        return f"{self.name}-service"

    @property
    def database_name(self) -> str:
        return f"{self.name}-db"

    @property
    def redis_name(self) -> str:
        return f"{self.name}-redis"

    @property
    def volume_name(self) -> str:
        return f"{self.name}-db-data"


class BuildConfig(BaseModel):
    """Build context of a locally built image."""

    context: str
    dockerfile: str = Field(default="Dockerfile")


class ServiceDefinition(BaseModel):
    """Definition of one docker-compose service entry."""

    name: str
    image: str | None = Field(default=None)
    build: BuildConfig | None = Field(default=None)
    environment: list[str] = Field(default_factory=list)
    networks: list[str] = Field(default_factory=list)
    depends_on: list[str] = Field(default_factory=list)
    ports: list[str] = Field(default_factory=list)
    volumes: list[str] = Field(default_factory=list)
    restart: str = Field(default="unless-stopped")
