"""Image version model."""

from pydantic import BaseModel, Field

# Used whenever a registry lookup fails
FALLBACK_VERSIONS: dict[str, str] = {
    "runtime": "18-alpine",
    "mongodb": "6",
    "postgres": "15",
    "mysql": "8",
    "redis": "7-alpine",
    "proxy": "alpine",
}

# Docker Hub repository backing each version field
IMAGE_REPOSITORIES: dict[str, str] = {
    "runtime": "node",
    "mongodb": "mongo",
    "postgres": "postgres",
    "mysql": "mysql",
    "redis": "redis",
    "proxy": "nginx",
}


class VersionSet(BaseModel):
    """Image tags used when rendering services."""

    runtime: str = Field(default=FALLBACK_VERSIONS["runtime"])
    mongodb: str = Field(default=FALLBACK_VERSIONS["mongodb"])
    postgres: str = Field(default=FALLBACK_VERSIONS["postgres"])
    mysql: str = Field(default=FALLBACK_VERSIONS["mysql"])
    redis: str = Field(default=FALLBACK_VERSIONS["redis"])
    proxy: str = Field(default=FALLBACK_VERSIONS["proxy"])

    def image(self, field: str) -> str:
        """Return the full image reference for a version field.

        Args:
            field: Version field name (e.g., 'postgres', 'proxy')

        Returns:
            Image reference such as 'postgres:15'
        """
        return f"{IMAGE_REPOSITORIES[field]}:{getattr(self, field)}"

    def to_dict(self) -> dict[str, str]:
        return self.model_dump()
