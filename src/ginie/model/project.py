"""Project configuration model."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from ginie.model.service import ServiceDescriptor, ServiceProtocol

PROJECT_NAME_MAX_LENGTH = 50


class ProjectConfig(BaseModel):
    """Options chosen when a project was initialized."""

    name: str = Field(min_length=1, max_length=PROJECT_NAME_MAX_LENGTH)
    protocol: ServiceProtocol = Field(default=ServiceProtocol.REST)
    include_gateway: bool = Field(default=True)
    include_proxy: bool = Field(default=False)
    services: list[ServiceDescriptor] = Field(default_factory=list)
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def service_names(self) -> list[str]:
        """Names of the services recorded for this project."""
        return [s.name for s in self.services]
