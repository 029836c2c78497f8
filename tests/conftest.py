"""Pytest configuration and shared fixtures."""

import pytest
import requests
from typer.testing import CliRunner

from ginie.model.service import DatabaseKind, ServiceDescriptor, ServiceProtocol
from ginie.utils.registry import VersionResolver

# Tags returned by the fake registry, per repository
REGISTRY_TAGS = {
    "node": ["latest", "20-alpine", "22-alpine", "22-bookworm", "18-alpine"],
    "mongo": ["7.0", "8.0", "latest", "8.0-rc1"],
    "postgres": ["16", "17", "17-alpine", "latest"],
    "mysql": ["8.4", "9.1", "8.0"],
    "redis": ["7-alpine", "8-alpine", "8"],
    "nginx": ["1.27.3-alpine", "1.27-alpine", "1.26.2-alpine", "mainline"],
}


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    """Registry session serving REGISTRY_TAGS, optionally failing some repositories."""

    def __init__(self, tags=None, timeouts=(), errors=(), payloads=None):
        self.tags = REGISTRY_TAGS if tags is None else tags
        self.payloads = payloads or {}
        self.timeouts = set(timeouts)
        self.errors = set(errors)
        self.calls: list[str] = []

    def get(self, url, params=None, timeout=None):
        repository = url.rstrip("/").split("/")[-2]
        self.calls.append(repository)
        if repository in self.timeouts:
            raise requests.Timeout(f"read timeout={timeout}")
        if repository in self.errors:
            return FakeResponse({}, status_code=503)
        if repository in self.payloads:
            return FakeResponse(self.payloads[repository])
        return FakeResponse({"results": [{"name": tag} for tag in self.tags.get(repository, [])]})


@pytest.fixture
def cli_runner():
    """CLI runner for typer testing."""
    return CliRunner()


@pytest.fixture
def fake_session():
    """Registry session answering every lookup."""
    return FakeSession()


@pytest.fixture
def offline_resolver():
    """Resolver that never touches the network."""
    return VersionResolver(offline=True)


@pytest.fixture
def auth_descriptor():
    """REST service with MongoDB and Redis."""
    return ServiceDescriptor(name="auth", database=DatabaseKind.MONGODB, include_redis=True)


@pytest.fixture
def orders_descriptor():
    """REST service with Postgres and no cache."""
    return ServiceDescriptor(name="orders", database=DatabaseKind.POSTGRES)


@pytest.fixture
def grpc_descriptor():
    """gRPC service without datastores."""
    return ServiceDescriptor(name="billing", protocol=ServiceProtocol.GRPC)
