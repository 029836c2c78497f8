"""Tests for project-level operations."""

import pytest
import yaml

from ginie.model.service import DatabaseKind, ServiceDescriptor, ServiceProtocol
from ginie.model.validation import ConflictError, PersistenceError, ValidationError, load_project
from ginie.model.versions import VersionSet
from ginie.project_ops import (
    add_service,
    create_project,
    get_project_summary,
    load_project_state,
    update_images,
)


@pytest.fixture
def shop(tmp_path, auth_descriptor):
    """Generated project with the auth service, gateway and proxy."""
    return create_project(
        "shop",
        [auth_descriptor],
        include_gateway=True,
        include_proxy=True,
        base_dir=tmp_path,
    )


class TestCreateProject:
    """Test project generation."""

    def test_files_written(self, shop):
        assert (shop / "docker-compose.yml").exists()
        assert (shop / "nginx.conf").exists()
        assert (shop / ".ginie" / "project.json").exists()
        assert (shop / "microservices" / "auth-microservice" / "Dockerfile").exists()
        assert (shop / "microservices" / "api-gateway" / "package.json").exists()

    def test_compose_content(self, shop):
        graph = yaml.safe_load((shop / "docker-compose.yml").read_text())
        assert list(graph["services"]) == ["auth-service", "auth-db", "auth-redis", "api-gateway", "nginx"]
        assert "version" not in graph

    def test_no_proxy_no_nginx_file(self, tmp_path, grpc_descriptor):
        project_dir = create_project("bare", [grpc_descriptor], include_gateway=False, base_dir=tmp_path)
        assert not (project_dir / "nginx.conf").exists()
        assert not (project_dir / "microservices" / "api-gateway").exists()

    def test_gateway_only_project(self, tmp_path):
        """Test a project may start without microservices."""
        project_dir = create_project("empty", [], base_dir=tmp_path)
        _, graph = load_project_state(project_dir)
        assert list(graph["services"]) == ["api-gateway"]

    def test_existing_directory(self, shop, auth_descriptor):
        with pytest.raises(ValidationError) as exc_info:
            create_project("shop", [auth_descriptor], base_dir=shop.parent)
        assert exc_info.value.code == "PROJECT_EXISTS"

    def test_invalid_descriptor_writes_nothing(self, tmp_path):
        with pytest.raises(ValidationError):
            create_project("shop", [ServiceDescriptor(name="api")], base_dir=tmp_path)
        assert not (tmp_path / "shop").exists()

    def test_long_name_writes_nothing(self, tmp_path):
        """Test an over-long project name is rejected before any write."""
        with pytest.raises(ValidationError) as exc_info:
            create_project("p" * 70, [], base_dir=tmp_path)

        assert exc_info.value.code == "INVALID_NAME"
        assert list(tmp_path.iterdir()) == []

    def test_failed_write_removes_project(self, tmp_path, auth_descriptor, monkeypatch):
        """Test a failed write leaves no half-generated project behind."""

        def failing_save(path, graph):
            raise PersistenceError("WRITE_FAILED", f"Could not write {path}")

        monkeypatch.setattr("ginie.project_ops.save_compose", failing_save)

        with pytest.raises(PersistenceError):
            create_project("shop", [auth_descriptor], base_dir=tmp_path)

        assert not (tmp_path / "shop").exists()


class TestAddService:
    """Test adding a microservice to an existing project."""

    def test_add_updates_all_files(self, shop, orders_descriptor):
        graph = add_service(orders_descriptor, versions=VersionSet(postgres="17"), base_dir=shop)

        assert graph["services"]["orders-db"]["image"] == "postgres:17"
        on_disk = yaml.safe_load((shop / "docker-compose.yml").read_text())
        assert on_disk == graph
        assert "upstream orders" in (shop / "nginx.conf").read_text()
        assert load_project(shop).service_names() == ["auth", "orders"]
        assert (shop / "microservices" / "orders-microservice").is_dir()

    def test_conflict_leaves_files_untouched(self, shop):
        compose_before = (shop / "docker-compose.yml").read_text()
        nginx_before = (shop / "nginx.conf").read_text()

        with pytest.raises(ConflictError):
            add_service(ServiceDescriptor(name="auth", database=DatabaseKind.MYSQL), base_dir=shop)

        assert (shop / "docker-compose.yml").read_text() == compose_before
        assert (shop / "nginx.conf").read_text() == nginx_before
        assert load_project(shop).service_names() == ["auth"]

    def test_failed_compose_write_rolls_back(self, shop, orders_descriptor, monkeypatch):
        """Test a failed compose write restores nginx.conf and removes the new directory."""
        compose_before = (shop / "docker-compose.yml").read_text()
        nginx_before = (shop / "nginx.conf").read_text()

        def failing_save(path, graph):
            raise PersistenceError("WRITE_FAILED", f"Could not write {path}")

        monkeypatch.setattr("ginie.project_ops.save_compose", failing_save)

        with pytest.raises(PersistenceError):
            add_service(orders_descriptor, base_dir=shop)

        assert (shop / "nginx.conf").read_text() == nginx_before
        assert (shop / "docker-compose.yml").read_text() == compose_before
        assert not (shop / "microservices" / "orders-microservice").exists()
        assert load_project(shop).service_names() == ["auth"]

    def test_failed_project_write_rolls_back(self, shop, orders_descriptor, monkeypatch):
        """Test a failed project.json write restores compose and nginx files."""
        compose_before = (shop / "docker-compose.yml").read_text()
        nginx_before = (shop / "nginx.conf").read_text()

        def failing_save(project, base_dir=None):
            raise PersistenceError("WRITE_FAILED", "Could not write project.json")

        monkeypatch.setattr("ginie.project_ops.save_project", failing_save)

        with pytest.raises(PersistenceError):
            add_service(orders_descriptor, base_dir=shop)

        assert (shop / "docker-compose.yml").read_text() == compose_before
        assert (shop / "nginx.conf").read_text() == nginx_before
        assert not (shop / "microservices" / "orders-microservice").exists()

    def test_existing_service_directory(self, shop, orders_descriptor):
        """Test a leftover directory is reported and kept as is."""
        leftover = shop / "microservices" / "orders-microservice"
        leftover.mkdir()
        (leftover / "notes.txt").write_text("keep me")
        compose_before = (shop / "docker-compose.yml").read_text()

        with pytest.raises(ConflictError):
            add_service(orders_descriptor, base_dir=shop)

        assert (leftover / "notes.txt").read_text() == "keep me"
        assert (shop / "docker-compose.yml").read_text() == compose_before

    def test_missing_compose_file(self, shop, orders_descriptor):
        """Test a deleted compose file is reported, not regenerated."""
        (shop / "docker-compose.yml").unlink()

        with pytest.raises(PersistenceError) as exc_info:
            add_service(orders_descriptor, base_dir=shop)

        assert exc_info.value.code == "COMPOSE_NOT_FOUND"
        assert not (shop / "docker-compose.yml").exists()
        assert not (shop / "microservices" / "orders-microservice").exists()

    def test_proxy_not_selected(self, tmp_path, auth_descriptor, orders_descriptor):
        project_dir = create_project("plain", [auth_descriptor], base_dir=tmp_path)
        add_service(orders_descriptor, base_dir=project_dir)
        assert not (project_dir / "nginx.conf").exists()

    def test_not_a_project(self, tmp_path, orders_descriptor):
        with pytest.raises(PersistenceError) as exc_info:
            add_service(orders_descriptor, base_dir=tmp_path)
        assert exc_info.value.code == "PROJECT_NOT_FOUND"


class TestUpdateImages:
    """Test image tag updates."""

    def test_updates_datastores_and_runtime(self, shop):
        versions = VersionSet(runtime="22-alpine", mongodb="8.0", redis="8-alpine", proxy="1.27-alpine")
        changes = update_images(versions, base_dir=shop)

        graph = yaml.safe_load((shop / "docker-compose.yml").read_text())
        assert graph["services"]["auth-db"]["image"] == "mongo:8.0"
        assert graph["services"]["auth-redis"]["image"] == "redis:8-alpine"
        assert graph["services"]["nginx"]["image"] == "nginx:1.27-alpine"
        assert list(graph["services"]) == ["auth-service", "auth-db", "auth-redis", "api-gateway", "nginx"]

        dockerfile = shop / "microservices" / "auth-microservice" / "Dockerfile"
        assert dockerfile.read_text().startswith("FROM node:22-alpine")
        locations = {c.location for c in changes}
        assert "docker-compose.yml:auth-db" in locations
        assert "microservices/auth-microservice/Dockerfile" in locations

    def test_up_to_date(self, shop):
        assert update_images(VersionSet(), base_dir=shop) == []


class TestProjectSummary:
    def test_summary(self, shop):
        project, _ = load_project_state(shop)
        summary = get_project_summary(project)
        assert summary["name"] == "shop"
        assert summary["proxy"] == "Yes"
        assert summary["services"] == "auth"
        assert project.protocol == ServiceProtocol.REST
