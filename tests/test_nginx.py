"""Tests for the nginx config builder and patcher."""

import pytest

from ginie.backends.nginx import (
    LOCATIONS_BEGIN,
    UPSTREAMS_BEGIN,
    ProxyRoute,
    build_proxy_config,
    has_location,
    has_upstream,
    parse_blocks,
    patch_proxy_config,
)
from ginie.model.service import ServiceDescriptor, ServiceProtocol
from ginie.model.validation import PersistenceError

HAND_WRITTEN = """events {
    worker_connections 512;
}

http {
    upstream legacy {
        server legacy:8080;
    }

    server {
        listen 80;
        location /legacy {
            proxy_pass http://legacy;
        }
    }
}
"""


class TestProxyRoute:
    """Test route naming."""

    def test_rest_route(self, auth_descriptor):
        route = ProxyRoute.from_descriptor(auth_descriptor)
        assert route.server == "auth-service:3000"
        assert route.path == "/auth"

    def test_grpc_route_port(self, grpc_descriptor):
        assert ProxyRoute.from_descriptor(grpc_descriptor).server == "billing-service:50051"


class TestBuildProxyConfig:
    """Test full config generation."""

    def test_upstream_and_location_per_service(self, auth_descriptor, orders_descriptor):
        """Test every service gets one upstream and one location."""
        config = build_proxy_config([auth_descriptor, orders_descriptor])
        blocks = parse_blocks(config)

        for name in ("auth", "orders"):
            assert has_upstream(blocks, name)
            assert has_location(blocks, name)
        assert "server auth-service:3000;" in config
        assert "proxy_pass http://orders;" in config
        assert UPSTREAMS_BEGIN in config
        assert LOCATIONS_BEGIN in config

    def test_gateway_route(self, auth_descriptor):
        """Test / is routed to the gateway only when there is one."""
        with_gateway = build_proxy_config([auth_descriptor], include_gateway=True)
        without_gateway = build_proxy_config([auth_descriptor], include_gateway=False)

        assert "server api-gateway:3000;" in with_gateway
        assert "proxy_pass http://api_gateway;" in with_gateway
        assert "api_gateway" not in without_gateway

    def test_health_endpoint(self):
        """Test the health location is always present."""
        config = build_proxy_config([])
        assert has_location(parse_blocks(config), "health")


class TestPatchProxyConfig:
    """Test incremental route additions."""

    def test_patch_adds_route(self, auth_descriptor, orders_descriptor):
        """Test a new service is routed inside the marker regions."""
        config = build_proxy_config([auth_descriptor])
        patched = patch_proxy_config(config, [orders_descriptor])
        blocks = parse_blocks(patched)

        assert has_upstream(blocks, "orders")
        assert has_location(blocks, "orders")
        assert has_upstream(blocks, "auth")
        assert patched.index("upstream orders") < patched.index("# ginie:upstreams:end")
        assert patched.index("location /orders") < patched.index("# ginie:locations:end")

    def test_patch_matches_full_build(self, auth_descriptor, orders_descriptor):
        """Test patching equals building with both services."""
        patched = patch_proxy_config(build_proxy_config([auth_descriptor]), [orders_descriptor])
        assert patched == build_proxy_config([auth_descriptor, orders_descriptor])

    def test_patch_is_idempotent(self, auth_descriptor, orders_descriptor):
        """Test patching twice equals patching once."""
        config = build_proxy_config([auth_descriptor])
        once = patch_proxy_config(config, [orders_descriptor])
        twice = patch_proxy_config(once, [orders_descriptor])
        assert once == twice

    def test_existing_route_unchanged(self, auth_descriptor):
        """Test a routed service leaves the text untouched."""
        config = build_proxy_config([auth_descriptor])
        assert patch_proxy_config(config, [auth_descriptor]) is config

    def test_config_without_markers(self, grpc_descriptor):
        """Test hand-written configs are patched inside http and server."""
        patched = patch_proxy_config(HAND_WRITTEN, [grpc_descriptor])
        blocks = parse_blocks(patched)

        assert has_upstream(blocks, "billing")
        assert has_location(blocks, "billing")
        assert has_upstream(blocks, "legacy")
        assert "server billing-service:50051;" in patched
        assert patch_proxy_config(patched, [grpc_descriptor]) == patched

    def test_missing_location_only(self):
        """Test an upstream without location gets only the location."""
        text = HAND_WRITTEN.replace("upstream legacy", "upstream reports")
        patched = patch_proxy_config(text, [ServiceDescriptor(name="reports")])

        assert patched.count("upstream reports") == 1
        assert has_location(parse_blocks(patched), "reports")

    def test_no_http_block(self, auth_descriptor):
        """Test a config without http cannot be patched."""
        with pytest.raises(PersistenceError) as exc_info:
            patch_proxy_config("events {\n}\n", [auth_descriptor])
        assert exc_info.value.code == "PROXY_CONFIG_MALFORMED"

    def test_unbalanced_braces(self, auth_descriptor):
        """Test unbalanced braces are reported."""
        with pytest.raises(PersistenceError) as exc_info:
            patch_proxy_config("http {\n    server {\n", [auth_descriptor])
        assert exc_info.value.code == "PROXY_CONFIG_MALFORMED"


class TestParseBlocks:
    """Test the brace-aware parser."""

    def test_comments_and_quotes_ignored(self):
        text = 'http {\n    # not a block {\n    add_header X "a { b";\n    server {\n    }\n}\n'
        blocks = parse_blocks(text)

        assert [b.name for b in blocks] == ["http"]
        assert [c.name for c in blocks[0].children] == ["server"]
        assert blocks[0].children[0].depth == 1

    def test_location_with_trailing_slash(self):
        blocks = parse_blocks("http { server { location /users/ { } } }")
        assert has_location(blocks, "users")
        assert not has_location(blocks, "user")

    def test_grpc_descriptor_protocol(self):
        descriptor = ServiceDescriptor(name="stream", protocol=ServiceProtocol.GRPC)
        assert ProxyRoute.from_descriptor(descriptor).port == 50051
