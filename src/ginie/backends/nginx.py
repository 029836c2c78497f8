"""Nginx reverse proxy config builder and patcher.

Generated configs delimit the regions that later runs may extend with
marker comments. Configs without markers are edited through a small
brace-aware parser: upstreams go right after the opening brace of the
top-level ``http`` block, locations right after the opening brace of its
first ``server`` block.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from ginie.catalog.services import API_GATEWAY_NAME, API_GATEWAY_PORT, container_port
from ginie.model.service import ServiceDescriptor
from ginie.model.validation import PersistenceError

logger = logging.getLogger(__name__)

UPSTREAMS_BEGIN = "# ginie:upstreams:begin"
UPSTREAMS_END = "# ginie:upstreams:end"
LOCATIONS_BEGIN = "# ginie:locations:begin"
LOCATIONS_END = "# ginie:locations:end"

GATEWAY_UPSTREAM = "api_gateway"
INDENT = "    "

PROXY_HEADERS = (
    "proxy_set_header Host $host;",
    "proxy_set_header X-Real-IP $remote_addr;",
    "proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;",
    "proxy_set_header X-Forwarded-Proto $scheme;",
)


@dataclass(frozen=True)
class ProxyRoute:
    """Upstream and location of one routed service."""

    name: str
    port: int

    @classmethod
    def from_descriptor(cls, descriptor: ServiceDescriptor) -> "ProxyRoute":
        return cls(name=descriptor.name, port=container_port(descriptor))

    @property
    def server(self) -> str:
        return f"{self.name}-service:{self.port}"

    @property
    def path(self) -> str:
        return f"/{self.name}"


@dataclass
class Block:
    """A ``name args { ... }`` block of an nginx config."""

    name: str
    args: list[str]
    start: int  # offset of the opening brace
    end: int = -1  # offset of the closing brace
    depth: int = 0
    children: list["Block"] = field(default_factory=list)

    def walk(self) -> Iterable["Block"]:
        yield self
        for child in self.children:
            yield from child.walk()


def parse_blocks(text: str) -> list[Block]:
    """Parse the block structure of an nginx config.

    Comments and quoted strings are skipped; simple directives are ignored.

    Raises:
        PersistenceError: If braces are unbalanced
    """
    top: list[Block] = []
    stack: list[Block] = []
    statement: list[str] = []
    i = 0
    n = len(text)

    while i < n:
        c = text[i]
        if c == "#":
            newline = text.find("\n", i)
            i = n if newline == -1 else newline
            continue
        if c in ("'", '"'):
            j = i + 1
            while j < n and text[j] != c:
                j += 2 if text[j] == "\\" else 1
            statement.append(text[i : j + 1])
            i = j + 1
            continue

        if c == "{":
            words = "".join(statement).split()
            block = Block(name=words[0] if words else "", args=words[1:], start=i, depth=len(stack))
            (stack[-1].children if stack else top).append(block)
            stack.append(block)
            statement = []
        elif c == "}":
            if not stack:
                raise PersistenceError("PROXY_CONFIG_MALFORMED", f"Unexpected '}}' at offset {i}")
            stack.pop().end = i
            statement = []
        elif c == ";":
            statement = []
        else:
            statement.append(c)
        i += 1

    if stack:
        raise PersistenceError("PROXY_CONFIG_MALFORMED", f"Unclosed '{stack[-1].name}' block")
    return top


def _all_blocks(blocks: list[Block]) -> Iterable[Block]:
    for block in blocks:
        yield from block.walk()


def has_upstream(blocks: list[Block], name: str) -> bool:
    """Check for an ``upstream <name>`` block."""
    return any(b.name == "upstream" and b.args == [name] for b in _all_blocks(blocks))


def has_location(blocks: list[Block], name: str) -> bool:
    """Check for a ``location /<name>`` block."""
    paths = {f"/{name}", f"/{name}/"}
    return any(b.name == "location" and b.args and b.args[-1] in paths for b in _all_blocks(blocks))


def _indent(lines: list[str], level: int) -> str:
    return "\n".join(f"{INDENT * level}{line}" if line else "" for line in lines)


def render_upstream(name: str, server: str, level: int = 1) -> str:
    """Render an ``upstream`` block with a single server."""
    return _indent([f"upstream {name} {{", f"{INDENT}server {server};", "}"], level)


def render_location(path: str, upstream: str, level: int = 2) -> str:
    """Render a ``location`` block proxying to an upstream."""
    lines = [f"location {path} {{", f"{INDENT}proxy_pass http://{upstream};"]
    lines.extend(f"{INDENT}{header}" for header in PROXY_HEADERS)
    lines.append("}")
    return _indent(lines, level)


def _unique_routes(services: Iterable[ServiceDescriptor | ProxyRoute]) -> list[ProxyRoute]:
    routes: dict[str, ProxyRoute] = {}
    for service in services:
        route = service if isinstance(service, ProxyRoute) else ProxyRoute.from_descriptor(service)
        routes.setdefault(route.name, route)
    return list(routes.values())


def build_proxy_config(
    services: Iterable[ServiceDescriptor | ProxyRoute],
    include_gateway: bool = True,
) -> str:
    """Build nginx.conf with one upstream and one location per service.

    Args:
        services: Routed services, in output order
        include_gateway: Route ``/`` to the API gateway

    Returns:
        Full nginx.conf content
    """
    routes = _unique_routes(services)

    upstreams: list[str] = []
    if include_gateway:
        upstreams.append(render_upstream(GATEWAY_UPSTREAM, f"{API_GATEWAY_NAME}:{API_GATEWAY_PORT}"))
    upstreams.append(_indent([UPSTREAMS_BEGIN], 1))
    upstreams.extend(render_upstream(r.name, r.server) for r in routes)
    upstreams.append(_indent([UPSTREAMS_END], 1))

    locations = [_indent([LOCATIONS_BEGIN], 2)]
    locations.extend(render_location(r.path, r.name) for r in routes)
    locations.append(_indent([LOCATIONS_END], 2))

    if include_gateway:
        locations.append("")
        locations.append(render_location("/", GATEWAY_UPSTREAM))

    health = _indent(
        [
            "location /health {",
            f"{INDENT}access_log off;",
            f"{INDENT}add_header Content-Type text/plain;",
            f'{INDENT}return 200 "healthy\\n";',
            "}",
        ],
        2,
    )

    parts = [
        "# Nginx reverse proxy configuration",
        "events {",
        f"{INDENT}worker_connections 1024;",
        "}",
        "",
        "http {",
        *upstreams,
        "",
        f"{INDENT}server {{",
        f"{INDENT * 2}listen 80;",
        f"{INDENT * 2}server_name localhost;",
        "",
        f"{INDENT * 2}# Security headers",
        f"{INDENT * 2}add_header X-Frame-Options DENY always;",
        f"{INDENT * 2}add_header X-Content-Type-Options nosniff always;",
        f'{INDENT * 2}add_header X-XSS-Protection "1; mode=block" always;',
        "",
        *locations,
        "",
        health,
        f"{INDENT}}}",
        "}",
    ]
    return "\n".join(parts) + "\n"


def _marker_offset(text: str, begin: str, end: str) -> int | None:
    """Offset of the start of the line holding the end marker, if both markers are present."""
    begin_at = text.find(begin)
    end_at = text.find(end)
    if begin_at == -1 or end_at == -1 or end_at < begin_at:
        return None
    return text.rfind("\n", 0, end_at) + 1


def _insert_at_marker(text: str, offset: int, chunk: str) -> str:
    line_end = text.find("\n", offset)
    line = text[offset : line_end if line_end != -1 else len(text)]
    level = (len(line) - len(line.lstrip(" "))) // len(INDENT)
    return text[:offset] + _reindent(chunk, level) + "\n" + text[offset:]


def _insert_after_brace(text: str, block: Block, chunk: str) -> str:
    pos = block.start + 1
    return text[:pos] + "\n" + _reindent(chunk, block.depth + 1) + text[pos:]


def _reindent(chunk: str, level: int) -> str:
    return _indent(chunk.split("\n"), level)


def patch_proxy_config(existing_text: str, services: Iterable[ServiceDescriptor | ProxyRoute]) -> str:
    """Ensure every service has an upstream and a location block.

    Services that already have them are left alone, so patching twice with
    the same services gives the same text as patching once.

    Args:
        existing_text: Current nginx.conf content
        services: Services that must be routed

    Returns:
        Updated nginx.conf content

    Raises:
        PersistenceError: If the config has no http block, or no server
            block when a location has to be added
    """
    blocks = parse_blocks(existing_text)
    routes = _unique_routes(services)

    missing_upstreams = [r for r in routes if not has_upstream(blocks, r.name)]
    missing_locations = [r for r in routes if not has_location(blocks, r.name)]
    if not missing_upstreams and not missing_locations:
        return existing_text

    http = next((b for b in blocks if b.name == "http"), None)
    if http is None:
        raise PersistenceError("PROXY_CONFIG_MALFORMED", "nginx.conf has no http block")
    server = next((b for b in http.children if b.name == "server"), None)
    if missing_locations and server is None:
        raise PersistenceError("PROXY_CONFIG_MALFORMED", "nginx.conf has no server block inside http")

    text = existing_text

    # Locations first: they sit after the upstreams, so upstream offsets stay valid
    if missing_locations:
        chunk = "\n".join(render_location(r.path, r.name, level=0) for r in missing_locations)
        offset = _marker_offset(text, LOCATIONS_BEGIN, LOCATIONS_END)
        if offset is not None:
            text = _insert_at_marker(text, offset, chunk)
        else:
            text = _insert_after_brace(text, server, chunk)

    if missing_upstreams:
        chunk = "\n".join(render_upstream(r.name, r.server, level=0) for r in missing_upstreams)
        offset = _marker_offset(text, UPSTREAMS_BEGIN, UPSTREAMS_END)
        if offset is not None:
            text = _insert_at_marker(text, offset, chunk)
        else:
            text = _insert_after_brace(text, http, chunk)

    for route in missing_upstreams:
        logger.debug("Added upstream %s", route.name)
    for route in missing_locations:
        logger.debug("Added location %s", route.path)
    return text
