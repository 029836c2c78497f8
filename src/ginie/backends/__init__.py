"""Renderers for the generated deployment descriptors."""

from ginie.backends.compose import TopologyOptions, build_topology, patch_topology
from ginie.backends.nginx import ProxyRoute, build_proxy_config, patch_proxy_config

__all__ = [
    "TopologyOptions",
    "build_topology",
    "patch_topology",
    "ProxyRoute",
    "build_proxy_config",
    "patch_proxy_config",
]
