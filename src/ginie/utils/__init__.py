"""Utility functions for project generation."""

from ginie.utils.files import atomic_write_text, load_compose, load_nginx, save_compose, save_nginx
from ginie.utils.registry import VersionResolver

__all__ = [
    "atomic_write_text",
    "load_compose",
    "save_compose",
    "load_nginx",
    "save_nginx",
    "VersionResolver",
]
