"""Interactive wizard for project generation."""

from ginie.wizard.flow import run_add_wizard, run_init_wizard, run_wizard
from ginie.wizard.prompts import (
    prompt_database,
    prompt_include_gateway,
    prompt_include_proxy,
    prompt_include_redis,
    prompt_project_name,
    prompt_protocol,
    prompt_service_name,
    prompt_service_names,
)

__all__ = [
    "run_wizard",
    "run_init_wizard",
    "run_add_wizard",
    "prompt_project_name",
    "prompt_protocol",
    "prompt_include_gateway",
    "prompt_include_proxy",
    "prompt_service_name",
    "prompt_service_names",
    "prompt_database",
    "prompt_include_redis",
]
