"""
Configuration sources module.

Readers for configuration files and loaders for the command-line,
environment and file property layers.
"""

from .readers import ConfigReadError, read_file, register_reader, supported_extensions
from .sources import (
    apply_env_overrides,
    env_name,
    load_command_line,
    load_config_files,
    load_environment,
    read_banner,
)

__all__ = [
    # Readers
    "ConfigReadError",
    "read_file",
    "register_reader",
    "supported_extensions",
    # Sources
    "apply_env_overrides",
    "env_name",
    "load_command_line",
    "load_config_files",
    "load_environment",
    "read_banner",
]
