"""
Infrastructure layer - Bootstrap and external integrations.

This layer loads configuration from files, the environment and the command
line, runs applications, and integrates with external frameworks and tools.
It depends on both Application and Domain layers.
"""

from . import boot, config, fastapi_integration, testing

__all__ = [
    "boot",
    "config",
    "fastapi_integration",
    "testing",
]
