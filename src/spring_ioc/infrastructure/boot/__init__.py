"""
Application bootstrap module.

Loads the property layers, runs the container and waits for shutdown.
"""

from .app import DEFAULT_BANNER, App
from .settings import AppSettings

__all__ = [
    "App",
    "AppSettings",
    "DEFAULT_BANNER",
]
