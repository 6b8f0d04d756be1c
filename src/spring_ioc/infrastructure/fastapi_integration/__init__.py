"""
FastAPI integration module.

Provides helpers for serving beans of a spring-ioc container from FastAPI.
"""

from .integration import (
    ContainerMiddleware,
    create_fastapi_dependency,
    create_lifespan,
    create_request_dependency,
    inject_dependencies,
)

__all__ = [
    "create_fastapi_dependency",
    "create_request_dependency",
    "create_lifespan",
    "inject_dependencies",
    "ContainerMiddleware",
]
