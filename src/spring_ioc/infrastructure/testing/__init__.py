"""
Testing utilities module.

Provides helpers for testing applications wired with spring-ioc.
"""

from .utilities import RefreshedContainer, TestContainer, create_mock_container

__all__ = [
    "TestContainer",
    "create_mock_container",
    "RefreshedContainer",
]
