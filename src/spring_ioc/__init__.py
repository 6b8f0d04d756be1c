"""
spring-ioc: Condition-aware IoC container with property binding and managed lifecycle.

Public API exports for the spring-ioc package.
"""

# Application exports
from spring_ioc.application.app_context import AppContext
from spring_ioc.application.conditions import (
    Group,
    Not,
    OnBean,
    OnExpression,
    OnMatches,
    OnMissingBean,
    OnMissingProperty,
    OnProfile,
    OnProperty,
    OnSingleCandidate,
    Operator,
    on,
    on_bean,
    on_expression,
    on_matches,
    on_missing_bean,
    on_missing_property,
    on_profile,
    on_property,
    on_single_candidate,
)
from spring_ioc.application.container import Container
from spring_ioc.application.properties import Properties, PropertyStore

# Domain exports
from spring_ioc.domain.interfaces import AppEvent, AppRunner
from spring_ioc.domain.exceptions import (
    AmbiguousDependencyError,
    ConditionCycleError,
    ConstructionFailedError,
    CyclicReferenceError,
    DependencyCycleError,
    ExpressionError,
    IoCError,
    NotFoundError,
    RefreshError,
    RunnerFailedError,
    ShutdownError,
    ShutdownInProgressError,
    TypeMismatchError,
    ValidationFailedError,
    WireAfterRefreshError,
)
from spring_ioc.domain.models import HIGHEST_ORDER, LOWEST_ORDER, BeanDefinition
from spring_ioc.domain.tags import Autowire, Const, Expr, TagSyntaxError, Value

# Infrastructure exports
from spring_ioc.infrastructure.boot import App, AppSettings

__version__ = "0.1.0"

__all__ = [
    # Container
    "Container",
    "BeanDefinition",
    "AppContext",
    "App",
    "AppSettings",
    "AppRunner",
    "AppEvent",
    "HIGHEST_ORDER",
    "LOWEST_ORDER",
    # Properties
    "Properties",
    "PropertyStore",
    # Markers
    "Value",
    "Autowire",
    "Expr",
    "Const",
    # Conditions
    "Group",
    "Not",
    "OnBean",
    "OnExpression",
    "OnMatches",
    "OnMissingBean",
    "OnMissingProperty",
    "OnProfile",
    "OnProperty",
    "OnSingleCandidate",
    "Operator",
    "on",
    "on_bean",
    "on_expression",
    "on_matches",
    "on_missing_bean",
    "on_missing_property",
    "on_profile",
    "on_property",
    "on_single_candidate",
    # Exceptions
    "IoCError",
    "NotFoundError",
    "AmbiguousDependencyError",
    "TypeMismatchError",
    "ValidationFailedError",
    "ExpressionError",
    "CyclicReferenceError",
    "ConditionCycleError",
    "DependencyCycleError",
    "ConstructionFailedError",
    "WireAfterRefreshError",
    "ShutdownInProgressError",
    "RunnerFailedError",
    "RefreshError",
    "ShutdownError",
    "TagSyntaxError",
]
