"""
Domain layer - Bean definitions, injection markers and the error taxonomy.

This layer describes what the container manages and how lookups fail.
It has no dependencies on other layers.
"""

from .enums import BeanStatus, ConstructionKind, ContainerState, DirectiveKind, EdgeKind
from .exceptions import (
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
from .interfaces import (
    AppEvent,
    AppRunner,
    ICondition,
    IConditionContext,
    ILifecycleManager,
    IProperties,
    IRegistry,
    IResolver,
)
from .models import (
    HIGHEST_ORDER,
    LOWEST_ORDER,
    BeanDefinition,
    DependencyEdge,
    Destroyer,
    InjectionDirective,
    Property,
)
from .tags import Autowire, CollectionTag, Const, Expr, PropertyRef, TagSyntaxError, Value, WireTag

__all__ = [
    # Enums
    "BeanStatus",
    "ConstructionKind",
    "ContainerState",
    "DirectiveKind",
    "EdgeKind",
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
    # Interfaces
    "IProperties",
    "IConditionContext",
    "ICondition",
    "IRegistry",
    "IResolver",
    "ILifecycleManager",
    "AppRunner",
    "AppEvent",
    # Models
    "Property",
    "BeanDefinition",
    "InjectionDirective",
    "DependencyEdge",
    "Destroyer",
    "HIGHEST_ORDER",
    "LOWEST_ORDER",
    # Markers
    "Value",
    "Autowire",
    "Expr",
    "Const",
    "PropertyRef",
    "WireTag",
    "CollectionTag",
]
