"""
Application layer - Properties, conditions, wiring and lifecycle.

This layer turns registered bean definitions into wired beans: it holds the
layered property store, decides conditions, orders construction and runs
destroyers. It depends only on the Domain layer.
"""

from .app_context import AppContext, BackgroundTask
from .circular_detector import CircularDependencyDetector
from .conditions import (
    OK,
    Condition,
    Conditional,
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
from .container import Container
from .converters import parse_duration, parse_time, register_converter, register_splitter
from .expression import evaluate
from .graph import DependencyGraph
from .lifecycle_manager import LifecycleManager
from .properties import LayerPriority, Properties, PropertyStore
from .resolver import ConditionContext, DependencyResolver

__all__ = [
    # Container
    "Container",
    "DependencyResolver",
    "DependencyGraph",
    "LifecycleManager",
    "CircularDependencyDetector",
    "AppContext",
    "BackgroundTask",
    # Properties
    "Properties",
    "PropertyStore",
    "LayerPriority",
    "parse_duration",
    "parse_time",
    "register_converter",
    "register_splitter",
    "evaluate",
    # Conditions
    "Condition",
    "ConditionContext",
    "Conditional",
    "Group",
    "Not",
    "OK",
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
]
