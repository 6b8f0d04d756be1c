"""Composable predicates deciding whether a bean definition is included.

Conditions combine with ``&``, ``|`` and ``~``::

    OnProperty("feature.new", having_value="true") | OnMissingBean(Cache)

or through the fluent builder::

    on_property("feature.new").and_().on_missing_bean(Cache)
"""

from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from spring_ioc.application.expression import MISSING, coerce_text, evaluate
from spring_ioc.domain import ICondition, IConditionContext

PROFILE_KEY = "spring.profiles.active"

EXPRESSION_PREFIX = "go:"


class Operator(str, Enum):
    """How the members of a :class:`Group` combine.

    Attributes:
        OR: At least one member matches.
        AND: Every member matches.
        NONE: No member matches.
    """

    OR = "or"
    AND = "and"
    NONE = "none"

    def __str__(self) -> str:
        return self.value


class Condition(ICondition):
    """Base class adding boolean operators to conditions."""

    def __and__(self, other: ICondition) -> "Group":
        return Group(Operator.AND, self, other)

    def __or__(self, other: ICondition) -> "Group":
        return Group(Operator.OR, self, other)

    def __invert__(self) -> "Not":
        return Not(self)


class OK(Condition):
    """Always matches."""

    def matches(self, ctx: IConditionContext) -> bool:
        return True

    def __repr__(self) -> str:
        return "OK()"


class Not(Condition):
    """Negates another condition; bean selectors pass through unchanged."""

    def __init__(self, condition: ICondition) -> None:
        """Initialize the negation.

        Args:
            condition: Condition to negate.
        """
        self.condition = condition

    def matches(self, ctx: IConditionContext) -> bool:
        return not self.condition.matches(ctx)

    def bean_selectors(self) -> List[Any]:
        return self.condition.bean_selectors()

    def __repr__(self) -> str:
        return f"Not({self.condition!r})"


class OnProperty(Condition):
    """Matches when a property is defined and, optionally, has a given value.

    ``having_value`` is compared as text unless it starts with ``go:``, in
    which case the rest is an expression over ``$``, the property value::

        OnProperty("pool.size", having_value="go:$ >= 4")

    Attributes:
        key: Property key.
        having_value: Expected value or ``go:`` expression; empty means any value.
        match_if_missing: Result when the property is not defined.
    """

    def __init__(self, key: str, having_value: str = "", match_if_missing: bool = False) -> None:
        """Initialize the property condition.

        Args:
            key: Property key to look up.
            having_value: Expected value or ``go:`` expression.
            match_if_missing: Result when the key is not defined.
        """
        self.key = key
        self.having_value = having_value
        self.match_if_missing = match_if_missing

    def matches(self, ctx: IConditionContext) -> bool:
        """Check presence first, then the expected value or expression.

        Args:
            ctx: Condition context exposing properties.

        Returns:
            True when the property satisfies the condition.

        Raises:
            ExpressionError: If a ``go:`` expression is malformed.
        """
        if not ctx.has(self.key):
            return self.match_if_missing
        if not self.having_value:
            return True
        value = ctx.prop(self.key)
        if not self.having_value.startswith(EXPRESSION_PREFIX):
            return value == self.having_value
        expression = self.having_value[len(EXPRESSION_PREFIX) :]
        return bool(evaluate(expression, coerce_text(value), context_resolver(ctx)))

    def __repr__(self) -> str:
        return f"OnProperty({self.key!r}, having_value={self.having_value!r})"


class OnMissingProperty(Condition):
    """Matches when a property is not defined in any layer."""

    def __init__(self, key: str) -> None:
        self.key = key

    def matches(self, ctx: IConditionContext) -> bool:
        return not ctx.has(self.key)

    def __repr__(self) -> str:
        return f"OnMissingProperty({self.key!r})"


class OnProfile(OnProperty):
    """Matches when ``spring.profiles.active`` equals the profile."""

    def __init__(self, profile: str) -> None:
        """Initialize with the profile that must be active."""
        super().__init__(PROFILE_KEY, having_value=profile)
        self.profile = profile

    def __repr__(self) -> str:
        return f"OnProfile({self.profile!r})"


class _BeanCondition(Condition):
    def __init__(self, selector: Any) -> None:
        """Initialize with a type, name or predicate selector."""
        self.selector = selector

    def bean_selectors(self) -> List[Any]:
        return [self.selector]

    def _count(self, ctx: IConditionContext) -> int:
        return len(ctx.find(self.selector))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.selector!r})"


class OnBean(_BeanCondition):
    """Matches when at least one included bean matches the selector."""

    def matches(self, ctx: IConditionContext) -> bool:
        return self._count(ctx) > 0


class OnMissingBean(_BeanCondition):
    """Matches when no included bean matches the selector.

    The bean carrying the condition is never counted, so a default provider
    of an interface can be guarded by ``OnMissingBean`` of that interface.
    """

    def matches(self, ctx: IConditionContext) -> bool:
        return self._count(ctx) == 0


class OnSingleCandidate(_BeanCondition):
    """Matches when exactly one included bean matches the selector."""

    def matches(self, ctx: IConditionContext) -> bool:
        return self._count(ctx) == 1


class OnExpression(Condition):
    """Matches when an expression over property names is truthy.

    Example:
        >>> OnExpression("server.port > 1024 && !debug")
    """

    def __init__(self, expression: str) -> None:
        """Initialize with the expression source; it is parsed on each match."""
        self.expression = expression

    def matches(self, ctx: IConditionContext) -> bool:
        return bool(evaluate(self.expression, None, context_resolver(ctx)))

    def __repr__(self) -> str:
        return f"OnExpression({self.expression!r})"


class OnMatches(Condition):
    """Wraps a user predicate receiving the condition context."""

    def __init__(self, fn: Callable[[IConditionContext], bool], selectors: Optional[List[Any]] = None) -> None:
        """Initialize the predicate condition.

        Args:
            fn: Predicate called with the condition context.
            selectors: Bean selectors the predicate depends on, used for ordering.
        """
        self.fn = fn
        self.selectors = list(selectors or [])

    def matches(self, ctx: IConditionContext) -> bool:
        return bool(self.fn(ctx))

    def bean_selectors(self) -> List[Any]:
        return list(self.selectors)

    def __repr__(self) -> str:
        return f"OnMatches({getattr(self.fn, '__qualname__', self.fn)!r})"


class Group(Condition):
    """Combines conditions with one :class:`Operator`.

    Raises:
        ValueError: If the group is empty.
    """

    def __init__(self, op: Operator, *conditions: ICondition) -> None:
        """Initialize the group.

        Args:
            op: How member results combine.
            *conditions: Member conditions, at least one.
        """
        if not conditions:
            raise ValueError("A condition group needs at least one condition")
        self.op = op
        self.conditions: Tuple[ICondition, ...] = conditions

    def matches(self, ctx: IConditionContext) -> bool:
        """Combine member results with the group operator.

        Args:
            ctx: Condition context.

        Returns:
            The combined result; NONE matches when no member does.
        """
        if self.op == Operator.OR:
            return any(condition.matches(ctx) for condition in self.conditions)
        if self.op == Operator.AND:
            return all(condition.matches(ctx) for condition in self.conditions)
        return not any(condition.matches(ctx) for condition in self.conditions)

    def bean_selectors(self) -> List[Any]:
        return [selector for condition in self.conditions for selector in condition.bean_selectors()]

    def __repr__(self) -> str:
        inner = ", ".join(repr(condition) for condition in self.conditions)
        return f"Group({self.op}, {inner})"


class Conditional(Condition):
    """Fluent chain of conditions joined by ``and_()`` / ``or_()``.

    The chain is evaluated left to right and short-circuits, so
    ``a.or_().b.and_().c`` reads as ``a or (b and c)``. Adding a condition
    without an explicit operator joins it with AND.
    """

    def __init__(self) -> None:
        """Initialize an empty chain, which always matches."""
        self._nodes: List[Optional[ICondition]] = [None]
        self._ops: List[Operator] = []

    def matches(self, ctx: IConditionContext) -> bool:
        """Evaluate the chain left to right with short-circuiting.

        Args:
            ctx: Condition context.

        Returns:
            True for an empty chain, otherwise the chain result.

        Raises:
            ValueError: If the chain ends with a dangling operator.
        """
        if self._nodes[-1] is None:
            if len(self._nodes) == 1:
                return True
            raise ValueError("Condition chain ends with an operator")
        return self._matches_from(0, ctx)

    def _matches_from(self, index: int, ctx: IConditionContext) -> bool:
        ok = self._nodes[index].matches(ctx)
        if index == len(self._ops):
            return ok
        if self._ops[index] == Operator.OR:
            return ok or self._matches_from(index + 1, ctx)
        return ok and self._matches_from(index + 1, ctx)

    def bean_selectors(self) -> List[Any]:
        return [selector for node in self._nodes if node is not None for selector in node.bean_selectors()]

    def _join(self, op: Operator) -> "Conditional":
        self._ops.append(op)
        self._nodes.append(None)
        return self

    def and_(self) -> "Conditional":
        """Join the next condition with AND.

        Returns:
            The chain itself.
        """
        return self._join(Operator.AND)

    def or_(self) -> "Conditional":
        """Join the next condition with OR.

        Returns:
            The chain itself.
        """
        return self._join(Operator.OR)

    def on(self, condition: ICondition) -> "Conditional":
        """Append a condition, joining it with AND when no operator is pending.

        Args:
            condition: Condition to append.

        Returns:
            The chain itself.

        Example:
            >>> on_property("cache.enabled").or_().on_profile("dev")
        """
        if self._nodes[-1] is not None:
            self.and_()
        self._nodes[-1] = condition
        return self

    def on_property(self, key: str, having_value: str = "", match_if_missing: bool = False) -> "Conditional":
        """Append an :class:`OnProperty` condition."""
        return self.on(OnProperty(key, having_value, match_if_missing))

    def on_missing_property(self, key: str) -> "Conditional":
        return self.on(OnMissingProperty(key))

    def on_bean(self, selector: Any) -> "Conditional":
        """Append an :class:`OnBean` condition."""
        return self.on(OnBean(selector))

    def on_missing_bean(self, selector: Any) -> "Conditional":
        """Append an :class:`OnMissingBean` condition."""
        return self.on(OnMissingBean(selector))

    def on_single_candidate(self, selector: Any) -> "Conditional":
        return self.on(OnSingleCandidate(selector))

    def on_expression(self, expression: str) -> "Conditional":
        """Append an :class:`OnExpression` condition."""
        return self.on(OnExpression(expression))

    def on_matches(self, fn: Callable[[IConditionContext], bool]) -> "Conditional":
        return self.on(OnMatches(fn))

    def on_profile(self, profile: str) -> "Conditional":
        return self.on(OnProfile(profile))

    def __repr__(self) -> str:
        parts = [repr(self._nodes[0])]
        for op, node in zip(self._ops, self._nodes[1:]):
            parts.append(f"{op} {node!r}")
        return f"Conditional({' '.join(parts)})"


def on(condition: ICondition) -> Conditional:
    """Start a chain with any condition.

    Args:
        condition: First condition of the chain.

    Returns:
        A new :class:`Conditional`.
    """
    return Conditional().on(condition)


def on_property(key: str, having_value: str = "", match_if_missing: bool = False) -> Conditional:
    """Start a chain with an :class:`OnProperty` condition.

    Args:
        key: Property key.
        having_value: Expected value or ``go:`` expression.
        match_if_missing: Result when the key is not defined.

    Returns:
        A new :class:`Conditional`.
    """
    return Conditional().on_property(key, having_value, match_if_missing)


def on_missing_property(key: str) -> Conditional:
    """Start a chain with an :class:`OnMissingProperty` condition."""
    return Conditional().on_missing_property(key)


def on_bean(selector: Any) -> Conditional:
    """Start a chain with an :class:`OnBean` condition."""
    return Conditional().on_bean(selector)


def on_missing_bean(selector: Any) -> Conditional:
    """Start a chain with an :class:`OnMissingBean` condition."""
    return Conditional().on_missing_bean(selector)


def on_single_candidate(selector: Any) -> Conditional:
    """Start a chain with an :class:`OnSingleCandidate` condition."""
    return Conditional().on_single_candidate(selector)


def on_expression(expression: str) -> Conditional:
    """Start a chain with an :class:`OnExpression` condition."""
    return Conditional().on_expression(expression)


def on_matches(fn: Callable[[IConditionContext], bool]) -> Conditional:
    """Start a chain with a user predicate."""
    return Conditional().on_matches(fn)


def on_profile(profile: str) -> Conditional:
    """Start a chain with an :class:`OnProfile` condition."""
    return Conditional().on_profile(profile)


def context_resolver(ctx: IConditionContext) -> Callable[[str], Any]:
    """Expose context properties to expressions, coerced to bool, int or float."""

    def resolve(name: str) -> Any:
        if not ctx.has(name):
            return MISSING
        return coerce_text(ctx.prop(name))

    return resolve
