"""Unit tests for bean conditions."""

from typing import Any, Dict, List, Optional

import pytest

from spring_ioc.application.conditions import (
    OK,
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
    on_missing_bean,
    on_property,
)
from spring_ioc.domain import BeanDefinition, ConstructionKind, ExpressionError, IConditionContext


class FakeContext(IConditionContext):
    """Condition context backed by plain dictionaries."""

    def __init__(self, props: Optional[Dict[str, str]] = None, beans: Optional[Dict[Any, int]] = None):
        self.props = props or {}
        self.beans = beans or {}
        self.lookups: List[Any] = []

    def has(self, key: str) -> bool:
        return key in self.props or any(k.startswith(key + ".") for k in self.props)

    def prop(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.props.get(key, default)

    def find(self, selector: Any) -> List[BeanDefinition]:
        self.lookups.append(selector)
        count = self.beans.get(selector, 0)
        return [BeanDefinition(kind=ConstructionKind.OBJECT, declared_type=object, value=object()) for _ in range(count)]


class Always:
    """Condition stub that records its calls."""

    def __init__(self, result: bool):
        self.result = result
        self.calls = 0

    def matches(self, ctx):
        self.calls += 1
        return self.result

    def bean_selectors(self):
        return []


class TestPropertyConditions:
    """Test cases for property based conditions."""

    def test_property_defined(self):
        """Test that any value matches without having_value."""
        assert OnProperty("a").matches(FakeContext({"a": "x"}))
        assert not OnProperty("a").matches(FakeContext())

    def test_property_value(self):
        """Test text comparison."""
        ctx = FakeContext({"mode": "fast"})

        assert OnProperty("mode", having_value="fast").matches(ctx)
        assert not OnProperty("mode", having_value="slow").matches(ctx)

    def test_match_if_missing(self):
        """Test the missing-property result."""
        assert OnProperty("mode", having_value="fast", match_if_missing=True).matches(FakeContext())

    def test_parent_key_counts_as_defined(self):
        """Test that a key with sub keys is defined."""
        assert OnProperty("db").matches(FakeContext({"db.url": "x"}))

    def test_expression_value(self):
        """Test ``go:`` expressions over the property value."""
        ctx = FakeContext({"pool.size": "8", "pool.max": "16"})

        assert OnProperty("pool.size", having_value="go:$ >= 4 && $ <= pool.max").matches(ctx)
        assert not OnProperty("pool.size", having_value="go:$ > 8").matches(ctx)

    def test_missing_property(self):
        """Test OnMissingProperty."""
        assert OnMissingProperty("a").matches(FakeContext())
        assert not OnMissingProperty("a").matches(FakeContext({"a": ""}))

    def test_profile_exact_match(self):
        """Test that the active profile must equal the profile."""
        assert OnProfile("dev").matches(FakeContext({"spring.profiles.active": "dev"}))
        assert not OnProfile("dev").matches(FakeContext({"spring.profiles.active": "dev,test"}))
        assert not OnProfile("dev").matches(FakeContext())

    def test_expression_condition(self):
        """Test expressions over property names."""
        ctx = FakeContext({"server.port": "8080", "debug": "false"})

        assert OnExpression("server.port > 1024 && !debug").matches(ctx)

    def test_expression_unknown_name(self):
        """Test that an undefined name fails evaluation."""
        with pytest.raises(ExpressionError):
            OnExpression("missing == 1").matches(FakeContext())


class TestBeanConditions:
    """Test cases for bean based conditions."""

    def test_on_bean(self):
        """Test that OnBean needs at least one match."""
        assert OnBean("cache").matches(FakeContext(beans={"cache": 1}))
        assert not OnBean("cache").matches(FakeContext())

    def test_on_missing_bean(self):
        """Test that OnMissingBean needs no match."""
        assert OnMissingBean("cache").matches(FakeContext())
        assert not OnMissingBean("cache").matches(FakeContext(beans={"cache": 2}))

    def test_on_single_candidate(self):
        """Test that OnSingleCandidate needs exactly one match."""
        assert OnSingleCandidate("cache").matches(FakeContext(beans={"cache": 1}))
        assert not OnSingleCandidate("cache").matches(FakeContext(beans={"cache": 2}))

    def test_bean_selectors(self):
        """Test that bean selectors are reported through combinators."""
        condition = ~OnBean("a") | (OnMissingBean("b") & OK())

        assert condition.bean_selectors() == ["a", "b"]

    def test_on_matches(self):
        """Test user predicates and their declared selectors."""
        condition = OnMatches(lambda ctx: ctx.has("x"), selectors=["db"])

        assert condition.matches(FakeContext({"x": "1"}))
        assert condition.bean_selectors() == ["db"]


class TestGroups:
    """Test cases for Group and Not."""

    def test_operators(self):
        """Test the three group operators."""
        ctx = FakeContext()
        yes, no = OK(), Not(OK())

        assert Group(Operator.OR, no, yes).matches(ctx)
        assert not Group(Operator.AND, yes, no).matches(ctx)
        assert Group(Operator.NONE, no, no).matches(ctx)
        assert not Group(Operator.NONE, no, yes).matches(ctx)

    def test_empty_group(self):
        """Test that an empty group is rejected."""
        with pytest.raises(ValueError):
            Group(Operator.AND)

    def test_boolean_operators(self):
        """Test &, | and ~."""
        condition = OnProperty("a") & ~OnProperty("b")

        assert isinstance(condition, Group)
        assert condition.op == Operator.AND
        assert condition.matches(FakeContext({"a": "1"}))
        assert not condition.matches(FakeContext({"a": "1", "b": "1"}))


class TestConditional:
    """Test cases for the fluent chain."""

    def test_empty_chain_matches(self):
        """Test that an empty chain matches."""
        assert Conditional().matches(FakeContext())

    def test_implicit_and(self):
        """Test that chaining without an operator joins with AND."""
        chain = on_property("a").on_property("b")

        assert not chain.matches(FakeContext({"a": "1"}))
        assert chain.matches(FakeContext({"a": "1", "b": "1"}))

    def test_or_then_and(self):
        """Test that ``a or b and c`` reads as ``a or (b and c)``."""
        chain = on_property("a").or_().on_property("b").and_().on_property("c")

        assert chain.matches(FakeContext({"a": "1"}))
        assert not chain.matches(FakeContext({"b": "1"}))
        assert chain.matches(FakeContext({"b": "1", "c": "1"}))

    def test_short_circuit(self):
        """Test that evaluation stops once the result is known."""
        first, second = Always(True), Always(False)

        assert on(first).or_().on(second).matches(FakeContext())
        assert second.calls == 0

    def test_dangling_operator(self):
        """Test that a chain ending with an operator is rejected."""
        with pytest.raises(ValueError):
            on(OK()).and_().matches(FakeContext())

    def test_chain_bean_selectors(self):
        """Test that the chain reports selectors of its members."""
        chain = on_missing_bean("cache").and_().on_bean("db")

        assert chain.bean_selectors() == ["cache", "db"]
