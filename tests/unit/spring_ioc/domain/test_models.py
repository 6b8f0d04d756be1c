"""Unit tests for domain models."""

import pytest
from pydantic import ValidationError

from spring_ioc.application.conditions import OnProperty
from spring_ioc.domain import BeanDefinition, BeanStatus, ConstructionKind, Destroyer, InjectionDirective, Property
from spring_ioc.domain.enums import DirectiveKind


class Database:
    def connect(self) -> "Database":
        return self


class TestBeanDefinitionValidation:
    """Test cases for the single construction case rule."""

    def test_object_definition(self):
        """Test a preconstructed value."""
        db = Database()
        definition = BeanDefinition(kind=ConstructionKind.OBJECT, declared_type=Database, value=db)

        assert definition.value is db
        assert definition.bean_name == "Database"
        assert definition.status == BeanStatus.DEFAULT

    def test_factory_definition(self):
        """Test a factory definition."""
        definition = BeanDefinition(kind=ConstructionKind.FACTORY, declared_type=Database, factory=Database)
        assert definition.callable_ is Database

    def test_method_definition_needs_receiver(self):
        """Test that a method definition without receiver is rejected."""
        with pytest.raises(ValidationError):
            BeanDefinition(kind=ConstructionKind.METHOD, declared_type=Database, method_name="connect")

    def test_two_construction_cases_are_rejected(self):
        """Test that setting both value and factory is rejected."""
        with pytest.raises(ValidationError):
            BeanDefinition(
                kind=ConstructionKind.OBJECT, declared_type=Database, value=Database(), factory=Database
            )

    def test_missing_construction_case_is_rejected(self):
        """Test that a factory definition without factory is rejected."""
        with pytest.raises(ValidationError):
            BeanDefinition(kind=ConstructionKind.FACTORY, declared_type=Database)


class TestBeanDefinitionIdentity:
    """Test cases for identity and selector matching."""

    def test_id_combines_type_and_name(self):
        """Test the <type>:<name> identity."""
        definition = BeanDefinition(kind=ConstructionKind.FACTORY, declared_type=Database, factory=Database)
        definition.name("primary")

        assert definition.id == f"{__name__}/Database:primary"

    def test_match_by_name_and_type(self):
        """Test full, simple and name-only selectors."""
        definition = BeanDefinition(
            kind=ConstructionKind.FACTORY, declared_type=Database, factory=Database
        ).name("primary")

        assert definition.match(bean_name="primary")
        assert definition.match("Database", "primary")
        assert definition.match(f"{__name__}/Database", "")
        assert not definition.match("Cache", "primary")
        assert not definition.match("", "secondary")

    def test_equality_is_identity(self):
        """Test that two equal-looking definitions are distinct."""
        first = BeanDefinition(kind=ConstructionKind.FACTORY, declared_type=Database, factory=Database)
        second = BeanDefinition(kind=ConstructionKind.FACTORY, declared_type=Database, factory=Database)

        assert first != second
        assert len({first, second}) == 2


class TestBeanDefinitionBuilder:
    """Test cases for the chained builder API."""

    def test_builder_chain(self):
        """Test that every builder returns the definition."""
        definition = (
            BeanDefinition(kind=ConstructionKind.FACTORY, declared_type=Database, factory=Database)
            .name("db")
            .order(5)
            .primary()
            .export(object)
            .init("connect")
            .destroy("close")
            .depends_on("config")
        )

        assert definition.bean_name == "db"
        assert definition.order_hint == 5
        assert definition.is_primary
        assert definition.exports == [object]
        assert definition.init_hooks == ["connect"]
        assert definition.destroy_hooks == ["close"]
        assert definition.depends == ["config"]

    def test_export_ignores_duplicates(self):
        """Test that exporting a type twice records it once."""
        definition = BeanDefinition(kind=ConstructionKind.FACTORY, declared_type=Database, factory=Database)
        definition.export(object).export(object)

        assert definition.exports == [object]

    def test_conditions_combine_with_and(self):
        """Test that several on() calls are combined."""
        definition = BeanDefinition(kind=ConstructionKind.FACTORY, declared_type=Database, factory=Database)
        first = OnProperty("a")
        second = OnProperty("b")
        definition.on(first).on(second)

        assert definition.condition.conditions == (first, second)


class TestValueModels:
    """Test cases for the small value models."""

    def test_property_is_frozen(self):
        """Test that properties cannot be mutated."""
        prop = Property(key="a", value="1", source="defaults")

        with pytest.raises(ValidationError):
            prop.value = "2"

    def test_directive_is_field(self):
        """Test that directives without position are fields."""
        directive = InjectionDirective(target="db", kind=DirectiveKind.BEAN)
        assert directive.is_field

    def test_destroyer_defaults(self):
        """Test destroyer defaults."""
        destroyer = Destroyer(bean_id="a", bean=object())

        assert destroyer.hooks == []
        assert destroyer.sequence == 0
        assert not destroyer.invoked
