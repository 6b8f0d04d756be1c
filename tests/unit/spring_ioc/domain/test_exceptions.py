"""Unit tests for domain exceptions."""

import pytest

from spring_ioc.domain.exceptions import (
    AmbiguousDependencyError,
    ConditionCycleError,
    ConstructionFailedError,
    CyclicReferenceError,
    DependencyCycleError,
    IoCError,
    NotFoundError,
    RefreshError,
    RunnerFailedError,
    ShutdownError,
    TypeMismatchError,
    ValidationFailedError,
)


class TestIoCError:
    """Test cases for the base IoCError class."""

    def test_ioc_error_is_exception(self):
        """Test that IoCError inherits from Exception."""
        assert issubclass(IoCError, Exception)

    def test_ioc_error_can_be_raised(self):
        """Test that IoCError can be raised with a message."""
        with pytest.raises(IoCError, match="Test error"):
            raise IoCError("Test error")

    @pytest.mark.parametrize(
        "error_class",
        [
            NotFoundError,
            AmbiguousDependencyError,
            TypeMismatchError,
            ValidationFailedError,
            CyclicReferenceError,
            ConditionCycleError,
            DependencyCycleError,
            ConstructionFailedError,
            RunnerFailedError,
            RefreshError,
            ShutdownError,
        ],
    )
    def test_every_error_is_an_ioc_error(self, error_class):
        """Test that the taxonomy shares a single root."""
        assert issubclass(error_class, IoCError)


class TestNotFoundError:
    """Test cases for NotFoundError."""

    def test_not_found_with_type_selector(self):
        """Test the message names the type."""

        class Metrics:
            pass

        error = NotFoundError(Metrics)

        assert error.selector is Metrics
        assert error.reason is None
        assert "Metrics" in str(error)

    def test_not_found_with_name_and_reason(self):
        """Test the message includes the name and the reason."""
        error = NotFoundError("metrics", "no such bean")

        assert error.reason == "no such bean"
        assert "'metrics'" in str(error)
        assert "Reason: no such bean" in str(error)


class TestAmbiguousDependencyError:
    """Test cases for AmbiguousDependencyError."""

    def test_lists_candidates(self):
        """Test that every candidate is named."""
        error = AmbiguousDependencyError("db", ["a:Db", "b:Db"])

        assert error.candidates == ["a:Db", "b:Db"]
        assert "Found 2 beans" in str(error)
        assert "a:Db, b:Db" in str(error)


class TestCycleErrors:
    """Test cases for the cycle errors."""

    def test_dependency_cycle_chain(self):
        """Test DependencyCycleError keeps the chain."""
        error = DependencyCycleError(["a", "b", "a"])

        assert error.chain == ["a", "b", "a"]
        assert "a -> b -> a" in str(error)

    def test_cyclic_reference_chain(self):
        """Test CyclicReferenceError formats the property chain."""
        error = CyclicReferenceError(["x", "y", "x"])
        assert "x -> y -> x" in str(error)

    def test_condition_cycle_chain(self):
        """Test ConditionCycleError formats the bean chain."""
        error = ConditionCycleError(["a", "a"])
        assert error.chain == ["a", "a"]


class TestStructuredErrors:
    """Test cases for errors carrying structured attributes."""

    def test_validation_failed_attributes(self):
        """Test ValidationFailedError exposes tag, value and path."""
        error = ValidationFailedError("$ > 0", -1, "pool.size", "too small")

        assert error.tag == "$ > 0"
        assert error.value == -1
        assert error.path == "pool.size"
        assert "at pool.size" in str(error)
        assert "too small" in str(error)

    def test_construction_failed_attributes(self):
        """Test ConstructionFailedError names the bean."""
        error = ConstructionFailedError("mod/Db:db", "boom")

        assert error.bean_id == "mod/Db:db"
        assert error.reason == "boom"
        assert "mod/Db:db" in str(error)

    def test_runner_failed_names_runner(self):
        """Test RunnerFailedError keeps the runner and mentions the cause."""

        class Migrate:
            pass

        runner = Migrate()
        error = RunnerFailedError(runner, ValueError("bad schema"))

        assert error.runner is runner
        assert "Migrate" in str(error)
        assert "bad schema" in str(error)

    def test_refresh_error_aggregates(self):
        """Test RefreshError lists every error."""
        errors = [NotFoundError("a"), NotFoundError("b")]
        error = RefreshError(errors)

        assert error.errors == errors
        assert "2 errors" in str(error)
        assert "'a'" in str(error) and "'b'" in str(error)

    def test_shutdown_error_aggregates(self):
        """Test ShutdownError lists every failure."""
        error = ShutdownError([RuntimeError("x"), TimeoutError("y")])

        assert len(error.errors) == 2
        assert "Shutdown finished with 2 errors" in str(error)
