"""Unit tests for LifecycleManager."""

import threading

import pytest

from spring_ioc.application.lifecycle_manager import LifecycleManager
from spring_ioc.domain import ILifecycleManager, ShutdownError, ShutdownInProgressError


class TestLifecycleManagerInitialization:
    """Test cases for LifecycleManager initialization."""

    def test_manager_initialization(self):
        """Test that the manager starts with no destroyers."""
        manager = LifecycleManager()
        assert manager.destroyers() == []
        assert manager.context is not None
        assert not manager.shutting_down

    def test_manager_implements_interface(self):
        """Test that LifecycleManager implements ILifecycleManager."""
        assert isinstance(LifecycleManager(), ILifecycleManager)


class TestDestroyers:
    """Test cases for destroyer ordering and failures."""

    def test_reverse_construction_order(self):
        """Test that destroyers run from the last constructed bean to the first."""
        manager = LifecycleManager()
        calls = []
        for name in ("db", "repo", "service"):
            manager.register_destroyer(name, name, [lambda bean: calls.append(bean)], [])

        manager.shutdown()

        assert calls == ["service", "repo", "db"]

    def test_explicit_sequence(self):
        """Test that the construction sequence decides the order."""
        manager = LifecycleManager()
        calls = []
        manager.register_destroyer("late", "late", [calls.append], [], sequence=5)
        manager.register_destroyer("early", "early", [calls.append], [], sequence=1)

        manager.shutdown()

        assert calls == ["late", "early"]

    def test_hooks_run_in_declaration_order(self):
        """Test several hooks on one bean."""
        manager = LifecycleManager()
        calls = []
        manager.register_destroyer("a", "a", [lambda b: calls.append(1), lambda b: calls.append(2)], [])

        manager.shutdown()

        assert calls == [1, 2]

    def test_failures_are_aggregated(self):
        """Test that every destroyer runs and failures are raised together."""
        manager = LifecycleManager()
        calls = []

        def fail(bean):
            raise RuntimeError(f"{bean} failed")

        manager.register_destroyer("a", "a", [calls.append], [])
        manager.register_destroyer("b", "b", [fail], [])
        manager.register_destroyer("c", "c", [fail], [])

        with pytest.raises(ShutdownError) as exc_info:
            manager.shutdown()

        assert calls == ["a"]
        assert [str(e) for e in exc_info.value.errors] == ["c failed", "b failed"]

    def test_shutdown_is_idempotent(self):
        """Test that a second shutdown does nothing."""
        manager = LifecycleManager()
        calls = []
        manager.register_destroyer("a", "a", [calls.append], [])

        manager.shutdown()
        manager.shutdown()

        assert calls == ["a"]

    def test_slow_destroyer_times_out(self):
        """Test that a destroyer exceeding the grace period is reported."""
        manager = LifecycleManager()
        release = threading.Event()
        manager.register_destroyer("slow", "slow", [lambda bean: release.wait(5)], [])

        with pytest.raises(ShutdownError) as exc_info:
            manager.shutdown(grace=0.05)
        release.set()

        assert isinstance(exc_info.value.errors[0], TimeoutError)

    def test_destroyers_skipped_after_grace(self):
        """Test that destroyers are skipped once the grace period is spent."""
        manager = LifecycleManager()
        calls = []
        manager.register_destroyer("a", "a", [calls.append], [])
        manager.register_destroyer("b", "b", [calls.append], [])

        with pytest.raises(ShutdownError) as exc_info:
            manager.shutdown(grace=0)

        assert calls == []
        assert all("skipped" in str(error) for error in exc_info.value.errors)
        assert len(exc_info.value.errors) == 2


class TestBackgroundTasks:
    """Test cases for tasks started through the manager."""

    def test_shutdown_cancels_and_joins_tasks(self):
        """Test that tasks are cancelled before destroyers run."""
        manager = LifecycleManager()
        order = []
        started = threading.Event()

        def worker(ctx):
            started.set()
            ctx.wait()
            order.append("task")

        manager.go(worker)
        started.wait(5)
        manager.register_destroyer("a", "a", [lambda bean: order.append("destroy")], [])

        manager.shutdown(grace=5)

        assert order == ["task", "destroy"]

    def test_go_rejected_after_shutdown(self):
        """Test that go fails once shutdown began."""
        manager = LifecycleManager()
        manager.shutdown()

        assert manager.shutting_down
        with pytest.raises(ShutdownInProgressError):
            manager.go(lambda ctx: None)
