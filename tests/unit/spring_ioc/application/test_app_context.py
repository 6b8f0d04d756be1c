"""Unit tests for AppContext and BackgroundTask."""

import threading

import pytest

from spring_ioc.application.app_context import AppContext
from spring_ioc.application.properties import PropertyStore
from spring_ioc.domain import ShutdownInProgressError


class TestAppContext:
    """Test cases for cancellation and task supervision."""

    def test_go_runs_task_with_context(self):
        """Test that the task receives the context and records its result."""
        ctx = AppContext()

        task = ctx.go(lambda c: c is ctx, name="check")

        assert task.join(5)
        assert task.result is True
        assert task.name == "check"
        assert task.error is None

    def test_task_names_are_generated(self):
        """Test default task names."""
        ctx = AppContext()

        first = ctx.go(lambda c: None)
        second = ctx.go(lambda c: None)

        assert [first.name, second.name] == ["app-task-1", "app-task-2"]
        assert ctx.join(5) == []

    def test_task_error_is_recorded(self):
        """Test that an exception in a task is captured."""
        ctx = AppContext()

        def fail(c):
            raise ValueError("boom")

        task = ctx.go(fail)
        task.join(5)

        assert isinstance(task.error, ValueError)

    def test_cancel_wakes_waiting_tasks(self):
        """Test that cancel releases tasks blocked on wait."""
        ctx = AppContext()
        started = threading.Event()

        def worker(c):
            started.set()
            return c.wait(10)

        task = ctx.go(worker)
        started.wait(5)
        ctx.cancel()

        assert task.join(5)
        assert task.result is True
        assert ctx.cancelled

    def test_join_reports_leaked_tasks(self):
        """Test that tasks still running after the grace period are returned."""
        ctx = AppContext()
        release = threading.Event()
        task = ctx.go(lambda c: release.wait(10))

        assert ctx.join(0.05) == [task]
        release.set()
        assert task.join(5)

    def test_go_after_shutdown_rejected(self):
        """Test that no task may start once shutdown began."""
        ctx = AppContext()
        ctx.begin_shutdown()

        assert ctx.closing
        with pytest.raises(ShutdownInProgressError):
            ctx.go(lambda c: None)

    def test_prop_reads_properties(self):
        """Test property access through the context."""
        store = PropertyStore()
        store.set("name", "demo")
        ctx = AppContext(properties=store)

        assert ctx.prop("name") == "demo"
        assert ctx.prop("missing", "x") == "x"
        assert AppContext().prop("name", "fallback") == "fallback"

    def test_lookup_without_registry(self):
        """Test that bean lookups need a registry."""
        with pytest.raises(RuntimeError):
            AppContext().get_by_name("x")
