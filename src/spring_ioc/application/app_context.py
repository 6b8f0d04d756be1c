"""Cancellable application context and its supervised task group."""

import logging
import threading
import time
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from spring_ioc.domain import ShutdownInProgressError

if TYPE_CHECKING:
    from spring_ioc.domain import IProperties, IRegistry

logger = logging.getLogger(__name__)


class BackgroundTask:
    """Handle of a function running on a daemon thread.

    Attributes:
        name: Task name used in thread names and log records.
        error: Exception raised by the task, if any.
        result: Return value of the task once it finished.
    """

    def __init__(self, name: str, fn: Callable[["AppContext"], Any], ctx: "AppContext") -> None:
        """Initialize the task; the thread starts with :meth:`start`.

        Args:
            name: Task and thread name.
            fn: Function called with the context.
            ctx: Context passed to ``fn``.
        """
        self.name = name
        self.error: Optional[BaseException] = None
        self.result: Any = None
        self._fn = fn
        self._ctx = ctx
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        """Start the daemon thread."""
        self._thread.start()

    def _run(self) -> None:
        try:
            self.result = self._fn(self._ctx)
        except Exception as e:
            self.error = e
            logger.exception("Background task %s failed", self.name)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the task; return True if it finished."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    @property
    def done(self) -> bool:
        """Whether the task has finished."""
        return not self._thread.is_alive()

    def __repr__(self) -> str:
        return f"BackgroundTask({self.name!r}, done={self.done})"


class AppContext:
    """Cancellation root shared by every background task of an application.

    Tasks receive the context and are expected to return once
    :attr:`cancelled` becomes true, typically by blocking on :meth:`wait`.

    Example:
        >>> def poll(ctx):
        ...     while not ctx.wait(1.0):
        ...         refresh_cache()
        >>> ctx.go(poll, name="cache-poller")

    Attributes:
        properties: The application's frozen property store.
        registry: Lookup surface of the owning container.
    """

    def __init__(self, properties: Optional["IProperties"] = None, registry: Optional["IRegistry"] = None) -> None:
        """Initialize an active context with no tasks.

        Args:
            properties: Property store read by :meth:`prop`.
            registry: Container answering :meth:`get_by_type` and :meth:`get_by_name`.
        """
        self.properties = properties
        self.registry = registry
        self._cancel_event = threading.Event()
        self._lock = threading.Lock()
        self._tasks: List[BackgroundTask] = []
        self._closing = False
        self._counter = 0

    @property
    def cancelled(self) -> bool:
        """Whether the context was cancelled; tasks should return soon after."""
        return self._cancel_event.is_set()

    @property
    def closing(self) -> bool:
        """Whether shutdown began and new tasks are rejected."""
        return self._closing

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the context is cancelled or the timeout expires.

        Returns:
            True if the context was cancelled.
        """
        return self._cancel_event.wait(timeout)

    def cancel(self) -> None:
        """Cancel the context, waking every task blocked in :meth:`wait`."""
        self._cancel_event.set()

    def go(self, fn: Callable[["AppContext"], Any], name: Optional[str] = None) -> BackgroundTask:
        """Start ``fn(ctx)`` on a supervised daemon thread.

        Raises:
            ShutdownInProgressError: If shutdown already began.
        """
        with self._lock:
            if self._closing:
                raise ShutdownInProgressError("Cannot start a background task after shutdown began")
            self._counter += 1
            task = BackgroundTask(name or f"app-task-{self._counter}", fn, self)
            self._tasks.append(task)
        task.start()
        logger.debug("Started background task %s", task.name)
        return task

    def begin_shutdown(self) -> None:
        """Reject later :meth:`go` calls with :class:`ShutdownInProgressError`.

        Tasks already running are not affected; :meth:`cancel` stops them.
        """
        with self._lock:
            self._closing = True

    @property
    def tasks(self) -> List[BackgroundTask]:
        """Snapshot of every task started so far."""
        with self._lock:
            return list(self._tasks)

    def join(self, grace: Optional[float] = None) -> List[BackgroundTask]:
        """Wait for every task, up to ``grace`` seconds in total.

        Returns:
            Tasks still running when the grace period ended.
        """
        deadline = None if grace is None else time.monotonic() + grace
        leaked: List[BackgroundTask] = []
        for task in self.tasks:
            timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
            if not task.join(timeout):
                leaked.append(task)
        return leaked

    def prop(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return an expanded property value, ``default`` when undefined."""
        if self.properties is None:
            return default
        return self.properties.get(key, default)

    def get_by_type(self, dependency_type: Any) -> Any:
        """Look up a bean of the owning container by type.

        Raises:
            RuntimeError: If the context has no container.
            NotFoundError: If no bean provides the type.
            AmbiguousDependencyError: If several beans match and not exactly one is primary.
        """
        return self._require_registry().get_by_type(dependency_type)

    def get_by_name(self, name: str) -> Any:
        """Look up a bean of the owning container by name.

        Raises:
            RuntimeError: If the context has no container.
            NotFoundError: If no bean has the name.
        """
        return self._require_registry().get_by_name(name)

    def _require_registry(self) -> "IRegistry":
        if self.registry is None:
            raise RuntimeError("AppContext is not attached to a container")
        return self.registry

    def __repr__(self) -> str:
        return f"AppContext(cancelled={self.cancelled}, tasks={len(self._tasks)})"
