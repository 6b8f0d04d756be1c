import logging
import threading
import time
from typing import Any, Callable, List, Optional

from spring_ioc.application.app_context import AppContext, BackgroundTask
from spring_ioc.application.hooks import hook_name, invoke_hook
from spring_ioc.domain import Destroyer, ILifecycleManager, ShutdownError

logger = logging.getLogger(__name__)


class LifecycleManager(ILifecycleManager):
    """Supervises background tasks and tears beans down in reverse construction order.

    Shutdown happens once: new tasks are rejected, the context is cancelled,
    tasks are joined within the grace period and destroyers run from the last
    constructed bean to the first. Every destroyer is attempted; failures and
    timeouts are raised together as a :class:`ShutdownError`.

    Attributes:
        context: The shared application context.
        _destroyers: Registered destroyers in registration order.
    """

    def __init__(self, context: Optional[AppContext] = None) -> None:
        """Initialize the manager with no destroyers.

        Args:
            context: Context whose tasks are cancelled on shutdown; a new one when omitted.
        """
        self.context = context or AppContext()
        self._destroyers: List[Destroyer] = []
        self._lock = threading.Lock()
        self._shut_down = False

    def go(self, fn: Callable[[AppContext], Any], name: Optional[str] = None) -> BackgroundTask:
        """Run ``fn`` on a supervised background task.

        Raises:
            ShutdownInProgressError: If shutdown already began.
        """
        return self.context.go(fn, name)

    def register_destroyer(
        self,
        bean_id: str,
        bean: Any,
        hooks: List[Any],
        dependencies: List[str],
        sequence: Optional[int] = None,
    ) -> None:
        """Record the destroy hooks of a wired bean.

        Args:
            bean_id: Identity of the bean.
            bean: The bean value passed to the hooks.
            hooks: Destroy hooks, run in declaration order.
            dependencies: Identities of beans that must be destroyed after this one.
            sequence: Construction position; defaults to registration order.
        """
        with self._lock:
            position = len(self._destroyers) if sequence is None else sequence
            self._destroyers.append(
                Destroyer(
                    bean_id=bean_id,
                    bean=bean,
                    hooks=list(hooks),
                    dependencies=list(dependencies),
                    sequence=position,
                )
            )
        logger.debug("Registered destroyer for %s", bean_id)

    def destroyers(self) -> List[Destroyer]:
        """Return destroyers in the order they run."""
        with self._lock:
            return sorted(self._destroyers, key=lambda destroyer: destroyer.sequence, reverse=True)

    @property
    def shutting_down(self) -> bool:
        """Whether shutdown has begun."""
        return self.context.closing

    def shutdown(self, grace: Optional[float] = None) -> None:
        """Cancel tasks, join them and invoke destroyers.

        Args:
            grace: Seconds allowed for joining tasks and running destroyers;
                None waits without limit.

        Raises:
            ShutdownError: If destroyers failed or were skipped.
        """
        with self._lock:
            if self._shut_down:
                return
            self._shut_down = True

        deadline = None if grace is None else time.monotonic() + grace
        self.context.begin_shutdown()
        self.context.cancel()
        logger.info("Shutting down, waiting for %d background tasks", len(self.context.tasks))

        for task in self.context.join(grace):
            logger.warning("Background task %s did not stop within the grace period and was abandoned", task.name)

        errors = self._run_destroyers(deadline)
        if errors:
            raise ShutdownError(errors)
        logger.info("Shutdown complete")

    def _run_destroyers(self, deadline: Optional[float]) -> List[Exception]:
        errors: List[Exception] = []
        pending = [destroyer for destroyer in self.destroyers() if not destroyer.invoked]
        for index, destroyer in enumerate(pending):
            destroyer.invoked = True
            if deadline is None:
                errors.extend(self._invoke(destroyer))
                continue
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning("Skipped destroyer of %s, grace period expired", destroyer.bean_id)
                errors.append(TimeoutError(f"Destroyer of {destroyer.bean_id} skipped, grace period expired"))
                continue
            budget = remaining / (len(pending) - index)
            errors.extend(self._invoke_with_budget(destroyer, budget))
        return errors

    def _invoke(self, destroyer: Destroyer) -> List[Exception]:
        errors: List[Exception] = []
        for hook in destroyer.hooks:
            try:
                invoke_hook(hook, destroyer.bean, self.context)
            except Exception as e:
                logger.error("Destroy hook %s of %s failed: %s", hook_name(hook), destroyer.bean_id, e)
                errors.append(e)
        return errors

    def _invoke_with_budget(self, destroyer: Destroyer, budget: float) -> List[Exception]:
        errors: List[Exception] = []

        def run() -> None:
            errors.extend(self._invoke(destroyer))

        worker = threading.Thread(target=run, name=f"destroy-{destroyer.bean_id}", daemon=True)
        worker.start()
        worker.join(budget)
        if worker.is_alive():
            logger.warning("Destroyer of %s exceeded its %.3fs budget", destroyer.bean_id, budget)
            return [TimeoutError(f"Destroyer of {destroyer.bean_id} did not finish within {budget:.3f}s")]
        return errors
