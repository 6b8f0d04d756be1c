"""Application layer - Re-entrancy detection for recursive evaluation."""

import threading
from typing import Callable, List, Sequence

from spring_ioc.domain import ConditionCycleError, IoCError

CycleErrorFactory = Callable[[List[str]], IoCError]


class CircularDependencyDetector:
    """Detects cycles while definitions are evaluated recursively.

    Uses thread-local storage to track the current evaluation stack.
    When an identity appears twice in the stack, a cycle is detected.

    Attributes:
        _local: Thread-local storage for evaluation stacks.
        _error: Builds the exception raised for a detected cycle.
    """

    def __init__(self, error: CycleErrorFactory = ConditionCycleError) -> None:
        """Initialize the detector.

        Args:
            error: Factory for the exception raised on a cycle.
        """
        self._local = threading.local()
        self._error = error

    def _get_stack(self) -> List[str]:
        if not hasattr(self._local, "stack"):
            self._local.stack = []
        return self._local.stack

    def push(self, identity: str) -> None:
        """Add an identity to the evaluation stack.

        Args:
            identity: The bean identity being evaluated.

        Raises:
            IoCError: The configured cycle error if the identity is already on the stack.

        Example:
            >>> detector = CircularDependencyDetector()
            >>> detector.push("a:A")
            >>> detector.push("b:B")
            >>> detector.push("a:A")  # Raises ConditionCycleError
        """
        stack = self._get_stack()
        if identity in stack:
            cycle = stack[stack.index(identity) :] + [identity]
            raise self._error(cycle)
        stack.append(identity)

    def pop(self) -> None:
        """Remove the most recent identity from the evaluation stack."""
        stack = self._get_stack()
        if stack:
            stack.pop()

    def contains(self, identity: str) -> bool:
        """Check whether an identity is currently being evaluated."""
        return identity in self._get_stack()

    @property
    def stack(self) -> Sequence[str]:
        return tuple(self._get_stack())

    def clear(self) -> None:
        """Clear the entire evaluation stack."""
        if hasattr(self._local, "stack"):
            self._local.stack.clear()
