from typing import Any, List, Optional, Sequence


class IoCError(Exception):
    """Base exception for container-related errors."""


class NotFoundError(IoCError):
    """Raised when a name, type or property lookup misses.

    Attributes:
        selector: The bean selector or property key that was looked up.
        reason: Optional reason for the failure.
    """

    def __init__(self, selector: Any, reason: Optional[str] = None) -> None:
        self.selector = selector
        self.reason = reason
        message = f"Cannot find {_describe(selector)}"
        if reason:
            message += f". Reason: {reason}"
        super().__init__(message)


class AmbiguousDependencyError(IoCError):
    """Raised when a lookup matches several beans and no single primary exists.

    Attributes:
        selector: The selector that was looked up.
        candidates: Identities of the matching beans.
    """

    def __init__(self, selector: Any, candidates: Sequence[str]) -> None:
        self.selector = selector
        self.candidates = list(candidates)
        message = (
            f"Found {len(self.candidates)} beans for {_describe(selector)}: "
            f"[{', '.join(self.candidates)}]"
        )
        super().__init__(message)


class TypeMismatchError(IoCError):
    """Raised when a resolved value is not assignable to its target.

    This occurs when:
    - A property value cannot be converted to the declared type.
    - A bean does not implement an exported type.
    - A factory returns a value of the wrong type.
    """


class ValidationFailedError(IoCError):
    """Raised when a bind-time validation expression fails.

    Attributes:
        tag: The expression that failed.
        value: The offending value.
        path: Dotted path of the bound field.
    """

    def __init__(self, tag: str, value: Any, path: str = "", reason: Optional[str] = None) -> None:
        self.tag = tag
        self.value = value
        self.path = path
        message = f"Validation {tag!r} failed for value {value!r}"
        if path:
            message += f" at {path}"
        if reason:
            message += f". Reason: {reason}"
        super().__init__(message)


class ExpressionError(IoCError):
    """Raised when an expression cannot be parsed or evaluated."""


class CyclicReferenceError(IoCError):
    """Raised when property reference expansion loops.

    Attributes:
        chain: Property keys forming the cycle, first key repeated at the end.
    """

    def __init__(self, chain: List[str]) -> None:
        self.chain = chain
        super().__init__(f"Cyclic property reference detected: {' -> '.join(chain)}")


class ConditionCycleError(IoCError):
    """Raised when bean conditions depend on each other cyclically.

    Attributes:
        chain: Bean identities forming the cycle.
    """

    def __init__(self, chain: List[str]) -> None:
        self.chain = chain
        super().__init__(f"Condition cycle detected: {' -> '.join(chain)}")


class DependencyCycleError(IoCError):
    """Raised when the non-lazy injection graph contains a cycle.

    Attributes:
        chain: Bean identities forming the cycle, first bean repeated at the end.
    """

    def __init__(self, chain: List[str]) -> None:
        self.chain = chain
        super().__init__(f"Circular dependency detected: {' -> '.join(chain)}")


class ConstructionFailedError(IoCError):
    """Raised when a factory, method or hook fails for a bean.

    Attributes:
        bean_id: Identity of the failing bean.
        reason: Description of the failure.
    """

    def __init__(self, bean_id: str, reason: str) -> None:
        self.bean_id = bean_id
        self.reason = reason
        super().__init__(f"Failed to construct bean {bean_id}: {reason}")


class WireAfterRefreshError(IoCError):
    """Raised when the container is mutated after refresh has started."""


class ShutdownInProgressError(IoCError):
    """Raised when a background task is spawned after shutdown began."""


class RunnerFailedError(IoCError):
    """Raised when an application runner or start event fails.

    Attributes:
        runner: The runner or event that raised.
    """

    def __init__(self, runner: Any, cause: BaseException) -> None:
        self.runner = runner
        super().__init__(f"Runner {type(runner).__name__} failed: {cause}")


class RefreshError(IoCError):
    """Composite error naming every bean that failed resolution.

    Attributes:
        errors: The individual errors in detection order.
    """

    def __init__(self, errors: Sequence[Exception]) -> None:
        self.errors = list(errors)
        lines = "\n".join(f"  - {error}" for error in self.errors)
        super().__init__(f"Refresh failed with {len(self.errors)} errors:\n{lines}")


class ShutdownError(IoCError):
    """Aggregated failures collected while shutting down.

    Attributes:
        errors: Destroyer and timeout failures, in occurrence order.
    """

    def __init__(self, errors: Sequence[Exception]) -> None:
        self.errors = list(errors)
        lines = "\n".join(f"  - {error}" for error in self.errors)
        super().__init__(f"Shutdown finished with {len(self.errors)} errors:\n{lines}")


def _describe(selector: Any) -> str:
    if isinstance(selector, str):
        return repr(selector)
    name = getattr(selector, "__qualname__", None) or getattr(selector, "__name__", None)
    if name:
        return f"type {name}"
    return repr(selector)
