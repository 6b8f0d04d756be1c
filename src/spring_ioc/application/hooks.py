"""Invocation of init and destroy hooks."""

import inspect
from typing import Any, Callable, Optional


def hook_name(hook: Any) -> str:
    """Return a printable name for a hook, used in logs and error messages.

    Args:
        hook: A method name or a callable.

    Returns:
        The method name, the callable's qualified name, or its repr.
    """
    if isinstance(hook, str):
        return hook
    return getattr(hook, "__qualname__", None) or repr(hook)


def invoke_hook(hook: Any, bean: Any, ctx: Any = None) -> Any:
    """Call a lifecycle hook.

    A hook is either the name of a method on the bean, called with no
    arguments or with the app context, or a callable taking the bean and
    optionally the app context.

    Raises:
        AttributeError: If a named hook is not a method of the bean.
        TypeError: If the hook accepts an unsupported number of arguments.
    """
    if isinstance(hook, str):
        method = getattr(bean, hook, None)
        if method is None or not callable(method):
            raise AttributeError(f"{type(bean).__name__} has no method {hook!r}")
        return method(ctx) if _accepts(method, 1) else method()
    return hook(bean, ctx) if _accepts(hook, 2) else hook(bean)


def _accepts(fn: Callable[..., Any], count: int) -> bool:
    signature = _signature(fn)
    if signature is None:
        return False
    positional = 0
    for param in signature.parameters.values():
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            positional += 1
    return positional >= count


def _signature(fn: Callable[..., Any]) -> Optional[inspect.Signature]:
    try:
        return inspect.signature(fn)
    except (TypeError, ValueError):
        return None
