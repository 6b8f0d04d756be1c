"""Type reflection helpers used for bean identity and lookup."""

import abc
import collections.abc
import datetime
import decimal
import enum
import inspect
import pathlib
import types
import typing
import uuid
from typing import Any, Optional, Tuple, Union

UNION_ORIGINS = (Union, types.UnionType)

# Types whose instances are plain data rather than shared components.
VALUE_TYPES: Tuple[type, ...] = (
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    bytearray,
    decimal.Decimal,
    datetime.datetime,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    enum.Enum,
    uuid.UUID,
    pathlib.PurePath,
    type(None),
)

_SEQUENCE_ORIGINS = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Collection,
    collections.abc.Iterable,
)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def strip_annotated(tp: Any) -> Any:
    """Return the underlying type of ``Annotated[T, ...]``."""
    while typing.get_origin(tp) is typing.Annotated:
        tp = typing.get_args(tp)[0]
    return tp


def unwrap_optional(tp: Any) -> Tuple[Any, bool]:
    """Split ``Optional[T]`` into ``(T, True)``; other types return ``(tp, False)``."""
    tp = strip_annotated(tp)
    if typing.get_origin(tp) in UNION_ORIGINS:
        args = [arg for arg in typing.get_args(tp) if arg is not type(None)]
        if len(args) == 1:
            return args[0], True
    return tp, False


def collection_shape(tp: Any) -> Optional[Tuple[type, Any]]:
    """Describe a collection annotation.

    Returns:
        ``(list, T)`` for sequence-like annotations, ``(dict, T)`` for
        ``Dict[str, T]``, or None when ``tp`` is not a collection annotation.
    """
    tp, _ = unwrap_optional(tp)
    origin = typing.get_origin(tp)
    args = typing.get_args(tp)
    if origin in _MAPPING_ORIGINS:
        return dict, strip_annotated(args[1]) if len(args) == 2 else Any
    if origin in _SEQUENCE_ORIGINS:
        if origin is tuple and len(args) == 2 and args[1] is Ellipsis:
            return tuple, strip_annotated(args[0])
        if origin is tuple:
            return None
        container = origin if origin in (tuple, set, frozenset) else list
        return container, strip_annotated(args[0]) if args else Any
    if tp in (list, set, frozenset):
        return tp, Any
    if tp is dict:
        return dict, Any
    return None


def element_type(tp: Any) -> Any:
    """Strip optional, annotated and collection wrappers down to the element type."""
    tp, _ = unwrap_optional(tp)
    shape = collection_shape(tp)
    if shape is not None:
        return element_type(shape[1])
    return tp


def type_name(x: Any) -> str:
    """Return ``<module>/<qualified-name>`` for a type, typing construct or value.

    Collection and optional wrappers are stripped so ``List[Service]`` and
    ``Service`` share an identity.

    Example:
        >>> type_name(collections.OrderedDict)
        'collections/OrderedDict'
    """
    tp = x if _is_type_like(x) else type(x)
    tp = element_type(tp)
    origin = typing.get_origin(tp)
    if origin is not None:
        tp = origin
    module = getattr(tp, "__module__", None) or "builtins"
    name = getattr(tp, "__qualname__", None) or getattr(tp, "__name__", None) or repr(tp)
    return f"{module}/{name}"


def simple_name(x: Any) -> str:
    """Return the unqualified name part of :func:`type_name`."""
    return type_name(x).rsplit("/", 1)[-1].rsplit(".", 1)[-1]


def is_value_type(tp: Any) -> bool:
    """True for scalar types bound from properties rather than beans."""
    tp = strip_annotated(tp)
    return inspect.isclass(tp) and issubclass(tp, VALUE_TYPES)


def is_interface_type(tp: Any) -> bool:
    """True for protocols and abstract base classes other than data models."""
    tp = strip_annotated(tp)
    if not inspect.isclass(tp):
        return False
    if getattr(tp, "_is_protocol", False):
        return True
    if _is_model_type(tp):
        return False
    return isinstance(tp, abc.ABCMeta) and not issubclass(tp, VALUE_TYPES)


def is_component_type(tp: Any) -> bool:
    """True if values of ``tp`` are shared by identity between holders.

    Classes other than plain value types qualify, as do protocols and callable
    annotations.
    """
    tp = strip_annotated(tp)
    if tp is Any:
        return False
    origin = typing.get_origin(tp)
    if origin is collections.abc.Callable or tp is collections.abc.Callable:
        return True
    if origin is not None:
        return False
    if not inspect.isclass(tp):
        return False
    return not issubclass(tp, VALUE_TYPES)


def is_component_receiver(tp: Any) -> bool:
    """True for component types and collections whose element is a component type."""
    tp, _ = unwrap_optional(tp)
    if is_component_type(tp):
        return True
    shape = collection_shape(tp)
    return shape is not None and is_component_type(shape[1])


def is_assignable(value: Any, tp: Any) -> bool:
    """Best-effort runtime check that ``value`` may be stored in a ``tp`` slot."""
    tp, optional = unwrap_optional(tp)
    if value is None:
        return optional or tp is Any or tp is type(None)
    if tp is Any or tp is object or tp is inspect.Parameter.empty:
        return True
    origin = typing.get_origin(tp)
    if origin is collections.abc.Callable or tp is collections.abc.Callable:
        return callable(value)
    if origin in UNION_ORIGINS:
        return any(is_assignable(value, arg) for arg in typing.get_args(tp))
    if origin is not None:
        return isinstance(value, origin) if inspect.isclass(origin) else True
    if getattr(tp, "_is_protocol", False) and not getattr(tp, "_is_runtime_protocol", False):
        return True
    if inspect.isclass(tp):
        if tp is float and isinstance(value, int) and not isinstance(value, bool):
            return True
        return isinstance(value, tp)
    return True


def is_subtype(candidate: Any, tp: Any) -> bool:
    """True if a bean declared as ``candidate`` can be looked up as ``tp``."""
    candidate = strip_annotated(candidate)
    tp = strip_annotated(tp)
    if candidate is tp:
        return True
    if not (inspect.isclass(candidate) and inspect.isclass(tp)):
        return False
    if getattr(tp, "_is_protocol", False) and not getattr(tp, "_is_runtime_protocol", False):
        return False
    try:
        return issubclass(candidate, tp)
    except TypeError:
        return False


def _is_type_like(x: Any) -> bool:
    return inspect.isclass(x) or typing.get_origin(x) is not None or x is Any


def _is_model_type(tp: type) -> bool:
    return any(base.__module__.startswith("pydantic") and base.__name__ == "BaseModel" for base in tp.__mro__)
