"""Binding of property subtrees to typed Python values.

Targets are pydantic models, primitive types, or generic collections of
either. Coercion of text leaves is done by pydantic in lax mode, preceded by
the registered converters (durations, times).
"""

import functools
import inspect
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, TypeAdapter, ValidationError

from spring_ioc.application.converters import get_converter, get_splitter, split_comma
from spring_ioc.application.expression import MISSING, coerce_text, evaluate
from spring_ioc.domain import ExpressionError, NotFoundError, TypeMismatchError, ValidationFailedError
from spring_ioc.domain.tags import Expr, PropertyRef, TagSyntaxError, Value, is_property_ref, parse_property_ref
from spring_ioc.domain.type_utils import collection_shape, unwrap_optional

if TYPE_CHECKING:
    from spring_ioc.application.properties import PropertyStore


def bind(store: "PropertyStore", target: Any, key: str = "") -> Any:
    """Bind the properties below ``key`` to ``target``.

    Args:
        store: The property store to read from.
        target: A pydantic model class, a primitive or a generic collection type.
        key: Root key, or a ``${key:=default}|splitter`` reference.

    Returns:
        The bound value.

    Raises:
        NotFoundError: If a required key is missing and has no default.
        TypeMismatchError: If a value cannot be converted.
        ValidationFailedError: If an ``Expr`` constraint on a model field fails.

    Example:
        >>> class Server(BaseModel):
        ...     port: int
        ...     host: Annotated[str, Value("${host:=localhost}")]
        >>> bind(store, Server, "server")
        Server(port=8080, host='localhost')
    """
    ref = parse_property_ref(key) if is_property_ref(key) else PropertyRef(key=key)
    return _bind(store, target, ref, ref.key)


def bind_value(
    store: "PropertyStore",
    target: Any,
    tag: str,
    expressions: Sequence[str] = (),
    path: str = "",
) -> Any:
    """Bind a ``Value`` tag for an injection target and validate the result.

    Args:
        store: The property store to read from.
        target: Declared type of the parameter or attribute.
        tag: ``${key:=default}|splitter`` reference.
        expressions: ``Expr`` constraints checked against the bound value.
        path: Name of the injection target, used in error messages.
    """
    value = bind(store, target, tag)
    validate(store, value, expressions, path or tag)
    return value


def validate(store: "PropertyStore", value: Any, expressions: Sequence[str], path: str = "") -> None:
    """Evaluate validation expressions over a bound value.

    Raises:
        ValidationFailedError: If an expression is false or cannot be evaluated.
    """
    for expression in expressions:
        try:
            result = evaluate(expression, value, _name_resolver(store))
        except ExpressionError as e:
            raise ValidationFailedError(expression, value, path, str(e)) from e
        if not result:
            raise ValidationFailedError(expression, value, path)


def _name_resolver(store: "PropertyStore"):
    def resolve(name: str) -> Any:
        if not store.has(name):
            return MISSING
        return coerce_text(store.get(name))

    return resolve


def _bind(store: "PropertyStore", target: Any, ref: PropertyRef, path: str) -> Any:
    target, optional = unwrap_optional(target)
    try:
        if _is_model(target):
            return _bind_model(store, target, ref, path, optional)
        shape = collection_shape(target)
        if shape is not None:
            container, element = shape
            if container is dict:
                return _bind_mapping(store, element, ref, path, optional)
            return _bind_sequence(store, container, element, ref, path, optional)
        text = _text(store, ref, optional)
        if text is None:
            return None
        return convert(target, text, path)
    except NotFoundError:
        if optional:
            return None
        raise


def _bind_model(store: "PropertyStore", model: Any, ref: PropertyRef, path: str, optional: bool) -> Any:
    if optional and not store.has(ref.key):
        return None
    values: Dict[str, Any] = {}
    for name, info in model.model_fields.items():
        marker = _first(info.metadata, Value)
        expressions = [item.expression for item in info.metadata if isinstance(item, Expr)]
        if marker is not None:
            sub = parse_property_ref(marker.tag)
        else:
            sub = PropertyRef(key=(info.alias or name).lower())
        sub = sub.model_copy(update={"key": join_key(ref.key, sub.key)})
        field_path = f"{path}.{name}" if path else name
        if not sub.has_default and not info.is_required() and not _has_text(store, sub.key):
            continue
        value = _bind(store, info.annotation, sub, field_path)
        validate(store, value, expressions, field_path)
        values[info.alias or name] = value
    try:
        return model.model_validate(values)
    except ValidationError as e:
        raise TypeMismatchError(f"Cannot bind {path or '<root>'} to {model.__name__}: {e}") from e


def _bind_sequence(
    store: "PropertyStore",
    container: type,
    element: Any,
    ref: PropertyRef,
    path: str,
    optional: bool,
) -> Any:
    children = store.children(ref.key) if ref.key else []
    if children and all(child.isdigit() for child in children):
        items = [
            _bind(store, element, PropertyRef(key=f"{ref.key}[{child}]"), f"{path}[{child}]")
            for child in children
        ]
        return container(items)
    if children:
        raise TypeMismatchError(f"Property {ref.key!r} is a mapping and cannot bind to a sequence")
    text = _text(store, ref, optional)
    if text is None:
        return None
    if text == "":
        return container()
    parts = _split(text, ref.splitter)
    return container(convert(element, part, f"{path}[{index}]") for index, part in enumerate(parts))


def _bind_mapping(store: "PropertyStore", element: Any, ref: PropertyRef, path: str, optional: bool) -> Any:
    children = store.children(ref.key)
    if not children:
        if ref.has_default:
            if ref.default:
                raise TagSyntaxError(f"Mapping {ref.key!r} cannot have a non-empty default")
            return {}
        if store.has(ref.key):
            if store.get_raw(ref.key):
                raise TypeMismatchError(f"Property {ref.key!r} is a value and cannot bind to a mapping")
            return {}
        if optional:
            return None
        raise NotFoundError(ref.key, "property is not defined")
    return {
        child: _bind(store, element, PropertyRef(key=join_key(ref.key, child)), f"{path}.{child}")
        for child in children
    }


def convert(target: Any, text: str, path: str = "") -> Any:
    """Convert a text leaf to ``target``.

    Raises:
        TypeMismatchError: If the text is not a valid ``target``.
    """
    if target is Any or target is str or target is inspect.Parameter.empty:
        return text
    converter = get_converter(target)
    try:
        if converter is not None:
            return converter(text)
        return _adapter(target).validate_python(text)
    except (ValueError, ValidationError) as e:
        where = f" at {path}" if path else ""
        raise TypeMismatchError(f"Cannot convert {text!r} to {_describe(target)}{where}: {e}") from e


def join_key(parent: str, key: str) -> str:
    """Join a parent key and a child key, keeping index segments attached.

    Example:
        >>> join_key("db.hosts", "[0]")
        'db.hosts[0]'
    """
    if not parent:
        return key
    if not key:
        return parent
    if key.startswith("["):
        return parent + key
    return f"{parent}.{key}"


def _text(store: "PropertyStore", ref: PropertyRef, optional: bool) -> Optional[str]:
    if not ref.has_default and store.get_raw(ref.key) is None:
        if store.has(ref.key):
            raise TypeMismatchError(f"Property {ref.key!r} has sub keys and cannot bind to a value")
        if optional:
            return None
    return store.resolve_ref(ref)


def _has_text(store: "PropertyStore", key: str) -> bool:
    raw = store.get_raw(key)
    if raw is None:
        return bool(store.children(key))
    return raw != ""


def _split(text: str, splitter: str) -> List[str]:
    if not splitter:
        return split_comma(text)
    try:
        return get_splitter(splitter)(text)
    except KeyError as e:
        raise TagSyntaxError(f"Unknown splitter {splitter!r}") from e


def _first(items: Sequence[Any], kind: type) -> Any:
    for item in items:
        if isinstance(item, kind):
            return item
    return None


def _is_model(target: Any) -> bool:
    return inspect.isclass(target) and issubclass(target, BaseModel)


def _adapter(target: Any) -> TypeAdapter:
    try:
        return _cached_adapter(target)
    except TypeError:
        return TypeAdapter(target)


@functools.lru_cache(maxsize=256)
def _cached_adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def _describe(target: Any) -> str:
    return getattr(target, "__name__", None) or repr(target)
