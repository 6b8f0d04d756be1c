"""Introspection of constructors and classes into injection directives."""

import functools
import inspect
import typing
from typing import Any, Callable, List, Optional, Sequence, Tuple

from spring_ioc.domain import BeanDefinition, DirectiveKind, InjectionDirective, NotFoundError, TypeMismatchError
from spring_ioc.domain.tags import (
    Autowire,
    Const,
    Expr,
    TagSyntaxError,
    Value,
    is_collection_tag,
    is_property_ref,
    parse_collection_tag,
    parse_wire_tag,
)
from spring_ioc.domain.type_utils import (
    UNION_ORIGINS,
    collection_shape,
    is_component_receiver,
    is_component_type,
    is_interface_type,
    strip_annotated,
    unwrap_optional,
)

ParameterKind = Any

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def argument_directives(
    fn: Callable[..., Any],
    args: Sequence[Any] = (),
    skip_first: bool = False,
) -> List[Tuple[InjectionDirective, ParameterKind]]:
    """Describe how each parameter of ``fn`` is supplied.

    Explicit ``args`` bind to positional parameters in order, then to
    ``*args``. Parameters without an explicit argument use their ``Annotated``
    markers, then their declared type, then their default.

    Args:
        fn: A function, a class, or an unbound method.
        args: Explicit arguments given at registration.
        skip_first: Skip the first parameter (the receiver of an unbound method).

    Returns:
        ``(directive, parameter kind)`` pairs in call order.

    Raises:
        TypeMismatchError: If more explicit arguments are given than ``fn`` accepts.
        NotFoundError: If a parameter has no injection source at all.
    """
    params = list(_signature(fn).parameters.values())
    if skip_first and params:
        params = params[1:]
    var_positional = next((p for p in params if p.kind == inspect.Parameter.VAR_POSITIONAL), None)
    positional = [p for p in params if p.kind in _POSITIONAL]
    if len(args) > len(positional) and var_positional is None:
        raise TypeMismatchError(
            f"{_name(fn)} accepts {len(positional)} positional arguments but {len(args)} were given"
        )

    result: List[Tuple[InjectionDirective, ParameterKind]] = []
    index = 0
    for param in params:
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        explicit = None
        position = None
        if param.kind in _POSITIONAL:
            position = index
            explicit = args[index] if index < len(args) else None
            index += 1
        has_default = param.default is not inspect.Parameter.empty
        directive = directive_for(param.name, position, param.annotation, has_default, explicit)
        result.append((directive, param.kind))

    if var_positional is not None:
        for extra in args[index:]:
            directive = directive_for(var_positional.name, index, var_positional.annotation, False, extra)
            result.append((directive, inspect.Parameter.VAR_POSITIONAL))
            index += 1
    return result


@functools.lru_cache(maxsize=512)
def field_directives(cls: type) -> Tuple[InjectionDirective, ...]:
    """Return directives for class attributes annotated with ``Value`` or ``Autowire``.

    Raises:
        TypeMismatchError: If a lazy reference targets a type that is not an interface.
    """
    directives = []
    for name, annotation in _class_hints(cls).items():
        markers = _markers(annotation)
        if not any(isinstance(marker, (Value, Autowire)) for marker in markers):
            continue
        has_default = hasattr(cls, name)
        directive = directive_for(name, None, annotation, has_default, None)
        if directive.lazy and not is_interface_type(unwrap_optional(directive.declared_type)[0]):
            raise TypeMismatchError(
                f"Lazy reference {cls.__qualname__}.{name} must be declared with an interface type"
            )
        directives.append(directive)
    return tuple(directives)


def directive_for(
    target: str,
    position: Optional[int],
    annotation: Any,
    has_default: bool,
    explicit: Any,
) -> InjectionDirective:
    """Build the directive for one parameter or attribute."""
    markers = _markers(annotation)
    declared = strip_annotated(annotation)
    if declared is inspect.Parameter.empty:
        declared = Any
    _, optional = unwrap_optional(declared)
    expressions = tuple(marker.expression for marker in markers if isinstance(marker, Expr))
    base = dict(
        target=target,
        position=position,
        declared_type=declared,
        has_default=has_default,
        expressions=expressions,
    )

    source = explicit
    if source is None:
        source = next((marker for marker in markers if isinstance(marker, (Value, Autowire))), None)

    if isinstance(source, Const):
        return InjectionDirective(kind=DirectiveKind.CONST, const=source.value, **base)
    if isinstance(source, Value):
        return InjectionDirective(kind=DirectiveKind.VALUE, tag=source.tag, **base)
    if isinstance(source, str) and is_property_ref(source):
        return InjectionDirective(kind=DirectiveKind.VALUE, tag=source, **base)
    if isinstance(source, Autowire):
        return _bean_directive(source.tag, None, source.lazy, optional, base)
    if isinstance(source, str):
        return _bean_directive(source, None, False, optional, base)
    if isinstance(source, BeanDefinition) or inspect.isclass(source):
        return _bean_directive("", source, False, optional, base)
    if source is not None:
        return InjectionDirective(kind=DirectiveKind.CONST, const=source, **base)

    if is_component_receiver(declared):
        return _bean_directive("", None, False, optional or has_default, base)
    if has_default or optional:
        return InjectionDirective(kind=DirectiveKind.DEFAULT, required=False, **base)
    raise NotFoundError(target, "parameter has no tag, component type or default")


def _bean_directive(tag: str, selector: Any, lazy: bool, optional: bool, base: dict) -> InjectionDirective:
    tag = tag.strip()
    shape = collection_shape(base["declared_type"])
    element_is_component = shape is not None and is_component_type(shape[1])
    if is_collection_tag(tag):
        nullable = parse_collection_tag(tag).nullable
        collect = True
    else:
        nullable = parse_wire_tag(tag).nullable if tag else False
        collect = not tag and selector is None and element_is_component
    if collect and shape is None:
        raise TagSyntaxError(f"Collection tag {tag!r} on {base['target']} needs a list or dict type")
    if lazy and collect:
        raise TagSyntaxError(f"Collection {base['target']} cannot be lazy")
    return InjectionDirective(
        kind=DirectiveKind.BEAN,
        tag=tag,
        selector=selector,
        required=not (optional or nullable),
        lazy=lazy,
        collect=collect,
        **base,
    )


def return_type(fn: Callable[..., Any]) -> Any:
    """Return the declared return type of a factory, the class itself for classes."""
    if inspect.isclass(fn):
        return fn
    annotation = _signature(fn).return_annotation
    if annotation is inspect.Signature.empty or annotation is None:
        return None
    return strip_annotated(annotation)


def _markers(annotation: Any) -> List[Any]:
    markers: List[Any] = []
    origin = typing.get_origin(annotation)
    if origin is typing.Annotated:
        args = typing.get_args(annotation)
        markers.extend(args[1:])
        markers.extend(_markers(args[0]))
    elif origin in UNION_ORIGINS:
        for arg in typing.get_args(annotation):
            markers.extend(_markers(arg))
    return markers


def _signature(fn: Callable[..., Any]) -> inspect.Signature:
    try:
        return inspect.signature(fn, eval_str=True)
    except NameError:
        return inspect.signature(fn)


def _class_hints(cls: type) -> dict:
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError):
        hints: dict = {}
        for klass in reversed(cls.__mro__):
            hints.update(inspect.get_annotations(klass))
        return hints


def _name(fn: Any) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)
