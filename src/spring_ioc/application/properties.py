"""Layered property store with reference expansion."""

import logging
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from spring_ioc.application.binder import bind
from spring_ioc.domain import (
    CyclicReferenceError,
    IProperties,
    NotFoundError,
    Property,
    TypeMismatchError,
    WireAfterRefreshError,
)
from spring_ioc.domain.tags import PropertyRef, TagSyntaxError, parse_property_ref

logger = logging.getLogger(__name__)

_LEAF = object()


class LayerPriority(IntEnum):
    """Built-in layer priorities, higher wins."""

    DEFAULTS = 100
    DEFAULT_FILE = 200
    PROFILE_FILE = 300
    ENVIRONMENT = 400
    COMMAND_LINE = 500


def split_path(key: str) -> List[str]:
    """Split ``a.b[0].c`` into ``["a", "b", "0", "c"]``.

    Raises:
        TagSyntaxError: If the key is empty or malformed.
    """
    if not key or " " in key:
        raise TagSyntaxError(f"Invalid property key {key!r}")
    parts: List[str] = []
    for segment in key.split("."):
        head, bracket, rest = segment.partition("[")
        if not head and not parts:
            raise TagSyntaxError(f"Invalid property key {key!r}")
        if head:
            parts.append(head)
        elif not bracket:
            raise TagSyntaxError(f"Invalid property key {key!r}")
        while bracket:
            index, closed, rest = rest.partition("]")
            if not closed or not index.isdigit():
                raise TagSyntaxError(f"Invalid property key {key!r}")
            parts.append(index)
            if rest and not rest.startswith("["):
                raise TagSyntaxError(f"Invalid property key {key!r}")
            bracket, rest = (rest[:1], rest[1:]) if rest else ("", "")
    return parts


def flatten(key: str, value: Any) -> Iterator[Tuple[str, str]]:
    """Yield flat ``(key, text)`` pairs for nested dicts and lists."""
    if isinstance(value, dict):
        if not value:
            yield key, ""
        for sub_key, sub_value in value.items():
            yield from flatten(f"{key}.{sub_key}" if key else str(sub_key), sub_value)
    elif isinstance(value, (list, tuple)):
        if not value:
            yield key, ""
        for index, item in enumerate(value):
            yield from flatten(f"{key}[{index}]", item)
    else:
        yield key, to_text(value)


def to_text(value: Any) -> str:
    """Render a scalar the way property files write it; None becomes empty and booleans lower case."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Properties:
    """One flat layer of properties.

    Keys may be written as ``a.b.c`` or ``a[0].b``; nested values are flattened
    on insertion. A key cannot hold a value and sub keys at the same time.

    Attributes:
        source: Layer identifier reported with each property.
    """

    def __init__(self, source: str = "") -> None:
        """Initialize an empty layer.

        Args:
            source: Layer identifier, such as a file path or ``"environment"``.
        """
        self.source = source
        self._data: Dict[str, str] = {}
        self._tree: Dict[str, Any] = {}
        self._frozen = False

    @classmethod
    def from_map(cls, values: Dict[str, Any], source: str = "") -> "Properties":
        """Build a layer from a possibly nested mapping, such as a parsed YAML document.

        Args:
            values: Keys mapped to scalars, lists or nested dicts.
            source: Layer identifier.

        Raises:
            TypeMismatchError: If a key is both a value and a parent.
        """
        properties = cls(source)
        for key in sorted(values):
            properties.set(key, values[key])
        return properties

    def set(self, key: str, value: Any) -> None:
        """Set a value; dicts and lists are expanded into sub keys.

        Raises:
            WireAfterRefreshError: If the layer belongs to a frozen store.
            TypeMismatchError: If the key collides with an existing value or subtree.
        """
        for flat_key, text in flatten(key, value):
            self._set_leaf(flat_key, text)

    def _set_leaf(self, key: str, text: str) -> None:
        if self._frozen:
            raise WireAfterRefreshError(f"Property layer {self.source!r} is frozen after bootstrap")
        path = split_path(key)
        node = self._tree
        for depth, segment in enumerate(path[:-1]):
            child = node.get(segment)
            if child is _LEAF:
                prefix = key_of(path[: depth + 1])
                if self._data.get(prefix, "") != "":
                    raise TypeMismatchError(f"Property {prefix!r} has a value but {key!r} wants a sub key")
                del self._data[prefix]
                child = None
            if child is None:
                child = node[segment] = {}
            node = child
        last = path[-1]
        existing = node.get(last)
        if isinstance(existing, dict):
            if existing and text != "":
                raise TypeMismatchError(f"Property {key!r} has sub keys and cannot hold a value")
            if existing:
                return
        node[last] = _LEAF
        self._data[key_of(path)] = text

    def freeze(self) -> None:
        """Reject every later write to this layer."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        """Whether the layer belongs to a frozen store."""
        return self._frozen

    def get(self, key: str) -> Optional[str]:
        """Return the raw text of a key, None when it is not a leaf."""
        return self._data.get(_normalize(key))

    def has(self, key: str) -> bool:
        """Check whether the key is a value or the parent of sub keys."""
        try:
            path = split_path(key)
        except TagSyntaxError:
            return False
        node: Any = self._tree
        for segment in path:
            if not isinstance(node, dict) or segment not in node:
                return False
            node = node[segment]
        return True

    def children(self, key: str) -> List[str]:
        """Return the immediate sub key segments of a key."""
        node: Any = self._tree
        if key:
            for segment in split_path(key):
                if not isinstance(node, dict) or segment not in node:
                    return []
                node = node[segment]
        return list(node) if isinstance(node, dict) else []

    def keys(self) -> List[str]:
        """Return the leaf keys in sorted order."""
        return sorted(self._data)

    def items(self) -> List[Tuple[str, str]]:
        return [(key, self._data[key]) for key in self.keys()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Properties(source={self.source!r}, size={len(self._data)})"


class PropertyStore(IProperties):
    """Ordered stack of property layers.

    ``get`` returns the value of the highest-priority layer defining a key.
    References of the form ``${key:=default}`` are expanded on read; a
    reference loop raises :class:`CyclicReferenceError`. Once frozen the store
    rejects writes and caches expanded values.

    Attributes:
        _layers: ``(priority, order, layer)`` entries sorted by descending priority.
    """

    def __init__(self) -> None:
        """Initialize an empty, writable store."""
        self._layers: List[Tuple[int, int, Properties]] = []
        self._frozen = False
        self._cache: Dict[str, Optional[str]] = {}

    def add_layer(self, properties: Properties, priority: int) -> Properties:
        """Add a layer; among equal priorities the layer added first wins.

        Raises:
            WireAfterRefreshError: If the store is frozen.
        """
        self._check_writable()
        self._layers.append((priority, len(self._layers), properties))
        self._layers.sort(key=lambda entry: (-entry[0], entry[1]))
        logger.debug("Added property layer %r with %d keys at priority %d", properties.source, len(properties), priority)
        return properties

    def layer(self, source: str, priority: int = LayerPriority.DEFAULTS) -> Properties:
        """Return the layer with the given source, creating it when missing."""
        for _, _, properties in self._layers:
            if properties.source == source:
                return properties
        return self.add_layer(Properties(source), priority)

    def set(self, key: str, value: Any, source: str = "defaults") -> None:
        """Set a programmatic value in the given layer."""
        self._check_writable()
        self.layer(source).set(key, value)

    def freeze(self) -> None:
        """Freeze the store and every layer in it; expanded values are cached from now on."""
        self._frozen = True
        for _, _, properties in self._layers:
            properties.freeze()

    @property
    def frozen(self) -> bool:
        """Whether writes are rejected."""
        return self._frozen

    def _check_writable(self) -> None:
        if self._frozen:
            raise WireAfterRefreshError("Property store is frozen after bootstrap")

    def layers(self) -> List[Properties]:
        """Return the layers, highest priority first."""
        return [properties for _, _, properties in self._layers]

    def get_property(self, key: str) -> Optional[Property]:
        """Return the raw winning property and its source layer."""
        for _, _, properties in self._layers:
            value = properties.get(key)
            if value is not None:
                return Property(key=_normalize(key), value=value, source=properties.source)
        return None

    def get_raw(self, key: str) -> Optional[str]:
        """Return the unexpanded winning value of a key, None when no layer defines it."""
        prop = self.get_property(key)
        return prop.value if prop is not None else None

    def has(self, key: str) -> bool:
        """Check whether any layer defines the key as a value or as a parent."""
        return any(properties.has(key) for _, _, properties in self._layers)

    def children(self, key: str) -> List[str]:
        """Return the immediate sub key segments of a key across all layers."""
        seen: Dict[str, None] = {}
        for _, _, properties in self._layers:
            for child in properties.children(key):
                seen.setdefault(child, None)
        return sorted(seen, key=_child_sort_key)

    def keys(self) -> List[str]:
        """Return every leaf key defined in any layer, sorted."""
        return sorted({key for _, _, properties in self._layers for key in properties.keys()})

    def to_dict(self) -> Dict[str, str]:
        """Return every key with its winning raw value."""
        return {key: self.get_raw(key) or "" for key in self.keys()}

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the expanded value of the highest-priority layer defining a key.

        Args:
            key: Dotted key such as ``server.port`` or ``hosts[0]``.
            default: Returned when no layer defines the key.

        Returns:
            The value with every ``${...}`` reference expanded.

        Raises:
            CyclicReferenceError: If expansion loops.
            NotFoundError: If a reference names an undefined key without default.

        Example:
            >>> store.set("url", "http://${host:=localhost}/")
            >>> store.get("url")
            'http://localhost/'
        """
        if self._frozen and key in self._cache:
            value = self._cache[key]
        else:
            raw = self.get_raw(key)
            value = None if raw is None else self._expand(raw, (_normalize(key),))
            if self._frozen:
                self._cache[key] = value
        return default if value is None else value

    def resolve(self, text: str) -> str:
        """Expand every ``${...}`` reference in free text.

        Raises:
            CyclicReferenceError: If expansion loops.
            NotFoundError: If a reference names an undefined key without default.
        """
        return self._expand(text, ())

    def resolve_ref(self, ref: PropertyRef, empty_is_missing: bool = False) -> str:
        """Return the expanded value of a reference, falling back to its default.

        An empty value counts as missing when the reference has a default.

        Raises:
            NotFoundError: If the key is undefined and there is no default.
            CyclicReferenceError: If expansion loops.
        """
        return self._lookup(ref, (), empty_is_missing)

    def bind(self, target: Any, key: str = "") -> Any:
        """Bind the subtree under ``key`` into ``target``; see :func:`spring_ioc.application.binder.bind`."""
        return bind(self, target, key)

    def get_typed(self, key: str, target: Any, default: Any = None) -> Any:
        """Return the value of a key converted to ``target``, or ``default`` when missing."""
        if not self.has(key):
            return default
        return self.bind(target, key)

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Return a key as a bool, ``default`` when missing."""
        return self.get_typed(key, bool, default)

    def get_int(self, key: str, default: int = 0) -> int:
        return self.get_typed(key, int, default)

    def get_float(self, key: str, default: float = 0.0) -> float:
        return self.get_typed(key, float, default)

    def _lookup(self, ref: PropertyRef, chain: Tuple[str, ...], empty_is_missing: bool = False) -> str:
        key = ref.key
        if key in chain:
            raise CyclicReferenceError(list(chain[chain.index(key) :]) + [key])
        raw = self.get_raw(key) if key else None
        if raw is None or (raw == "" and (ref.has_default or empty_is_missing)):
            if not ref.has_default:
                raise NotFoundError(key, "property is not defined")
            return self._expand(ref.default, chain)
        return self._expand(raw, chain + (key,))

    def _expand(self, text: str, chain: Tuple[str, ...]) -> str:
        start = text.find("${")
        if start < 0:
            return text
        depth = 0
        end = -1
        index = start
        while index < len(text):
            if text.startswith("${", index):
                depth += 1
                index += 2
                continue
            if text[index] == "}":
                depth -= 1
                if depth == 0:
                    end = index
                    break
            index += 1
        if end < 0:
            raise TagSyntaxError(f"Unterminated reference in {text!r}")
        ref = parse_property_ref(text[start : end + 1])
        value = self._lookup(ref, chain)
        return text[:start] + value + self._expand(text[end + 1 :], chain)

    def __repr__(self) -> str:
        sources = ", ".join(properties.source for properties in self.layers())
        return f"PropertyStore([{sources}], frozen={self._frozen})"


def key_of(path: List[str]) -> str:
    """Inverse of :func:`split_path`."""
    key = ""
    for segment in path:
        if segment.isdigit() and key:
            key += f"[{segment}]"
        else:
            key = f"{key}.{segment}" if key else segment
    return key


def _normalize(key: str) -> str:
    try:
        return key_of(split_path(key))
    except TagSyntaxError:
        return key


def _child_sort_key(child: str) -> Tuple[int, Any]:
    return (0, int(child)) if child.isdigit() else (1, child)
