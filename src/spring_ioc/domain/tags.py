"""Injection markers and the tag grammar they carry.

Markers are attached to constructor parameters and class attributes through
``typing.Annotated``::

    class Server:
        port: Annotated[int, Value("${server.port:=8080}"), Expr("$ > 0")]
        metrics: Annotated[Metrics, Autowire("metrics?")]
"""

from dataclasses import dataclass
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from spring_ioc.domain.exceptions import IoCError


@dataclass(frozen=True)
class Value:
    """Reads the annotated target from the property store.

    Attributes:
        tag: Reference of the form ``${key:=default}|splitter``.
    """

    tag: str


@dataclass(frozen=True)
class Autowire:
    """Injects the annotated target from the container.

    Attributes:
        tag: ``""`` (by type), ``"name"``, ``"name?"`` (optional), ``"type:name"``,
            ``"*"`` (collect all) or ``"[a,b?]"`` (collect named).
        lazy: Fill the reference after both beans exist; field targets only.
    """

    tag: str = ""
    lazy: bool = False


@dataclass(frozen=True)
class Expr:
    """Validation expression evaluated over the bound value ``$``."""

    expression: str


@dataclass(frozen=True)
class Const:
    """Wraps a literal constructor argument so it is passed through untouched."""

    value: Any


class PropertyRef(BaseModel):
    """Parsed ``${key:=default}|splitter`` reference."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(default="", description="Property key, relative to the bind root.")
    default: Optional[str] = Field(default=None, description="Default text when the key is missing.")
    splitter: str = Field(default="", description="Name of the splitter used for sequences.")

    @property
    def has_default(self) -> bool:
        """Whether the reference carries a ``:=`` default."""
        return self.default is not None


class WireTag(BaseModel):
    """Parsed ``type:name?`` bean selector."""

    model_config = ConfigDict(frozen=True)

    type_name: str = ""
    bean_name: str = ""
    nullable: bool = False

    def __str__(self) -> str:
        text = f"{self.type_name}:{self.bean_name}" if self.type_name else self.bean_name
        return text + ("?" if self.nullable else "")


class CollectionTag(BaseModel):
    """Parsed ``*`` or ``[a,b?]?`` collection selector."""

    model_config = ConfigDict(frozen=True)

    items: List[WireTag] = Field(default_factory=list)
    nullable: bool = False

    @property
    def collect_all(self) -> bool:
        """Whether the tag selects every bean of the element type."""
        return not self.items


class TagSyntaxError(IoCError):
    """Raised when a tag does not follow the injection grammar."""


def parse_property_ref(tag: str) -> PropertyRef:
    """Parse a ``${key:=default}|splitter`` reference.

    Args:
        tag: The reference text.

    Returns:
        The parsed reference.

    Raises:
        TagSyntaxError: If the text is not a well-formed reference.

    Example:
        >>> parse_property_ref("${server.port:=8080}")
        PropertyRef(key='server.port', default='8080', splitter='')
    """
    close = tag.rfind("}")
    pipe = tag.rfind("|")
    if pipe == 0 or close <= 0:
        raise TagSyntaxError(f"Invalid property reference {tag!r}")
    left = tag[:close]
    splitter = tag[pipe + 1 :].strip() if pipe > close else ""
    start = left.find("${")
    if start < 0:
        raise TagSyntaxError(f"Invalid property reference {tag!r}")
    body = left[start + 2 :]
    key, sep, default = body.partition(":=")
    return PropertyRef(key=key.strip(), default=default if sep else None, splitter=splitter)


def is_property_ref(text: Any) -> bool:
    """Check whether a tag is a ``${...}`` property reference."""
    return isinstance(text, str) and text.startswith("${")


def parse_wire_tag(tag: str) -> WireTag:
    """Parse a single bean selector of the form ``type:name?``."""
    tag = tag.strip()
    if not tag:
        return WireTag()
    nullable = tag.endswith("?")
    if nullable:
        tag = tag[:-1]
    type_name, sep, bean_name = tag.rpartition(":")
    if not sep:
        return WireTag(bean_name=tag, nullable=nullable)
    return WireTag(type_name=type_name, bean_name=bean_name, nullable=nullable)


def is_collection_tag(tag: str) -> bool:
    """Check whether a tag is ``*``, ``*?`` or a bracketed selector list."""
    tag = tag.strip()
    return tag in ("*", "*?") or tag.startswith("[")


def parse_collection_tag(tag: str) -> CollectionTag:
    """Parse a collection selector.

    ``*`` collects every match; ``[a,b?]`` collects the named beans in the listed
    order, where ``b?`` may be absent; a trailing ``?`` allows an empty result.
    """
    tag = tag.strip()
    nullable = tag.endswith("?")
    if nullable:
        tag = tag[:-1]
    if tag in ("*", ""):
        return CollectionTag(nullable=nullable)
    if not (tag.startswith("[") and tag.endswith("]")):
        raise TagSyntaxError(f"Invalid collection tag {tag!r}")
    body = tag[1:-1].strip()
    items = [parse_wire_tag(item) for item in body.split(",") if item.strip()] if body else []
    return CollectionTag(items=items, nullable=nullable)
