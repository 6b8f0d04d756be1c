"""Text converters and splitters used by property binding."""

import datetime
import re
from typing import Any, Callable, Dict, List, Optional

Converter = Callable[[str], Any]
Splitter = Callable[[str], List[str]]

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h|d)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}

DEFAULT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def parse_duration(text: str) -> datetime.timedelta:
    """Parse ``1h30m``, ``250ms`` or a bare number of seconds.

    Raises:
        ValueError: If the text is not a duration.

    Example:
        >>> parse_duration("1m30s")
        datetime.timedelta(seconds=90)
    """
    text = text.strip()
    if not text:
        raise ValueError("empty duration")
    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    try:
        return sign * datetime.timedelta(seconds=float(text))
    except ValueError:
        pass
    seconds = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            raise ValueError(f"invalid duration {text!r}")
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text) or position == 0:
        raise ValueError(f"invalid duration {text!r}")
    return sign * datetime.timedelta(seconds=seconds)


def parse_time(text: str) -> datetime.datetime:
    """Parse ``2006-01-02 15:04:05 -0700`` or ``<value> >> <strftime format>``.

    ISO 8601 text is accepted as a fallback.
    """
    value, _, layout = text.partition(">>")
    value = value.strip()
    layout = layout.strip() or DEFAULT_TIME_FORMAT
    try:
        return datetime.datetime.strptime(value, layout)
    except ValueError:
        if layout != DEFAULT_TIME_FORMAT:
            raise
    return datetime.datetime.fromisoformat(value)


def split_comma(text: str) -> List[str]:
    """Split on commas and strip surrounding whitespace from each item."""
    return [item.strip() for item in text.split(",")]


_converters: Dict[Any, Converter] = {
    datetime.timedelta: parse_duration,
    datetime.datetime: parse_time,
}
_splitters: Dict[str, Splitter] = {}


def register_converter(target: Any, converter: Converter) -> None:
    """Register a ``str -> target`` converter used ahead of pydantic coercion."""
    _converters[target] = converter


def get_converter(target: Any) -> Optional[Converter]:
    """Return the registered converter for a target type, if any.

    Args:
        target: Target type; unhashable targets have no converter.

    Returns:
        The converter, or None.
    """
    try:
        return _converters.get(target)
    except TypeError:
        return None


def register_splitter(name: str, splitter: Splitter) -> None:
    """Register a named splitter usable as ``${key}|name``."""
    _splitters[name] = splitter


def get_splitter(name: str) -> Splitter:
    """Return a registered splitter.

    Raises:
        KeyError: If no splitter has that name.
    """
    return _splitters[name]
