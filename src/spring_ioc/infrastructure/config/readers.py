"""Configuration file readers keyed by file extension."""

import json
import tomllib
from pathlib import Path
from typing import Any, Callable, Dict, List

import yaml

from spring_ioc.domain import IoCError

Reader = Callable[[str], Dict[str, Any]]


class ConfigReadError(IoCError):
    """Raised when a configuration file cannot be read or parsed.

    Attributes:
        path: The offending file.
    """

    def __init__(self, path: Any, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot read configuration {path}: {reason}")


def read_properties(text: str) -> Dict[str, Any]:
    """Parse ``key=value`` / ``key: value`` lines.

    ``#`` and ``!`` start comments, a trailing backslash continues the value on
    the next line, and the first unescaped ``=``, ``:`` or whitespace separates
    the key from the value.

    Example:
        >>> read_properties("server.port=8080\\nhosts[0] = a")
        {'server.port': '8080', 'hosts[0]': 'a'}
    """
    result: Dict[str, Any] = {}
    for line in _logical_lines(text):
        key, value = _split_entry(line)
        if key:
            result[key] = value
    return result


def _logical_lines(text: str) -> List[str]:
    lines: List[str] = []
    pending = ""
    for raw in text.splitlines():
        stripped = raw.lstrip()
        if not pending and (not stripped or stripped[0] in "#!"):
            continue
        continued = _ends_with_continuation(stripped)
        piece = stripped[:-1] if continued else stripped
        pending += piece
        if not continued:
            lines.append(pending)
            pending = ""
    if pending:
        lines.append(pending)
    return lines


def _ends_with_continuation(line: str) -> bool:
    slashes = len(line) - len(line.rstrip("\\"))
    return slashes % 2 == 1


def _split_entry(line: str) -> tuple:
    key_chars: List[str] = []
    index = 0
    while index < len(line):
        char = line[index]
        if char == "\\" and index + 1 < len(line):
            key_chars.append(line[index + 1])
            index += 2
            continue
        if char in "=:" or char.isspace():
            break
        key_chars.append(char)
        index += 1
    rest = line[index:].lstrip()
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip()
    return "".join(key_chars), _unescape(rest.rstrip())


def _unescape(value: str) -> str:
    replacements = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
    out: List[str] = []
    index = 0
    while index < len(value):
        char = value[index]
        if char == "\\" and index + 1 < len(value):
            nxt = value[index + 1]
            out.append(replacements.get(nxt, nxt))
            index += 2
            continue
        out.append(char)
        index += 1
    return "".join(out)


def read_yaml(text: str) -> Dict[str, Any]:
    """Parse YAML with ``yaml.safe_load``; an empty document is an empty mapping.

    Raises:
        yaml.YAMLError: If the text is not valid YAML.
        ValueError: If the top level is not a mapping.
    """
    data = yaml.safe_load(text)
    return _require_mapping(data)


def read_toml(text: str) -> Dict[str, Any]:
    """Parse TOML with ``tomllib``."""
    return tomllib.loads(text)


def read_json(text: str) -> Dict[str, Any]:
    return _require_mapping(json.loads(text))


def _require_mapping(data: Any) -> Dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"top level must be a mapping, got {type(data).__name__}")
    return data


_readers: Dict[str, Reader] = {
    ".properties": read_properties,
    ".prop": read_properties,
    ".yaml": read_yaml,
    ".yml": read_yaml,
    ".toml": read_toml,
    ".tml": read_toml,
    ".json": read_json,
}


def register_reader(extension: str, reader: Reader) -> None:
    """Register a reader for files with the given extension (``".ini"``)."""
    _readers[extension.lower()] = reader


def supported_extensions() -> List[str]:
    """Return every extension with a registered reader, in lookup order."""
    return list(_readers)


def read_file(path: Path) -> Dict[str, Any]:
    """Read a configuration file with the reader registered for its suffix.

    Raises:
        ConfigReadError: If no reader handles the suffix or parsing fails.
    """
    reader = _readers.get(path.suffix.lower())
    if reader is None:
        raise ConfigReadError(path, f"unsupported extension {path.suffix!r}")
    try:
        text = path.read_text(encoding="utf-8")
        return reader(text)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigReadError(path, str(e)) from e
