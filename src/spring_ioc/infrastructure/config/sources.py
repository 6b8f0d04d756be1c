"""Property sources read at bootstrap: command line, environment and files."""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Pattern, Sequence

from spring_ioc.application.properties import Properties
from spring_ioc.domain import TypeMismatchError
from spring_ioc.domain.tags import TagSyntaxError
from spring_ioc.infrastructure.config.readers import read_file

logger = logging.getLogger(__name__)

ENV_PREFIX = "GS_"
INCLUDE_ENV_PATTERNS = "INCLUDE_ENV_PATTERNS"
EXCLUDE_ENV_PATTERNS = "EXCLUDE_ENV_PATTERNS"
RESERVED_ENV = ("GS_RECORD_MODE", "GS_REPLAY_MODE")

CONFIG_NAME = "application"


def load_command_line(argv: Sequence[str], source: str = "command-line") -> Properties:
    """Read ``-name value``, ``--name=value`` and bare ``-flag`` arguments.

    Arguments that do not start with ``-`` and are not consumed as a value
    are ignored.

    Example:
        >>> load_command_line(["-server.port", "9090", "--debug"]).get("server.port")
        '9090'
    """
    properties = Properties(source)
    index = 0
    while index < len(argv):
        arg = argv[index]
        index += 1
        if not arg.startswith("-") or arg in ("-", "--"):
            continue
        name = arg.lstrip("-")
        if "=" in name:
            name, value = name.split("=", 1)
        elif index < len(argv) and not argv[index].startswith("-"):
            value = argv[index]
            index += 1
        else:
            value = ""
        _set(properties, name, value)
    return properties


def load_environment(
    environ: Mapping[str, str],
    declared_keys: Iterable[str] = (),
    source: str = "environment",
) -> Properties:
    """Read environment variables.

    ``GS_SERVER_PORT`` becomes ``server.port``. Other variables matching
    ``INCLUDE_ENV_PATTERNS`` (default: every variable) and not matching
    ``EXCLUDE_ENV_PATTERNS`` are kept under their own name. A declared key
    such as ``foo.bar`` is also overridden by a variable named ``FOO_BAR``.

    Args:
        environ: Environment variables.
        declared_keys: Keys already defined by lower layers.
        source: Layer identifier.

    Raises:
        re.error: If an include or exclude pattern is not a valid regex.
    """
    properties = Properties(source)
    includes = _patterns(environ.get(INCLUDE_ENV_PATTERNS, ".*"))
    excludes = _patterns(environ.get(EXCLUDE_ENV_PATTERNS, ""))

    for name in sorted(environ):
        value = environ[name]
        if name in RESERVED_ENV:
            continue
        if name.startswith(ENV_PREFIX):
            _set(properties, name[len(ENV_PREFIX) :].replace("_", ".").lower(), value)
        elif _matches(includes, name) and not _matches(excludes, name):
            _set(properties, name, value)

    apply_env_overrides(properties, environ, declared_keys)
    return properties


def apply_env_overrides(properties: Properties, environ: Mapping[str, str], keys: Iterable[str]) -> None:
    """Set each key whose upper-case form (``foo.bar`` -> ``FOO_BAR``) is in the environment."""
    for key in keys:
        name = env_name(key)
        if name in environ and not properties.has(key):
            _set(properties, key, environ[name])


def env_name(key: str) -> str:
    """Return the environment variable that overrides a declared key.

    Example:
        >>> env_name("server.hosts[0]")
        'SERVER_HOSTS_0'
    """
    name = re.sub(r"[^0-9A-Za-z]+", "_", key).strip("_")
    return name.upper()


def config_files(locations: Sequence[str], extensions: Sequence[str], profile: str = "") -> List[Path]:
    """Return existing ``application[-profile].<ext>`` files, extension order first."""
    stem = f"{CONFIG_NAME}-{profile}" if profile else CONFIG_NAME
    files = []
    for extension in extensions:
        for location in locations:
            path = Path(location) / f"{stem}{extension}"
            if path.is_file():
                files.append(path)
    return files


def load_config_files(
    locations: Sequence[str],
    extensions: Sequence[str],
    profile: str = "",
    source: Optional[str] = None,
) -> Properties:
    """Merge configuration files into one layer.

    Extensions are read in order and later extensions override earlier ones;
    for one extension the first location defining a key wins.

    Raises:
        ConfigReadError: If a file cannot be parsed.
    """
    properties = Properties(source or (f"{CONFIG_NAME}-{profile}" if profile else CONFIG_NAME))
    for extension in extensions:
        merged: Dict[str, str] = {}
        for path in config_files(locations, [extension], profile):
            logger.info("Loading configuration %s", path)
            layer = Properties.from_map(read_file(path), str(path))
            for key, value in layer.items():
                merged.setdefault(key, value)
        for key in sorted(merged):
            _set(properties, key, merged[key])
    return properties


def read_banner(locations: Sequence[str]) -> Optional[str]:
    """Return the first ``banner.txt`` found in the locations, or None.

    Args:
        locations: Directories searched in order.
    """
    for location in locations:
        path = Path(location) / "banner.txt"
        if path.is_file():
            return path.read_text(encoding="utf-8")
    return None


def _set(properties: Properties, key: str, value: str) -> None:
    try:
        properties.set(key, value)
    except (TagSyntaxError, TypeMismatchError) as e:
        logger.debug("Ignored property %r from %s: %s", key, properties.source, e)


def _patterns(text: str) -> List[Pattern[str]]:
    return [re.compile(item) for item in text.split(",") if item]


def _matches(patterns: List[Pattern[str]], name: str) -> bool:
    return any(pattern.search(name) for pattern in patterns)
