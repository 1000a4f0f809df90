"""Environment-variable and ``.env`` adapters.

Purpose
-------
Translate ``CONSOLE_SCAFFOLD_*`` environment variables and developer ``.env``
files into nested dictionaries for the merge step.

Key behaviours
--------------
* Only keys with the configured prefix are captured from the environment.
* ``__`` separates nesting levels (``LOGGING__LEVEL`` → ``{"logging": {"level": ...}}``).
* Environment values get light scalar coercion (bools, ints, floats, ``null``).
* ``.env`` files are searched upwards from a start directory; the first one
  found wins. They are only consulted in the Development environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Iterable

from ..domain.errors import InvalidFormat
from ..observability import log_debug, log_error


def default_env_prefix(slug: str) -> str:
    """Return the environment prefix for *slug*.

    >>> default_env_prefix('console-scaffold')
    'CONSOLE_SCAFFOLD'
    """

    return slug.replace("-", "_").upper()


class DefaultEnvLoader:
    """Collect prefixed variables from ``os.environ`` (or an injected mapping)."""

    def __init__(self, *, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def load(self, prefix: str) -> dict[str, object]:
        """Return nested settings for variables starting with ``<prefix>_``.

        >>> loader = DefaultEnvLoader(environ={"DEMO_SERVICES__NAME": "Ann", "DEMO_RETRIES": "3", "OTHER": "x"})
        >>> loader.load("DEMO")
        {'services': {'name': 'Ann'}, 'retries': 3}
        """

        prefix = f"{prefix}_" if prefix and not prefix.endswith("_") else prefix
        collected: dict[str, object] = {}
        for key, value in self._environ.items():
            if not key.startswith(prefix):
                continue
            stripped = key[len(prefix) :]
            if stripped:
                assign_nested(collected, stripped, coerce(value), error_cls=ValueError)
        log_debug("env_variables_loaded", layer="env", path=None, keys=sorted(collected))
        return collected


class DefaultDotEnvLoader:
    """Load the nearest ``.env`` file above a start directory."""

    def __init__(self) -> None:
        self.last_loaded_path: str | None = None

    def load(self, start_dir: str | None = None) -> dict[str, object]:
        """Parse the first ``.env`` found walking from *start_dir* (default: CWD) to the root."""

        self.last_loaded_path = None
        for candidate in _iter_candidates(start_dir):
            if candidate.is_file():
                self.last_loaded_path = str(candidate)
                data = parse_dotenv(candidate)
                log_debug("dotenv_loaded", layer="dotenv", path=self.last_loaded_path, keys=sorted(data))
                return data
        log_debug("dotenv_not_found", layer="dotenv", path=None)
        return {}


def _iter_candidates(start_dir: str | None) -> Iterable[Path]:
    base = Path(start_dir) if start_dir else Path.cwd()
    for directory in (base, *base.parents):
        yield directory / ".env"


def parse_dotenv(path: Path) -> dict[str, object]:
    """Parse ``KEY=value`` lines; blank lines and ``#`` comments are skipped.

    Raises
    ------
    InvalidFormat
        On a line without ``=``.
    """

    result: dict[str, object] = {}
    with path.open("r", encoding="utf-8") as handle:
        for line_number, raw_line in enumerate(handle, start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :].lstrip()
            if "=" not in line:
                log_error("dotenv_invalid_line", layer="dotenv", path=str(path), line=line_number)
                raise InvalidFormat(f"Malformed line {line_number} in {path}")
            key, value = line.split("=", 1)
            assign_nested(result, key.strip(), _strip_quotes(value.strip()), error_cls=InvalidFormat)
    return result


def _strip_quotes(value: str) -> str:
    """Trim surrounding quotes or a trailing inline comment.

    >>> _strip_quotes('"token"')
    'token'
    >>> _strip_quotes("value # comment")
    'value'
    """

    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    if value.startswith("#"):
        return ""
    if " #" in value:
        return value.split(" #", 1)[0].strip()
    return value


def assign_nested(target: dict[str, object], key: str, value: object, *, error_cls: type[Exception]) -> None:
    """Store *value* under *key*, splitting on ``__``; keys are matched case-insensitively.

    >>> data: dict[str, object] = {}
    >>> assign_nested(data, 'LOGGING__LEVEL', 'DEBUG', error_cls=ValueError)
    >>> data
    {'logging': {'level': 'DEBUG'}}
    """

    *parents, leaf = key.split("__")
    cursor = target
    for part in parents:
        resolved = _resolve_key(cursor, part)
        child = cursor.setdefault(resolved, {})
        if not isinstance(child, dict):
            raise error_cls(f"Cannot override scalar with mapping for key {key}")
        cursor = child
    cursor[_resolve_key(cursor, leaf)] = value


def _resolve_key(mapping: dict[str, object], key: str) -> str:
    lower = key.lower()
    for existing in mapping:
        if existing.lower() == lower:
            return existing
    return lower


def coerce(value: str) -> object:
    """Coerce textual values to Python scalars where unambiguous.

    >>> coerce('true'), coerce('10'), coerce('3.5'), coerce('none'), coerce('hello')
    (True, 10, 3.5, None, 'hello')
    """

    lowered = value.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "none"}:
        return None
    if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
        return int(value)
    try:
        return float(value)
    except ValueError:
        return value
