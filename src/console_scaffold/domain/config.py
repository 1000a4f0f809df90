"""Immutable settings value object handed to commands and services.

Purpose
-------
Carry the merged configuration together with its provenance so commands such
as ``show-config`` can explain which layer supplied a value. The module holds
no I/O; loading happens in :mod:`console_scaffold.core`.

Contents
--------
* :class:`SourceInfo` – where a dotted key came from.
* :class:`Config` – read-only ``Mapping`` with dotted lookups.
* :data:`EMPTY_CONFIG` – shared empty instance.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, TypedDict


class SourceInfo(TypedDict):
    """Provenance for one resolved key.

    Attributes
    ----------
    layer:
        ``"appsettings"``, ``"environment"``, ``"dotenv"``, ``"env"`` or ``"cmdline"``.
    path:
        File that produced the value, ``None`` for in-memory sources.
    key:
        Fully qualified dotted key such as ``"logging.level"``.
    """

    layer: str
    path: str | None
    key: str


@dataclass(frozen=True, slots=True)
class Config(Mapping[str, Any]):
    """Read-only configuration tree with provenance.

    Examples
    --------
    >>> cfg = Config(
    ...     {"services": {"name": "Karen"}},
    ...     {"services.name": {"layer": "appsettings", "path": "appsettings.json", "key": "services.name"}},
    ... )
    >>> cfg.get("services.name")
    'Karen'
    >>> cfg.get("services.missing", default="-")
    '-'
    >>> cfg.origin("services.name")["layer"]
    'appsettings'
    """

    _data: Mapping[str, Any]
    _meta: Mapping[str, SourceInfo]

    def __post_init__(self) -> None:
        object.__setattr__(self, "_data", MappingProxyType(dict(self._data)))
        object.__setattr__(self, "_meta", MappingProxyType(dict(self._meta)))

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: str, default: Any = None) -> Any:  # type: ignore[override]
        """Resolve *key* as a dotted path, returning *default* when any segment is missing."""

        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, Mapping) or part not in current:
                return default
            current = current[part]
        return current

    def origin(self, key: str) -> SourceInfo | None:
        """Return provenance for *key* or ``None`` when no layer produced it."""

        return self._meta.get(key)

    def provenance(self) -> dict[str, SourceInfo]:
        """Return a mutable copy of the provenance table."""

        return {key: dict(info) for key, info in self._meta.items()}  # type: ignore[misc]

    def as_dict(self) -> dict[str, Any]:
        """Deep, mutable copy of the configuration tree.

        >>> cfg = Config({"logging": {"level": "INFO"}}, {})
        >>> clone = cfg.as_dict()
        >>> clone["logging"]["level"] = "DEBUG"
        >>> cfg.get("logging.level")
        'INFO'
        """

        return _thaw(self._data)

    def to_json(self, *, indent: int | None = None) -> str:
        """Serialise the configuration with compact separators.

        >>> Config({"a": {"b": 1}}, {}).to_json()
        '{"a":{"b":1}}'
        """

        return json.dumps(self.as_dict(), indent=indent, separators=(",", ":"), ensure_ascii=False)


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_thaw(item) for item in value]
    if isinstance(value, tuple):
        return tuple(_thaw(item) for item in value)
    return value


EMPTY_CONFIG = Config({}, {})
