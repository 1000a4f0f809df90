"""Layer merge policy with provenance.

Layers arrive lowest precedence first as ``(layer_name, mapping, path)``.
Nested mappings merge recursively; any other value replaces what was there
and records which layer supplied it.
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Iterable

Layer = tuple[str, Mapping[str, object], "str | None"]


def merge_layers(layers: Iterable[Layer]) -> tuple[dict[str, object], dict[str, dict[str, object]]]:
    """Merge *layers* and return ``(merged, provenance)``.

    >>> merged, meta = merge_layers([
    ...     ("appsettings", {"logging": {"level": "INFO", "format": "%(message)s"}}, "appsettings.json"),
    ...     ("env", {"logging": {"level": "DEBUG"}}, None),
    ... ])
    >>> merged["logging"]
    {'level': 'DEBUG', 'format': '%(message)s'}
    >>> meta["logging.level"]["layer"], meta["logging.format"]["layer"]
    ('env', 'appsettings')
    """

    merged: dict[str, object] = {}
    meta: dict[str, dict[str, object]] = {}
    for layer, payload, path in layers:
        _merge_into(merged, meta, deepcopy(dict(payload)), layer, path, ())
    return merged, meta


def _merge_into(
    target: dict[str, object],
    meta: dict[str, dict[str, object]],
    incoming: Mapping[str, object],
    layer: str,
    path: str | None,
    prefix: tuple[str, ...],
) -> None:
    for key, value in incoming.items():
        dotted = ".".join((*prefix, key))
        existing = target.get(key)
        if isinstance(value, Mapping):
            if not isinstance(existing, dict):
                _drop_provenance(meta, dotted)
                existing = {}
                target[key] = existing
            _merge_into(existing, meta, value, layer, path, (*prefix, key))
            continue
        _drop_provenance(meta, dotted)
        target[key] = value
        meta[dotted] = {"layer": layer, "path": path, "key": dotted}


def _drop_provenance(meta: dict[str, dict[str, object]], dotted: str) -> None:
    for key in [key for key in meta if key == dotted or key.startswith(dotted + ".")]:
        del meta[key]
