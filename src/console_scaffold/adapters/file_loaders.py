"""Structured settings file loaders (JSON, TOML, YAML).

Purpose
-------
Parse ``appsettings`` files into mappings for the merge step. Parsing errors
surface as :class:`~console_scaffold.domain.errors.InvalidFormat`; missing
files as :class:`~console_scaffold.domain.errors.NotFound`.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Mapping

import yaml

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover - exercised on Python 3.10 only
    import tomli as tomllib

from ..domain.errors import InvalidFormat, NotFound
from ..observability import log_debug, log_error


class BaseFileLoader:
    """Shared read and validation helpers."""

    format_name = "file"
    parse_errors: tuple[type[Exception], ...] = (ValueError,)

    def load(self, path: str) -> Mapping[str, object]:
        """Read and parse *path*, returning a mapping."""

        payload = self._read(path)
        try:
            data = self._parse(payload)
        except self.parse_errors as exc:
            log_error("settings_file_invalid", layer="file", path=path, format=self.format_name, error=str(exc))
            raise InvalidFormat(f"Invalid {self.format_name.upper()} in {path}: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise InvalidFormat(f"File {path} did not produce a mapping")
        log_debug("settings_file_loaded", layer="file", path=path, format=self.format_name)
        return data

    def _read(self, path: str) -> bytes:
        file_path = Path(path)
        if not file_path.is_file():
            raise NotFound(f"Settings file not found: {path}")
        return file_path.read_bytes()

    def _parse(self, payload: bytes) -> object:
        raise NotImplementedError


class JSONFileLoader(BaseFileLoader):
    format_name = "json"
    parse_errors = (json.JSONDecodeError, UnicodeDecodeError)

    def _parse(self, payload: bytes) -> object:
        return json.loads(payload)


class TOMLFileLoader(BaseFileLoader):
    format_name = "toml"
    parse_errors = (tomllib.TOMLDecodeError, UnicodeDecodeError)

    def _parse(self, payload: bytes) -> object:
        return tomllib.loads(payload.decode("utf-8"))


class YAMLFileLoader(BaseFileLoader):
    format_name = "yaml"
    parse_errors = (yaml.YAMLError,)

    def _parse(self, payload: bytes) -> object:
        return yaml.safe_load(payload)


FILE_LOADERS: dict[str, BaseFileLoader] = {
    ".json": JSONFileLoader(),
    ".toml": TOMLFileLoader(),
    ".yaml": YAMLFileLoader(),
    ".yml": YAMLFileLoader(),
}
"""Loaders keyed by lower-case file suffix; also the probing order for settings files."""
