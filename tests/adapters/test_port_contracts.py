"""Adapter contract tests for the application-layer ports.

The default adapters must keep satisfying the protocols in
``console_scaffold.application.ports`` so the dispatcher and the settings
reader can be given test doubles without code changes.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from console_scaffold.adapters.container import ServiceContainer
from console_scaffold.adapters.env import DefaultEnvLoader, default_env_prefix
from console_scaffold.adapters.file_loaders import JSONFileLoader, TOMLFileLoader, YAMLFileLoader
from console_scaffold.application import ports


def _implements(instance: object, protocol: type) -> bool:
    members = [name for name in vars(protocol) if not name.startswith("_")]
    return all(callable(getattr(instance, name, None)) for name in members)


def test_service_container_contract() -> None:
    container = ServiceContainer().add_singleton(str, "Karen")
    assert _implements(container, ports.ServiceProvider)
    assert container.contains(str)
    assert container.resolve(str) == "Karen"


def test_default_env_loader_contract() -> None:
    prefix = default_env_prefix("demo")
    loader = DefaultEnvLoader(environ={f"{prefix}_SERVICE__RETRIES": "3", "IRRELEVANT": "ignored"})
    assert _implements(loader, ports.EnvLoader)
    assert loader.load(prefix) == {"service": {"retries": 3}}


@pytest.mark.parametrize(
    ("loader", "filename", "body"),
    [
        (TOMLFileLoader(), "appsettings.toml", "[service]\nvalue = 1\n"),
        (JSONFileLoader(), "appsettings.json", '{"service": {"value": 1}}'),
        (YAMLFileLoader(), "appsettings.yaml", "service:\n  value: 1\n"),
    ],
)
def test_structured_loader_contract(tmp_path: Path, loader, filename: str, body: str) -> None:
    assert _implements(loader, ports.FileLoader)
    path = tmp_path / filename
    path.write_text(body, encoding="utf-8")
    assert loader.load(str(path))["service"]["value"] == 1
