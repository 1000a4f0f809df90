from __future__ import annotations

import json
from types import MappingProxyType

import pytest

from console_scaffold.domain.config import EMPTY_CONFIG, Config, SourceInfo


def make_config() -> Config:
    data = {"services": {"name": "Karen"}, "commands": {"long_running": {"seconds": 30}}, "debug": True}
    meta = {
        "services.name": SourceInfo(layer="appsettings", path="/app/appsettings.json", key="services.name"),
        "commands.long_running.seconds": SourceInfo(layer="env", path=None, key="commands.long_running.seconds"),
        "debug": SourceInfo(layer="cmdline", path=None, key="debug"),
    }
    return Config(data, meta)


def test_mapping_interface() -> None:
    config = make_config()
    assert config["debug"] is True
    assert "services" in config
    assert len(config) == 3
    assert sorted(config) == ["commands", "debug", "services"]


def test_get_dot_path() -> None:
    config = make_config()
    assert config.get("services.name") == "Karen"
    assert config.get("commands.long_running.seconds") == 30
    assert config.get("services.missing") is None
    assert config.get("debug.nested", default="-") == "-"


def test_top_level_mapping_is_read_only() -> None:
    config = make_config()
    with pytest.raises(TypeError):
        config._data["debug"] = False  # type: ignore[index]
    assert isinstance(config._data, MappingProxyType)


def test_as_dict_returns_deep_copy() -> None:
    config = make_config()
    dictionary = config.as_dict()
    dictionary["services"]["name"] = "Ann"
    assert config.get("services.name") == "Karen"


def test_to_json_is_compact() -> None:
    config = make_config()
    rendered = config.to_json()
    assert " " not in rendered
    assert json.loads(rendered)["commands"]["long_running"]["seconds"] == 30


def test_to_json_with_indent() -> None:
    rendered = make_config().to_json(indent=2)
    assert "\n" in rendered


def test_origin_metadata() -> None:
    config = make_config()
    origin = config.origin("commands.long_running.seconds")
    assert origin is not None and origin["layer"] == "env"
    assert config.origin("missing") is None


def test_provenance_is_a_copy() -> None:
    config = make_config()
    table = config.provenance()
    table["services.name"]["layer"] = "changed"
    assert config.origin("services.name")["layer"] == "appsettings"  # type: ignore[index]


def test_empty_config() -> None:
    assert len(EMPTY_CONFIG) == 0
    assert EMPTY_CONFIG.get("anything", 1) == 1
