"""Environment loader tests: prefix naming, nested assignment, coercion.

Randomised inputs check that every prefixed variable lands in the nested
payload with the documented coercion.
"""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from console_scaffold.adapters.env import DefaultEnvLoader, assign_nested, coerce, default_env_prefix


def test_default_env_prefix() -> None:
    """Slug values should become upper snake-case prefixes."""

    assert default_env_prefix("console-scaffold") == "CONSOLE_SCAFFOLD"


def test_env_loader_nested() -> None:
    """Coerce environment variables into nested dictionaries while ignoring out-of-scope keys."""

    environ = {
        "CONSOLE_SCAFFOLD_SERVICES__NAME": "Ann",
        "CONSOLE_SCAFFOLD_COMMANDS__LONG_RUNNING__SECONDS": "5",
        "CONSOLE_SCAFFOLD_FEATURE__ENABLED": "true",
        "OTHER": "ignored",
    }
    data = DefaultEnvLoader(environ=environ).load("CONSOLE_SCAFFOLD")
    assert data["services"]["name"] == "Ann"
    assert data["commands"]["long_running"]["seconds"] == 5
    assert data["feature"]["enabled"] is True
    assert "other" not in data


def test_prefix_with_trailing_underscore() -> None:
    data = DefaultEnvLoader(environ={"DEMO_LEVEL": "debug"}).load("DEMO_")
    assert data == {"level": "debug"}


def test_assign_nested_overwrites_scalar_raises() -> None:
    """Protect existing scalar values from being replaced by new nested assignments."""

    container: dict[str, object] = {"a": "value"}
    with pytest.raises(ValueError):
        assign_nested(container, "A__B", 1, error_cls=ValueError)


def test_assign_nested_matches_existing_keys_case_insensitively() -> None:
    container: dict[str, object] = {"Logging": {"Level": "INFO"}}
    assign_nested(container, "LOGGING__LEVEL", "DEBUG", error_cls=ValueError)
    assert container == {"Logging": {"Level": "DEBUG"}}


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("TRUE", True), ("false", False), ("null", None), ("-4", -4), ("2.5", 2.5), ("Karen", "Karen")],
)
def test_coerce(raw: str, expected: object) -> None:
    assert coerce(raw) == expected


SCALAR_VALUES = st.sampled_from(["0", "1", "true", "false", "3.5", "none", "debug"])
NAMESPACE_KEYS = st.sampled_from(["SERVICES__NAME", "SERVICES__TIMEOUT", "LOGGING__LEVEL"])


@given(st.dictionaries(NAMESPACE_KEYS, SCALAR_VALUES, max_size=3))
def test_env_loader_handles_random_namespace(entries) -> None:
    """Randomised namespace inputs should map to consistent nested/coerced payloads."""

    prefix = "DEMO"
    environ = {f"{prefix}_{key}": value for key, value in entries.items()}
    environ["IGNORED"] = "1"
    data = DefaultEnvLoader(environ=environ).load(prefix)
    for key, value in entries.items():
        section, leaf = key.lower().split("__")
        assert data[section][leaf] == coerce(value)
