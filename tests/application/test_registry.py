"""Registry tests: uniqueness rules, longest-prefix resolution, listings."""

from __future__ import annotations

import pytest

from console_scaffold.application.registry import CommandRegistry
from console_scaffold.domain.commands import CommandGroup, CommandOptions, Visibility
from console_scaffold.domain.errors import CommandNotFoundError, DuplicateNameError


def noop() -> None:
    """Do nothing."""


@pytest.fixture()
def registry() -> CommandRegistry:
    registry = CommandRegistry()
    registry.register(("hello",), noop, CommandOptions(aliases=("hey", "konnichiwa")))
    registry.register(("secret-command",), noop, CommandOptions(visibility=Visibility.HIDDEN))
    registry.add_group(("admin",), CommandOptions(description="Server administration"))
    registry.register(("admin", "start-server"), noop)
    registry.register(("admin", "stop-server"), noop)
    return registry


def test_resolve_by_name_and_alias(registry: CommandRegistry) -> None:
    by_name = registry.resolve(["hello", "--name", "Ann"])
    by_alias = registry.resolve(["konnichiwa", "--name", "Ann"])
    assert by_name.command is by_alias.command
    assert by_alias.remaining == ("--name", "Ann")


def test_resolve_walks_into_groups(registry: CommandRegistry) -> None:
    resolution = registry.resolve(["admin", "start-server", "extra"])
    assert resolution.command.qualified_name == "admin start-server"
    assert resolution.remaining == ("extra",)


def test_resolve_hidden_command(registry: CommandRegistry) -> None:
    assert registry.resolve(["secret-command"]).command.hidden


def test_unknown_token_reports_scope(registry: CommandRegistry) -> None:
    with pytest.raises(CommandNotFoundError) as info:
        registry.resolve(["admin", "reboot"])
    assert info.value.token == "reboot"
    assert isinstance(info.value.scope, CommandGroup)
    assert info.value.scope.name == "admin"
    assert str(info.value) == "'reboot' is not a command in 'admin'."


def test_group_without_sub_command(registry: CommandRegistry) -> None:
    with pytest.raises(CommandNotFoundError, match="requires a sub-command") as info:
        registry.resolve(["admin"])
    assert info.value.token is None


def test_empty_tokens(registry: CommandRegistry) -> None:
    with pytest.raises(CommandNotFoundError, match="Missing command"):
        registry.resolve([])


def test_duplicate_name_in_scope_rejected(registry: CommandRegistry) -> None:
    with pytest.raises(DuplicateNameError):
        registry.register(("hello",), noop)


def test_alias_colliding_with_name_rejected(registry: CommandRegistry) -> None:
    with pytest.raises(DuplicateNameError):
        registry.register(("greet",), noop, CommandOptions(aliases=("hello",)))


def test_alias_unique_across_registry(registry: CommandRegistry) -> None:
    with pytest.raises(DuplicateNameError, match="Alias 'hey'"):
        registry.register(("admin", "greet"), noop, CommandOptions(aliases=("hey",)))


def test_same_name_allowed_in_different_scopes(registry: CommandRegistry) -> None:
    descriptor = registry.register(("admin", "hello"), noop)
    assert descriptor.qualified_name == "admin hello"
    assert registry.resolve(["hello"]).command is not descriptor


def test_register_under_missing_group_fails(registry: CommandRegistry) -> None:
    with pytest.raises(CommandNotFoundError):
        registry.register(("ops", "deploy"), noop)


def test_listing_excludes_hidden_and_keeps_order(registry: CommandRegistry) -> None:
    assert [entry.name for entry in registry.listing()] == ["hello", "admin"]
    admin = registry.group(("admin",))
    assert [entry.name for entry in registry.listing(admin)] == ["start-server", "stop-server"]
    assert names == ["hello", "secret-command", "admin", "admin start-server", "admin stop-server"]


def test_use_filter_scopes(registry: CommandRegistry) -> None:
    registry.use_filter((), "global")
    registry.use_filter(("admin",), "privilege")
    start = registry.resolve(["admin", "start-server"]).command
    hello = registry.resolve(["hello"]).command
    assert start.effective_filters() == ("global", "privilege")
    assert hello.effective_filters() == ("global",)
