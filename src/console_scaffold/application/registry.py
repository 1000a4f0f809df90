"""Command registry: registration, uniqueness, resolution, and listings.

Purpose
-------
Hold the command tree built at startup and map invocation tokens onto a
command descriptor. Registration happens once; afterwards the tree is only
read.

Contents
--------
* :class:`Resolution` – resolved command plus the tokens left for binding.
* :class:`CommandRegistry` – ``register`` / ``add_group`` / ``use_filter`` /
  ``resolve`` / ``listing``.

System Role
-----------
Used by :class:`console_scaffold.host.ConsoleApp` while building and by
:class:`console_scaffold.application.dispatch.Dispatcher` per invocation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence

from ..domain.commands import CommandDescriptor, CommandGroup, CommandOptions
from ..domain.errors import CommandNotFoundError, DuplicateNameError
from ..observability import log_debug


@dataclass(frozen=True)
class Resolution:
    """Command reached by :meth:`CommandRegistry.resolve` and the remaining tokens."""

    command: CommandDescriptor
    remaining: tuple[str, ...]


class CommandRegistry:
    """Tree of command groups and commands rooted in an unnamed global scope.

    Examples
    --------
    >>> registry = CommandRegistry()
    >>> _ = registry.register(("hello",), lambda name: None, CommandOptions(aliases=("hey",)))
    >>> registry.resolve(["hey", "--name", "Ann"]).remaining
    ('--name', 'Ann')
    """

    def __init__(self) -> None:
        self._root = CommandGroup("")
        self._aliases: dict[str, CommandDescriptor] = {}

    @property
    def root(self) -> CommandGroup:
        return self._root

    def register(
        self,
        path: Sequence[str],
        handler: Callable[..., Any],
        options: CommandOptions = CommandOptions(),
    ) -> CommandDescriptor:
        """Add a command at *path*; the enclosing groups must already exist.

        Raises
        ------
        DuplicateNameError
            When the name or an alias collides with an entry in the same
            scope, or an alias is already taken anywhere in the registry.
        """

        scope, name = self._split(path)
        descriptor = CommandDescriptor(name, handler, options=options, parent=scope)
        self._attach(scope, descriptor)
        log_debug("command_registered", command=descriptor.qualified_name, hidden=descriptor.hidden)
        return descriptor

    def add_group(self, path: Sequence[str], options: CommandOptions = CommandOptions()) -> CommandGroup:
        """Create a sub-command group at *path* with the same uniqueness rules as commands."""

        scope, name = self._split(path)
        group = CommandGroup(name, options=options, parent=scope)
        self._attach(scope, group)
        log_debug("group_registered", command=group.qualified_name)
        return group

    def use_filter(self, path: Sequence[str], command_filter: Callable[..., Any]) -> None:
        """Append *command_filter* to the scope at *path*; ``()`` is the global scope."""

        self.group(path)._add_filter(command_filter)

    def group(self, path: Sequence[str]) -> CommandGroup:
        """Return the group registered at *path*."""

        node: CommandDescriptor = self._root
        for token in path:
            child = node.lookup(token) if isinstance(node, CommandGroup) else None
            if not isinstance(child, CommandGroup):
                raise CommandNotFoundError(f"No command group named '{' '.join(path)}'.", scope=node, token=token)
            node = child
        assert isinstance(node, CommandGroup)
        return node

    def resolve(self, tokens: Sequence[str]) -> Resolution:
        """Walk *tokens* through groups (longest prefix) and stop at the first command.

        Raises
        ------
        CommandNotFoundError
            When the walk ends on a group, either because tokens ran out or
            because the next token names no child.
        """

        scope = self._root
        for index, token in enumerate(tokens):
            child = scope.lookup(token)
            if child is None:
                where = f" in '{scope.qualified_name}'" if scope.name else ""
                raise CommandNotFoundError(f"'{token}' is not a command{where}.", scope=scope, token=token)
            if isinstance(child, CommandGroup):
                scope = child
                continue
            return Resolution(child, tuple(tokens[index + 1 :]))
        if scope.name:
            message = f"'{scope.qualified_name}' requires a sub-command."
        else:
            message = "Missing command."
        raise CommandNotFoundError(message, scope=scope, token=None)

    def listing(self, scope: CommandGroup | None = None) -> tuple[CommandDescriptor, ...]:
        """Visible children of *scope* (the root by default) in registration order."""

        target = scope if scope is not None else self._root
        return tuple(child for child in target.children() if not child.hidden)

    def _split(self, path: Sequence[str]) -> tuple[CommandGroup, str]:
        if not path:
            raise ValueError("command path must not be empty")
        *parents, name = path
        if not name:
            raise ValueError("command name must not be empty")
        return self.group(parents), name

    def _attach(self, scope: CommandGroup, entry: CommandDescriptor) -> None:
        for key in sorted(entry.names):
            existing = scope.lookup(key)
            if existing is not None:
                raise DuplicateNameError(
                    f"'{key}' is already registered as {existing.qualified_name!r} in this scope."
                )
        for alias in sorted(entry.aliases):
            owner = self._aliases.get(alias)
            if owner is not None:
                raise DuplicateNameError(f"Alias '{alias}' is already used by {owner.qualified_name!r}.")
        scope._attach(entry)
        for alias in entry.aliases:
            self._aliases[alias] = entry
