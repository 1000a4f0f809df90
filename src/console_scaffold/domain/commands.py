"""Command registry data model.

Purpose
-------
Describe registered commands, sub-command groups, registration metadata, and
the explicit result type that carries an exit status up the filter chain.

Contents
--------
* :class:`Visibility` – tagged visibility variants used instead of attributes.
* :class:`CommandOptions` – builder-time metadata passed at registration.
* :class:`CommandResult` – ``{exit_code, message}`` outcome of an invocation.
* :class:`CommandDescriptor` – immutable description of one command.
* :class:`CommandGroup` – named scope owning children and scoped filters.

System Role
-----------
Instances are created by :class:`console_scaffold.application.registry.CommandRegistry`
and read by the dispatcher. Descriptors never own their parent group; the
back-reference is weak so the registry root remains the single owner of the
tree.
"""

from __future__ import annotations

import weakref
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator


class Visibility(Enum):
    """Whether a command appears in listings."""

    VISIBLE = "visible"
    HIDDEN = "hidden"


@dataclass(frozen=True)
class CommandOptions:
    """Registration metadata for a command or group.

    Attributes
    ----------
    aliases:
        Alternative names; unique across the whole registry.
    description:
        One-line summary shown in listings. Falls back to the handler docstring.
    visibility:
        :attr:`Visibility.HIDDEN` removes the entry from listings only.
    filters:
        Per-command filters, innermost scope of the chain.
    """

    aliases: tuple[str, ...] = ()
    description: str | None = None
    visibility: Visibility = Visibility.VISIBLE
    filters: tuple[Callable[..., Any], ...] = ()


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one invocation.

    Examples
    --------
    >>> CommandResult.ok()
    CommandResult(exit_code=0, message=None)
    >>> CommandResult.exited(1, "Error: Permission denied.").succeeded
    False
    """

    exit_code: int = 0
    message: str | None = None

    @classmethod
    def ok(cls) -> CommandResult:
        return cls()

    @classmethod
    def exited(cls, exit_code: int, message: str | None = None) -> CommandResult:
        return cls(exit_code, message)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class CommandDescriptor:
    """Immutable description of a registered command.

    Properties are read-only; the registry is the only place descriptors are
    built. ``parent`` is a weak back-reference and never keeps a group alive.
    """

    __slots__ = ("_name", "_aliases", "_handler", "_visibility", "_description", "_filters", "_parent", "__weakref__")

    def __init__(
        self,
        name: str,
        handler: Callable[..., Any] | None,
        *,
        options: CommandOptions = CommandOptions(),
        parent: CommandGroup | None = None,
    ) -> None:
        self._name = name
        self._handler = handler
        self._aliases = frozenset(options.aliases)
        self._visibility = options.visibility
        self._description = options.description or _first_doc_line(handler)
        self._filters = tuple(options.filters)
        self._parent = weakref.ref(parent) if parent is not None else None

    @property
    def name(self) -> str:
        return self._name

    @property
    def aliases(self) -> frozenset[str]:
        return self._aliases

    @property
    def handler(self) -> Callable[..., Any] | None:
        return self._handler

    @property
    def visibility(self) -> Visibility:
        return self._visibility

    @property
    def hidden(self) -> bool:
        return self._visibility is Visibility.HIDDEN

    @property
    def description(self) -> str | None:
        return self._description

    @property
    def filters(self) -> tuple[Callable[..., Any], ...]:
        return self._filters

    @property
    def parent(self) -> CommandGroup | None:
        return self._parent() if self._parent is not None else None

    @property
    def names(self) -> frozenset[str]:
        """Canonical name plus aliases."""

        return self._aliases | {self._name}

    @property
    def path(self) -> tuple[str, ...]:
        """Tokens that reach this entry from the registry root."""

        segments = [self._name]
        node = self.parent
        while node is not None and node.name:
            segments.append(node.name)
            node = node.parent
        return tuple(reversed(segments))

    @property
    def qualified_name(self) -> str:
        return " ".join(self.path)

    def ancestors(self) -> list[CommandGroup]:
        """Enclosing groups ordered from the registry root inwards."""

        chain: list[CommandGroup] = []
        node = self.parent
        while node is not None:
            chain.append(node)
            node = node.parent
        chain.reverse()
        return chain

    def effective_filters(self) -> tuple[Callable[..., Any], ...]:
        """Ancestor-scope filters (outermost first) followed by this entry's own filters."""

        collected: list[Callable[..., Any]] = []
        for group in self.ancestors():
            collected.extend(group.filters)
        collected.extend(self._filters)
        return tuple(collected)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.qualified_name!r})"


class CommandGroup(CommandDescriptor):
    """Named scope owning child entries and filters for itself and its descendants.

    The registry root is an unnamed group; its filters are the global filters.
    Children and scope filters are kept in insertion order.
    """

    __slots__ = ("_children", "_index", "_scope_filters")

    def __init__(
        self,
        name: str,
        *,
        options: CommandOptions = CommandOptions(),
        parent: CommandGroup | None = None,
    ) -> None:
        super().__init__(name, None, options=options, parent=parent)
        self._children: dict[str, CommandDescriptor] = {}
        self._index: dict[str, CommandDescriptor] = {}
        self._scope_filters: list[Callable[..., Any]] = list(options.filters)

    @property
    def filters(self) -> tuple[Callable[..., Any], ...]:
        return tuple(self._scope_filters)

    def effective_filters(self) -> tuple[Callable[..., Any], ...]:
        collected: list[Callable[..., Any]] = []
        for group in (*self.ancestors(), self):
            collected.extend(group.filters)
        return tuple(collected)

    def children(self) -> tuple[CommandDescriptor, ...]:
        return tuple(self._children.values())

    def lookup(self, token: str) -> CommandDescriptor | None:
        """Return the child whose name or alias equals *token*."""

        return self._index.get(token)

    def __iter__(self) -> Iterator[CommandDescriptor]:
        return iter(self._children.values())

    def _attach(self, child: CommandDescriptor) -> None:
        self._children[child.name] = child
        for key in child.names:
            self._index[key] = child

    def _add_filter(self, command_filter: Callable[..., Any]) -> None:
        self._scope_filters.append(command_filter)


def _first_doc_line(handler: Callable[..., Any] | None) -> str | None:
    doc = getattr(handler, "__doc__", None) if handler is not None else None
    if not doc:
        return None
    return doc.strip().splitlines()[0].strip() or None
