"""Application-layer ports.

Purpose
-------
Name the narrow contracts the dispatch core needs from its collaborators so
adapters can be swapped in tests without touching the registry or the
dispatcher.

Contents
--------
* :class:`ServiceProvider` – resolves a typed service instance.
* :class:`FileLoader` / :class:`EnvLoader` – configuration sources.
* :data:`NextDelegate` / :data:`FilterFunc` – the filter-chain signatures.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Protocol, TypeVar

from ..domain.commands import CommandResult

if TYPE_CHECKING:
    from .context import ExecutionContext

T = TypeVar("T")

NextDelegate = Callable[["ExecutionContext"], Awaitable[CommandResult]]
"""Continuation handed to each filter; invokes the rest of the chain."""

FilterFunc = Callable[["ExecutionContext", NextDelegate], Awaitable[CommandResult]]
"""Filter signature: run pre/post logic around ``next`` or short-circuit."""


class ServiceProvider(Protocol):
    """Resolve services registered for the lifetime of the process."""

    def resolve(self, service_type: type[T]) -> T:
        """Return an instance of *service_type* or raise ``ServiceNotFoundError``."""

    def contains(self, service_type: Any) -> bool:
        """Report whether *service_type* can be resolved."""


class FileLoader(Protocol):
    """Parse a structured settings file into a mapping."""

    def load(self, path: str) -> Mapping[str, object]:
        """Read *path* and return its mapping or raise ``InvalidFormat``/``NotFound``."""


class EnvLoader(Protocol):
    """Translate environment variables into nested configuration dictionaries."""

    def load(self, prefix: str) -> Mapping[str, object]:
        """Return variables that match *prefix* (``__`` separates nesting levels)."""
