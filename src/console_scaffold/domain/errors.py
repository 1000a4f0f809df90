"""Domain-level exception hierarchy.

Purpose
-------
Expose the error taxonomy shared by the registry, the dispatcher, the
configuration adapters, and the CLI host. The hierarchy lives in the domain
layer so inner layers never import from outer ones.

Contents
--------
* :class:`ScaffoldError` – umbrella base class.
* :class:`UsageError` / :class:`CommandNotFoundError` – malformed or
  unresolvable invocations; reported without stack detail.
* :class:`DuplicateNameError` – registration collisions.
* :class:`CommandExitedError` / :class:`PermissionDeniedError` – explicit
  termination with an exit code and message.
* :class:`OperationCancelledError` – cooperative cancellation was observed.
* :class:`FilterChainError` – a filter broke the continuation contract.
* :class:`ServiceNotFoundError` – the container cannot resolve a type.
* :class:`ConfigError` and friends – configuration layer failures.

System Role
-----------
The dispatcher converts :class:`CommandExitedError` and
:class:`OperationCancelledError` into :class:`~console_scaffold.domain.commands.CommandResult`
values at the dispatch boundary. Everything else that escapes a handler is a
fault and travels up to the CLI host.
"""

from __future__ import annotations

from typing import Final

PERMISSION_DENIED_MESSAGE: Final[str] = "Error: Permission denied."
CANCELLED_EXIT_CODE: Final[int] = 130
USAGE_EXIT_CODE: Final[int] = 2


class ScaffoldError(Exception):
    """Base type for all exceptions emitted by ``console_scaffold``."""


class UsageError(ScaffoldError):
    """Raised when an invocation cannot be resolved or its arguments cannot be parsed.

    Why
    ----
    Usage problems are the user's to fix, so the host prints the message and a
    hint instead of a traceback.

    Attributes
    ----------
    usage:
        Optional usage line for the command whose arguments failed to parse.
    """

    def __init__(self, message: str, *, usage: str | None = None) -> None:
        super().__init__(message)
        self.usage = usage


class CommandNotFoundError(UsageError):
    """Raised when the invocation tokens do not reach a registered command.

    Attributes
    ----------
    scope:
        Deepest :class:`~console_scaffold.domain.commands.CommandGroup` reached
        while walking the tokens. The host uses it to render a listing.
    token:
        Offending token, or ``None`` when the tokens ran out on a group.
    """

    def __init__(self, message: str, *, scope: object, token: str | None) -> None:
        super().__init__(message)
        self.scope = scope
        self.token = token


class DuplicateNameError(ScaffoldError):
    """Raised when a command name or alias collides with an existing entry."""


class CommandExitedError(ScaffoldError):
    """Explicit request from a handler or filter to end the invocation.

    The exit code and message are surfaced verbatim and never retried.

    Examples
    --------
    >>> exc = CommandExitedError("bye", 3)
    >>> exc.exit_code, exc.message
    (3, 'bye')
    """

    def __init__(self, message: str | None = None, exit_code: int = 1) -> None:
        super().__init__(message or "")
        self.message = message
        self.exit_code = exit_code


class PermissionDeniedError(CommandExitedError):
    """Authorization predicate rejected the invocation."""

    def __init__(self, message: str = PERMISSION_DENIED_MESSAGE, exit_code: int = 1) -> None:
        super().__init__(message, exit_code)


class OperationCancelledError(ScaffoldError):
    """Raised at a suspension point once the cancellation token fired."""


class FilterChainError(ScaffoldError):
    """Raised when a filter invokes its ``next`` delegate more than once."""


class ServiceNotFoundError(ScaffoldError, LookupError):
    """Raised when the service container has no registration for a type."""


class ConfigError(ScaffoldError):
    """Base type for configuration loading problems."""


class InvalidFormat(ConfigError):
    """Raised when a settings artifact cannot be parsed into structured data."""


class NotFound(ConfigError):
    """Represents missing-but-optional resources such as environment specific settings."""


class LayerLoadError(ConfigError):
    """Raised when a configuration layer fails to materialise or a required file is missing."""
