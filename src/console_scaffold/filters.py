"""Command filters shipped with the demo command set.

Contents
--------
* :class:`LoggingFilter` – logs ``Before <command>`` / ``End <command>``
  around every invocation; registered globally.
* :class:`RequirePrivilege` – denies the ``admin`` group unless the current
  user is on the allow-list.
* :func:`current_user` – default identity source.
"""

from __future__ import annotations

import getpass
import logging
from typing import Callable, Final, Iterable

from .application.context import ExecutionContext
from .application.dispatch import CommandFilter
from .application.ports import NextDelegate
from .domain.commands import CommandResult
from .domain.errors import PERMISSION_DENIED_MESSAGE
from .observability import log_info

DEFAULT_ALLOWED_USERS: Final[frozenset[str]] = frozenset({"Administrator", "root"})


def current_user() -> str:
    """Return the login name of the process owner, or ``""`` when it cannot be determined."""

    try:
        return getpass.getuser()
    except (OSError, KeyError):
        return ""


class LoggingFilter(CommandFilter):
    """Log entry and exit of every command it wraps.

    The ``End`` line is written on every exit path, including faults and
    cancellation, because it sits in a ``finally`` block.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    async def on_command_execution(self, ctx: ExecutionContext, next: NextDelegate) -> CommandResult:
        self._logger.info("Before %s", ctx.command.qualified_name)
        try:
            return await next(ctx)
        finally:
            self._logger.info("End %s", ctx.command.qualified_name)


class RequirePrivilege(CommandFilter):
    """Short-circuit with :data:`PERMISSION_DENIED_MESSAGE` unless the user is privileged.

    A user is privileged when their name is in ``allowed_users``. Any other
    name is denied; the chain does not continue and the handler never runs.

    Parameters
    ----------
    allowed_users:
        Names allowed through; defaults to ``Administrator`` and ``root``.
    identity:
        Zero-argument callable returning the current user name.

    Examples
    --------
    >>> RequirePrivilege(identity=lambda: "root").is_privileged()
    True
    >>> RequirePrivilege(identity=lambda: "guest").is_privileged()
    False
    """

    def __init__(
        self,
        allowed_users: Iterable[str] | None = None,
        *,
        identity: Callable[[], str] = current_user,
    ) -> None:
        self._allowed = frozenset(allowed_users) if allowed_users is not None else DEFAULT_ALLOWED_USERS
        self._identity = identity

    @property
    def allowed_users(self) -> frozenset[str]:
        return self._allowed

    def is_privileged(self) -> bool:
        return self._identity() in self._allowed

    async def on_command_execution(self, ctx: ExecutionContext, next: NextDelegate) -> CommandResult:
        if not self.is_privileged():
            log_info("privilege_denied", command=ctx.command.qualified_name, user=self._identity())
            return CommandResult.exited(1, PERMISSION_DENIED_MESSAGE)
        return await next(ctx)
