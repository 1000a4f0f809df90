"""Cooperative cancellation signal delivered to running handlers.

The host fires the token on an external interrupt (SIGINT). Handlers observe
it at their own suspension points; nothing is forcibly killed.
"""

from __future__ import annotations

import asyncio

from ..domain.errors import OperationCancelledError


class CancellationToken:
    """One-shot cancellation flag with an awaitable delay helper.

    Examples
    --------
    >>> token = CancellationToken()
    >>> token.cancelled
    False
    >>> token.cancel()
    >>> token.cancelled
    True
    >>> token.raise_if_cancelled()
    Traceback (most recent call last):
    ...
    console_scaffold.domain.errors.OperationCancelledError: operation was cancelled
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Fire the token; idempotent."""

        self._cancelled = True
        if self._event is not None:
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError("operation was cancelled")

    async def wait(self) -> None:
        """Suspend until the token fires."""

        await self._ensure_event().wait()

    async def sleep(self, seconds: float) -> None:
        """Wait *seconds* unless the token fires first.

        Raises
        ------
        OperationCancelledError
            When cancellation is observed before or during the delay.
        """

        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._ensure_event().wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()

    def _ensure_event(self) -> asyncio.Event:
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        return self._event
