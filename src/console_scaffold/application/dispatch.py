"""Filter chain composition and invocation dispatch.

Purpose
-------
Run a resolved command inside its effective filter chain and translate the
outcome into a :class:`~console_scaffold.domain.commands.CommandResult`.

Contents
--------
* :class:`CommandFilter` – base class for filters with state (loggers,
  allow-lists).
* :class:`FilterChain` – nested continuations over an ordered filter list.
* :class:`Dispatcher` – resolve, bind, build the context, execute, convert.
* :func:`to_result` – normalise handler and filter return values.

Chain contract
--------------
Each filter receives the context and a ``next`` delegate. Calling ``next``
runs the remaining filters and finally the handler; not calling it
short-circuits and the filter's own return value becomes the result. Code
after ``next`` (or in a ``finally`` block) runs on every exit path, so
cleanup order is the reverse of entry order.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Sequence

from ..domain.commands import CommandDescriptor, CommandResult
from ..domain.errors import (
    CANCELLED_EXIT_CODE,
    CommandExitedError,
    FilterChainError,
    OperationCancelledError,
)
from ..observability import bind_trace_id, log_debug, log_error, log_info, new_trace_id
from .binding import ArgumentBinder
from .cancellation import CancellationToken
from .context import ExecutionContext
from .ports import FilterFunc, NextDelegate, ServiceProvider
from .registry import CommandRegistry


class CommandFilter:
    """Base class for filters implemented as objects.

    Subclasses override :meth:`on_command_execution`; instances are callable
    with the plain filter signature so they mix freely with ``async def``
    filters in one chain.
    """

    async def on_command_execution(self, ctx: ExecutionContext, next: NextDelegate) -> CommandResult:
        return await next(ctx)

    async def __call__(self, ctx: ExecutionContext, next: NextDelegate) -> CommandResult:
        return await self.on_command_execution(ctx, next)


def to_result(value: Any) -> CommandResult:
    """Normalise a handler or filter return value.

    >>> to_result(None)
    CommandResult(exit_code=0, message=None)
    >>> to_result(3).exit_code
    3
    """

    if value is None:
        return CommandResult.ok()
    if isinstance(value, CommandResult):
        return value
    if isinstance(value, bool):
        return CommandResult.ok() if value else CommandResult.exited(1)
    if isinstance(value, int):
        return CommandResult.exited(value)
    raise TypeError(f"unsupported command return value: {value!r}")


class FilterChain:
    """Ordered filters wrapped around a terminal delegate."""

    def __init__(self, filters: Sequence[FilterFunc], terminal: NextDelegate) -> None:
        self._filters = tuple(filters)
        self._terminal = terminal

    def __len__(self) -> int:
        return len(self._filters)

    async def execute(self, ctx: ExecutionContext) -> CommandResult:
        return await self._invoke(0, ctx)

    async def _invoke(self, index: int, ctx: ExecutionContext) -> CommandResult:
        if index >= len(self._filters):
            return to_result(await self._terminal(ctx))
        command_filter = self._filters[index]
        called = False

        async def next_delegate(inner_ctx: ExecutionContext) -> CommandResult:
            nonlocal called
            if called:
                raise FilterChainError(f"filter #{index} invoked next more than once")
            called = True
            return await self._invoke(index + 1, inner_ctx)

        return to_result(await command_filter(ctx, next_delegate))


class Dispatcher:
    """Resolve an invocation and run it through its filter chain.

    Parameters
    ----------
    registry:
        Command tree to resolve against.
    services:
        Container exposed to handlers through the execution context.
    binder:
        Optional binder; defaults to one built over *services*.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        services: ServiceProvider,
        *,
        binder: ArgumentBinder | None = None,
    ) -> None:
        self._registry = registry
        self._services = services
        self._binder = binder or ArgumentBinder(services)

    @property
    def binder(self) -> ArgumentBinder:
        return self._binder

    async def dispatch(self, tokens: Sequence[str], cancellation: CancellationToken | None = None) -> CommandResult:
        """Resolve *tokens*, bind arguments, and execute the command.

        Raises
        ------
        UsageError
            Unknown command or unparsable arguments.
        Exception
            Any fault escaping a filter or handler, after it was logged.
        """

        resolution = self._registry.resolve(tokens)
        descriptor = resolution.command
        trace_id = new_trace_id()
        try:
            try:
                parameters = self._binder.bind(descriptor, resolution.remaining)
            except CommandExitedError as exc:
                return CommandResult.exited(exc.exit_code, exc.message)
            context = ExecutionContext(
                command=descriptor,
                arguments=resolution.remaining,
                parameters=parameters,
                cancellation=cancellation or CancellationToken(),
                services=self._services,
                trace_id=trace_id,
            )
            return await self.execute(context)
        finally:
            bind_trace_id(None)

    async def execute(self, context: ExecutionContext) -> CommandResult:
        """Run the effective filter chain of ``context.command`` and convert the outcome."""

        descriptor = context.command
        chain = FilterChain(descriptor.effective_filters(), self._terminal_for(descriptor))
        log_debug("command_dispatched", command=descriptor.qualified_name, filters=len(chain))
        try:
            result = await chain.execute(context)
        except CommandExitedError as exc:
            log_info("command_exited", command=descriptor.qualified_name, exit_code=exc.exit_code)
            return CommandResult.exited(exc.exit_code, exc.message)
        except OperationCancelledError:
            log_info("command_cancelled", command=descriptor.qualified_name)
            return CommandResult.exited(CANCELLED_EXIT_CODE)
        except Exception as exc:
            log_error("command_faulted", exc_info=True, command=descriptor.qualified_name, error=str(exc))
            raise
        log_debug("command_completed", command=descriptor.qualified_name, exit_code=result.exit_code)
        return result

    def _terminal_for(self, descriptor: CommandDescriptor) -> Callable[[ExecutionContext], Awaitable[Any]]:
        handler = descriptor.handler
        if handler is None:
            raise TypeError(f"{descriptor!r} is a group and cannot be executed")

        async def invoke_handler(ctx: ExecutionContext) -> Any:
            kwargs = {**ctx.parameters, **self._binder.inject(descriptor, ctx)}
            outcome = handler(**kwargs)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            return outcome

        return invoke_handler
