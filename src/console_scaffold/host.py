"""Console application host: builder surface, run loop, listings.

Purpose
-------
Give applications one object to register commands, groups, and filters on,
and one call that turns ``argv`` into an exit code.

Contents
--------
* :class:`GroupBuilder` – ``add_command`` / ``add_sub_command`` /
  ``use_filter`` scoped to one group path.
* :class:`ConsoleApp` – root builder plus ``run`` / ``run_async`` /
  ``complete``.

Run behaviour
-------------
* No tokens, ``-h`` or ``--help`` print the root listing and exit 0.
* A group without a sub-command, or followed by ``--help``, prints that
  group's listing and exits 0.
* Unknown commands and bad arguments print ``Error: ...`` with a hint to
  stderr and exit 2.
* A result message (for example a permission denial) goes to stderr.
* SIGINT fires the invocation's cancellation token; cancelled commands exit
  130.
* ``complete`` offers visible command and group names (aliases included) for
  the scope the typed tokens reach, and option names once a command is
  reached.
"""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import Any, Callable, Sequence

import click
from click.shell_completion import CompletionItem

from .adapters.container import ServiceContainer
from .application.binding import ArgumentBinder
from .application.cancellation import CancellationToken
from .application.dispatch import Dispatcher
from .application.registry import CommandRegistry
from .domain.commands import CommandDescriptor, CommandGroup, CommandOptions, CommandResult, Visibility
from .domain.config import EMPTY_CONFIG, Config
from .domain.errors import USAGE_EXIT_CODE, CommandNotFoundError, UsageError
from .observability import log_debug, log_info

HELP_TOKENS = frozenset({"-h", "--help"})


class GroupBuilder:
    """Register entries inside the group at ``path`` (``()`` is the global scope)."""

    def __init__(self, registry: CommandRegistry, path: Sequence[str] = ()) -> None:
        self._registry = registry
        self._path = tuple(path)

    @property
    def path(self) -> tuple[str, ...]:
        return self._path

    def add_command(
        self,
        name: str,
        handler: Callable[..., Any],
        *,
        aliases: Sequence[str] = (),
        description: str | None = None,
        visibility: Visibility = Visibility.VISIBLE,
        filters: Sequence[Callable[..., Any]] = (),
    ) -> CommandDescriptor:
        """Register *handler* as command *name* in this scope.

        Raises
        ------
        DuplicateNameError
            When *name* or an alias is already taken.
        """

        options = CommandOptions(tuple(aliases), description, visibility, tuple(filters))
        return self._registry.register((*self._path, name), handler, options)

    def add_sub_command(
        self,
        name: str,
        configure: Callable[[GroupBuilder], None],
        *,
        aliases: Sequence[str] = (),
        description: str | None = None,
        visibility: Visibility = Visibility.VISIBLE,
    ) -> CommandGroup:
        """Create group *name* and let *configure* populate it through a nested builder."""

        group = self._registry.add_group(
            (*self._path, name),
            CommandOptions(tuple(aliases), description, visibility),
        )
        configure(GroupBuilder(self._registry, (*self._path, name)))
        return group

    def use_filter(self, command_filter: Callable[..., Any]) -> GroupBuilder:
        """Add *command_filter* to this scope; it wraps every command registered here or below."""

        self._registry.use_filter(self._path, command_filter)
        return self


class ConsoleApp(GroupBuilder):
    """Root builder and runner.

    Parameters
    ----------
    config:
        Settings handed to commands through the service container.
    services:
        Container handlers resolve injected parameters from.
    prog_name:
        Program name used in usage lines and listings.
    description:
        Text shown under the usage line of the root listing.
    global_options:
        ``(label, help)`` rows rendered as the root listing's Options section.

    Examples
    --------
    >>> app = ConsoleApp()
    >>> _ = app.add_command("ping", lambda: click.echo("pong"), description="Reply")
    >>> app.run(["ping"])
    pong
    0
    """

    def __init__(
        self,
        *,
        config: Config = EMPTY_CONFIG,
        services: ServiceContainer | None = None,
        prog_name: str = "console-scaffold",
        description: str | None = None,
        global_options: Sequence[tuple[str, str]] = (),
    ) -> None:
        super().__init__(CommandRegistry())
        self._config = config
        self._services = services if services is not None else ServiceContainer()
        self._prog_name = prog_name
        self._description = description
        self._global_options = tuple(global_options)
        self._binder = ArgumentBinder(self._services, prog_name=prog_name)
        self._dispatcher = Dispatcher(self._registry, self._services, binder=self._binder)

    @property
    def registry(self) -> CommandRegistry:
        return self._registry

    @property
    def services(self) -> ServiceContainer:
        return self._services

    @property
    def config(self) -> Config:
        return self._config

    @property
    def prog_name(self) -> str:
        return self._prog_name

    def run(self, argv: Sequence[str] | None = None) -> int:
        """Run one invocation to completion and return its exit code.

        Listings and command output go to stdout; result messages go to
        stderr. Faults propagate after the dispatcher logged them.
        """

        tokens = list(sys.argv[1:] if argv is None else argv)
        result = asyncio.run(self._run_with_interrupts(tokens))
        if result.message:
            click.echo(result.message, err=True)
        return result.exit_code

    async def run_async(self, argv: Sequence[str], cancellation: CancellationToken | None = None) -> CommandResult:
        """Resolve and execute *argv*, rendering listings and usage failures as results."""

        tokens = list(argv)
        if not tokens or tokens[0] in HELP_TOKENS:
            click.echo(self.render_listing())
            return CommandResult.ok()
        try:
            return await self._dispatcher.dispatch(tokens, cancellation)
        except CommandNotFoundError as exc:
            if exc.token is None or exc.token in HELP_TOKENS:
                click.echo(self.render_listing(exc.scope if isinstance(exc.scope, CommandGroup) else None))
                return CommandResult.ok()
            return self._usage_failure(exc, exc.scope if isinstance(exc.scope, CommandGroup) else None)
        except UsageError as exc:
            return self._usage_failure(exc, self._registry.resolve(tokens).command)

    def complete(self, tokens: Sequence[str], incomplete: str = "") -> list[CompletionItem]:
        """Completion candidates for *incomplete* after the already typed *tokens*.

        Examples
        --------
        >>> app = ConsoleApp()
        >>> _ = app.add_command("ping", lambda: None, aliases=("p",), description="Reply")
        >>> [item.value for item in app.complete([], "p")]
        ['ping', 'p']
        """

        scope = self._registry.root
        for token in tokens:
            child = scope.lookup(token)
            if child is None:
                return []
            if not isinstance(child, CommandGroup):
                return self._complete_options(child, incomplete)
            scope = child
        if incomplete.startswith("-"):
            return []
        items: list[CompletionItem] = []
        for entry in self._registry.listing(scope):
            for name in (entry.name, *sorted(entry.aliases)):
                if name.startswith(incomplete):
                    items.append(CompletionItem(name, help=entry.description))
        return items

    def render_listing(self, scope: CommandGroup | None = None) -> str:
        """Render the usage line and visible children of *scope* (root by default)."""

        group = scope if scope is not None else self._registry.root
        is_root = not group.name
        formatter = click.HelpFormatter()
        formatter.write_usage(
            self._display_name(group),
            "[OPTIONS] COMMAND [ARGS]..." if is_root else "COMMAND [ARGS]...",
        )
        description = self._description if is_root else group.description
        if description:
            formatter.write_paragraph()
            with formatter.indentation():
                formatter.write_text(description)
        if is_root and self._global_options:
            with formatter.section("Options"):
                formatter.write_dl(list(self._global_options))
        rows = [(_label(entry), entry.description or "") for entry in self._registry.listing(group)]
        if rows:
            with formatter.section("Commands"):
                formatter.write_dl(rows)
        return formatter.getvalue().rstrip("\n")

    def _complete_options(self, entry: CommandDescriptor, incomplete: str) -> list[CompletionItem]:
        if not incomplete.startswith("-"):
            return []
        items: list[CompletionItem] = []
        for param in self._binder.plan(entry).command.params:
            if isinstance(param, click.Option) and not param.hidden:
                for name in (*param.opts, *param.secondary_opts):
                    if name.startswith(incomplete):
                        items.append(CompletionItem(name, help=param.help))
        return items

    def _display_name(self, entry: CommandDescriptor) -> str:
        return " ".join(part for part in (self._prog_name, entry.qualified_name) if part)

    def _usage_failure(self, exc: UsageError, entry: CommandDescriptor | None) -> CommandResult:
        log_debug("usage_error", error=str(exc))
        target = self._display_name(entry) if entry is not None else self._prog_name
        lines = [exc.usage] if exc.usage else []
        lines.extend([f"Try '{target} --help' for help.", "", f"Error: {exc}"])
        return CommandResult.exited(USAGE_EXIT_CODE, "\n".join(lines))

    async def _run_with_interrupts(self, tokens: list[str]) -> CommandResult:
        token = CancellationToken()
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, _interrupt, token)
            installed = True
        except (NotImplementedError, RuntimeError, ValueError):
            # no loop signal support (Windows, non-main thread)
            installed = False
        try:
            return await self.run_async(tokens, token)
        finally:
            if installed:
                loop.remove_signal_handler(signal.SIGINT)


def _interrupt(token: CancellationToken) -> None:
    log_info("interrupt_received")
    token.cancel()


def _label(entry: CommandDescriptor) -> str:
    if not entry.aliases:
        return entry.name
    return f"{entry.name} ({', '.join(sorted(entry.aliases))})"
