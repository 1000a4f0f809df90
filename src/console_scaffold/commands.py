"""Demo command set registered on the console host.

Each handler shows one capability of the host: aliases, optional
parameters, cooperative cancellation, hidden commands, service injection,
sub-command groups guarded by a filter, inline and global filters, and the
fault path.
"""

from __future__ import annotations

import json
import logging
from importlib import metadata
from typing import Annotated, Any, Final

import click

from .application.binding import Argument, Option
from .application.context import ExecutionContext
from .application.ports import NextDelegate
from .domain.commands import CommandResult, Visibility
from .domain.config import Config
from .filters import LoggingFilter, RequirePrivilege
from .host import ConsoleApp, GroupBuilder
from .services import MessageLogger, NameProvider
from .testing import i_should_fail

DIST_NAME: Final[str] = "console-scaffold"
DEFAULT_LONG_RUNNING_SECONDS: Final[float] = 30.0


def hello(name: Annotated[str, Option(help="Name to greet")]) -> None:
    click.echo(f"Hello {name}")


def optional_param(
    age: Annotated[int | None, Option(help="Age shown after the name")],
    name: Annotated[str | None, Argument(metavar="[NAME]")],
) -> None:
    """Greet NAME (or Guest) and show the age when given."""

    click.echo(f"Hello {name or 'Guest'} ({age if age is not None else '-'})!")


async def long_running(ctx: ExecutionContext, config: Config) -> None:
    """Wait for a while; Ctrl+C cancels the wait."""

    seconds = float(config.get("commands.long_running.seconds", DEFAULT_LONG_RUNNING_SECONDS))
    click.echo("Running...")
    await ctx.cancellation.sleep(seconds)
    click.echo("Done.")


def secret_command() -> None:
    click.echo(":-)")


def with_di(provider: NameProvider) -> None:
    """Greet the name supplied by the registered NameProvider."""

    click.echo(f"Hello {provider.get_name()}")


def log_message(message: Annotated[str, Argument()], service: MessageLogger) -> None:
    """Write MESSAGE through the application logger."""

    service.hello(message)


def start_server() -> None:
    click.echo("Starting the server...")


def stop_server() -> None:
    click.echo("Stopping the server...")


def delete_server() -> None:
    click.echo("Deleting the server...")


async def announce(ctx: ExecutionContext, next: NextDelegate) -> CommandResult:
    click.echo("Before")
    try:
        return await next(ctx)
    finally:
        click.echo("End")


def with_filter() -> None:
    """Run inside an inline filter that prints Before and End."""

    click.echo("Hello Konnichiwa!")


def with_global_filter() -> None:
    """Run inside the global logging filter only."""

    click.echo("Hello Konnichiwa!")


def info(config: Config) -> None:
    """Print basic distribution metadata and the active settings environment."""

    environment = config.get("environment", "Production")
    try:
        meta = metadata.metadata(DIST_NAME)
    except metadata.PackageNotFoundError:
        click.echo(f"{DIST_NAME} (metadata unavailable)")
        click.echo(f"  Environment     : {environment}")
        return
    click.echo(f"Info for {meta.get('Name', DIST_NAME)}:")
    click.echo(f"  Version         : {meta.get('Version', '0.0.0')}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")
    click.echo(f"  Environment     : {environment}")


def show_config(
    config: Config,
    indent: Annotated[int | None, Option(help="Pretty-print JSON with this indent size")] = None,
    provenance: Annotated[bool, Option(help="Include the layer each value came from")] = False,
) -> None:
    """Print the merged settings as JSON."""

    if provenance:
        payload = {"config": config.as_dict(), "provenance": config.provenance()}
        click.echo(json.dumps(payload, indent=indent, separators=(",", ":")))
        return
    click.echo(config.to_json(indent=indent))


def fail() -> None:
    """Raise a deterministic error to exercise fault reporting."""

    i_should_fail()


def _allowed_users(value: Any) -> list[str] | None:
    """Normalise ``security.allowed_users`` into a list of user names.

    >>> _allowed_users("alice, bob")
    ['alice', 'bob']
    >>> _allowed_users(1000)
    ['1000']
    >>> _allowed_users(None) is None
    True
    """

    if value is None:
        return None
    if isinstance(value, str):
        # comma separated when set through --set or an environment variable
        return [user.strip() for user in value.split(",") if user.strip()]
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(user) for user in value]
    return [str(value)]


def register_commands(app: ConsoleApp) -> ConsoleApp:
    """Register the demo commands, the ``admin`` group, and the global logging filter."""

    allowed_users = _allowed_users(app.config.get("security.allowed_users"))

    app.add_command("hello", hello, aliases=("hey", "konnichiwa"), description="Say hello")
    app.add_command("optional-param", optional_param)
    app.add_command("long-running", long_running)
    app.add_command("secret-command", secret_command, visibility=Visibility.HIDDEN)
    app.add_command("with-di", with_di)
    app.add_command("log-message", log_message)

    def configure_admin(group: GroupBuilder) -> None:
        group.use_filter(RequirePrivilege(allowed_users))
        group.add_command("start-server", start_server, description="Start the server")
        group.add_command("stop-server", stop_server, description="Stop the server")
        group.add_command("delete-server", delete_server, description="Delete the server")

    app.add_sub_command("admin", configure_admin, description="Server administration (privileged)")
    app.add_command("with-filter", with_filter, filters=(announce,))
    app.add_command("with-global-filter", with_global_filter)
    app.add_command("info", info)
    app.add_command("show-config", show_config)
    app.add_command("fail", fail, visibility=Visibility.HIDDEN)

    app.use_filter(LoggingFilter(app.services.resolve(logging.Logger)))
    return app
