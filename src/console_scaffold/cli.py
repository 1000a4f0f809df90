"""CLI adapter for ``console_scaffold`` built on ``lib_cli_exit_tools``.

Purpose
-------
Own the process boundary: parse the handful of global options, load the
layered settings, bootstrap logging, and hand every remaining token to the
:class:`~console_scaffold.host.ConsoleApp`.

Contents
--------
* :func:`cli` – root Click command; everything after the first
  non-option token belongs to the console host.
* :func:`main` – entry point used by ``console_scripts`` registration.

Shell completion (``_CONSOLE_SCAFFOLD_COMPLETE=bash_source console-scaffold``)
completes the root options through click and the host commands through
:meth:`console_scaffold.host.ConsoleApp.complete`.

System Role
-----------
Outermost layer. ``lib_cli_exit_tools`` turns escaping exceptions into exit
codes and prints either a summary or the full traceback (``--traceback``).
"""

from __future__ import annotations

import sys
from importlib import metadata
from pathlib import Path
from typing import Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click
from click.shell_completion import CompletionItem

from .core import APP_DESCRIPTION, APP_SLUG, create_app, read_settings
from .domain.errors import ConfigError, InvalidFormat
from .observability import bootstrap_logging

ROOT_CONTEXT_SETTINGS = {
    "ignore_unknown_options": True,
    "allow_interspersed_args": False,
    "help_option_names": [],
}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000


def _resolve_version() -> str:
    """Return the installed package version, or ``"0.0.0"`` for source checkouts."""

    try:
        return metadata.version(APP_SLUG)
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _complete_args(ctx: click.Context, param: click.Parameter, incomplete: str) -> list[CompletionItem]:
    """Shell completion for the tokens handed to the console host.

    Settings are read from the root options typed so far, so completion sees
    the same commands an invocation would. Unreadable settings complete to
    nothing.
    """

    try:
        config = read_settings(
            environment=ctx.params.get("environment"),
            overrides=ctx.params.get("overrides") or (),
            settings_dir=ctx.params.get("settings_dir"),
        )
    except ConfigError:
        return []
    app = create_app(config, prog_name=ctx.info_name or APP_SLUG)
    return app.complete(tuple(ctx.params.get("args") or ()), incomplete)


@click.command(
    name=APP_SLUG,
    help=APP_DESCRIPTION,
    context_settings=ROOT_CONTEXT_SETTINGS,
    add_help_option=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name=APP_SLUG,
    message=f"{APP_SLUG} version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.option(
    "--environment",
    "-e",
    default=None,
    help="Settings environment (default: $CONSOLE_SCAFFOLD_ENVIRONMENT or Production)",
)
@click.option(
    "--settings-dir",
    type=click.Path(path_type=Path, exists=True, file_okay=False, dir_okay=True, readable=True),
    default=None,
    help="Directory holding appsettings.* (defaults to the bundled settings)",
)
@click.option(
    "--set",
    "overrides",
    multiple=True,
    metavar="KEY=VALUE",
    help="Override a setting, e.g. --set logging.level=DEBUG (repeatable)",
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED, shell_complete=_complete_args)
@click.pass_context
def cli(
    ctx: click.Context,
    traceback: bool,
    environment: Optional[str],
    settings_dir: Optional[Path],
    overrides: Sequence[str],
    args: Sequence[str],
) -> None:
    """Run one console-host invocation.

    Why
        Settings and logging must be ready before any command resolves, and
        the traceback preference must reach ``lib_cli_exit_tools`` before a
        fault can escape.
    What
        Mirrors ``--traceback`` into :mod:`lib_cli_exit_tools.config`, reads
        settings, bootstraps logging, builds the app, and runs *args*.
    Side Effects
        Exits the process with the command's exit code when it is non-zero.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback

    try:
        config = read_settings(environment=environment, overrides=overrides, settings_dir=settings_dir)
    except InvalidFormat as exc:
        raise click.BadParameter(str(exc), param_hint="--set") from exc
    bootstrap_logging(config)

    app = create_app(config, prog_name=ctx.info_name or APP_SLUG, global_options=_global_option_rows(ctx))
    exit_code = app.run(list(args))
    if exit_code:
        raise SystemExit(exit_code)


def _global_option_rows(ctx: click.Context) -> list[tuple[str, str]]:
    """Help rows for the root options, shown in the root command listing."""

    rows = [param.get_help_record(ctx) for param in ctx.command.get_params(ctx)]
    return [row for row in rows if row is not None]


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name=APP_SLUG,
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
