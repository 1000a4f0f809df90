"""End-to-end CLI coverage for the demo command set.

Every test goes through :func:`console_scaffold.cli.cli` so settings
loading, logging bootstrap, filters, and exit-code handling are exercised
together. Logging is raised to WARNING unless a test looks at log lines.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from click.testing import CliRunner

import lib_cli_exit_tools

from console_scaffold import cli
from console_scaffold.application.cancellation import CancellationToken
from console_scaffold.core import create_app, read_settings
from console_scaffold.filters import current_user

QUIET = {"CONSOLE_SCAFFOLD_LOGGING__LEVEL": "WARNING", "CONSOLE_SCAFFOLD_ENVIRONMENT": None}
VERBOSE = {"CONSOLE_SCAFFOLD_LOGGING__LEVEL": "INFO", "CONSOLE_SCAFFOLD_ENVIRONMENT": None}


def _invoke(args: list[str], env: dict[str, str | None] | None = None):
    return CliRunner().invoke(cli.cli, args, env=env if env is not None else QUIET)


def test_hello_prints_greeting() -> None:
    result = _invoke(["hello", "--name", "Ann"])
    assert result.exit_code == 0
    assert result.output == "Hello Ann\n"


@pytest.mark.parametrize("alias", ["hey", "konnichiwa"])
def test_hello_aliases(alias: str) -> None:
    result = _invoke([alias, "--name", "Ann"])
    assert result.exit_code == 0
    assert result.output == "Hello Ann\n"


def test_hello_requires_name() -> None:
    result = _invoke(["hello"])
    assert result.exit_code == 2
    assert "Missing option '--name'" in result.output


def test_optional_param_defaults() -> None:
    result = _invoke(["optional-param"])
    assert result.exit_code == 0
    assert result.output == "Hello Guest (-)!\n"


def test_optional_param_with_values() -> None:
    result = _invoke(["optional-param", "--age", "42", "Bob"])
    assert result.exit_code == 0
    assert result.output == "Hello Bob (42)!\n"


def test_long_running_completes_with_short_delay() -> None:
    result = _invoke(["--set", "commands.long_running.seconds=0.01", "long-running"])
    assert result.exit_code == 0
    assert result.output == "Running...\nDone.\n"


def test_long_running_cancelled_exits_130(capsys: pytest.CaptureFixture[str]) -> None:
    app = create_app(read_settings(environ={}, start_dir="/"))
    token = CancellationToken()

    async def scenario():
        asyncio.get_running_loop().call_later(0.05, token.cancel)
        return await app.run_async(["long-running"], token)

    result = asyncio.run(scenario())
    assert result.exit_code == 130
    assert capsys.readouterr().out == "Running...\n"


def test_hidden_command_runs_but_is_not_listed() -> None:
    listing = _invoke([])
    assert listing.exit_code == 0
    assert "secret-command" not in listing.output
    assert "hello (hey, konnichiwa)" in listing.output
    assert "Say hello" in listing.output
    assert "--traceback" in listing.output

    result = _invoke(["secret-command"])
    assert result.exit_code == 0
    assert result.output == ":-)\n"


def test_help_flag_prints_root_listing() -> None:
    result = _invoke(["--help"])
    assert result.exit_code == 0
    assert "Usage: console-scaffold [OPTIONS] COMMAND [ARGS]..." in result.output
    assert "admin" in result.output


def test_with_di_uses_registered_name() -> None:
    assert _invoke(["with-di"]).output == "Hello Karen\n"
    assert _invoke(["--set", "services.name=Ann", "with-di"]).output == "Hello Ann\n"


def test_with_di_name_from_environment() -> None:
    env = {**QUIET, "CONSOLE_SCAFFOLD_SERVICES__NAME": "Env"}
    assert _invoke(["with-di"], env).output == "Hello Env\n"


def test_log_message_goes_through_logger() -> None:
    result = _invoke(["log-message", "Hello from the logger"], VERBOSE)
    assert result.exit_code == 0
    assert "Hello from the logger" in result.output


def test_admin_denied_for_unlisted_user() -> None:
    result = _invoke(["--set", "security.allowed_users=someone-else", "admin", "start-server"])
    assert result.exit_code == 1
    assert "Error: Permission denied." in result.output
    assert "Starting the server" not in result.output


@pytest.mark.parametrize("source", ["set", "env"])
def test_numeric_allowed_user_is_a_name(source: str, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("getpass.getuser", lambda: "1000")
    if source == "set":
        args, env = ["--set", "security.allowed_users=1000"], QUIET
    else:
        args, env = [], {**QUIET, "CONSOLE_SCAFFOLD_SECURITY__ALLOWED_USERS": "1000"}
    greeting = _invoke([*args, "hello", "--name", "Ann"], env)
    assert greeting.exit_code == 0
    assert greeting.output == "Hello Ann\n"
    admin = _invoke([*args, "admin", "start-server"], env)
    assert admin.exit_code == 0
    assert admin.output == "Starting the server...\n"


@pytest.mark.parametrize("user", ["alice", "bob"])
def test_admin_denied_for_each_non_privileged_user(user: str, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("getpass.getuser", lambda: user)
    for command in ("start-server", "stop-server", "delete-server"):
        result = _invoke(["admin", command])
        assert result.exit_code == 1
        assert result.output.strip() == "Error: Permission denied."


@pytest.mark.parametrize(
    ("command", "expected"),
    [
        ("start-server", "Starting the server..."),
        ("stop-server", "Stopping the server..."),
        ("delete-server", "Deleting the server..."),
    ],
)
def test_admin_allowed_for_listed_user(command: str, expected: str) -> None:
    user = current_user()
    if not user or "," in user:
        pytest.skip("current user name unavailable")
    result = _invoke(["--set", f"security.allowed_users={user}", "admin", command])
    assert result.exit_code == 0
    assert result.output == f"{expected}\n"


def test_admin_alone_lists_sub_commands() -> None:
    result = _invoke(["admin"])
    assert result.exit_code == 0
    assert "start-server" in result.output
    assert "delete-server" in result.output


def test_with_filter_wraps_output() -> None:
    result = _invoke(["with-filter"])
    assert result.exit_code == 0
    assert result.output == "Before\nHello Konnichiwa!\nEnd\n"


def test_global_filter_logs_around_command() -> None:
    result = _invoke(["with-global-filter"], VERBOSE)
    assert result.exit_code == 0
    lines = result.output.splitlines()
    before = next(index for index, line in enumerate(lines) if "Before with-global-filter" in line)
    hello = lines.index("Hello Konnichiwa!")
    end = next(index for index, line in enumerate(lines) if "End with-global-filter" in line)
    assert before < hello < end


def test_info_command() -> None:
    result = _invoke(["info"])
    assert result.exit_code == 0
    assert "console-scaffold" in result.output
    assert "Environment     : Production" in result.output


def test_show_config_outputs_json() -> None:
    result = _invoke(["show-config", "--indent", "2"])
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["services"]["name"] == "Karen"
    assert payload["environment"] == "Production"


def test_show_config_with_provenance() -> None:
    result = _invoke(["--set", "services.name=Ann", "show-config", "--provenance"])
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["config"]["services"]["name"] == "Ann"
    assert payload["provenance"]["services.name"]["layer"] == "cmdline"
    assert payload["provenance"]["commands.long_running.seconds"]["layer"] == "appsettings"


def test_environment_option_selects_environment(tmp_path: Path) -> None:
    runner = CliRunner()
    with runner.isolated_filesystem(temp_dir=tmp_path):
        result = runner.invoke(cli.cli, ["--environment", "Development", "show-config"], env=QUIET)
    assert result.exit_code == 0
    assert json.loads(result.output)["environment"] == "Development"


def test_settings_dir_option(tmp_path: Path) -> None:
    (tmp_path / "appsettings.toml").write_text("[services]\nname = 'Toml'\n", encoding="utf-8")
    result = _invoke(["--settings-dir", str(tmp_path), "with-di"])
    assert result.exit_code == 0
    assert result.output == "Hello Toml\n"


def test_invalid_override_is_rejected() -> None:
    result = _invoke(["--set", "no-equals-sign", "hello", "--name", "Ann"])
    assert result.exit_code == 2
    assert "--set" in result.output


def test_unknown_command_exit_code() -> None:
    result = _invoke(["launch"])
    assert result.exit_code == 2
    assert "Error: 'launch' is not a command." in result.output


def test_version_option() -> None:
    result = _invoke(["--version"])
    assert result.exit_code == 0
    assert "console-scaffold version" in result.output


def test_cli_fail_command() -> None:
    """`fail` should bubble runtime errors for debugging flows."""

    result = _invoke(["fail"])
    assert result.exit_code != 0
    assert isinstance(result.exception, RuntimeError)
    assert str(result.exception) == "i should fail"


def test_cli_main_restores_traceback_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    """`main` should restore lib_cli_exit_tools traceback settings after execution."""

    monkeypatch.setenv("CONSOLE_SCAFFOLD_LOGGING__LEVEL", "WARNING")
    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    exit_code = cli.main(["--traceback", "hello", "--name", "Ann"], restore_traceback=True)
    assert exit_code == 0
    assert getattr(lib_cli_exit_tools.config, "traceback", False) == previous_traceback


def test_cli_main_reports_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONSOLE_SCAFFOLD_LOGGING__LEVEL", "WARNING")
    assert cli.main(["fail"]) != 0


def _complete(words: str) -> list[str]:
    env = {
        **QUIET,
        "_CONSOLE_SCAFFOLD_COMPLETE": "bash_complete",
        "COMP_WORDS": words,
        "COMP_CWORD": str(len(words.split()) - (0 if words.endswith(" ") else 1)),
    }
    result = CliRunner().invoke(cli.cli, [], env=env, prog_name="console-scaffold")
    assert result.exit_code == 0
    return result.output.splitlines()


def test_shell_completion_of_commands() -> None:
    assert _complete("console-scaffold ad") == ["plain,admin"]
    assert "plain,konnichiwa" in _complete("console-scaffold ")
    assert "plain,secret-command" not in _complete("console-scaffold ")


def test_shell_completion_inside_group() -> None:
    assert _complete("console-scaffold admin st") == ["plain,start-server", "plain,stop-server"]


def test_shell_completion_of_root_options() -> None:
    assert "plain,--traceback" in _complete("console-scaffold --tr")
