"""The ``termtune`` command and its console-script entry point.

Command groups::

    termtune auth    login | status | refresh | logout
    termtune player  status | play | pause | next | previous | volume | devices
    termtune search  QUERY
    termtune config  show | set | reset

:func:`main_callback` runs before every command and installs the global
:class:`~termtune.output.OutputManager`. :func:`main` turns a
:class:`~termtune.exceptions.TermtuneError` escaping a command into its exit
code, and anything else into a crash log under the data directory.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from termtune import __version__
from termtune.commands.auth import auth_app
from termtune.commands.config import config_app
from termtune.commands.player import player_app, search_command
from termtune.exit_codes import EXIT_GENERIC_FAILURE
from termtune.output import OutputFormat


app = typer.Typer(
    name="termtune",
    help="Control Spotify playback from the terminal.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

app.add_typer(auth_app, name="auth", help="Log in to Spotify and manage the stored session.")
app.add_typer(player_app, name="player", help="Control playback on your active device.")
app.add_typer(config_app, name="config", help="View and change settings.")
app.command("search")(search_command)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"termtune {__version__}")
        raise typer.Exit()


def _select_format(json_output: bool, plain_output: bool) -> OutputFormat:
    """``--json`` / ``--plain`` first, then ``output.format`` from the config."""
    from termtune.config import load_config
    from termtune.exceptions import ConfigError

    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN
    try:
        return OutputFormat(load_config().output.format)
    except (ConfigError, ValueError):
        # A broken config file is reported by the command that needs it.
        return OutputFormat.AUTO


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug output (requests, refreshes, listener events)."
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmations."),
    session_file: Optional[str] = typer.Option(
        None,
        "--session-file",
        envvar="TERMTUNE_SESSION_FILE",
        help="Where the login session is stored.",
    ),
) -> None:
    """Set up output and shared options for the invoked command.

    ``force`` and ``session_file`` are stored on ``ctx.obj`` for the
    command modules (see :mod:`termtune.commands.common`).
    """
    from termtune.output import OutputManager, set_output

    set_output(
        OutputManager(
            format=_select_format(json_output, plain_output),
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
        )
    )
    ctx.ensure_object(dict)
    ctx.obj.update(force=force, session_file=session_file, verbose=verbose)


def _setup_signal_handlers() -> None:
    """Exit with 130 on Ctrl-C, including while waiting for the browser callback."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: BaseException) -> str:
    """Save the traceback of *exc* under ``<data_dir>/logs`` and return its path."""
    from termtune.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return str(log_path)


def main() -> None:
    """Console-script entry point."""
    from termtune.exceptions import TermtuneError
    from termtune.output import error

    _setup_signal_handlers()
    try:
        app()
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except TermtuneError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error. Debug log: {_write_crash_log(exc)}")
        sys.exit(EXIT_GENERIC_FAILURE)
