"""Typer application and console-script entry point for azidentity.

The command line exposes the library's credentials for scripting and
troubleshooting:

* ``azidentity token`` -- acquire a token with any credential.
* ``azidentity login`` -- sign a user in and store the account record.
* ``azidentity record`` -- list, show and delete stored records.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. :class:`~azidentity.exceptions.IdentityError`
failures exit with the error's ``exit_code``; anything else writes a
crash log under the data directory.

See Also:
    :mod:`azidentity.output`: Output formatting initialised in :func:`main_callback`.
    :mod:`azidentity.logger`: The library loggers routed to stderr here.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer
from rich.logging import RichHandler

from azidentity import __version__
from azidentity.exit_codes import EXIT_ABORTED, EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="azidentity",
    help="Acquire Microsoft identity platform tokens from the command line.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"azidentity {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, quiet: bool) -> None:
    """Route the ``azidentity`` loggers to stderr through Rich.

    ``--verbose`` shows everything down to DEBUG, ``--quiet`` only errors,
    otherwise warnings and above.
    """
    from azidentity.logger import logger
    from azidentity.output import get_output

    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(
        console=get_output().stderr_console,
        show_path=False,
        rich_tracebacks=verbose,
    )
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)


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
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~azidentity.output.OutputManager` and the
    log handler, and stores ``verbose`` in ``ctx.obj``.
    """
    from azidentity.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose, quiet)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def _register_commands() -> None:
    from azidentity.commands.login import login_command
    from azidentity.commands.record import record_app
    from azidentity.commands.token import token_command

    app.command("token")(token_command)
    app.command("login")(login_command)
    app.add_typer(record_app, name="record", help="Manage stored authentication records.")


_register_commands()


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_ABORTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under ``{data_dir}/logs`` and return the path."""
    from azidentity.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``azidentity`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_ABORTED)
    except Exception as exc:
        from azidentity.exceptions import IdentityError
        from azidentity.output import error

        if isinstance(exc, IdentityError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
