"""Console output for the ``azidentity`` command line.

Tokens and records are data: they go to stdout and nowhere else, so that
``azidentity token ... --json | jq -r .token`` keeps working. Everything
the user reads but a script should not (progress, device code prompts,
warnings, errors) goes to stderr.

The stdout format follows ``--json`` / ``--plain``; without either, a
terminal gets Rich tables and piped output gets plain ``key<TAB>value``
lines. ``NO_COLOR``, ``TERM=dumb`` and ``--no-color`` turn colour off.

:class:`OutputManager` is built in :func:`~azidentity.app.main_callback`
and installed with :func:`set_output`; commands call the module-level
helpers.
"""

from __future__ import annotations

import json
import os
import sys
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from azidentity.models import AccessToken


class OutputFormat(str, Enum):
    """Stdout formats. ``AUTO`` picks ``RICH`` on a colour terminal, else ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Holds the output preferences and the stdout/stderr consoles.

    Args:
        format: Requested stdout format.
        no_color: Disable colour and markup on both streams.
        quiet: Drop informational and success messages.
        verbose: Show debug messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        # Bound to the streams current at construction; CliRunner swaps them.
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def stderr_console(self) -> Console:
        """Console the CLI log handler writes to."""
        return self._stderr

    # stdout

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Print a JSON-compatible value in the active format."""
        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.JSON:
            self.print_data(text)
        elif self._format == OutputFormat.RICH:
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))
        elif isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                self.print_data(str(item))
        else:
            self.print_data(str(data))

    def print_token(self, token: AccessToken) -> None:
        """Print an access token.

        JSON and plain output carry the wire form (``token`` and
        ``expiresOnTimestamp``); the Rich view adds the local expiry time.
        """
        if self._format != OutputFormat.RICH:
            self.format_response(token.model_dump(by_alias=True))
            return
        expires = datetime.fromtimestamp(token.expires_on_timestamp / 1000).astimezone()
        table = Table(show_header=False, box=None)
        table.add_column(style="bold cyan")
        table.add_column(overflow="fold")
        table.add_row("token", token.token)
        table.add_row("expires", expires.isoformat(timespec="seconds"))
        self._stdout.print(table)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows under *headers*.

        JSON mode prints a list of objects keyed by the headers; plain mode
        prints the header line and the rows tab-separated.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(json.dumps([dict(zip(headers, row)) for row in rows], indent=2))
            return
        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return
        table = Table(title=title, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # stderr

    def _message(self, text: str, markup: str, prefix: str = "") -> None:
        if self._no_color:
            print(f"{prefix}{text}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup.format(text=text))

    def info(self, message: str) -> None:
        if not self._quiet:
            self._message(message, "{text}")

    def success(self, message: str) -> None:
        if not self._quiet:
            self._message(message, "[green]{text}[/green]")

    def warning(self, message: str) -> None:
        self._message(message, "[yellow]Warning:[/yellow] {text}", "Warning: ")

    def error(self, message: str) -> None:
        self._message(message, "[bold red]Error:[/bold red] {text}", "Error: ")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._message(message, "[dim]\\[debug] {text}[/dim]", "[debug] ")


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to anything, or ``TERM=dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_token(token: AccessToken) -> None:
    get_output().print_token(token)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
