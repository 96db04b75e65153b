"""Terminal output for termtune: data on stdout, everything else on stderr.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** carries only what a script would want to parse: playback
  state, search results, device lists, config dumps.
* **stderr** carries every diagnostic, including the authorization URL
  printed during ``termtune auth login``. It is soft-wrapped so a long URL
  stays on one copyable line.
* ``NO_COLOR``, ``TERM=dumb`` and ``--no-color`` turn Rich markup off;
  a non-TTY stdout falls back to plain, tab-separated output.

:class:`OutputManager` holds the preferences and the two Rich consoles.
:func:`~termtune.app.main_callback` installs one with :func:`set_output`;
the rest of the package calls the module-level helpers (:func:`info`,
:func:`debug`, ...). There is no ``logging`` configuration: :func:`debug`
is the diagnostic channel and only prints under ``--verbose``.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """Supported output formats.

    ``AUTO`` becomes ``RICH`` on an interactive, colour-capable terminal and
    ``PLAIN`` everywhere else.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Route CLI output to the right stream in the right format.

    Args:
        format: Desired output format; ``AUTO`` is resolved at construction.
        no_color: Disable colour and Rich markup.
        quiet: Hide ``info``, ``success`` and ``suggest`` messages.
        verbose: Show ``debug`` messages.
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

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(format == OutputFormat.RICH),
        )
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
            soft_wrap=True,
        )

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Render an API payload in the active format.

        * JSON: the payload re-serialised with indentation; a string that
          already holds JSON is parsed first.
        * Plain: ``key<TAB>value`` lines for an object, one tab-joined line
          per item for a list.
        * Rich: a key/value grid for a flat object, highlighted JSON for
          anything nested.
        """
        if self._format == OutputFormat.JSON:
            if isinstance(data, str):
                try:
                    data = json.loads(data)
                except ValueError:
                    self.print_data(data)
                    return
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
        elif isinstance(data, dict) and not any(isinstance(v, (dict, list)) for v in data.values()):
            grid = Table.grid(padding=(0, 2))
            grid.add_column(style="bold")
            grid.add_column()
            for key, value in data.items():
                grid.add_row(escape(str(key)), escape(str(value)))
            self._stdout.print(grid)
        elif isinstance(data, (dict, list)):
            text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(escape(str(data)))

    def print_data(self, text: str) -> None:
        """Write *text* to stdout unmodified."""
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows in the active format.

        JSON mode emits a list of objects keyed by *headers*; plain mode a
        header line and one tab-separated line per row; rich mode a
        :class:`~rich.table.Table` titled *title*.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
            return
        if self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self.print_data("\t".join(row))
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*(escape(cell) for cell in row))
        self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, style="green")

    def warning(self, message: str) -> None:
        """Always shown, even with ``--quiet``."""
        self._emit(f"Warning: {message}", style="yellow")

    def error(self, message: str) -> None:
        """Always shown, even with ``--quiet``."""
        self._emit(f"Error: {message}", style="bold red")

    def suggest(self, message: str) -> None:
        """Print a next step for the user, e.g. ``termtune auth login``."""
        if not self._quiet:
            self._emit(f"→ {message}", style="dim")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(f"[debug] {message}", style="dim")

    def _emit(self, text: str, style: Optional[str] = None) -> None:
        if self._no_color:
            print(text, file=sys.stderr, flush=True)
        elif style:
            self._stderr.print(f"[{style}]{escape(text)}[/{style}]")
        else:
            self._stderr.print(escape(text))


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to anything, or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


def mask_secret(value: str, visible: int = 8) -> str:
    """Preview a token: the first *visible* characters, then ``...``.

    Values no longer than *visible* are replaced by asterisks entirely.
    """
    if len(value) <= visible:
        return "*" * len(value)
    return value[:visible] + "..."


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the installed manager so the next call builds a fresh one.

    Tests call this between CLI invocations, since a manager keeps the
    stream objects that were current when it was created.
    """
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_data(text: str) -> None:
    get_output().print_data(text)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
