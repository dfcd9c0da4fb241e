"""Terminal output for the grantflow CLI.

Data a caller may want to capture (authorization URLs, token responses,
profile listings) is written to stdout. Everything else (status lines,
prompts for the next step, warnings, errors, log records) goes to stderr,
so ``grantflow authorize url | xargs open`` keeps working.

The active format is ``json``, ``plain`` or ``rich``; ``auto`` picks
``rich`` for an interactive terminal with colour enabled and ``plain``
otherwise. Colour is off with ``--no-color``, ``NO_COLOR`` (any value) or
``TERM=dumb``.

:func:`~grantflow.app.main_callback` builds one :class:`OutputManager` per
invocation and installs it with :func:`set_output`; commands use the
module-level helpers, which forward to that instance.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

if TYPE_CHECKING:
    from grantflow.models import AccessToken


class OutputFormat(str, Enum):
    """Output formats accepted by ``--json``/``--plain`` and the global config."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Writes command results to stdout and diagnostics to stderr.

    Args:
        format: Requested format; ``AUTO`` is resolved at construction.
        no_color: Force colour off.
        quiet: Drop ``info``, ``success`` and ``suggest`` messages.
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
        self._format = _resolve_format(format, self._no_color)

        rich_stdout = self._format == OutputFormat.RICH
        self._stdout = Console(file=sys.stdout, no_color=self._no_color, force_terminal=rich_stdout)
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        """Console bound to stderr; :func:`configure_logging` logs through it."""
        return self._stderr

    # -- stdout ----------------------------------------------------------

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Write a dict or list to stdout in the active format."""
        if self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
            return
        rendered = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.JSON:
            self.print_data(rendered)
        else:
            self._stdout.print(Syntax(rendered, "json", theme="monokai", word_wrap=True))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows to stdout: objects in JSON, tab-separated lines in plain."""
        if self._format == OutputFormat.JSON:
            self.print_data(json.dumps([dict(zip(headers, row)) for row in rows], indent=2))
        elif self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self.print_data("\t".join(row))
        else:
            table = Table(*headers, title=title, header_style="bold cyan")
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    def print_token(self, token: AccessToken) -> None:
        """Write an issued token to stdout.

        JSON and plain output carry every field unchanged. The rich view is
        a two-column table with the remaining lifetime next to
        ``expires_at``.
        """
        data = token.model_dump(mode="json")
        if self._format != OutputFormat.RICH:
            self.format_response(data)
            return

        table = Table("Field", "Value", title="Access token", header_style="bold cyan")
        for key, value in data.items():
            if key == "other_params":
                continue
            if key == "expires_at" and value is not None:
                value = f"{value:.0f} (in {max(0, int(value - time.time()))}s)"
            table.add_row(key, "" if value is None else str(value))
        for key, value in token.other_params.items():
            table.add_row(key, str(value))
        self._stdout.print(table)

    # -- stderr ----------------------------------------------------------

    def info(self, message: str) -> None:
        self._emit(message, optional=True)

    def success(self, message: str) -> None:
        self._emit(message, markup=f"[green]{message}[/green]", optional=True)

    def suggest(self, message: str) -> None:
        text = f"→ {message}"
        self._emit(text, markup=f"[dim]{text}[/dim]", optional=True)

    def warning(self, message: str) -> None:
        self._emit(f"Warning: {message}", markup=f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        self._emit(f"Error: {message}", markup=f"[bold red]Error:[/bold red] {message}")

    def debug(self, message: str) -> None:
        if self._verbose:
            text = f"[debug] {message}"
            # Escape the bracket so rich does not read it as a style tag.
            self._emit(text, markup=f"[dim]\\{text}[/dim]")

    def _emit(self, text: str, markup: Optional[str] = None, optional: bool = False) -> None:
        if optional and self._quiet:
            return
        if self._no_color or markup is None:
            print(text, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup)


def _resolve_format(requested: OutputFormat, no_color: bool) -> OutputFormat:
    if requested != OutputFormat.AUTO:
        return requested
    return OutputFormat.RICH if _is_tty() and not no_color else OutputFormat.PLAIN


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [str(item) for item in data]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


def configure_logging(level: str | int, output: Optional[OutputManager] = None) -> None:
    """Route ``grantflow.*`` log records to stderr through a :class:`RichHandler`.

    Repeated calls replace the handler instead of stacking another one.
    """
    console = (output or get_output()).stderr_console
    logger = logging.getLogger("grantflow")
    for handler in [h for h in logger.handlers if isinstance(h, RichHandler)]:
        logger.removeHandler(handler)
    logger.addHandler(RichHandler(console=console, show_path=False, markup=False))
    logger.setLevel(level)


# -- process-wide instance ----------------------------------------------

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed instance; tests call this between CLI runs."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_token(token: AccessToken) -> None:
    get_output().print_token(token)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
