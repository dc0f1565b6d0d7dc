"""Console output and logging setup for the CLI.

Data and diagnostics never share a stream:

* **stdout** -- package documents, related-app listings, download grants,
  cache keys.
* **stderr** -- status lines, warnings, errors, and :mod:`logging` records.

Rendering depends on the resolved :class:`OutputFormat`. ``AUTO`` picks Rich
for an interactive, colour-capable terminal and plain text otherwise, so
piping ``playfetch related`` into ``cut`` gets tab-separated lines. Colour
honours ``NO_COLOR``, ``TERM=dumb``, and ``--no-color``.

The CLI callback installs one :class:`OutputManager` with :func:`set_output`;
commands use the module-level helpers, and :func:`configure_logging` points a
:class:`rich.logging.RichHandler` at the same stderr console.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How data written to stdout is rendered.

    ``AUTO`` becomes ``RICH`` on a colour-capable TTY and ``PLAIN`` otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


# level -> (plain prefix, rich markup prefix, shown in quiet mode)
_DIAGNOSTICS = {
    "info": ("", "", False),
    "success": ("", "[green]", False),
    "warning": ("Warning: ", "[yellow]Warning:[/yellow] ", True),
    "error": ("Error: ", "[bold red]Error:[/bold red] ", True),
}


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def flatten_document(data: Mapping[str, Any], prefix: str = "") -> list[tuple[str, Any]]:
    """Flatten nested mappings into ``(dotted.key, value)`` pairs.

    Lists are left whole, so ``{"details": {"appDetails": {"versionCode": 3}}}``
    becomes ``[("details.appDetails.versionCode", 3)]``.
    """
    pairs: list[tuple[str, Any]] = []
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping) and value:
            pairs.extend(flatten_document(value, prefix=f"{name}."))
        else:
            pairs.append((name, value))
    return pairs


class OutputManager:
    """Writes CLI data to stdout and diagnostics to stderr.

    Args:
        format: Requested output format.
        no_color: Disable colour and Rich markup.
        quiet: Drop ``info`` and ``success`` messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        if format is OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format is OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        """The resolved output format."""
        return self._format

    @property
    def stderr_console(self) -> Console:
        """Console writing to stderr, shared with the log handler."""
        return self._stderr

    # ------------------------------------------------------------------ #
    # stdout
    # ------------------------------------------------------------------ #

    def write_line(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_document(self, document: Any) -> None:
        """Render one response document (a package's ``docV2``, a grant).

        Plain mode prints one ``dotted.key<TAB>value`` line per leaf.
        """
        if self._format is OutputFormat.JSON:
            self.write_line(_dumps(document))
        elif self._format is OutputFormat.PLAIN:
            if isinstance(document, Mapping):
                for key, value in flatten_document(document):
                    if isinstance(value, (list, dict)):
                        value = json.dumps(value, ensure_ascii=False, default=str)
                    self.write_line(f"{key}\t{value}")
            else:
                self.write_line(str(document))
        else:
            self._stdout.print(Syntax(_dumps(document), "json", theme="monokai", word_wrap=True))

    def print_documents(
        self,
        documents: Iterable[Mapping[str, Any]],
        columns: Sequence[str],
        title: Optional[str] = None,
    ) -> None:
        """Render a listing, one row per document and one column per key.

        JSON mode emits an array of objects restricted to *columns*; plain
        mode emits a tab-separated header line followed by the rows.
        """
        rows = [[_cell(doc.get(column)) for column in columns] for doc in documents]
        if self._format is OutputFormat.JSON:
            self.write_line(_dumps([dict(zip(columns, row)) for row in rows]))
            return
        if self._format is OutputFormat.PLAIN:
            for row in [list(columns), *rows]:
                self.write_line("\t".join(row))
            return

        table = Table(title=title, header_style="bold cyan")
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # stderr
    # ------------------------------------------------------------------ #

    def diagnostic(self, level: str, message: str) -> None:
        """Write *message* to stderr at *level* (info/success/warning/error)."""
        plain_prefix, rich_prefix, shown_when_quiet = _DIAGNOSTICS[level]
        if self._quiet and not shown_when_quiet:
            return
        if self._no_color:
            print(f"{plain_prefix}{message}", file=sys.stderr, flush=True)
        elif level == "success":
            self._stderr.print(f"{rich_prefix}{message}[/green]")
        else:
            self._stderr.print(f"{rich_prefix}{message}")

    def info(self, message: str) -> None:
        self.diagnostic("info", message)

    def success(self, message: str) -> None:
        self.diagnostic("success", message)

    def warning(self, message: str) -> None:
        self.diagnostic("warning", message)

    def error(self, message: str) -> None:
        self.diagnostic("error", message)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


def configure_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    """Route ``playfetch`` log records to stderr.

    Replaces any handler installed by an earlier call.

    Args:
        verbose: Log at DEBUG when ``True``, WARNING otherwise.
        console: Console for the handler; defaults to the global manager's
            stderr console.
    """
    logger = logging.getLogger("playfetch")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.addHandler(
        RichHandler(
            console=console or get_output().stderr_console,
            show_path=False,
            markup=False,
        )
    )
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


# ------------------------------------------------------------------ #
# Global instance (installed by the CLI callback)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global manager; tests call this between CLI invocations."""
    global _output
    _output = None


def print_document(document: Any) -> None:
    get_output().print_document(document)


def print_documents(
    documents: Iterable[Mapping[str, Any]],
    columns: Sequence[str],
    title: Optional[str] = None,
) -> None:
    get_output().print_documents(documents, columns, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)
