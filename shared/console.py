"""
AndLibUtils Console Interface
==============================

Rich-powered console abstraction giving every AndLibUtils command the
same look: section rules, severity-coloured messages and tables.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from typing import IO, Any, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

_ANDLIB_THEME = Theme(
    {
        "andlib.section": "bold bright_magenta",
        "andlib.success": "bold green",
        "andlib.warning": "bold yellow",
        "andlib.error": "bold red",
        "andlib.info": "bold bright_blue",
        "andlib.dim": "dim white",
        "andlib.highlight": "bold bright_white",
    }
)


class AndLibConsole:
    """Unified console interface for AndLibUtils commands.

    Usage::

        con = AndLibConsole()
        con.section("renameJNI")
        con.success("Result written to libfoo.so")

    Args:
        quiet:  Suppress all output (useful in library / test mode).
        file:   Write to this stream instead of stdout.
        stderr: Write to stderr instead of stdout.
    """

    def __init__(
        self,
        *,
        quiet: bool = False,
        file: IO[str] | None = None,
        stderr: bool = False,
    ) -> None:
        self._console = Console(
            theme=_ANDLIB_THEME,
            quiet=quiet,
            highlight=False,
            file=file,
            stderr=stderr,
        )

    @property
    def rich(self) -> Console:
        """Direct access to the underlying Rich Console instance."""
        return self._console

    # ------------------------------------------------------------------ #
    #  Section header
    # ------------------------------------------------------------------ #

    def section(self, title: str) -> None:
        """Print a prominent section header."""
        self._console.rule(
            f"  {title}  ",
            style="andlib.section",
            characters="─",
        )

    # ------------------------------------------------------------------ #
    #  Message helpers (severity-coloured)
    # ------------------------------------------------------------------ #

    def success(self, message: str) -> None:
        self._console.print(
            f"[andlib.success][✔] SUCCESS:[/andlib.success] {escape(message)}",
            soft_wrap=True,
        )

    def warning(self, message: str) -> None:
        self._console.print(
            f"[andlib.warning][⚠] WARNING:[/andlib.warning] {escape(message)}",
            soft_wrap=True,
        )

    def error(self, message: str) -> None:
        self._console.print(
            f"[andlib.error][✘] ERROR:[/andlib.error] {escape(message)}",
            soft_wrap=True,
        )

    def info(self, message: str) -> None:
        self._console.print(
            f"[andlib.info][ℹ] INFO:[/andlib.info] {escape(message)}",
            soft_wrap=True,
        )

    # ------------------------------------------------------------------ #
    #  Table display
    # ------------------------------------------------------------------ #

    def table(
        self,
        title: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        caption: str | None = None,
        styles: Sequence[str] | None = None,
    ) -> None:
        """Render a styled Rich table.

        Args:
            title:    Table title.
            columns:  Column header labels.
            rows:     Iterable of row tuples; each element is stringified.
            caption:  Optional footer caption.
            styles:   Optional per-column Rich style strings.
        """
        tbl = Table(
            title=title,
            caption=caption,
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            padding=(0, 1),
        )
        for idx, col_name in enumerate(columns):
            style = styles[idx] if styles and idx < len(styles) else ""
            tbl.add_column(col_name, style=style)

        for row in rows:
            tbl.add_row(*(escape(str(cell)) for cell in row))

        self._console.print(tbl)

    # ------------------------------------------------------------------ #
    #  Utility
    # ------------------------------------------------------------------ #

    def print(self, *args: Any, **kwargs: Any) -> None:
        """Proxy to :meth:`rich.console.Console.print`."""
        self._console.print(*args, **kwargs)

