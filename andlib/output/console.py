"""
AndLib Console Output
======================

Rich-powered terminal display for rename results and prelink maps, built
on the :class:`~shared.console.AndLibConsole` abstraction.
"""

from __future__ import annotations

from typing import IO, Sequence

from shared.console import AndLibConsole

from andlib.core.models import PrelinkMapEntry, RenameResult, StringCandidates


def _hex(value: int | None) -> str:
    return "-" if value is None else f"0x{value:08X}"


def format_prelink_line(entry: PrelinkMapEntry) -> str:
    """One line of a prelink map, in the classic ``prelink map`` layout."""
    if entry.info is not None and entry.info.prelinked:
        return f"prelinked @ 0x{entry.info.address:8X}: {entry.filename}"
    return f"not prelinked:          {entry.filename}"


class RenameConsoleOutput:
    """Render AndLibUtils results on the terminal.

    Usage::

        output = RenameConsoleOutput(console=AndLibConsole())
        output.display_rename(result, verbose=True)
    """

    def __init__(self, console: AndLibConsole | None = None) -> None:
        self._console = console or AndLibConsole()

    # ------------------------------------------------------------------ #
    #  Rename
    # ------------------------------------------------------------------ #

    def display_rename(self, result: RenameResult, verbose: bool = False) -> None:
        """Show the summary of a rename; tables only when *verbose*."""
        con = self._console
        if verbose:
            con.section("Addresses")
            rows = [
                (f"{result.string_section} section", _hex(result.string_section_address)),
                (f"{result.data_section} section", _hex(result.data_section_address)),
                ("prelink base", _hex(result.prelink_address)),
                (f"{result.string_section} base", _hex(result.string_base_address)),
            ]
            con.table("Layout", ["Item", "Address"], rows, styles=["", "bright_cyan"])
            self._display_candidates(
                [
                    result.name_candidates,
                    result.signature_candidates,
                    result.new_name_candidates,
                ]
            )
            self._display_patches(result)

        if result.multiple_matches:
            con.warning(f"Found and replaced {result.match_count} matches?!")
        con.info(
            f"{result.function_name}{result.signature} -> {result.new_name}: "
            f"{result.match_count} record(s) rewritten in {result.path} "
            f"({result.duration_seconds:.2f}s)"
        )

    def _display_candidates(
        self, candidates: Sequence[StringCandidates | None]
    ) -> None:
        rows = []
        for cand in candidates:
            if cand is None:
                continue
            rows.append((
                cand.label,
                cand.value,
                "best" if cand.best_only else "all",
                ", ".join(_hex(a) for a in cand.addresses),
            ))
        self._console.table(
            "String candidates",
            ["Label", "String", "Mode", "Addresses"],
            rows,
            styles=["bold", "", "dim", "bright_cyan"],
        )

    def _display_patches(self, result: RenameResult) -> None:
        rows = [
            (
                _hex(p.address),
                f"0x{p.file_offset:X}",
                _hex(p.old_value),
                _hex(p.new_value),
                _hex(p.signature_value),
            )
            for p in result.patches
        ]
        self._console.table(
            "Rewritten records",
            ["Address", "File offset", "Old name", "New name", "Signature"],
            rows,
        )

    # ------------------------------------------------------------------ #
    #  Prelink map
    # ------------------------------------------------------------------ #

    def display_prelink_map(
        self,
        entries: Sequence[PrelinkMapEntry],
        out: IO[str] | None = None,
    ) -> None:
        """Print the map lines, to *out* when given or the console otherwise.

        Entries that failed to load are skipped; report them separately.
        """
        for entry in entries:
            if entry.info is None:
                continue
            line = format_prelink_line(entry)
            if out is not None:
                out.write(line + "\n")
            else:
                self._console.print(line, markup=False, soft_wrap=True)
