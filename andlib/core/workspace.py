"""
Temporary Working Copy
=======================

Patching happens in place, so the renamer is never pointed at the
caller's file directly.  :class:`TempWorkspace` copies the input next to
the output location, hands out the copy, and only publishes it (with an
atomic :func:`os.replace`) once the caller commits.  Whatever happens,
the temporary file is gone when the context exits.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Any, Optional

from andlib.core.errors import AndLibIOError


_MAX_TEMP_INDEX: int = 10_000


class TempWorkspace:
    """Copy-then-replace workspace for one patch operation.

    Usage::

        workspace = TempWorkspace("libfoo.so", "out/libfoo.so")
        with workspace as temp:
            patch(temp)
            workspace.commit()

    Args:
        source: File to work on.
        output: Where the result is published (defaults to *source*).
        suffix: Base suffix of the temporary name; a four-digit counter is
                appended (``libfoo.so.temp0000``).
    """

    def __init__(
        self,
        source: str | Path,
        output: str | Path | None = None,
        suffix: str = ".temp",
    ) -> None:
        self._source = Path(source)
        self._output = Path(output) if output is not None else self._source
        self._suffix = suffix
        self._temp: Optional[Path] = None
        self._committed = False

    @property
    def source(self) -> Path:
        return self._source

    @property
    def output(self) -> Path:
        return self._output

    @property
    def temp_path(self) -> Optional[Path]:
        return self._temp

    @property
    def committed(self) -> bool:
        return self._committed

    def _pick_temp_name(self) -> Path:
        parent = self._output.parent
        for index in range(_MAX_TEMP_INDEX):
            candidate = parent / f"{self._output.name}{self._suffix}{index:04d}"
            if not candidate.exists():
                return candidate
        raise AndLibIOError(
            f"No free temporary name for {self._output} in {parent}"
        )

    def open(self) -> Path:
        """Create the temporary copy and return its path."""
        temp = self._pick_temp_name()
        try:
            shutil.copyfile(self._source, temp)
        except OSError as exc:
            if temp.exists():
                temp.unlink()
            raise AndLibIOError(
                f"Cannot copy {self._source} to {temp}: {exc}"
            ) from exc
        self._temp = temp
        return temp

    def commit(self) -> Path:
        """Atomically move the temporary copy over the output path."""
        if self._temp is None:
            raise AndLibIOError("Workspace was not opened")
        try:
            os.replace(self._temp, self._output)
        except OSError as exc:
            raise AndLibIOError(
                f"Error moving temporary file {self._temp} to {self._output}: {exc}"
            ) from exc
        self._committed = True
        return self._output

    def discard(self) -> None:
        """Remove the temporary copy if it is still there."""
        if self._temp is not None and self._temp.exists():
            self._temp.unlink()

    def __enter__(self) -> Path:
        return self.open()

    def __exit__(self, *exc: Any) -> None:
        self.discard()
