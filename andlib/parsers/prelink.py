"""
Prelink Trailer Detection
==========================

Android's ``apriori`` prelinker appends an 8-byte trailer to every library
it relocates: the chosen load base as a little-endian 32-bit integer
followed by the tag ``b"PRE "``.  Addresses stored inside such a library
are biased by that base, so it has to be added to section virtual
addresses before they can be compared with pointers found in the file.

This module recovers that base for one file (:func:`detect_prelink`) or
builds an address-ordered map for many (:func:`prelink_map`).
"""

from __future__ import annotations

import os
import struct
from pathlib import Path
from typing import BinaryIO, Iterable, Optional

from andlib.core.errors import AndLibIOError
from andlib.core.models import PrelinkInfo, PrelinkMapEntry


PRELINK_TAG: bytes = b"PRE "
PRELINK_TRAILER_SIZE: int = 8


def read_prelink_address(fh: BinaryIO) -> Optional[int]:
    """Return the prelink base stored in the trailer of *fh*, or ``None``.

    The handle's position is left at the end of the file.
    """
    length = fh.seek(0, os.SEEK_END)
    if length < PRELINK_TRAILER_SIZE:
        return None

    fh.seek(length - PRELINK_TRAILER_SIZE)
    trailer = fh.read(PRELINK_TRAILER_SIZE)
    if len(trailer) < PRELINK_TRAILER_SIZE:
        return None

    address, tag = struct.unpack("<I4s", trailer)
    if tag != PRELINK_TAG:
        return None
    return address


def detect_prelink(path: str | Path) -> PrelinkInfo:
    """Inspect *path* and return its :class:`PrelinkInfo`.

    Raises:
        AndLibIOError: If the file cannot be opened or read.
    """
    path = Path(path)
    try:
        with open(path, "rb") as fh:
            address = read_prelink_address(fh)
    except OSError as exc:
        raise AndLibIOError(f"Cannot read {path}: {exc}") from exc
    return PrelinkInfo(path=str(path), address=address)


def _map_sort_key(entry: PrelinkMapEntry) -> tuple[int, int, str]:
    # prelinked by address, then unprelinked, then failures; ties by name
    if entry.info is not None and entry.info.prelinked:
        return (0, entry.info.address or 0, entry.filename)
    if entry.info is not None:
        return (1, 0, entry.filename)
    return (2, 0, entry.filename)


def prelink_map(paths: Iterable[str | Path]) -> list[PrelinkMapEntry]:
    """Detect the prelink status of every file in *paths*.

    Files that cannot be read become entries carrying an ``error`` instead
    of aborting the whole batch.  The result is ordered prelinked files
    first (ascending address), then non-prelinked files, then failures,
    each group by file name.
    """
    entries: list[PrelinkMapEntry] = []
    for path in paths:
        try:
            info = detect_prelink(path)
        except AndLibIOError as exc:
            entries.append(PrelinkMapEntry(path=str(path), error=str(exc)))
        else:
            entries.append(PrelinkMapEntry(path=str(path), info=info))

    entries.sort(key=_map_sort_key)
    return entries
