"""
Buffered Random-Access File
=============================

Random access over a binary file tuned for byte-at-a-time sequential
reading.  Reads are served from a fixed-capacity read-ahead block that is
refilled from the file only when exhausted; writes are *not* buffered and
go straight to the file, one byte at a time.

The stream tracks its own logical position.  While a read-ahead block
holds unconsumed bytes the underlying file cursor sits past the logical
position (state ``BufferedAhead``); any write first reconciles the file
cursor and drops the block (state ``Idle``) so reads and writes can be
freely interleaved.

All multi-byte values are little-endian and unsigned.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, BinaryIO

from andlib.core.errors import AndLibIOError, UnexpectedEOFError


DEFAULT_BUFFER_SIZE: int = 1024

_MODES: dict[str, str] = {
    "r": "rb",
    "rw": "r+b",
    "rb": "rb",
    "r+b": "r+b",
}


class BufferedRandomAccessFile:
    """Read-buffered, write-through random access file.

    Usage::

        with BufferedRandomAccessFile("libfoo.so", "rw") as raf:
            raf.seek(0x34)
            value = raf.read_uint()
            raf.seek(0x34)
            raf.write_uint(value + 4)

    Args:
        path:        File to open.
        mode:        ``"r"`` for read-only or ``"rw"`` for read/write
                     (``"rb"`` / ``"r+b"`` are accepted as well).
        buffer_size: Capacity of the read-ahead block in bytes.
    """

    def __init__(
        self,
        path: str | Path,
        mode: str = "r",
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        if mode not in _MODES:
            raise ValueError(f"Unsupported mode {mode!r}")
        if buffer_size <= 0:
            raise ValueError(f"Buffer size must be > 0, got {buffer_size}")

        self._path = Path(path)
        try:
            self._raw: BinaryIO = open(self._path, _MODES[mode], buffering=0)
        except OSError as exc:
            raise AndLibIOError(f"Cannot open {self._path}: {exc}") from exc

        self._pos: int = 0
        self._buffer: bytes = b""
        self._buf_index: int = 0
        self._buffer_size: int = buffer_size

    # ------------------------------------------------------------------ #
    #  Properties
    # ------------------------------------------------------------------ #

    @property
    def path(self) -> Path:
        return self._path

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    @property
    def buffered_ahead(self) -> bool:
        """``True`` while the read-ahead block has unconsumed bytes."""
        return self._buf_index < len(self._buffer)

    def set_buffer_size(self, size: int) -> None:
        """Replace the read-ahead block with one of *size* bytes."""
        if size <= 0:
            raise ValueError(f"Buffer size must be > 0, got {size}")
        self._reconcile()
        self._buffer_size = size

    # ------------------------------------------------------------------ #
    #  Reading
    # ------------------------------------------------------------------ #

    def read_byte(self) -> int:
        """Return the next byte (0-255).

        Raises:
            UnexpectedEOFError: If the file holds no more bytes.
        """
        if self._buf_index >= len(self._buffer):
            self._buffer = self._read_raw(self._buffer_size)
            self._buf_index = 0
            if not self._buffer:
                raise UnexpectedEOFError(self._pos)
        value = self._buffer[self._buf_index]
        self._buf_index += 1
        self._pos += 1
        return value

    def read_ubyte(self) -> int:
        return self.read_byte() & 0xFF

    def read_ushort(self) -> int:
        return self.read_ubyte() | (self.read_ubyte() << 8)

    def read_uint(self) -> int:
        return (
            self.read_ubyte()
            | (self.read_ubyte() << 8)
            | (self.read_ubyte() << 16)
            | (self.read_ubyte() << 24)
        )

    # ------------------------------------------------------------------ #
    #  Writing (unbuffered)
    # ------------------------------------------------------------------ #

    def write_byte(self, value: int) -> None:
        """Write one byte at the logical position and advance past it."""
        if self.buffered_ahead:
            self._reconcile()
        try:
            written = self._raw.write(bytes((value & 0xFF,)))
        except OSError as exc:
            raise AndLibIOError(
                f"Write failed at offset 0x{self._pos:X} in {self._path}: {exc}"
            ) from exc
        if written != 1:
            raise AndLibIOError(
                f"Short write at offset 0x{self._pos:X} in {self._path}"
            )
        self._pos += 1

    def write_ubyte(self, value: int) -> None:
        self.write_byte(value & 0xFF)

    def write_ushort(self, value: int) -> None:
        self.write_ubyte(value)
        self.write_ubyte(value >> 8)

    def write_uint(self, value: int) -> None:
        self.write_ubyte(value)
        self.write_ubyte(value >> 8)
        self.write_ubyte(value >> 16)
        self.write_ubyte(value >> 24)

    # ------------------------------------------------------------------ #
    #  Positioning
    # ------------------------------------------------------------------ #

    def skip(self, count: int) -> None:
        """Advance the logical position by *count* bytes.

        Whatever exceeds the buffered remainder is forwarded to the file
        as a relative seek and the read-ahead block is dropped.
        """
        if count < 0:
            raise ValueError(f"Cannot skip a negative count ({count}), use seek")
        self._buf_index += count
        if self._buf_index > len(self._buffer):
            excess = self._buf_index - len(self._buffer)
            self._seek_raw(excess, os.SEEK_CUR)
            self._buffer = b""
            self._buf_index = 0
        self._pos += count

    def seek(self, offset: int) -> None:
        """Move the logical position to *offset* (no-op if already there)."""
        if offset < 0:
            raise ValueError(f"Negative file offset {offset}")
        if offset != self._pos:
            self._seek_raw(offset, os.SEEK_SET)
            self._pos = offset
            self._buffer = b""
            self._buf_index = 0

    def tell(self) -> int:
        return self._pos

    def size(self) -> int:
        """Total file size in bytes."""
        return os.fstat(self._raw.fileno()).st_size

    # ------------------------------------------------------------------ #
    #  Lifecycle
    # ------------------------------------------------------------------ #

    @property
    def closed(self) -> bool:
        return self._raw.closed

    def close(self) -> None:
        self._raw.close()

    def __enter__(self) -> BufferedRandomAccessFile:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    #  Internal helpers
    # ------------------------------------------------------------------ #

    def _reconcile(self) -> None:
        """Drop the read-ahead block and bring the file cursor back to
        the logical position (``BufferedAhead`` -> ``Idle``)."""
        if self.buffered_ahead:
            self._seek_raw(self._pos, os.SEEK_SET)
        self._buffer = b""
        self._buf_index = 0

    def _read_raw(self, size: int) -> bytes:
        try:
            return self._raw.read(size) or b""
        except OSError as exc:
            raise AndLibIOError(
                f"Read failed at offset 0x{self._pos:X} in {self._path}: {exc}"
            ) from exc

    def _seek_raw(self, offset: int, whence: int) -> None:
        try:
            self._raw.seek(offset, whence)
        except OSError as exc:
            raise AndLibIOError(
                f"Seek failed in {self._path}: {exc}"
            ) from exc
