"""
Section-Aware ELF Reader
=========================

Streaming reader for the Executable and Linkable Format that understands
just enough of the container to enumerate sections, resolve their names
and perform section-relative random access, reads and writes.

Unlike a whole-file parser, the reader never materialises a section in
memory: it sits on top of :class:`BufferedRandomAccessFile` and keeps a
single cursor, remembering which section that cursor currently lies in.
This makes it suitable for patching large shared objects in place.

Only the ELF32 little-endian layout is decoded; the class and encoding
bytes are exposed so callers can reject anything else.

References:
    - TIS Committee. (1995). Tool Interface Standard (TIS) Executable and
      Linkable Format (ELF) Specification, Version 1.2.
    - Linux man page: elf(5).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from andlib.core.errors import UnexpectedEOFError
from andlib.core.models import SectionSummary
from andlib.parsers.stream import DEFAULT_BUFFER_SIZE, BufferedRandomAccessFile


# ---------------------------------------------------------------------------
# ELF Constants
# ---------------------------------------------------------------------------

ELF_MAGIC: bytes = b"\x7fELF"

# ELF Class (32-bit vs 64-bit)
ELFCLASSNONE: int = 0
ELFCLASS32: int = 1
ELFCLASS64: int = 2

# Data encoding (endianness)
ELFDATANONE: int = 0
ELFDATA2LSB: int = 1  # Little-endian
ELFDATA2MSB: int = 2  # Big-endian

# Section header types
SHT_NULL: int = 0
SHT_PROGBITS: int = 1
SHT_STRTAB: int = 3
SHT_NOBITS: int = 8

# Bytes of an Elf32_Shdr consumed by the reader: name, type, flags,
# addr, offset, size.  The rest of each entry is skipped.
_SHDR_FIELDS_SIZE: int = 6 * 4


# ---------------------------------------------------------------------------
# Internal parsed structures
# ---------------------------------------------------------------------------

class _ELFHeader:
    """Parsed ELF header fields."""
    __slots__ = (
        "ei_class", "ei_data", "e_type", "e_machine", "e_version",
        "e_phoff", "e_phentsize", "e_phnum",
        "e_shoff", "e_shentsize", "e_shnum", "e_shstrndx",
    )

    def __init__(self) -> None:
        self.ei_class: int = 0
        self.ei_data: int = 0
        self.e_type: int = 0
        self.e_machine: int = 0
        self.e_version: int = 0
        self.e_phoff: int = 0
        self.e_phentsize: int = 0
        self.e_phnum: int = 0
        self.e_shoff: int = 0
        self.e_shentsize: int = 0
        self.e_shnum: int = 0
        self.e_shstrndx: int = 0


class _SectionHeader:
    """Parsed section header entry."""
    __slots__ = (
        "sh_name", "sh_type", "sh_addr", "sh_offset", "sh_size",
        "effective_size", "name",
    )

    def __init__(self) -> None:
        self.sh_name: int = 0
        self.sh_type: int = 0
        self.sh_addr: int = 0
        self.sh_offset: int = 0
        self.sh_size: int = 0
        self.effective_size: int = 0
        self.name: str = ""

    def contains(self, offset: int) -> bool:
        return self.sh_offset <= offset < self.sh_offset + self.sh_size


# ---------------------------------------------------------------------------
# ELF Reader
# ---------------------------------------------------------------------------

class ElfReader:
    """Cursor-based ELF32 reader with section-relative addressing.

    The header is parsed on construction.  If the magic bytes do not
    match, or section header entries are declared narrower than an ELF32
    entry's fields, the reader is *invalid* for good: :meth:`read_sections` does
    nothing and every section query answers ``None``/``False``.

    Usage::

        with ElfReader("libfoo.so") as reader:
            if reader.valid:
                reader.read_sections()
                reader.seek_section(".rodata")
                ofs = reader.seek_string("drawText")

    Args:
        path:        ELF file to open.
        mode:        ``"r"`` (read-only) or ``"rw"`` to allow patching.
        buffer_size: Read-ahead block size of the underlying stream.
    """

    def __init__(
        self,
        path: str | Path,
        mode: str = "r",
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        self._path = Path(path)
        self._raf = BufferedRandomAccessFile(path, mode, buffer_size=buffer_size)
        self._header: _ELFHeader = _ELFHeader()
        self._sections: list[_SectionHeader] = []
        self._current: Optional[int] = None
        self._last_match_exact: bool = False
        self._valid: bool = False
        try:
            self._read_elf_header()
        except Exception:
            self._raf.close()
            raise

    # ------------------------------------------------------------------ #
    #  Header information
    # ------------------------------------------------------------------ #

    @property
    def path(self) -> Path:
        return self._path

    @property
    def valid(self) -> bool:
        return self._valid

    @property
    def elf_class(self) -> int:
        return self._header.ei_class

    @property
    def data_encoding(self) -> int:
        return self._header.ei_data

    @property
    def elf_type(self) -> int:
        return self._header.e_type

    @property
    def machine(self) -> int:
        return self._header.e_machine

    @property
    def version(self) -> int:
        return self._header.e_version

    @property
    def section_header_offset(self) -> int:
        return self._header.e_shoff

    @property
    def section_name_table_index(self) -> int:
        return self._header.e_shstrndx

    @property
    def program_header_table(self) -> tuple[int, int, int]:
        """``(offset, entry_size, entry_count)`` of the program headers."""
        h = self._header
        return (h.e_phoff, h.e_phentsize, h.e_phnum)

    @property
    def sections(self) -> list[SectionSummary]:
        return [
            SectionSummary(
                index=idx,
                name=sh.name,
                type=sh.sh_type,
                address=sh.sh_addr,
                offset=sh.sh_offset,
                size=sh.sh_size,
                effective_size=sh.effective_size,
            )
            for idx, sh in enumerate(self._sections)
        ]

    # ------------------------------------------------------------------ #
    #  Primitive reads / writes
    # ------------------------------------------------------------------ #

    def read_ubyte(self) -> int:
        return self._raf.read_ubyte()

    def read_ushort(self) -> int:
        return self._raf.read_ushort()

    def read_uint(self) -> int:
        return self._raf.read_uint()

    def write_ubyte(self, value: int) -> None:
        self._raf.write_ubyte(value)

    def write_ushort(self, value: int) -> None:
        self._raf.write_ushort(value)

    def write_uint(self, value: int) -> None:
        self._raf.write_uint(value)

    def read_string(self) -> str:
        """Read a null-terminated string at the cursor."""
        raw = bytearray()
        while (ch := self.read_ubyte()) != 0:
            raw.append(ch)
        return raw.decode("utf-8", errors="replace")

    def skip(self, count: int) -> None:
        self._raf.skip(count)

    def tell(self) -> int:
        return self._raf.tell()

    # ------------------------------------------------------------------ #
    #  Positioning
    # ------------------------------------------------------------------ #

    def seek(self, offset: int) -> None:
        """Move to file *offset*, updating the current section on a miss."""
        self._raf.seek(offset)
        if self._current is None or not self._sections[self._current].contains(offset):
            self._current = self._find_current_section(offset)

    def reseek(self, delta: int) -> None:
        """Like :meth:`seek` but relative to the current position."""
        self.seek(self._raf.tell() + delta)

    def seek_section(self, name: str, offset: int = 0) -> None:
        """Make *name* the current section and move to *offset* within it.

        If the section does not exist there is no current section
        afterwards and the cursor is left where it was.
        """
        self._current = self._find_section_index(name)
        if self._current is None:
            return
        sh = self._sections[self._current]
        index = self._current
        self.seek(sh.sh_offset + offset)
        if sh.sh_size == 0 and offset == 0:
            self._current = index

    # ------------------------------------------------------------------ #
    #  Section queries
    # ------------------------------------------------------------------ #

    def has_section(self, name: str) -> bool:
        return self._find_section_index(name) is not None

    def find_section(self, name: str) -> Optional[SectionSummary]:
        index = self._find_section_index(name)
        if index is None:
            return None
        return self.sections[index]

    def current_section(self) -> Optional[str]:
        if self._current is None:
            return None
        return self._sections[self._current].name

    def current_offset_in_section(self) -> Optional[int]:
        if self._current is None:
            return None
        return self._raf.tell() - self._sections[self._current].sh_offset

    def remaining_in_section(self) -> int:
        """Effective bytes left between the cursor and the section end."""
        if self._current is None:
            return 0
        sh = self._sections[self._current]
        return max(0, sh.effective_size - (self._raf.tell() - sh.sh_offset))

    def finished_section(self) -> bool:
        """``True`` once the cursor reached the effective end of the
        current section (or when there is no current section)."""
        return self.remaining_in_section() == 0

    def section_address(self, name: str) -> Optional[int]:
        index = self._find_section_index(name)
        if index is None:
            return None
        return self._sections[index].sh_addr

    def section_offset_to_file_offset(self, name: str, offset: int) -> Optional[int]:
        index = self._find_section_index(name)
        if index is None:
            return None
        return self._sections[index].sh_offset + offset

    # ------------------------------------------------------------------ #
    #  String search
    # ------------------------------------------------------------------ #

    @property
    def last_match_exact(self) -> bool:
        """Whether the last :meth:`seek_string` hit was the whole string
        rather than the tail of a longer one."""
        return self._last_match_exact

    def seek_string(self, pattern: str | bytes) -> Optional[int]:
        """Search the rest of the current section for a null-terminated
        string ending with *pattern*.

        On a hit the section-relative offset where *pattern* starts is
        returned and the cursor is left just past the terminator, so
        calling again finds the next occurrence.  ``None`` means the
        section was exhausted without a hit.

        Raises:
            ValueError: If *pattern* is empty.
        """
        needle = pattern.encode("utf-8") if isinstance(pattern, str) else bytes(pattern)
        n = len(needle)
        if n == 0:
            raise ValueError("Cannot search for an empty string")
        if self._current is None:
            return None

        section_ofs = self._sections[self._current].sh_offset
        ring = bytearray(n)
        ind = 0     # ring[ind] holds the oldest of the last n bytes
        length = 0  # bytes read since the previous terminator
        remaining = self.remaining_in_section()
        while remaining > 0:
            remaining -= 1
            ch = self.read_ubyte()
            if ch == 0:
                if length >= n and self._ring_matches(ring, ind, needle):
                    self._last_match_exact = length == n
                    return self._raf.tell() - section_ofs - n - 1
                length = 0
            else:
                ring[ind] = ch
                ind = (ind + 1) % n
                length += 1
        return None

    @staticmethod
    def _ring_matches(ring: bytearray, start: int, needle: bytes) -> bool:
        n = len(needle)
        ii = start
        for jj in range(n):
            if ring[ii] != needle[jj]:
                return False
            ii = (ii + 1) % n
        return True

    # ------------------------------------------------------------------ #
    #  Section header parsing
    # ------------------------------------------------------------------ #

    def read_sections(self) -> None:
        """Parse the section header table and resolve section names.

        Does nothing on an invalid reader.
        """
        if not self._valid:
            return

        h = self._header
        self._sections = []
        self._current = None
        self.seek(h.e_shoff)
        padding = h.e_shentsize - _SHDR_FIELDS_SIZE
        for _ in range(h.e_shnum):
            sh = _SectionHeader()
            sh.sh_name = self.read_uint()
            sh.sh_type = self.read_uint()
            self.skip(4)  # sh_flags
            sh.sh_addr = self.read_uint()
            sh.sh_offset = self.read_uint()
            sh.sh_size = self.read_uint()
            self.skip(padding)
            sh.effective_size = 0 if sh.sh_type == SHT_NOBITS else sh.sh_size
            self._sections.append(sh)

        self._resolve_section_names()

    def _resolve_section_names(self) -> None:
        if self._header.e_shstrndx >= len(self._sections):
            return
        strtab_ofs = self._sections[self._header.e_shstrndx].sh_offset
        for sh in self._sections:
            self.seek(strtab_ofs + sh.sh_name)
            sh.name = self.read_string()

    # ------------------------------------------------------------------ #
    #  ELF header parsing
    # ------------------------------------------------------------------ #

    def _read_elf_header(self) -> None:
        """Parse the identification bytes and the ELF32 file header."""
        try:
            magic = bytes(self.read_ubyte() for _ in range(len(ELF_MAGIC)))
        except UnexpectedEOFError:
            magic = b""
        self._valid = magic == ELF_MAGIC
        if not self._valid:
            return

        h = self._header
        h.ei_class = self.read_ubyte()
        h.ei_data = self.read_ubyte()
        self.skip(10)  # version, OS ABI, padding
        h.e_type = self.read_ushort()
        h.e_machine = self.read_ushort()
        h.e_version = self.read_uint()
        self.skip(4)  # e_entry
        h.e_phoff = self.read_uint()
        h.e_shoff = self.read_uint()
        self.skip(6)  # e_flags, e_ehsize
        h.e_phentsize = self.read_ushort()
        h.e_phnum = self.read_ushort()
        h.e_shentsize = self.read_ushort()
        h.e_shnum = self.read_ushort()
        h.e_shstrndx = self.read_ushort()
        # entries narrower than the fields read per header cannot be walked
        if h.e_shnum and h.e_shentsize < _SHDR_FIELDS_SIZE:
            self._valid = False

    # ------------------------------------------------------------------ #
    #  Internal helpers
    # ------------------------------------------------------------------ #

    def _find_section_index(self, name: str) -> Optional[int]:
        for idx, sh in enumerate(self._sections):
            if sh.name == name:
                return idx
        return None

    def _find_current_section(self, offset: int) -> Optional[int]:
        for idx, sh in enumerate(self._sections):
            if sh.contains(offset):
                return idx
        return None

    # ------------------------------------------------------------------ #
    #  Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        self._raf.close()

    def __enter__(self) -> ElfReader:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
