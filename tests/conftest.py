"""Shared fixtures: synthetic ELF32 little-endian images built with struct."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

import pytest

from andlib.parsers.elf_reader import SHT_NOBITS, SHT_PROGBITS, SHT_STRTAB
from andlib.parsers.prelink import PRELINK_TAG

ELF_HEADER_SIZE = 52
SHDR_SIZE = 40


@dataclass
class Section:
    name: str
    data: bytes = b""
    address: int = 0
    sh_type: int = SHT_PROGBITS
    size: int | None = None  # declared size override (NOBITS)


@dataclass
class BuiltElf:
    """Raw image plus the layout a test needs to check it against."""
    image: bytes
    offsets: dict[str, int]
    name_indices: dict[str, int]
    shstrtab_offset: int
    shoff: int


def words(*values: int) -> bytes:
    return struct.pack(f"<{len(values)}I", *values)


def prelink_trailer(address: int) -> bytes:
    return struct.pack("<I", address) + PRELINK_TAG


def build_elf(
    sections: Sequence[Section],
    *,
    sh_entry_size: int = SHDR_SIZE,
    elf_class: int = 1,
    data_encoding: int = 1,
    magic: bytes = b"\x7fELF",
    trailer: bytes = b"",
) -> BuiltElf:
    """Lay out an ELF32 file: header, section contents, .shstrtab, then
    the section header table (entry 0 is the NULL section)."""
    names = bytearray(b"\x00")
    name_indices: dict[str, int] = {}
    for sec in sections:
        name_indices[sec.name] = len(names)
        names += sec.name.encode() + b"\x00"
    name_indices[".shstrtab"] = len(names)
    names += b".shstrtab\x00"

    body = bytearray(ELF_HEADER_SIZE)
    offsets: dict[str, int] = {}
    for sec in sections:
        offsets[sec.name] = len(body)
        if sec.sh_type != SHT_NOBITS:
            body += sec.data
            body += b"\x00" * (-len(body) % 4)

    shstrtab_offset = len(body)
    offsets[".shstrtab"] = shstrtab_offset
    body += names
    body += b"\x00" * (-len(body) % 4)

    shoff = len(body)
    pad = b"\x00" * (sh_entry_size - SHDR_SIZE)
    body += b"\x00" * sh_entry_size
    for sec in sections:
        size = sec.size if sec.size is not None else len(sec.data)
        body += struct.pack(
            "<10I",
            name_indices[sec.name], sec.sh_type, 0, sec.address,
            offsets[sec.name], size, 0, 0, 4, 0,
        ) + pad
    body += struct.pack(
        "<10I",
        name_indices[".shstrtab"], SHT_STRTAB, 0, 0,
        shstrtab_offset, len(names), 0, 0, 1, 0,
    ) + pad

    shnum = len(sections) + 2
    struct.pack_into(
        "<4sBBBB8xHHIIIIIHHHHHH",
        body, 0,
        magic, elf_class, data_encoding, 1, 0,
        3, 40, 1,        # ET_DYN, EM_ARM, EV_CURRENT
        0, 0, shoff, 0,  # entry, phoff, shoff, flags
        ELF_HEADER_SIZE, 32, 0,
        sh_entry_size, shnum, shnum - 1,
    )
    body += trailer
    return BuiltElf(bytes(body), offsets, name_indices, shstrtab_offset, shoff)


RODATA_ADDR = 0x1000
DATA_ADDR = 0x2000

# "native_drawText\0(I[CIIFFI)V\0drawText\0"
RODATA = b"native_drawText\x00(I[CIIFFI)V\x00drawText\x00"
NAME_OFS = 0
SIG_OFS = 16
NEW_OFS = 28


def jni_library(
    data_words: Sequence[int],
    *,
    rodata: bytes = RODATA,
    trailer: bytes = b"",
    extra: Sequence[Section] = (),
    **kwargs,
) -> BuiltElf:
    sections = [
        Section(".text", b"\x00" * 16, 0x800),
        Section(".rodata", rodata, RODATA_ADDR),
        Section(".data", words(*data_words), DATA_ADDR),
        *extra,
        Section(".bss", sh_type=SHT_NOBITS, size=64, address=0x3000),
    ]
    return build_elf(sections, trailer=trailer, **kwargs)


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[bytes, str], Path]:
    def _write(data: bytes, name: str = "libtest.so") -> Path:
        path = tmp_path / name
        path.write_bytes(data)
        return path
    return _write
