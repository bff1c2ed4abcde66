"""Tests for the section-aware ELF reader."""

from __future__ import annotations

import struct

import pytest

from andlib.parsers.elf_reader import (
    ELFCLASS32,
    ELFDATA2LSB,
    SHT_NOBITS,
    ElfReader,
)

from conftest import DATA_ADDR, RODATA_ADDR, Section, build_elf, jni_library


def open_reader(path, mode="r", **kwargs) -> ElfReader:
    reader = ElfReader(path, mode, **kwargs)
    reader.read_sections()
    return reader


def test_header_fields(write_file):
    built = jni_library([0])
    with open_reader(write_file(built.image)) as reader:
        assert reader.valid
        assert reader.elf_class == ELFCLASS32
        assert reader.data_encoding == ELFDATA2LSB
        assert reader.elf_type == 3
        assert reader.machine == 40
        assert reader.version == 1
        assert reader.section_header_offset == built.shoff
        assert reader.program_header_table == (0, 32, 0)


def test_section_names_resolve_through_name_table(write_file):
    built = jni_library([0])
    path = write_file(built.image)
    with open_reader(path) as reader:
        sections = reader.sections

    assert [s.name for s in sections] == [
        "", ".text", ".rodata", ".data", ".bss", ".shstrtab",
    ]
    raw = path.read_bytes()
    for summary in sections[1:]:
        start = built.shstrtab_offset + built.name_indices[summary.name]
        end = raw.index(b"\x00", start)
        assert raw[start:end].decode() == summary.name


def test_entry_stride_padding_is_skipped(write_file):
    built = jni_library([0], sh_entry_size=56)
    with open_reader(write_file(built.image)) as reader:
        assert reader.section_address(".rodata") == RODATA_ADDR
        assert reader.section_address(".data") == DATA_ADDR
        assert reader.find_section(".shstrtab") is not None


def test_bad_magic_is_invalid_and_inert(write_file):
    built = jni_library([0], magic=b"\x7fELG")
    with open_reader(write_file(built.image)) as reader:
        assert not reader.valid
        assert reader.sections == []
        assert not reader.has_section(".rodata")
        assert reader.section_address(".rodata") is None
        reader.seek_section(".rodata")
        assert reader.current_section() is None
        assert reader.seek_string("drawText") is None


def test_tiny_file_is_invalid(write_file):
    with ElfReader(write_file(b"\x7fE")) as reader:
        assert not reader.valid


def test_unknown_section_queries(write_file):
    with open_reader(write_file(jni_library([0]).image)) as reader:
        assert reader.section_address(".nope") is None
        assert reader.section_offset_to_file_offset(".nope", 4) is None
        reader.seek_section(".nope", 0)
        assert reader.current_section() is None
        assert reader.current_offset_in_section() is None
        assert reader.finished_section()


def test_section_offset_translation(write_file):
    built = jni_library([0])
    with open_reader(write_file(built.image)) as reader:
        assert reader.section_offset_to_file_offset(".data", 8) == built.offsets[".data"] + 8


def test_seek_tracks_current_section(write_file):
    built = jni_library([0x11, 0x22])
    with open_reader(write_file(built.image)) as reader:
        reader.seek(built.offsets[".rodata"] + 3)
        assert reader.current_section() == ".rodata"
        assert reader.current_offset_in_section() == 3
        reader.seek(built.offsets[".data"] + 4)
        assert reader.current_section() == ".data"
        assert reader.read_uint() == 0x22
        reader.reseek(-8)
        assert reader.current_offset_in_section() == 0
        assert reader.read_uint() == 0x11
        reader.seek(0)
        assert reader.current_section() is None


def test_seek_picks_first_containing_section(write_file):
    sections = [
        Section(".a", b"A" * 16, 0x100),
        Section(".b", b"B" * 8, 0x200),
    ]
    built = build_elf(sections)
    raw = bytearray(built.image)
    # make .b's header claim the same range as .a
    b_entry = built.shoff + 2 * 40
    struct.pack_into("<I", raw, b_entry + 16, built.offsets[".a"])
    with open_reader(write_file(bytes(raw))) as reader:
        reader.seek(built.offsets[".a"] + 2)
        assert reader.current_section() == ".a"


def test_nobits_section_is_finished_on_entry(write_file):
    sections = [
        Section(".data", b"\x01" * 8, 0x100),
        Section(".bss", sh_type=SHT_NOBITS, size=100, address=0x200),
        Section(".tail", b"\x02" * 8, 0x300),
    ]
    with open_reader(write_file(build_elf(sections).image)) as reader:
        bss = reader.find_section(".bss")
        assert bss.size == 100 and bss.effective_size == 0
        reader.seek_section(".bss")
        assert reader.current_section() == ".bss"
        assert reader.finished_section()
        assert reader.seek_string("x") is None


def test_empty_section_stays_current(write_file):
    sections = [
        Section(".empty", b"", 0x100),
        Section(".next", b"abc\x00", 0x200),
    ]
    with open_reader(write_file(build_elf(sections).image)) as reader:
        reader.seek_section(".empty")
        assert reader.current_section() == ".empty"
        assert reader.finished_section()


def test_finished_section_after_reading_all_bytes(write_file):
    with open_reader(write_file(jni_library([1, 2, 3]).image)) as reader:
        reader.seek_section(".data")
        for _ in range(3):
            assert not reader.finished_section()
            reader.read_uint()
        assert reader.finished_section()


# ---------------------------------------------------------------------------
# seek_string
# ---------------------------------------------------------------------------

def strings_reader(write_file, payload: bytes) -> ElfReader:
    sections = [
        Section(".rodata", payload, 0x1000),
        Section(".after", b"foo\x00", 0x2000),
    ]
    return open_reader(write_file(build_elf(sections).image), buffer_size=5)


def test_seek_string_finds_exact_and_partial_matches(write_file):
    with strings_reader(write_file, b"xfoo\x00foo\x00bar\x00") as reader:
        reader.seek_section(".rodata")
        assert reader.seek_string("foo") == 1
        assert not reader.last_match_exact
        assert reader.current_offset_in_section() == 5
        assert reader.seek_string("foo") == 5
        assert reader.last_match_exact
        assert reader.seek_string("foo") is None


def test_seek_string_ignores_prefix_matches(write_file):
    with strings_reader(write_file, b"foobar\x00fo\x00") as reader:
        reader.seek_section(".rodata")
        assert reader.seek_string("foo") is None


def test_seek_string_stays_inside_section(write_file):
    with strings_reader(write_file, b"abc\x00") as reader:
        reader.seek_section(".rodata")
        # ".after" holds "foo" but lies beyond the current section
        assert reader.seek_string("foo") is None
        assert reader.finished_section()


def test_seek_string_reported_offset_rereads_pattern(write_file):
    with strings_reader(write_file, b"\x00native_drawText\x00drawText\x00") as reader:
        reader.seek_section(".rodata")
        hits = []
        while (ofs := reader.seek_string("drawText")) is not None:
            hits.append((ofs, reader.last_match_exact))
        assert hits == [(8, False), (17, True)]
        for ofs, _ in hits:
            reader.seek_section(".rodata", ofs)
            assert reader.read_string() == "drawText"


def test_seek_string_accepts_bytes(write_file):
    with strings_reader(write_file, b"(I)V\x00") as reader:
        reader.seek_section(".rodata")
        assert reader.seek_string(b"(I)V") == 0


def test_seek_string_rejects_empty_pattern(write_file):
    with strings_reader(write_file, b"abc\x00") as reader:
        reader.seek_section(".rodata")
        with pytest.raises(ValueError):
            reader.seek_string("")


def test_write_through_reader(write_file):
    built = jni_library([0x11111111, 0x22222222])
    path = write_file(built.image)
    with open_reader(path, "rw") as reader:
        reader.seek_section(".data", 4)
        reader.write_uint(0xCAFEBABE)
    raw = path.read_bytes()
    data_ofs = built.offsets[".data"]
    assert struct.unpack_from("<2I", raw, data_ofs) == (0x11111111, 0xCAFEBABE)


def test_too_narrow_entry_stride_is_invalid(write_file):
    built = jni_library([0], sh_entry_size=20)
    with open_reader(write_file(built.image)) as reader:
        assert not reader.valid
        assert reader.sections == []
