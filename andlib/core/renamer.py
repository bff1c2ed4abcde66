"""
JNI Method Renamer
===================

Renames a JNI native method inside a compiled ELF32 shared object without
touching the layout of the file.

Libraries that register their natives through ``RegisterNatives`` carry
an array of ``JNINativeMethod`` records in ``.data``::

    struct JNINativeMethod {
        const char *name;       /* -> "native_drawText" in .rodata */
        const char *signature;  /* -> "(I[CIIFFI)V"     in .rodata */
        void       *fnPtr;
    };

Renaming a method therefore means pointing ``name`` at a different string
that is already present in ``.rodata``.  The engine:

    1. Computes the in-memory base of ``.rodata`` (adding the prelink
       base for prelinked libraries).
    2. Splits ``name(args)ret`` into the name and the signature.
    3. Finds every address of the name and of the signature, and the
       single best address of the replacement name, in ``.rodata``.
    4. Streams ``.data`` as 32-bit words and, wherever a name candidate
       is immediately followed by a signature candidate, overwrites the
       name pointer with the replacement address.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Optional

from shared.config import AndLibConfig
from shared.logger import AndLibLogger

from andlib.core.errors import (
    InvalidContainerError,
    InvalidSignatureError,
    MissingSectionError,
    NoMatchesFoundError,
    StringNotFoundError,
)
from andlib.core.models import RecordPatch, RenameResult, StringCandidates
from andlib.parsers.elf_reader import ELFCLASS32, ELFDATA2LSB, ElfReader
from andlib.parsers.prelink import detect_prelink


_WORD_SIZE: int = 4
_ADDRESS_MASK: int = 0xFFFFFFFF


def split_signature(function_signature: str) -> tuple[str, str]:
    """Split ``name(args)ret`` at the first ``(``.

    Returns:
        ``(name, "(args)ret")``

    Raises:
        InvalidSignatureError: If there is no ``(``.
    """
    split = function_signature.find("(")
    if split < 0:
        raise InvalidSignatureError(function_signature)
    return function_signature[:split], function_signature[split:]


class JNIRenamer:
    """Rename JNI methods registered in an ELF32 shared object.

    The file is opened read/write and patched in place, so callers should
    hand it a private copy (see :class:`~andlib.core.workspace.TempWorkspace`).

    Usage::

        with JNIRenamer("libfoo.so") as renamer:
            result = renamer.rename("native_drawText(I[CIIFFI)V", "drawText")
            print(result.match_count)

    Args:
        path:         File to patch.
        display_name: Name used in messages (defaults to *path*), useful
                      when *path* is a temporary copy.
        config:       Configuration; defaults are used if not provided.
        logger:       Logger instance; a new one is created if not provided.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        display_name: str | None = None,
        config: AndLibConfig | None = None,
        logger: AndLibLogger | None = None,
    ) -> None:
        self._path = Path(path)
        self._display_name = display_name or str(path)
        self._config: AndLibConfig = config or AndLibConfig()
        self._logger: AndLibLogger = logger or AndLibLogger("rename")

        self._prelink = detect_prelink(self._path)
        self._reader = ElfReader(
            self._path, "rw", buffer_size=self._config.rename.buffer_size
        )
        if self._reader.valid:
            try:
                self._reader.read_sections()
            except Exception:
                self._reader.close()
                raise

    @property
    def path(self) -> Path:
        return self._path

    @property
    def display_name(self) -> str:
        return self._display_name

    @property
    def prelink_address(self) -> Optional[int]:
        return self._prelink.address

    @property
    def reader(self) -> ElfReader:
        return self._reader

    # ------------------------------------------------------------------ #
    #  Rename
    # ------------------------------------------------------------------ #

    def rename(self, function_signature: str, new_name: str) -> RenameResult:
        """Point the registration record of *function_signature* at
        *new_name*.

        Args:
            function_signature: Full JNI signature, e.g.
                ``"native_drawText(I[CIIFFI)V"``.
            new_name: Replacement method name; must already exist as a
                string in the string section.

        Returns:
            A :class:`RenameResult` describing every rewritten record.

        Raises:
            InvalidContainerError: Not a (32-bit little-endian) ELF file.
            MissingSectionError: The string or data section is absent.
            InvalidSignatureError: *function_signature* lacks a ``(``.
            StringNotFoundError: A search string is empty or absent.
            NoMatchesFoundError: No record referenced the function.
        """
        start = time.perf_counter()
        with self._logger.operation("rename_jni"):
            result = self._rename(function_signature, new_name)
        result.duration_seconds = time.perf_counter() - start
        return result

    def _rename(self, function_signature: str, new_name: str) -> RenameResult:
        rcfg = self._config.rename
        self._check_container(rcfg.data_section, rcfg.string_section)

        string_addr = self._reader.section_address(rcfg.string_section) or 0
        data_addr = self._reader.section_address(rcfg.data_section) or 0
        string_base = string_addr
        if self._prelink.prelinked:
            string_base = (string_addr + (self._prelink.address or 0)) & _ADDRESS_MASK

        self._logger.debug("%s section @ 0x%08X", rcfg.string_section, string_addr)
        if self._prelink.prelinked:
            self._logger.debug("file prelinked @ 0x%08X", self._prelink.address)
            self._logger.debug("=> %s base @ 0x%08X", rcfg.string_section, string_base)

        func_name, only_sig = split_signature(function_signature)

        name_cands = self.find_string(
            func_name, rcfg.string_section, string_base, label="function name"
        )
        sig_cands = self.find_string(
            only_sig, rcfg.string_section, string_base, label="signature"
        )
        new_cands = self.find_string(
            new_name, rcfg.string_section, string_base,
            label="new function name", best_only=True,
        )
        new_address = new_cands.addresses[0]

        patches = self._patch_records(
            rcfg.data_section,
            set(name_cands.addresses),
            set(sig_cands.addresses),
            new_address,
        )

        if not patches:
            raise NoMatchesFoundError(function_signature, rcfg.data_section)
        if len(patches) > 1:
            self._logger.warning(
                "Found and replaced %d matches in %s",
                len(patches),
                self._display_name,
            )

        return RenameResult(
            path=self._display_name,
            function_signature=function_signature,
            function_name=func_name,
            signature=only_sig,
            new_name=new_name,
            string_section=rcfg.string_section,
            data_section=rcfg.data_section,
            string_section_address=string_addr,
            data_section_address=data_addr,
            prelink_address=self._prelink.address,
            string_base_address=string_base,
            name_candidates=name_cands,
            signature_candidates=sig_cands,
            new_name_candidates=new_cands,
            new_name_address=new_address,
            patches=patches,
        )

    def _check_container(self, data_section: str, string_section: str) -> None:
        reader = self._reader
        if not reader.valid:
            raise InvalidContainerError(self._display_name)
        if reader.elf_class != ELFCLASS32 or reader.data_encoding != ELFDATA2LSB:
            raise InvalidContainerError(
                self._display_name,
                "not a 32-bit little-endian ELF "
                f"(class {reader.elf_class}, encoding {reader.data_encoding})",
            )
        for section in (data_section, string_section):
            if not reader.has_section(section):
                raise MissingSectionError(self._display_name, section)

    # ------------------------------------------------------------------ #
    #  Record scan
    # ------------------------------------------------------------------ #

    def _patch_records(
        self,
        section: str,
        name_addresses: set[int],
        sig_addresses: set[int],
        new_address: int,
    ) -> list[RecordPatch]:
        """Rewrite every ``(name, signature)`` word pair in *section*."""
        reader = self._reader
        section_addr = reader.section_address(section) or 0
        self._logger.debug("Searching %s for occurrences of the function...", section)

        patches: list[RecordPatch] = []
        reader.seek_section(section, 0)
        last_value: Optional[int] = None
        while reader.remaining_in_section() >= _WORD_SIZE:
            cur_value = reader.read_uint()
            if (
                last_value is not None
                and last_value in name_addresses
                and cur_value in sig_addresses
            ):
                ofs = (reader.current_offset_in_section() or 0) - 2 * _WORD_SIZE
                self._logger.debug(
                    "  found match @ 0x%08X replace to new offset: 0x%08X",
                    section_addr + ofs,
                    new_address,
                )
                reader.reseek(-2 * _WORD_SIZE)
                reader.write_uint(new_address)
                reader.skip(_WORD_SIZE)
                patches.append(RecordPatch(
                    address=section_addr + ofs,
                    file_offset=reader.section_offset_to_file_offset(section, ofs) or 0,
                    old_value=last_value,
                    new_value=new_address,
                    signature_value=cur_value,
                ))
            last_value = cur_value
        return patches

    # ------------------------------------------------------------------ #
    #  String search
    # ------------------------------------------------------------------ #

    def find_string(
        self,
        value: str,
        section: str,
        base_address: int,
        *,
        label: str = "string",
        best_only: bool = False,
    ) -> StringCandidates:
        """Collect the addresses of *value* in *section*.

        Each hit's section-relative offset is biased by *base_address*.
        With *best_only* the search stops at the first exact hit and only
        that one is kept; without an exact hit the last partial one is.

        Raises:
            StringNotFoundError: If *value* is empty or never found.
        """
        if not value:
            raise StringNotFoundError(label, value, section)

        self._logger.debug('Searching %s for %s "%s"...', section, label, value)
        reader = self._reader
        section_addr = reader.section_address(section) or 0
        reader.seek_section(section, 0)

        addresses: set[int] = set()
        last_match: Optional[int] = None
        while (found := reader.seek_string(value)) is not None:
            address = (found + base_address) & _ADDRESS_MASK
            self._logger.debug("  found %s @ 0x%08X", label, found + section_addr)
            if best_only:
                last_match = address
                if reader.last_match_exact:
                    break
            else:
                addresses.add(address)

        if best_only and last_match is not None:
            addresses.add(last_match)

        if not addresses:
            raise StringNotFoundError(label, value, section)

        return StringCandidates(
            label=label,
            value=value,
            best_only=best_only,
            addresses=sorted(addresses),
        )

    # ------------------------------------------------------------------ #
    #  Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        self._reader.close()

    def __enter__(self) -> JNIRenamer:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Module-level convenience
# ---------------------------------------------------------------------------

def rename_jni(
    path: str | Path,
    function_signature: str,
    new_name: str,
    *,
    display_name: str | None = None,
    config: AndLibConfig | None = None,
    logger: AndLibLogger | None = None,
) -> RenameResult:
    """Open *path*, rename one JNI method in place and close the file."""
    with JNIRenamer(
        path, display_name=display_name, config=config, logger=logger
    ) as renamer:
        return renamer.rename(function_signature, new_name)
