"""
AndLib Data Models
===================

Pydantic models for the values AndLibUtils reports back to its callers:
prelink status, section summaries, string-search candidates and the
outcome of a JNI rename.

Addresses are plain integers; ``None`` stands for "not present" so a
missing value can never be mistaken for a real address.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Prelink
# ---------------------------------------------------------------------------

class PrelinkInfo(BaseModel):
    """Prelink status of a single file.

    Attributes:
        path: Filesystem path of the inspected file.
        address: Base address recovered from the ``PRE `` trailer, or
            ``None`` when the file is not prelinked.
    """
    path: str = ""
    address: Optional[int] = None

    @property
    def prelinked(self) -> bool:
        return self.address is not None

    @property
    def filename(self) -> str:
        return Path(self.path).name


class PrelinkMapEntry(BaseModel):
    """One line of a prelink map: either a :class:`PrelinkInfo` or the
    error that prevented inspecting the file."""
    path: str
    info: Optional[PrelinkInfo] = None
    error: Optional[str] = None

    @property
    def filename(self) -> str:
        return Path(self.path).name


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

class SectionSummary(BaseModel):
    """Read-only view of a parsed section header.

    Attributes:
        index: Position in the section header table.
        name: Resolved section name (empty until names are resolved).
        type: Raw ``sh_type`` value.
        address: Virtual address when loaded.
        offset: File offset of the section contents.
        size: Declared size in bytes.
        effective_size: Bytes actually present in the file (0 for NOBITS).
    """
    index: int
    name: str = ""
    type: int = 0
    address: int = 0
    offset: int = 0
    size: int = 0
    effective_size: int = 0


# ---------------------------------------------------------------------------
# Rename results
# ---------------------------------------------------------------------------

class StringCandidates(BaseModel):
    """Resolved in-memory addresses at which a search string was found.

    Attributes:
        label: What was searched for (``"function name"``, ...).
        value: The searched string.
        best_only: Whether the search kept only the best match.
        addresses: Sorted unique addresses (already biased by the
            section base and prelink address).
    """
    label: str
    value: str
    best_only: bool = False
    addresses: list[int] = Field(default_factory=list)


class RecordPatch(BaseModel):
    """A rewritten method-registration record.

    Attributes:
        address: Virtual address of the record's name field.
        file_offset: File offset of the name field.
        old_value: Name pointer before the rewrite.
        new_value: Name pointer written in its place.
        signature_value: Signature pointer of the record (left untouched).
    """
    address: int
    file_offset: int
    old_value: int
    new_value: int
    signature_value: int


class RenameResult(BaseModel):
    """Outcome of a successful :meth:`JNIRenamer.rename` call."""
    path: str = ""
    function_signature: str = ""
    function_name: str = ""
    signature: str = ""
    new_name: str = ""
    string_section: str = ".rodata"
    data_section: str = ".data"
    string_section_address: int = 0
    data_section_address: int = 0
    prelink_address: Optional[int] = None
    string_base_address: int = 0
    name_candidates: Optional[StringCandidates] = None
    signature_candidates: Optional[StringCandidates] = None
    new_name_candidates: Optional[StringCandidates] = None
    new_name_address: int = 0
    patches: list[RecordPatch] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def match_count(self) -> int:
        return len(self.patches)

    @property
    def multiple_matches(self) -> bool:
        """More than one record rewritten; one is the common case."""
        return len(self.patches) > 1
