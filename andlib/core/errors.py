"""
AndLib Error Hierarchy
=======================

Typed exceptions raised by the ELF reader and the JNI renaming engine.
Every failure aborts the current rename; the CLI maps these classes to
process exit codes and user-facing messages.
"""

from __future__ import annotations


class AndLibError(Exception):
    """Root of all AndLibUtils errors."""

    pass


class InvalidContainerError(AndLibError):
    """The file is not an ELF image the reader can work with."""

    def __init__(self, path: str, reason: str = "not a valid ELF") -> None:
        super().__init__(f"File {path} is {reason}")
        self.path = path
        self.reason = reason


class MissingSectionError(AndLibError):
    """A section required by the engine is absent from the file."""

    def __init__(self, path: str, section: str) -> None:
        super().__init__(f"File {path} does not have a {section} section")
        self.path = path
        self.section = section


class InvalidSignatureError(AndLibError, ValueError):
    """The function signature has no ``(`` separating name and arguments."""

    def __init__(self, signature: str) -> None:
        super().__init__(f"Invalid function signature: {signature!r}")
        self.signature = signature


class StringNotFoundError(AndLibError):
    """One of the searched strings is empty or absent from the section."""

    def __init__(self, label: str, value: str, section: str) -> None:
        if value:
            msg = f"{label} not found in {section}: {value!r}"
        else:
            msg = f"Invalid {label} - empty string"
        super().__init__(msg)
        self.label = label
        self.value = value
        self.section = section


class NoMatchesFoundError(AndLibError):
    """No method-registration record referenced the requested function."""

    def __init__(self, signature: str, section: str) -> None:
        super().__init__(
            f"Found no registration record for {signature!r} in {section}"
        )
        self.signature = signature
        self.section = section


class AndLibIOError(AndLibError):
    """Underlying open/read/write/seek failure."""

    pass


class UnexpectedEOFError(AndLibIOError, EOFError):
    """A read needed more bytes than the file holds."""

    def __init__(self, position: int) -> None:
        super().__init__(f"Unexpected end of file at offset 0x{position:X}")
        self.position = position
