"""
AndLibUtils Configuration Management
=====================================

Centralized configuration for the AndLibUtils tools using Python
dataclasses and TOML-based persistence.

A configuration file is optional.  When present it may contain a
``[global]`` table (logging) and a ``[rename]`` table (JNI renamer)::

    [global]
    log_level = "DEBUG"
    log_file = "andlib.log"
    log_json = true

    [rename]
    string_section = ".rodata"
    data_section = ".data"
    buffer_size = 4096
    temp_suffix = ".temp"

References:
    - TOML v1.0.0 Specification. https://toml.io/en/v1.0.0
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[no-redef]


# ---------------------------------------------------------------------------
# Default configuration file path relative to the project root
# ---------------------------------------------------------------------------
_DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent.parent / "andlib.toml"


# ========================== Tool-Specific Configs ==========================


@dataclass(frozen=False, slots=True)
class RenameConfig:
    """Configuration for the JNI renamer.

    Names the section searched for strings and the section scanned for
    method-registration records, the read-ahead block size of the
    buffered stream, and the suffix of temporary working copies.
    """

    string_section: str = ".rodata"
    data_section: str = ".data"
    buffer_size: int = 1024
    temp_suffix: str = ".temp"


# =========================== Global Settings ===============================


@dataclass(frozen=False, slots=True)
class GlobalConfig:
    """Global settings shared across all AndLibUtils commands."""

    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_json: bool = False


# =========================== Master Config =================================


@dataclass(frozen=False, slots=True)
class AndLibConfig:
    """Master configuration aggregating global and tool settings.

    Usage:
        >>> config = AndLibConfig.load()                 # from default path
        >>> config = AndLibConfig.load("custom.toml")    # from custom path
        >>> print(config.rename.data_section)
        '.data'
    """

    global_settings: GlobalConfig = field(default_factory=GlobalConfig)
    rename: RenameConfig = field(default_factory=RenameConfig)

    # ------------------------------------------------------------------ #
    #  TOML Loading
    # ------------------------------------------------------------------ #

    @classmethod
    def load(cls, path: str | Path | None = None) -> AndLibConfig:
        """Load configuration from a TOML file.

        If *path* is ``None`` the loader looks for ``andlib.toml`` in the
        project root.  Missing keys fall back to dataclass defaults.

        Raises:
            FileNotFoundError: If the specified path does not exist
                *and* was explicitly provided by the caller.
        """
        config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH

        if not config_path.exists():
            if path is not None:
                raise FileNotFoundError(
                    f"Configuration file not found: {config_path}"
                )
            return cls()

        with open(config_path, "rb") as fh:
            raw: dict[str, Any] = tomllib.load(fh)

        return cls(
            global_settings=cls._build_section(GlobalConfig, raw.get("global", {})),
            rename=cls._build_section(RenameConfig, raw.get("rename", {})),
        )

    # ------------------------------------------------------------------ #
    #  Serialisation helpers
    # ------------------------------------------------------------------ #

    def to_dict(self) -> dict[str, Any]:
        """Serialise the entire configuration tree to a plain dictionary."""
        return asdict(self)

    # ------------------------------------------------------------------ #
    #  Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _build_section(cls: type, data: dict[str, Any]) -> Any:
        """Instantiate a dataclass *cls* using only the keys it declares.

        Unknown keys in the TOML source are silently ignored.
        """
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}  # type: ignore[attr-defined]
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        return cls(**filtered)

