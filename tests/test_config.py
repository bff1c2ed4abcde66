"""Tests for TOML configuration loading."""

from __future__ import annotations

import pytest

from shared.config import AndLibConfig, RenameConfig


def test_defaults():
    config = AndLibConfig()
    assert config.rename == RenameConfig()
    assert config.rename.string_section == ".rodata"
    assert config.rename.data_section == ".data"
    assert config.rename.buffer_size == 1024
    assert config.global_settings.log_level == "INFO"


def test_load_merges_with_defaults(tmp_path):
    path = tmp_path / "andlib.toml"
    path.write_text(
        "[global]\n"
        'log_level = "DEBUG"\n'
        "log_json = true\n"
        "\n"
        "[rename]\n"
        "buffer_size = 4096\n"
        'color = "blue"\n',
        encoding="utf-8",
    )
    config = AndLibConfig.load(path)
    assert config.global_settings.log_level == "DEBUG"
    assert config.global_settings.log_json is True
    assert config.rename.buffer_size == 4096
    assert config.rename.data_section == ".data"


def test_explicit_missing_path_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        AndLibConfig.load(tmp_path / "absent.toml")


def test_to_dict():
    data = AndLibConfig().to_dict()
    assert data["rename"]["temp_suffix"] == ".temp"
    assert data["global_settings"]["log_file"] is None
