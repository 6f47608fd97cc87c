"""Tests for cellcalc.yaml configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from cellcalc.config import CONFIG_FILENAME, DEFAULT_CONFIG, load_config, write_default_config


class TestLoadConfig:
    def test_no_dir_returns_defaults(self) -> None:
        assert load_config() == DEFAULT_CONFIG

    def test_missing_file_returns_defaults(self, tmp_path: Path) -> None:
        assert load_config(tmp_path) == DEFAULT_CONFIG

    def test_defaults_not_shared(self) -> None:
        cfg = load_config()
        cfg["snapshot_indent"] = 8
        assert DEFAULT_CONFIG["snapshot_indent"] == 2

    def test_override(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("snapshot_indent: 4\nlogging_fsync: true\n")
        cfg = load_config(str(tmp_path))
        assert cfg["snapshot_indent"] == 4
        assert cfg["logging_fsync"] is True
        assert cfg["logging_max_value_len"] == 256

    def test_empty_file_returns_defaults(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        assert load_config(tmp_path) == DEFAULT_CONFIG

    def test_non_mapping_rejected(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="must contain a mapping"):
            load_config(tmp_path)


class TestWriteDefaultConfig:
    def test_writes_loadable_file(self, tmp_path: Path) -> None:
        path = write_default_config(tmp_path / "proj")
        assert path == tmp_path / "proj" / CONFIG_FILENAME
        assert yaml.safe_load(path.read_text()) == {"snapshot_indent": 2, "logging_fsync": False}
        assert load_config(tmp_path / "proj") == DEFAULT_CONFIG

    def test_refuses_to_overwrite(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("snapshot_indent: 0\n")
        with pytest.raises(FileExistsError):
            write_default_config(tmp_path)
        assert "0" in (tmp_path / CONFIG_FILENAME).read_text()
