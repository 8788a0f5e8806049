"""Tests for distpatch.settings — TOML layout config loading."""

from pathlib import Path

import pytest

from distpatch.schemas.patch import PatcherConfig
from distpatch.settings import load_patcher_config

# Path to the real config file shipped with the package
_CONFIG_DIR = Path(__file__).parent.parent / "distpatch" / "config"


class TestLoadPatcherConfig:
    def test_loads_shipped_defaults(self):
        config = load_patcher_config(_CONFIG_DIR / "defaults.toml")
        assert config == PatcherConfig()

    def test_default_path(self):
        assert load_patcher_config().backups_dir == "data/patch/backups"

    def test_partial_override(self, tmp_path):
        path = tmp_path / "layout.toml"
        path.write_text('[patcher]\nsystem_dir = "repo"\n')
        config = load_patcher_config(path)
        assert config.system_dir == "repo"
        assert config.startup_file == "etc/startup.properties"

    def test_missing_section_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.toml"
        path.write_text("")
        assert load_patcher_config(path) == PatcherConfig()

    def test_missing_file_raises(self):
        with pytest.raises(FileNotFoundError):
            load_patcher_config(Path("/nonexistent/layout.toml"))

    def test_unknown_key_raises(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('[patcher]\nstartup = "x"\n')
        with pytest.raises(ValueError, match="Invalid \\[patcher\\]"):
            load_patcher_config(path)

    def test_non_table_section_raises(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('patcher = "x"\n')
        with pytest.raises(ValueError, match="must be a table"):
            load_patcher_config(path)
