import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

import pas_migration_toolkit.shared.globals as globals_module
from pas_migration_toolkit.shared.globals import (
    load_global_output_directory,
    save_global_output_directory,
    set_global_output_directory,
)


class TestGlobals:
    """Test cases for global state management functions."""

    @pytest.fixture(autouse=True)
    def isolated_config(self, tmp_path):
        """Point the config file at a temporary home and reset global state."""
        self.temp_dir = tmp_path
        self.config_file = tmp_path / "home" / ".pas_migration_toolkit" / "output_dir.json"
        globals_module.GLOBAL_OUTPUT_DIR = None
        with patch.object(globals_module, '_config_file', return_value=self.config_file):
            yield
        globals_module.GLOBAL_OUTPUT_DIR = None

    def write_config(self, content):
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(content)

    def test_load_global_output_directory_success(self):
        """Test successful loading of global output directory."""
        test_output_dir = self.temp_dir / "test_output"
        test_output_dir.mkdir()
        self.write_config(json.dumps({"output_dir": str(test_output_dir)}))

        result = load_global_output_directory()

        assert result == test_output_dir
        assert globals_module.GLOBAL_OUTPUT_DIR == test_output_dir

    def test_load_global_output_directory_no_config_file(self):
        """Test loading when config file doesn't exist."""
        assert load_global_output_directory() is None
        assert globals_module.GLOBAL_OUTPUT_DIR is None

    def test_load_global_output_directory_invalid_config(self):
        """Test loading with invalid config file."""
        self.write_config("invalid json")

        assert load_global_output_directory() is None
        assert globals_module.GLOBAL_OUTPUT_DIR is None

    def test_load_global_output_directory_nonexistent_directory(self):
        """Test loading when directory in config doesn't exist."""
        self.write_config(json.dumps({"output_dir": "/nonexistent/directory"}))

        assert load_global_output_directory() is None

    def test_save_global_output_directory_success(self):
        """Test successful saving of global output directory."""
        test_output_dir = self.temp_dir / "test_output"
        test_output_dir.mkdir()

        save_global_output_directory(test_output_dir)

        assert globals_module.GLOBAL_OUTPUT_DIR == test_output_dir
        assert json.loads(self.config_file.read_text())["output_dir"] == str(test_output_dir)

    def test_set_global_output_directory_success(self):
        """Test successful setting of global output directory."""
        mock_logger = MagicMock()
        test_dir = self.temp_dir / "new_output"

        result = set_global_output_directory(str(test_dir), mock_logger)

        assert result is True
        assert globals_module.GLOBAL_OUTPUT_DIR == test_dir.resolve()
        assert test_dir.is_dir()
        mock_logger.info.assert_called()

    def test_set_global_output_directory_not_directory(self):
        """Test setting global output directory when path is not a directory."""
        mock_logger = MagicMock()
        test_file = self.temp_dir / "test_file"
        test_file.write_text("test")

        result = set_global_output_directory(str(test_file), mock_logger)

        assert result is False
        mock_logger.error.assert_called()

    def test_set_global_output_directory_permission_error(self):
        """Test setting global output directory with permission error."""
        mock_logger = MagicMock()

        with patch("pathlib.Path.mkdir", side_effect=PermissionError("Permission denied")):
            result = set_global_output_directory(str(self.temp_dir / "denied"), mock_logger)

        assert result is False
        mock_logger.error.assert_called()

    def test_global_output_directory_persistence(self):
        """Test that global output directory persists across function calls."""
        test_output_dir = self.temp_dir / "persistent_output"
        test_output_dir.mkdir()

        save_global_output_directory(test_output_dir)
        globals_module.GLOBAL_OUTPUT_DIR = None

        assert load_global_output_directory() == test_output_dir
        assert globals_module.GLOBAL_OUTPUT_DIR == test_output_dir

    def test_global_output_directory_resolution(self, monkeypatch):
        """Test that relative paths are resolved to absolute paths."""
        monkeypatch.chdir(self.temp_dir)

        result = set_global_output_directory("relative_output", MagicMock())

        assert result is True
        assert globals_module.GLOBAL_OUTPUT_DIR.is_absolute()
        assert globals_module.GLOBAL_OUTPUT_DIR.name == "relative_output"
