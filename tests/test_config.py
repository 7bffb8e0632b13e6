"""Tests for storage configuration."""

from pathlib import Path

from volatilestore.config import (
    DEFAULT_DIR_MODE,
    DEFAULT_DIRECTORY,
    DEFAULT_FILE_EXTENSION,
    StorageConfig,
)


class TestStorageConfig:
    """Test configuration defaults and normalization."""

    def test_defaults(self):
        config = StorageConfig()
        assert config.directory == DEFAULT_DIRECTORY
        assert config.directory.name == "storage"
        assert config.file_extension == DEFAULT_FILE_EXTENSION == ".cache"
        assert config.lock_timeout > 0
        assert config.sweep_on_start is True

    def test_dir_mode_is_octal(self):
        """Test that the directory mode is rwxr-x---."""
        assert DEFAULT_DIR_MODE == 0o750
        assert StorageConfig().dir_mode == 488

    def test_string_directory_converted(self):
        config = StorageConfig(directory="~/cache-dir")
        assert isinstance(config.directory, Path)
        assert config.directory == Path.home() / "cache-dir"

    def test_extension_gets_leading_dot(self):
        assert StorageConfig(file_extension="pev").file_extension == ".pev"
        assert StorageConfig(file_extension=".pev").file_extension == ".pev"

    def test_none_values_fall_back_to_defaults(self):
        config = StorageConfig(directory=None, file_extension=None)
        assert config.directory == DEFAULT_DIRECTORY
        assert config.file_extension == DEFAULT_FILE_EXTENSION


class TestFromOptions:
    """Test option mapping parsing."""

    def test_recognized_options(self, tmp_path):
        config = StorageConfig.from_options(
            {"directory": str(tmp_path), "fileExtension": ".pev"}
        )
        assert config.directory == tmp_path
        assert config.file_extension == ".pev"

    def test_snake_case_aliases(self, tmp_path):
        config = StorageConfig.from_options(
            {"file_extension": "dat", "lock_timeout": 2.5, "sweep_on_start": False}
        )
        assert config.file_extension == ".dat"
        assert config.lock_timeout == 2.5
        assert config.sweep_on_start is False

    def test_unrecognized_options_ignored(self):
        config = StorageConfig.from_options({"bogus": 1, "ttl": 30})
        assert config == StorageConfig()

    def test_none_options(self):
        assert StorageConfig.from_options(None) == StorageConfig()


class TestFromEnv:
    """Test environment variable configuration."""

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("VOLATILESTORE_DIR", str(tmp_path))
        monkeypatch.setenv("VOLATILESTORE_EXT", "pev")
        monkeypatch.setenv("VOLATILESTORE_LOCK_TIMEOUT", "1.5")

        config = StorageConfig.from_env()
        assert config.directory == tmp_path
        assert config.file_extension == ".pev"
        assert config.lock_timeout == 1.5

    def test_no_env_uses_defaults(self, monkeypatch):
        for name in ("VOLATILESTORE_DIR", "VOLATILESTORE_EXT", "VOLATILESTORE_LOCK_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)
        assert StorageConfig.from_env() == StorageConfig()
