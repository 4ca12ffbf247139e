"""
Tests for configuration module.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from kvdisk.config import (
    PREFIX,
    Settings,
    StorageConfig,
    default_root,
    get_settings,
    storage_dir_name,
    user_cache_dir,
)
from kvdisk.exceptions import ConfigurationError, DirectoryUnavailableError
from kvdisk.types import EvictionOrder, ProtectionLevel, SizeAccounting


class TestSettings:
    """Tests for Settings loading and validation."""

    def test_settings_loads_from_env(self, mock_env_vars: dict[str, str]) -> None:
        """Test that settings correctly loads from environment variables."""
        settings = get_settings()

        assert settings.CACHE_DIR == Path(mock_env_vars["CACHE_DIR"])
        assert settings.MAX_SIZE == 4096
        assert settings.PROTECTION_LEVEL is ProtectionLevel.NONE
        assert settings.EVICTION_ORDER is EvictionOrder.OLDEST_FIRST
        assert settings.SIZE_ACCOUNTING is SizeAccounting.LOGICAL
        assert settings.READ_WORKERS == 2
        assert settings.LOG_LEVEL == "DEBUG"

    def test_defaults(self) -> None:
        """Test defaults when nothing is configured."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.CACHE_DIR is None
        assert settings.MAX_SIZE == 0
        assert settings.EVICTION_ORDER is EvictionOrder.NEWEST_FIRST
        assert settings.SIZE_ACCOUNTING is SizeAccounting.ALLOCATED

    def test_empty_cache_dir_is_unset(self) -> None:
        """Test that CACHE_DIR="" means no base directory."""
        with patch.dict(os.environ, {"CACHE_DIR": ""}, clear=False):
            assert Settings(_env_file=None).CACHE_DIR is None

    def test_negative_max_size_rejected(self) -> None:
        """Test that MAX_SIZE must not be negative."""
        with patch.dict(os.environ, {"MAX_SIZE": "-1"}, clear=False):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_unknown_eviction_order_rejected(self) -> None:
        """Test that EVICTION_ORDER only accepts known orders."""
        with patch.dict(os.environ, {"EVICTION_ORDER": "random"}, clear=False):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_get_settings_is_cached(self, mock_env_vars: dict[str, str]) -> None:
        """Test that get_settings returns the same instance."""
        assert get_settings() is get_settings()

    def test_redacted_display(self, mock_env_vars: dict[str, str]) -> None:
        """Test the display mapping used by the CLI."""
        display = get_settings().redacted_display()
        assert display["MAX_SIZE"] == 4096
        assert display["EVICTION_ORDER"] == "oldest_first"


class TestDirectories:
    """Tests for default directory resolution."""

    def test_storage_dir_name_capitalises_name(self) -> None:
        """Test that the directory name is the prefix plus the capitalised name."""
        assert storage_dir_name("images") == f"{PREFIX}.Images"
        assert storage_dir_name("user avatars") == f"{PREFIX}.User Avatars"
        assert storage_dir_name("JSON") == f"{PREFIX}.Json"

    def test_xdg_cache_home_wins(self, temp_dir: Path) -> None:
        """Test that XDG_CACHE_HOME is used when set."""
        with patch.dict(os.environ, {"XDG_CACHE_HOME": str(temp_dir)}, clear=False):
            assert user_cache_dir() == temp_dir
            assert default_root("images") == temp_dir / f"{PREFIX}.Images"

    def test_default_root_with_base_dir(self, temp_dir: Path) -> None:
        """Test that an explicit base directory bypasses platform lookup."""
        assert default_root("images", temp_dir) == temp_dir / f"{PREFIX}.Images"

    @pytest.mark.skipif(sys.platform == "win32", reason="LOCALAPPDATA is used on Windows")
    def test_unresolvable_home_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a missing home directory is a recoverable error."""
        monkeypatch.delenv("XDG_CACHE_HOME", raising=False)

        def no_home() -> Path:
            raise RuntimeError("Could not determine home directory.")

        monkeypatch.setattr(Path, "home", staticmethod(no_home))

        with pytest.raises(DirectoryUnavailableError):
            user_cache_dir()


class TestStorageConfig:
    """Tests for StorageConfig."""

    def test_validation(self, temp_dir: Path) -> None:
        """Test that invalid values raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            StorageConfig(name="", root=temp_dir)
        with pytest.raises(ConfigurationError):
            StorageConfig(name="x", root=temp_dir, max_size=-5)
        with pytest.raises(ConfigurationError):
            StorageConfig(name="x", root=temp_dir, read_workers=0)

    def test_is_immutable(self, temp_dir: Path) -> None:
        """Test that the config cannot be changed after construction."""
        config = StorageConfig(name="x", root=temp_dir)
        with pytest.raises(AttributeError):
            config.max_size = 10  # type: ignore[misc]

    def test_from_settings(self, mock_env_vars: dict[str, str]) -> None:
        """Test that settings fill in the config and CACHE_DIR is the base dir."""
        config = StorageConfig.from_settings("thumbs")

        assert config.root == Path(mock_env_vars["CACHE_DIR"]) / f"{PREFIX}.Thumbs"
        assert config.max_size == 4096
        assert config.eviction_order is EvictionOrder.OLDEST_FIRST
        assert config.size_accounting is SizeAccounting.LOGICAL
        assert config.read_workers == 2
        assert config.full_name == f"{PREFIX}.Thumbs"

    def test_from_settings_explicit_root(
        self, mock_env_vars: dict[str, str], temp_dir: Path
    ) -> None:
        """Test that an explicit root is used verbatim."""
        config = StorageConfig.from_settings("thumbs", root=temp_dir / "elsewhere")
        assert config.root == temp_dir / "elsewhere"
