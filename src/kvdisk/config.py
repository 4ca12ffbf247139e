"""
Configuration management using pydantic-settings.

Settings are loaded from environment variables and .env files and provide
defaults for storages built with ``DiskStorage.from_settings``. Each storage
instance is described by an immutable StorageConfig.
"""

from __future__ import annotations

import os
import string
import sys
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kvdisk.exceptions import ConfigurationError, DirectoryUnavailableError
from kvdisk.types import EvictionOrder, ProtectionLevel, SizeAccounting

# Domain prefix of every default storage directory name.
PREFIX = "no.hyper.Cache.Disk"


class Settings(BaseSettings):
    """Cache settings loaded from environment variables.

    Optional:
        CACHE_DIR: Base directory for storages (defaults to the user cache dir)
        MAX_SIZE: Size budget in bytes per storage, 0 for unbounded
        PROTECTION_LEVEL: Protection level applied to stored files
        EVICTION_ORDER: newest_first or oldest_first
        SIZE_ACCOUNTING: allocated or logical
        READ_WORKERS: Threads in each storage's read lane
        LOG_LEVEL: Logging level
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    CACHE_DIR: Path | None = Field(
        default=None, description="Base directory for storages"
    )
    MAX_SIZE: int = Field(default=0, ge=0, description="Size budget in bytes (0 = unbounded)")
    PROTECTION_LEVEL: ProtectionLevel = Field(
        default=ProtectionLevel.NONE, description="Protection level for stored files"
    )
    EVICTION_ORDER: EvictionOrder = Field(
        default=EvictionOrder.NEWEST_FIRST, description="Eviction order when over budget"
    )
    SIZE_ACCOUNTING: SizeAccounting = Field(
        default=SizeAccounting.ALLOCATED, description="How file sizes are measured"
    )
    READ_WORKERS: int = Field(default=4, ge=1, le=64, description="Read lane threads")

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING", description="Logging level"
    )

    @field_validator("CACHE_DIR", mode="before")
    @classmethod
    def empty_cache_dir_is_unset(cls, v: object) -> object:
        """Treat CACHE_DIR="" as not configured."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def redacted_display(self) -> dict[str, str | int | None]:
        """Return settings for display."""
        return {
            "CACHE_DIR": str(self.CACHE_DIR) if self.CACHE_DIR else None,
            "MAX_SIZE": self.MAX_SIZE,
            "PROTECTION_LEVEL": self.PROTECTION_LEVEL.value,
            "EVICTION_ORDER": self.EVICTION_ORDER.value,
            "SIZE_ACCOUNTING": self.SIZE_ACCOUNTING.value,
            "READ_WORKERS": self.READ_WORKERS,
            "LOG_LEVEL": self.LOG_LEVEL,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()


def storage_dir_name(name: str) -> str:
    """Directory name of a storage: the domain prefix plus the capitalised name."""
    return ".".join([PREFIX, string.capwords(name)])


def user_cache_dir() -> Path:
    """Resolve the per-user cache directory of the host platform.

    Raises:
        DirectoryUnavailableError: If no home or cache directory can be found.
    """
    xdg = os.environ.get("XDG_CACHE_HOME", "").strip()
    if xdg:
        return Path(xdg)
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA", "").strip()
        if local:
            return Path(local)
    try:
        home = Path.home()
    except RuntimeError as e:
        raise DirectoryUnavailableError(
            "Could not determine the user cache directory",
            context={"platform": sys.platform},
        ) from e
    if sys.platform == "darwin":
        return home / "Library" / "Caches"
    return home / ".cache"


def default_root(name: str, base_dir: Path | None = None) -> Path:
    """Default root directory for a storage named ``name``."""
    base = base_dir if base_dir is not None else user_cache_dir()
    return base / storage_dir_name(name)


@dataclass(frozen=True)
class StorageConfig:
    """Immutable per-instance configuration of a DiskStorage."""

    name: str
    root: Path
    max_size: int = 0
    protection: ProtectionLevel = ProtectionLevel.NONE
    eviction_order: EvictionOrder = EvictionOrder.NEWEST_FIRST
    size_accounting: SizeAccounting = SizeAccounting.ALLOCATED
    read_workers: int = 4

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Storage name must not be empty")
        if self.max_size < 0:
            raise ConfigurationError(
                "max_size must be >= 0", context={"max_size": self.max_size}
            )
        if self.read_workers < 1:
            raise ConfigurationError(
                "read_workers must be >= 1", context={"read_workers": self.read_workers}
            )

    @property
    def full_name(self) -> str:
        return storage_dir_name(self.name)

    @classmethod
    def from_settings(
        cls,
        name: str,
        settings: Settings | None = None,
        root: Path | None = None,
    ) -> StorageConfig:
        """Build a config from Settings, resolving the default root if needed.

        Raises:
            DirectoryUnavailableError: If no root is given and the default
                location cannot be resolved.
        """
        settings = settings or get_settings()
        return cls(
            name=name,
            root=Path(root) if root is not None else default_root(name, settings.CACHE_DIR),
            max_size=settings.MAX_SIZE,
            protection=settings.PROTECTION_LEVEL,
            eviction_order=settings.EVICTION_ORDER,
            size_accounting=settings.SIZE_ACCOUNTING,
            read_workers=settings.READ_WORKERS,
        )
