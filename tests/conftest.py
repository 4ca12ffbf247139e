"""
Pytest configuration and fixtures for kvdisk tests.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from kvdisk.codec import BytesCodec, JSONCodec
from kvdisk.config import StorageConfig, clear_settings_cache
from kvdisk.storage.disk import DiskStorage
from kvdisk.types import SizeAccounting


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide environment variables for testing."""
    env_vars = {
        "CACHE_DIR": str(temp_dir / "cache"),
        "MAX_SIZE": "4096",
        "PROTECTION_LEVEL": "none",
        "EVICTION_ORDER": "oldest_first",
        "SIZE_ACCOUNTING": "logical",
        "READ_WORKERS": "2",
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def storage(temp_dir: Path) -> Generator[DiskStorage, None, None]:
    """JSON storage rooted in a temp dir, unbounded, logical size accounting."""
    config = StorageConfig(
        name="test",
        root=temp_dir / "store",
        size_accounting=SizeAccounting.LOGICAL,
    )
    store = DiskStorage(config, JSONCodec())
    yield store
    store.close()


@pytest.fixture
def bytes_storage_factory(temp_dir: Path) -> Generator:
    """Build byte-payload storages with a size budget; all are closed afterwards."""
    created: list[DiskStorage] = []

    def factory(max_size: int = 0, **kwargs: object) -> DiskStorage:
        config = StorageConfig(
            name="sized",
            root=temp_dir / "sized",
            max_size=max_size,
            size_accounting=SizeAccounting.LOGICAL,
            **kwargs,
        )
        store = DiskStorage(config, BytesCodec())
        created.append(store)
        return store

    yield factory
    for store in created:
        store.close()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_package_logger() -> Generator[None, None, None]:
    """Undo logger level and handler changes made by settings or the CLI."""
    logger = logging.getLogger("kvdisk")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
