"""Persistent disk-backed key-value cache with expiry and size-bounded eviction."""

from kvdisk.codec import BytesCodec, Codec, JSONCodec, StringCodec
from kvdisk.config import Settings, StorageConfig, get_settings
from kvdisk.exceptions import DirectoryUnavailableError, KVDiskError
from kvdisk.hashing import file_name
from kvdisk.storage import DiskStorage
from kvdisk.types import (
    CacheEntry,
    EvictionOrder,
    Expiry,
    Lookup,
    Outcome,
    ProtectionLevel,
    SizeAccounting,
)

__version__ = "0.1.0"

__all__ = [
    "BytesCodec",
    "CacheEntry",
    "Codec",
    "DirectoryUnavailableError",
    "DiskStorage",
    "EvictionOrder",
    "Expiry",
    "JSONCodec",
    "KVDiskError",
    "Lookup",
    "Outcome",
    "ProtectionLevel",
    "Settings",
    "SizeAccounting",
    "StorageConfig",
    "StringCodec",
    "file_name",
    "get_settings",
    "__version__",
]
