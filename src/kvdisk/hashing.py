"""Key to filename mapping."""

from __future__ import annotations

import hashlib
from pathlib import Path


def file_name(key: str) -> str:
    """Map a key to a fixed-length filename.

    The name is the MD5 hex digest of the UTF-8 encoded key: 32 lowercase hex
    characters, deterministic and one-way. Collisions are not guarded against.
    """
    return hashlib.md5(key.encode("utf-8"), usedforsecurity=False).hexdigest()


def file_path(root: Path, key: str) -> Path:
    """Path of the file holding ``key`` under ``root``."""
    return root / file_name(key)
