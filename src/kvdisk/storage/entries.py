"""
Single-entry file I/O.

One entry is one file under the storage root, named after the hashed key.
The payload is the codec's bytes; the file's modification time is repurposed
to hold the expiry instant. Nothing here raises for I/O failures: every
method reports through an Outcome or Lookup, with absence treated as a
silent no-op or miss.
"""

from __future__ import annotations

import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any

from kvdisk.codec import Codec
from kvdisk.exceptions import (
    AttributeSetError,
    DecodeError,
    DeleteError,
    DirectoryCreateError,
    EncodeError,
    KVDiskError,
    ReadError,
    WriteError,
)
from kvdisk.hashing import file_path
from kvdisk.logging import get_logger
from kvdisk.types import (
    NEVER_TIMESTAMP,
    CacheEntry,
    Expiry,
    Lookup,
    Outcome,
    ProtectionLevel,
    utc_now,
)

logger = get_logger(__name__)

PROTECTION_XATTR = b"user.kvdisk.protection"

_NEVER_NS = int(NEVER_TIMESTAMP) * 1_000_000_000


def expiry_from_stat(st: os.stat_result) -> Expiry:
    """Read the expiry marker out of a stat result."""
    if st.st_mtime_ns == _NEVER_NS:
        return Expiry.never()
    return Expiry(st.st_mtime_ns / 1_000_000_000)


def set_expiry_marker(path: Path, expiry: Expiry) -> None:
    """Store ``expiry`` as the file's modification time (atime is left alone)."""
    st = os.stat(path)
    os.utime(path, ns=(st.st_atime_ns, int(round(expiry.timestamp() * 1_000_000_000))))


def set_protection(path: Path, level: ProtectionLevel) -> None:
    """Record the protection level on the file as an extended attribute.

    The level is opaque to this package; the filesystem (or an encryption
    layer reading the attribute) gives it meaning.
    """
    if level is ProtectionLevel.NONE:
        return
    if not hasattr(os, "setxattr"):
        raise OSError("extended attributes are not supported on this platform")
    os.setxattr(path, PROTECTION_XATTR, level.value.encode("ascii"))


def _log_failure(error: KVDiskError) -> None:
    logger.warning(error.message, kind=error.kind, **error.context)


class EntryStore:
    """Reads and writes individual entries under a root directory."""

    def __init__(
        self,
        root: Path,
        codec: Codec[Any],
        protection: ProtectionLevel = ProtectionLevel.NONE,
    ) -> None:
        self.root = Path(root)
        self.codec = codec
        self.protection = protection

    def path(self, key: str) -> Path:
        return file_path(self.root, key)

    def _ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreateError(
                "Failed to create storage directory",
                context={"path": str(self.root), "error": str(e)},
            ) from e

    def add(self, key: str, value: Any, expiry: Expiry) -> Outcome:
        """Write ``value`` for ``key``, replacing any previous content.

        The payload goes to a hidden temporary file first and is moved into
        place, so a concurrent reader sees either the old or the new payload.
        A failure to set the expiry marker or protection attribute is
        reported, but the payload is still stored.
        """
        path = self.path(key)
        try:
            self._ensure_root()
        except DirectoryCreateError as e:
            _log_failure(e)
            return Outcome(error=e)

        try:
            data = self.codec.encode(value)
        except Exception as e:
            error = EncodeError(
                "Failed to encode value",
                context={"path": str(path), "type": type(value).__name__, "error": str(e)},
            )
            _log_failure(error)
            return Outcome(error=error)

        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            tmp_path.write_bytes(data)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            error = WriteError(
                "Failed to write entry",
                context={"path": str(path), "size": len(data), "error": str(e)},
            )
            _log_failure(error)
            return Outcome(error=error)

        attribute_error: AttributeSetError | None = None
        attribute = "expiry"
        try:
            set_expiry_marker(tmp_path, expiry)
            attribute = "protection"
            set_protection(tmp_path, self.protection)
        except OSError as e:
            attribute_error = AttributeSetError(
                "Failed to set entry attribute",
                context={"path": str(path), "attribute": attribute, "error": str(e)},
            )

        try:
            os.replace(tmp_path, path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            error = WriteError(
                "Failed to move entry into place",
                context={"path": str(path), "error": str(e)},
            )
            _log_failure(error)
            return Outcome(error=error)

        if attribute_error is not None:
            _log_failure(attribute_error)
            return Outcome(error=attribute_error)

        logger.debug("Stored entry", file=path.name, size=len(data))
        return Outcome()

    def lookup(self, key: str) -> Lookup[Any]:
        """Read and decode the entry for ``key``.

        Expiry is not checked: an entry past its expiry that has not been
        swept yet is still a hit.
        """
        path = self.path(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return Lookup()
        except OSError as e:
            error = ReadError(
                "Failed to read entry", context={"path": str(path), "error": str(e)}
            )
            _log_failure(error)
            return Lookup(error=error)

        try:
            value = self.codec.decode(data)
        except Exception as e:
            error = DecodeError(
                "Failed to decode entry",
                context={"path": str(path), "size": len(data), "error": str(e)},
            )
            _log_failure(error)
            return Lookup(error=error)

        try:
            st = os.stat(path)
        except FileNotFoundError:
            return Lookup()
        except OSError as e:
            error = ReadError(
                "Failed to read entry expiry", context={"path": str(path), "error": str(e)}
            )
            _log_failure(error)
            return Lookup(error=error)

        return Lookup(entry=CacheEntry(value=value, expiry=expiry_from_stat(st)))

    def delete_file(self, path: Path) -> tuple[bool, KVDiskError | None]:
        """Delete one file, returning whether it was there and any failure.

        An already missing file is not an error.
        """
        try:
            path.unlink()
        except FileNotFoundError:
            return False, None
        except OSError as e:
            error = DeleteError(
                "Failed to delete entry", context={"path": str(path), "error": str(e)}
            )
            _log_failure(error)
            return False, error
        return True, None

    def remove(self, key: str) -> Outcome:
        deleted, error = self.delete_file(self.path(key))
        return Outcome(error=error, removed=1 if deleted else 0)

    def remove_path_if_expired(self, path: Path, now: datetime | None = None) -> Outcome:
        """Delete ``path`` if its expiry marker is at or before ``now``."""
        now = now or utc_now()
        try:
            st = os.stat(path)
        except FileNotFoundError:
            return Outcome()
        except OSError as e:
            error = ReadError(
                "Failed to read entry expiry", context={"path": str(path), "error": str(e)}
            )
            _log_failure(error)
            return Outcome(error=error)

        if not expiry_from_stat(st).is_expired(now):
            return Outcome()

        deleted, error = self.delete_file(path)
        if error is not None:
            return Outcome(error=error)
        if deleted:
            logger.debug("Removed expired entry", file=path.name)
        return Outcome(removed=1 if deleted else 0)

    def clear(self) -> Outcome:
        """Remove the whole storage directory."""
        try:
            shutil.rmtree(self.root)
        except FileNotFoundError:
            return Outcome()
        except OSError as e:
            error = DeleteError(
                "Failed to clear storage directory",
                context={"path": str(self.root), "error": str(e)},
            )
            _log_failure(error)
            return Outcome(error=error)
        logger.info("Cleared storage", path=str(self.root))
        return Outcome()
