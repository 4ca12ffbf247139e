"""
Expiry scanner: lists the entries of a storage root and splits them into
expired and live files.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from kvdisk.exceptions import EnumerationError
from kvdisk.logging import get_logger
from kvdisk.types import SizeAccounting, utc_now

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScannedFile:
    """One stored file as seen by a scan."""

    path: Path
    expiry_ns: int  # modification time, i.e. the expiry marker
    size: int


@dataclass
class ScanResult:
    expired: list[ScannedFile] = field(default_factory=list)
    live: list[ScannedFile] = field(default_factory=list)

    @property
    def live_size(self) -> int:
        return sum(f.size for f in self.live)


def file_size(st: os.stat_result, accounting: SizeAccounting) -> int:
    """Size of a file for budget purposes.

    Allocated size uses st_blocks (512-byte units) where the platform has
    them and falls back to the logical size otherwise.
    """
    if accounting is SizeAccounting.ALLOCATED:
        blocks = getattr(st, "st_blocks", None)
        if blocks is not None:
            return blocks * 512
    return st.st_size


class ExpiryScanner:
    """Classifies every entry under a root as expired or live."""

    def __init__(self, root: Path, accounting: SizeAccounting = SizeAccounting.ALLOCATED) -> None:
        self.root = Path(root)
        self.accounting = accounting

    def scan(self, now: datetime | None = None) -> ScanResult:
        """Scan regular, non-hidden files directly under the root.

        A missing root is an empty result. Files that vanish or cannot be
        stat'ed mid-scan are skipped.

        Raises:
            EnumerationError: If the root exists but cannot be listed.
        """
        now_ns = int((now or utc_now()).timestamp() * 1_000_000_000)
        result = ScanResult()

        try:
            with os.scandir(self.root) as it:
                dir_entries = list(it)
        except FileNotFoundError:
            return result
        except OSError as e:
            raise EnumerationError(
                "Failed to list storage directory",
                context={"path": str(self.root), "error": str(e)},
            ) from e

        for dir_entry in dir_entries:
            if dir_entry.name.startswith("."):
                continue
            try:
                if not dir_entry.is_file(follow_symlinks=False):
                    continue
                st = dir_entry.stat(follow_symlinks=False)
            except OSError as e:
                logger.debug("Skipping unreadable file", file=dir_entry.name, error=str(e))
                continue

            scanned = ScannedFile(
                path=Path(dir_entry.path),
                expiry_ns=st.st_mtime_ns,
                size=file_size(st, self.accounting),
            )
            if scanned.expiry_ns <= now_ns:
                result.expired.append(scanned)
            else:
                result.live.append(scanned)

        return result
