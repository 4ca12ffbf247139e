"""
Core types for the disk cache.

This module defines the data structures shared by the storage engine:
- Enums for protection level, eviction order and size accounting
- Expiry: when an entry becomes eligible for removal
- CacheEntry: a decoded value paired with its expiry (read result only)
- Outcome / Lookup: what a completed operation reports to its callback
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Generic, TypeVar

from kvdisk.exceptions import KVDiskError

T = TypeVar("T")

# 68 * 365 days after the epoch (2037-12-15), the "never" sentinel of the on-disk format.
NEVER_TIMESTAMP: float = float(60 * 60 * 24 * 365 * 68)


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class ProtectionLevel(str, Enum):
    """Encryption-at-rest tier passed through to the filesystem."""

    NONE = "none"
    COMPLETE = "complete"
    COMPLETE_UNLESS_OPEN = "complete_unless_open"
    COMPLETE_UNTIL_FIRST_USER_AUTHENTICATION = "complete_until_first_user_authentication"


class EvictionOrder(str, Enum):
    """Order in which live entries are deleted once the size budget is exceeded.

    NEWEST_FIRST deletes the entries with the latest expiry markers first and
    keeps the oldest ones. It is the historical behaviour of the on-disk format
    and the default; OLDEST_FIRST is the conventional recency order.
    """

    NEWEST_FIRST = "newest_first"
    OLDEST_FIRST = "oldest_first"


class SizeAccounting(str, Enum):
    """How a stored file's size counts toward the budget."""

    ALLOCATED = "allocated"  # blocks on disk
    LOGICAL = "logical"  # payload length


class Expiry:
    """Absolute instant after which an entry may be swept.

    Build with ``Expiry.never()``, ``Expiry.seconds(n)`` or ``Expiry.at(when)``.
    Expiry is only enforced by the sweep operations, never on read.
    """

    __slots__ = ("_timestamp", "_never")

    def __init__(self, timestamp: float, never: bool = False) -> None:
        self._timestamp = float(timestamp)
        self._never = never

    @classmethod
    def never(cls) -> Expiry:
        return cls(NEVER_TIMESTAMP, never=True)

    @classmethod
    def seconds(cls, seconds: float) -> Expiry:
        """Expire ``seconds`` from now (negative values are already expired)."""
        return cls((utc_now() + timedelta(seconds=seconds)).timestamp())

    @classmethod
    def at(cls, when: datetime | float) -> Expiry:
        """Expire at an absolute datetime or POSIX timestamp.

        Naive datetimes are taken as UTC.
        """
        if isinstance(when, datetime):
            if when.tzinfo is None:
                when = when.replace(tzinfo=timezone.utc)
            return cls(when.timestamp())
        return cls(when)

    @property
    def is_never(self) -> bool:
        return self._never

    def timestamp(self) -> float:
        """POSIX timestamp of the expiry instant."""
        return self._timestamp

    def resolved(self) -> datetime:
        """The expiry instant as an aware UTC datetime."""
        return datetime.fromtimestamp(self._timestamp, tz=timezone.utc)

    def is_expired(self, now: datetime | None = None) -> bool:
        """True when the instant is at or before ``now``."""
        now = now or utc_now()
        return self._timestamp <= now.timestamp()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Expiry):
            return NotImplemented
        return self._timestamp == other._timestamp

    def __hash__(self) -> int:
        return hash(self._timestamp)

    def __repr__(self) -> str:
        if self._never:
            return "Expiry.never()"
        return f"Expiry.at({self.resolved().isoformat()!r})"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A decoded value together with its stored expiry."""

    value: T
    expiry: Expiry


@dataclass(frozen=True)
class Outcome:
    """Result of a write-lane operation.

    ``error`` is None for success and for expected no-ops (removing an
    absent key). ``detached`` is set when the owning storage was gone by the
    time the task ran, in which case no I/O happened.
    """

    error: KVDiskError | None = None
    removed: int = 0
    evicted: int = 0
    detached: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.detached


@dataclass(frozen=True)
class Lookup(Generic[T]):
    """Result of a read-lane operation.

    A miss has ``entry`` None. ``error`` distinguishes an unexpected failure
    (permission denied, corrupt payload) from a plain absence.
    """

    entry: CacheEntry[T] | None = None
    error: KVDiskError | None = None

    @property
    def hit(self) -> bool:
        return self.entry is not None

    @property
    def value(self) -> T | None:
        return self.entry.value if self.entry is not None else None
