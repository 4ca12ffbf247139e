"""
Tests for core types.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from kvdisk.exceptions import ReadError
from kvdisk.types import NEVER_TIMESTAMP, CacheEntry, Expiry, Lookup, Outcome, utc_now


class TestExpiry:
    """Tests for Expiry."""

    def test_never_resolves_to_sentinel(self) -> None:
        """Test that never resolves to the far-future sentinel date."""
        expiry = Expiry.never()
        assert expiry.is_never
        assert expiry.timestamp() == NEVER_TIMESTAMP
        assert expiry.resolved() == datetime(2037, 12, 15, tzinfo=timezone.utc)
        assert not expiry.is_expired()

    def test_seconds_is_relative_to_now(self) -> None:
        """Test that seconds() lands about n seconds from now."""
        before = utc_now()
        expiry = Expiry.seconds(60)
        after = utc_now()
        slack = timedelta(milliseconds=1)
        resolved = expiry.resolved()
        assert before + timedelta(seconds=60) - slack <= resolved
        assert resolved <= after + timedelta(seconds=60) + slack
        assert not expiry.is_expired()

    def test_negative_seconds_is_already_expired(self) -> None:
        """Test that a negative offset is expired immediately."""
        assert Expiry.seconds(-1).is_expired()

    def test_at_accepts_naive_datetime_as_utc(self) -> None:
        """Test that naive datetimes are interpreted as UTC."""
        naive = datetime(2030, 5, 1, 12, 0, 0)
        aware = naive.replace(tzinfo=timezone.utc)
        assert Expiry.at(naive) == Expiry.at(aware)
        assert Expiry.at(aware).timestamp() == aware.timestamp()

    def test_at_accepts_timestamp(self) -> None:
        """Test that a POSIX timestamp is used as-is."""
        assert Expiry.at(1_900_000_000).timestamp() == 1_900_000_000.0

    def test_is_expired_at_boundary(self) -> None:
        """Test that an instant equal to now counts as expired."""
        now = datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert Expiry.at(now).is_expired(now)
        assert not Expiry.at(now + timedelta(microseconds=1)).is_expired(now)
        assert Expiry.at(now - timedelta(seconds=1)).is_expired(now)


class TestResults:
    """Tests for Outcome and Lookup."""

    def test_default_outcome_is_ok(self) -> None:
        """Test that an empty outcome is a success."""
        assert Outcome().ok

    def test_outcome_with_error_is_not_ok(self) -> None:
        """Test that an error makes the outcome fail."""
        assert not Outcome(error=ReadError("boom")).ok

    def test_detached_outcome_is_not_ok(self) -> None:
        """Test that a detached outcome is not reported as a success."""
        outcome = Outcome(detached=True)
        assert outcome.error is None
        assert not outcome.ok

    def test_lookup_hit_and_miss(self) -> None:
        """Test lookup accessors for hits and misses."""
        hit = Lookup(entry=CacheEntry(value="v", expiry=Expiry.never()))
        assert hit.hit
        assert hit.value == "v"

        miss = Lookup()
        assert not miss.hit
        assert miss.value is None
        assert miss.error is None
