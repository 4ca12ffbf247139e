"""
Size-bounded eviction.

When the live entries of a storage exceed its size budget, entries are
deleted one at a time until the remaining size drops below half the budget.
Aiming at half rather than the budget itself keeps the next sweep from
evicting again straight away.
"""

from __future__ import annotations

from dataclasses import dataclass

from kvdisk.storage.scanner import ScannedFile
from kvdisk.types import EvictionOrder


@dataclass(frozen=True)
class EvictionPlan:
    victims: list[ScannedFile]
    size_before: int
    size_after: int


class EvictionPolicy:
    """Chooses which live entries to delete when over budget.

    The order is taken from ``EvictionOrder``. With NEWEST_FIRST the entries
    carrying the latest expiry markers go first, so the oldest survive.
    Ties on the marker are broken by file name to keep plans deterministic.
    """

    def __init__(self, order: EvictionOrder = EvictionOrder.NEWEST_FIRST) -> None:
        self.order = order

    def ordered(self, live: list[ScannedFile]) -> list[ScannedFile]:
        return sorted(
            live,
            key=lambda f: (f.expiry_ns, f.path.name),
            reverse=self.order is EvictionOrder.NEWEST_FIRST,
        )

    def plan(self, live: list[ScannedFile], total_size: int, max_size: int) -> EvictionPlan:
        """Select victims for a storage holding ``total_size`` bytes of live files.

        Nothing is selected when ``max_size`` is 0 (unbounded) or the total is
        within budget. Otherwise at least one file is selected and selection
        stops as soon as the remaining size is below ``max_size // 2``.
        """
        if max_size <= 0 or total_size <= max_size:
            return EvictionPlan(victims=[], size_before=total_size, size_after=total_size)

        target = max_size // 2
        remaining = total_size
        victims: list[ScannedFile] = []
        for scanned in self.ordered(live):
            victims.append(scanned)
            remaining -= scanned.size
            if remaining < target:
                break

        return EvictionPlan(victims=victims, size_before=total_size, size_after=remaining)
