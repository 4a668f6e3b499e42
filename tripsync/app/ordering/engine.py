"""Day and position assignment for itinerary destinations.

Day assignment precedence, per destination:
1. Its own day hint, clamped to the trip
2. Auto-distribution across days, when the batch qualifies
3. The batch-level day (an ADD's ``day`` or a same-turn MODIFY_TRIP target)
4. Day 1

Positions are 1-based and dense per day. ``ItineraryLayout`` holds the
ordered ids per day; every edit keeps it dense and ``diff`` reports which rows
must be rewritten.
"""

import math
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Protocol


@dataclass(frozen=True)
class PositionUpdate:
    """Final (day, position) for one destination row."""

    destination_id: uuid.UUID
    day: int
    position: int


class Placed(Protocol):
    destination_id: uuid.UUID
    day: int
    position: int


def day_span(start: date, end: date) -> int:
    """Trip length in days: ceil((end - start) / 1 day), at least 1."""
    return max(1, math.ceil((end - start) / timedelta(days=1)))


def end_date_for(start: date, days: int) -> date:
    """End date such that ``day_span(start, end) == days``."""
    return start + timedelta(days=max(1, days))


def effective_day_count(day_count: int, days_in_use: Iterable[int]) -> int:
    """Widen the trip to cover every day a destination claims."""
    return max([day_count, *days_in_use])


def clamp_day(day: int, total_days: int) -> int:
    return max(1, min(day, max(1, total_days)))


def should_auto_distribute(
    day_hints: Sequence[int | None], total_days: int, has_target_day: bool
) -> bool:
    """Decide once per ADD batch whether to spread it across days.

    Hints that already spread the batch over several days are trusted.
    """
    if has_target_day:
        return False
    if len(day_hints) <= 2 or total_days <= 1:
        return False
    distinct = {h for h in day_hints if h is not None}
    return len(distinct) <= 1


def assign_days(
    day_hints: Sequence[int | None], total_days: int, group_day: int | None = None
) -> list[int]:
    """Final day for each item of one ADD batch, in input order."""
    count = len(day_hints)
    distribute = should_auto_distribute(day_hints, total_days, group_day is not None)
    per_day = math.ceil(count / total_days) if total_days > 0 and count else 1

    days: list[int] = []
    for index, hint in enumerate(day_hints):
        if hint is not None:
            days.append(clamp_day(hint, total_days))
        elif distribute:
            days.append(clamp_day(index // per_day + 1, total_days))
        elif group_day is not None:
            days.append(clamp_day(group_day, total_days))
        else:
            days.append(1)
    return days


class ItineraryLayout:
    """Ordered destination ids per day."""

    def __init__(self) -> None:
        self._days: dict[int, list[uuid.UUID]] = {}

    @classmethod
    def from_destinations(cls, destinations: Iterable[Placed]) -> "ItineraryLayout":
        layout = cls()
        for dest in sorted(destinations, key=lambda d: (d.day, d.position)):
            layout._days.setdefault(dest.day, []).append(dest.destination_id)
        return layout

    def days(self) -> list[int]:
        return sorted(day for day, ids in self._days.items() if ids)

    def ids(self, day: int) -> list[uuid.UUID]:
        return list(self._days.get(day, []))

    def count(self, day: int) -> int:
        return len(self._days.get(day, []))

    def day_of(self, destination_id: uuid.UUID) -> int | None:
        for day, ids in self._days.items():
            if destination_id in ids:
                return day
        return None

    def __contains__(self, destination_id: object) -> bool:
        return any(destination_id in ids for ids in self._days.values())

    def append(self, day: int, destination_id: uuid.UUID) -> int:
        """Add at the end of ``day``; returns the new position."""
        bucket = self._days.setdefault(day, [])
        bucket.append(destination_id)
        return len(bucket)

    def remove(self, destination_id: uuid.UUID) -> int:
        """Take a destination out; returns the day it was on."""
        for day, ids in self._days.items():
            if destination_id in ids:
                ids.remove(destination_id)
                return day
        raise KeyError(destination_id)

    def insert(self, day: int, destination_id: uuid.UUID, position: int | None = None) -> int:
        """Splice into ``day`` at a 1-based position (end when None or past the end)."""
        bucket = self._days.setdefault(day, [])
        if position is None or position > len(bucket):
            bucket.append(destination_id)
            return len(bucket)
        index = max(0, position - 1)
        bucket.insert(index, destination_id)
        return index + 1

    def move(self, destination_id: uuid.UUID, day: int, position: int | None = None) -> int:
        """Move between or within days; returns the source day."""
        source_day = self.remove(destination_id)
        self.insert(day, destination_id, position)
        return source_day

    def reorder(self, entries: Sequence[tuple[uuid.UUID, int, int]]) -> None:
        """Apply explicit (id, day, position) triples.

        Named ids are pulled out first, then re-inserted in ascending
        (day, position) order, so requested positions are honored as far as
        density allows. Ids not mentioned keep their relative order.
        """
        for destination_id, _, _ in entries:
            self.remove(destination_id)
        for destination_id, day, position in sorted(entries, key=lambda e: (e[1], e[2])):
            self.insert(day, destination_id, position)

    def positions(self) -> dict[uuid.UUID, tuple[int, int]]:
        """Dense (day, position) for every id."""
        return {
            destination_id: (day, index)
            for day, ids in self._days.items()
            for index, destination_id in enumerate(ids, start=1)
        }

    def diff(self, current: Iterable[Placed]) -> list[PositionUpdate]:
        """Updates needed to move ``current`` rows onto this layout."""
        target = self.positions()
        updates: list[PositionUpdate] = []
        for dest in current:
            wanted = target.get(dest.destination_id)
            if wanted is None:
                continue
            if (dest.day, dest.position) != wanted:
                updates.append(PositionUpdate(dest.destination_id, wanted[0], wanted[1]))
        return sorted(updates, key=lambda u: (u.day, u.position))


def renormalize(destinations: Sequence[Placed]) -> list[PositionUpdate]:
    """Updates that make every day dense again, keeping relative order.

    Running it on an already dense list yields no updates.
    """
    return ItineraryLayout.from_destinations(destinations).diff(destinations)
