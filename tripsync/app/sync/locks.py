"""Per-trip write locks: one writer per trip at a time."""

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field


@dataclass
class _TripLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0  # the owner plus everyone waiting


class TripLockRegistry:
    """Registry of per-trip asyncio locks.

    AI batches and manual edits for the same trip queue on the same lock. A
    trip's entry is dropped once the last holder or waiter leaves.
    """

    def __init__(self) -> None:
        self._by_trip: dict[uuid.UUID, _TripLock] = {}

    @asynccontextmanager
    async def lock_for(self, trip_id: uuid.UUID) -> AsyncIterator[None]:
        entry = self._by_trip.get(trip_id)
        if entry is None:
            entry = _TripLock()
            self._by_trip[trip_id] = entry

        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0 and self._by_trip.get(trip_id) is entry:
                del self._by_trip[trip_id]

    def is_locked(self, trip_id: uuid.UUID) -> bool:
        entry = self._by_trip.get(trip_id)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        return len(self._by_trip)

    def clear(self) -> None:
        """Drop all locks (useful for testing)."""
        self._by_trip.clear()


_global_trip_locks = TripLockRegistry()


def get_trip_locks() -> TripLockRegistry:
    """Get the global trip lock registry."""
    return _global_trip_locks
