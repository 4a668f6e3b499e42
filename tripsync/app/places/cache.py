"""TTL cache of resolved places."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from tripsync.app.models.places import ResolvedPlace


def normalize_key(name: str, hint: str | None = None) -> str:
    """Cache key from a place name and optional location hint."""
    key = " ".join(name.casefold().split())
    if hint:
        key += "|" + " ".join(hint.casefold().split())
    return key


@dataclass
class CacheEntry:
    """Cached place with metadata."""

    value: ResolvedPlace
    cached_at: datetime
    ttl_seconds: int

    def is_fresh(self, now: datetime) -> bool:
        return (now - self.cached_at).total_seconds() < self.ttl_seconds


class PlaceCache:
    """In-memory cache for coordinate resolution results."""

    def __init__(
        self,
        ttl_seconds: int = 24 * 3600,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock or (lambda: datetime.now(UTC))
        self._entries: dict[str, CacheEntry] = {}

    def get(self, name: str, hint: str | None = None) -> ResolvedPlace | None:
        """Get cached place if fresh, None otherwise."""
        key = normalize_key(name, hint)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self._clock()):
            del self._entries[key]
            return None
        return entry.value

    def set(self, name: str, hint: str | None, place: ResolvedPlace) -> None:
        self._entries[normalize_key(name, hint)] = CacheEntry(
            value=place, cached_at=self._clock(), ttl_seconds=self._ttl_seconds
        )

    def __len__(self) -> int:
        return len(self._entries)
