"""Tests for the resolved place cache."""

from datetime import UTC, datetime, timedelta

from tripsync.app.models.common import Provenance
from tripsync.app.models.places import ResolvedPlace
from tripsync.app.places.cache import PlaceCache, normalize_key


def _place() -> ResolvedPlace:
    return ResolvedPlace(
        latitude=13.7465,
        longitude=100.4927,
        matched_query="Wat Pho",
        strategy="raw_name",
        provenance=Provenance(source="fixtures.places", fetched_at=datetime.now(UTC)),
    )


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


def test_normalize_key_folds_case_and_spaces() -> None:
    assert normalize_key("  Wat   PHO ") == "wat pho"
    assert normalize_key("Wat Pho", "Bangkok") == "wat pho|bangkok"


def test_hint_is_part_of_the_key() -> None:
    cache = PlaceCache()
    cache.set("Night Market", "Bangkok", _place())

    assert cache.get("night market", "bangkok") is not None
    assert cache.get("Night Market", "Chiang Mai") is None
    assert cache.get("Night Market") is None


def test_entries_expire_after_ttl() -> None:
    clock = FakeClock()
    cache = PlaceCache(ttl_seconds=60, clock=clock)
    cache.set("Wat Pho", None, _place())

    clock.now += timedelta(seconds=59)
    assert cache.get("Wat Pho") is not None

    clock.now += timedelta(seconds=2)
    assert cache.get("Wat Pho") is None
    assert len(cache) == 0
