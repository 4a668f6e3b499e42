"""Unit tests for the in-memory itinerary store and its two-phase position writes."""

import uuid
from datetime import date

import pytest

from tripsync.app.db.inmemory import InMemoryItineraryStore
from tripsync.app.db.repositories import (
    DestinationNotFoundError,
    NewDestination,
    PositionConflictError,
    TripNotFoundError,
    temp_positions,
)
from tripsync.app.ordering.engine import PositionUpdate


async def _trip_with(store: InMemoryItineraryStore, *names: str) -> uuid.UUID:
    trip = await store.create_trip("Bangkok", date(2026, 3, 1), 3)
    for position, name in enumerate(names, start=1):
        await store.insert_destination(trip.trip_id, NewDestination(name=name, day=1, position=position))
    return trip.trip_id


class TestTempPositions:
    """Phase-1 placeholders."""

    def test_distinct_and_above_base(self) -> None:
        temps = temp_positions(5, 100_000)
        assert len(set(temps)) == 5
        assert all(t >= 100_000 for t in temps)


class TestTrips:
    """Trip rows."""

    @pytest.mark.asyncio
    async def test_create_and_update_trip(self) -> None:
        store = InMemoryItineraryStore()
        trip = await store.create_trip("Bangkok", date(2026, 3, 1), 3, budget_min=1000)

        assert trip.day_count == 3
        assert trip.end_date == date(2026, 3, 4)

        updated = await store.update_trip(trip.trip_id, end_date=date(2026, 3, 6), budget_max=5000)

        assert updated.day_count == 5
        assert updated.budget_min == 1000
        assert updated.budget_max == 5000
        assert (await store.get_trip(trip.trip_id)) == updated

    @pytest.mark.asyncio
    async def test_update_unknown_trip(self) -> None:
        with pytest.raises(TripNotFoundError):
            await InMemoryItineraryStore().update_trip(uuid.uuid4(), budget_min=1)


class TestDestinations:
    """Row writes."""

    @pytest.mark.asyncio
    async def test_insert_collision_raises(self) -> None:
        store = InMemoryItineraryStore()
        trip_id = await _trip_with(store, "Wat Pho")

        with pytest.raises(PositionConflictError):
            await store.insert_destination(trip_id, NewDestination(name="Wat Arun", day=1, position=1))

    @pytest.mark.asyncio
    async def test_same_position_on_other_day_is_fine(self) -> None:
        store = InMemoryItineraryStore()
        trip_id = await _trip_with(store, "Wat Pho")

        await store.insert_destination(trip_id, NewDestination(name="Doi Suthep", day=2, position=1))

        assert [(d.day, d.position) for d in await store.list_destinations(trip_id)] == [(1, 1), (2, 1)]

    @pytest.mark.asyncio
    async def test_update_rejects_positional_fields(self) -> None:
        store = InMemoryItineraryStore()
        trip_id = await _trip_with(store, "Wat Pho")
        dest = (await store.list_destinations(trip_id))[0]

        updated = await store.update_destination(dest.destination_id, {"rating": 4.5, "category": "restaurant"})
        assert updated.rating == 4.5
        assert updated.category == "restaurant"

        with pytest.raises(ValueError):
            await store.update_destination(dest.destination_id, {"position": 3})

    @pytest.mark.asyncio
    async def test_delete_does_not_renumber(self) -> None:
        store = InMemoryItineraryStore()
        trip_id = await _trip_with(store, "A", "B", "C")
        first = (await store.list_destinations(trip_id))[0]

        await store.delete_destination(first.destination_id)

        assert [d.position for d in await store.list_destinations(trip_id)] == [2, 3]
        with pytest.raises(DestinationNotFoundError):
            await store.delete_destination(first.destination_id)


class TestApplyPositions:
    """Two-phase position batches."""

    @pytest.mark.asyncio
    async def test_swap_goes_through_temporary_positions(self) -> None:
        store = InMemoryItineraryStore()
        trip_id = await _trip_with(store, "A", "B")
        a, b = await store.list_destinations(trip_id)
        store.write_log.clear()

        await store.apply_positions(
            trip_id,
            [PositionUpdate(a.destination_id, 1, 2), PositionUpdate(b.destination_id, 1, 1)],
        )

        assert [d.name for d in await store.list_destinations(trip_id)] == ["B", "A"]
        assert [e.phase for e in store.write_log] == ["temp", "temp", "final", "final"]
        assert all(e.position >= 100_000 for e in store.write_log[:2])

    @pytest.mark.asyncio
    async def test_readers_see_old_state_while_settling(self) -> None:
        snapshots: list[list[tuple[str, int]]] = []

        async def sleep(_: float) -> None:
            rows = await store.list_destinations(trip_id)
            snapshots.append([(d.name, d.position) for d in rows])

        store = InMemoryItineraryStore(settle_ms=5, sleep_fn=sleep)
        trip_id = await _trip_with(store, "A", "B")
        a, b = await store.list_destinations(trip_id)

        await store.apply_positions(
            trip_id,
            [PositionUpdate(a.destination_id, 1, 2), PositionUpdate(b.destination_id, 1, 1)],
        )

        assert snapshots == [[("A", 1), ("B", 2)]]
        assert [(d.name, d.position) for d in await store.list_destinations(trip_id)] == [
            ("B", 1),
            ("A", 2),
        ]

    @pytest.mark.asyncio
    async def test_conflicting_batch_leaves_state_untouched(self) -> None:
        store = InMemoryItineraryStore()
        trip_id = await _trip_with(store, "A", "B", "C")
        a, b, c = await store.list_destinations(trip_id)

        # Moving A onto C's slot without moving C collides in phase 2
        with pytest.raises(PositionConflictError):
            await store.apply_positions(trip_id, [PositionUpdate(a.destination_id, 1, 3)])

        assert [(d.name, d.position) for d in await store.list_destinations(trip_id)] == [
            ("A", 1),
            ("B", 2),
            ("C", 3),
        ]

    @pytest.mark.asyncio
    async def test_unknown_destination_rejected(self) -> None:
        store = InMemoryItineraryStore()
        trip_id = await _trip_with(store, "A")

        with pytest.raises(DestinationNotFoundError):
            await store.apply_positions(trip_id, [PositionUpdate(uuid.uuid4(), 1, 1)])

    @pytest.mark.asyncio
    async def test_empty_batch_is_a_no_op(self) -> None:
        store = InMemoryItineraryStore()
        trip_id = await _trip_with(store, "A")
        store.write_log.clear()

        await store.apply_positions(trip_id, [])

        assert store.write_log == []


class TestAudit:
    """Action audit log."""

    @pytest.mark.asyncio
    async def test_actions_are_listed_per_trip(self) -> None:
        store = InMemoryItineraryStore()
        trip_id = await _trip_with(store)
        other_id = await _trip_with(store)

        await store.record_action(trip_id, "ADD_DESTINATIONS", "applied", {"n": 1})
        await store.record_action(other_id, "NO_ACTION", "advisory", {})

        actions = await store.list_actions(trip_id)
        assert [(a.kind, a.outcome) for a in actions] == [("ADD_DESTINATIONS", "applied")]
