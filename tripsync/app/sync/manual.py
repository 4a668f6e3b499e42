"""Manual itinerary edits (drag-and-drop, move, delete, day optimization).

These share the per-trip lock with ``ActionResolver.apply`` so a user edit and
an AI batch for the same trip never interleave.
"""

import dataclasses
import logging
import uuid
from collections.abc import Sequence

from tripsync.app.db.repositories import (
    DestinationNotFoundError,
    DestinationRecord,
    ItineraryStore,
    TripNotFoundError,
)
from tripsync.app.ordering.engine import (
    ItineraryLayout,
    clamp_day,
    effective_day_count,
    renormalize,
)
from tripsync.app.routing.sequencer import OptimizedRoute, optimize, optimize_smart
from tripsync.app.sync.locks import TripLockRegistry, get_trip_locks

logger = logging.getLogger(__name__)


class CrossDayReorderError(ValueError):
    """A within-day reorder named destinations from another day."""


class EmptyDayError(LookupError):
    """A day-level operation targeted a day with no destinations."""


class ItineraryEditor:
    """Single-destination and single-day edits under the trip lock."""

    def __init__(self, store: ItineraryStore, locks: TripLockRegistry | None = None) -> None:
        self._store = store
        self._locks = locks or get_trip_locks()

    async def _load(self, trip_id: uuid.UUID) -> tuple[int, list[DestinationRecord]]:
        trip = await self._store.get_trip(trip_id)
        if trip is None:
            raise TripNotFoundError(str(trip_id))
        destinations = await self._store.list_destinations(trip_id)
        return effective_day_count(trip.day_count, (d.day for d in destinations)), destinations

    async def reorder_day(
        self, trip_id: uuid.UUID, day: int, destination_ids: Sequence[uuid.UUID]
    ) -> list[DestinationRecord]:
        """Set the full visiting order of one day.

        Raises:
            TripNotFoundError: Unknown trip
            DestinationNotFoundError: An id is not in the trip
            CrossDayReorderError: An id belongs to another day, or the day's list is incomplete
        """
        async with self._locks.lock_for(trip_id):
            _, destinations = await self._load(trip_id)
            by_id = {d.destination_id: d for d in destinations}

            for destination_id in destination_ids:
                dest = by_id.get(destination_id)
                if dest is None:
                    raise DestinationNotFoundError(str(destination_id))
                if dest.day != day:
                    raise CrossDayReorderError(
                        f"{dest.name!r} is on day {dest.day}; move it instead"
                    )

            on_day = {d.destination_id for d in destinations if d.day == day}
            if set(destination_ids) != on_day or len(destination_ids) != len(on_day):
                raise CrossDayReorderError(f"order must list every destination of day {day} once")

            layout = ItineraryLayout.from_destinations(destinations)
            layout.reorder([(d, day, i) for i, d in enumerate(destination_ids, start=1)])
            await self._store.apply_positions(trip_id, layout.diff(destinations))
            return await self._store.list_destinations(trip_id)

    async def optimize_day(
        self, trip_id: uuid.UUID, day: int, *, smart: bool = True, apply: bool = False
    ) -> OptimizedRoute[DestinationRecord]:
        """Suggest a nearest-neighbor order for one day; store it when ``apply`` is set.

        The order is computed from, and written against, the same snapshot while
        the trip lock is held.

        Raises:
            TripNotFoundError: Unknown trip
            EmptyDayError: The day has no destinations
        """
        async with self._locks.lock_for(trip_id):
            _, destinations = await self._load(trip_id)
            stops = [d for d in destinations if d.day == day]
            if not stops:
                raise EmptyDayError(f"day {day} is empty")

            route = optimize_smart(stops) if smart else optimize(stops)
            if not apply:
                return route

            layout = ItineraryLayout.from_destinations(destinations)
            layout.reorder([(s.destination_id, day, i) for i, s in enumerate(route.stops, start=1)])
            await self._store.apply_positions(trip_id, layout.diff(destinations))

            stored = {d.destination_id: d for d in await self._store.list_destinations(trip_id)}
            logger.info(
                "Day order optimized",
                extra={"structured": {"trip_id": str(trip_id), "day": day, "smart": smart}},
            )
            return dataclasses.replace(route, stops=[stored[s.destination_id] for s in route.stops])

    async def move_destination(
        self,
        trip_id: uuid.UUID,
        destination_id: uuid.UUID,
        day: int,
        position: int | None = None,
    ) -> list[DestinationRecord]:
        """Move one destination to ``day`` at ``position`` (end when None)."""
        async with self._locks.lock_for(trip_id):
            day_count, destinations = await self._load(trip_id)
            layout = ItineraryLayout.from_destinations(destinations)
            if destination_id not in layout:
                raise DestinationNotFoundError(str(destination_id))

            layout.move(destination_id, clamp_day(day, day_count), position)
            await self._store.apply_positions(trip_id, layout.diff(destinations))
            return await self._store.list_destinations(trip_id)

    async def delete_destination(
        self, trip_id: uuid.UUID, destination_id: uuid.UUID
    ) -> list[DestinationRecord]:
        """Delete one destination, then close the gap in a separate pass."""
        async with self._locks.lock_for(trip_id):
            _, destinations = await self._load(trip_id)
            if all(d.destination_id != destination_id for d in destinations):
                raise DestinationNotFoundError(str(destination_id))

            await self._store.delete_destination(destination_id)
            remaining = await self._store.list_destinations(trip_id)
            await self._store.apply_positions(trip_id, renormalize(remaining))
            logger.info(
                "Destination deleted",
                extra={"structured": {"trip_id": str(trip_id), "destination_id": str(destination_id)}},
            )
            return await self._store.list_destinations(trip_id)
