"""Itinerary store protocol, data records and store errors."""

import random
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Protocol

from tripsync.app.models.common import PlaceCategory
from tripsync.app.ordering.engine import PositionUpdate, day_span

# Fields update_destination accepts; day/position go through apply_positions.
MUTABLE_DESTINATION_FIELDS = frozenset(
    {
        "name",
        "category",
        "latitude",
        "longitude",
        "address",
        "place_ref",
        "rating",
        "estimated_cost",
        "visit_minutes",
        "photos",
    }
)


class TripNotFoundError(LookupError):
    """Trip does not exist."""


class DestinationNotFoundError(LookupError):
    """Destination does not exist in the trip."""


class PositionConflictError(RuntimeError):
    """A write would leave two destinations on the same (trip, day, position)."""


@dataclass
class TripRecord:
    """Trip data record."""

    trip_id: uuid.UUID
    title: str
    start_date: date
    end_date: date
    budget_min: float | None
    budget_max: float | None
    created_at: datetime

    @property
    def day_count(self) -> int:
        return day_span(self.start_date, self.end_date)


@dataclass
class NewDestination:
    """Destination to insert; the store assigns its id."""

    name: str
    day: int
    position: int
    category: PlaceCategory = PlaceCategory.attraction
    latitude: float | None = None
    longitude: float | None = None
    address: str | None = None
    place_ref: str | None = None
    rating: float | None = None
    estimated_cost: float | None = None
    visit_minutes: int | None = None
    photos: list[str] = field(default_factory=list)


@dataclass
class DestinationRecord:
    """Destination data record."""

    destination_id: uuid.UUID
    trip_id: uuid.UUID
    name: str
    day: int
    position: int
    category: PlaceCategory
    latitude: float | None
    longitude: float | None
    address: str | None
    place_ref: str | None
    rating: float | None
    estimated_cost: float | None
    visit_minutes: int | None
    photos: list[str]
    created_at: datetime


@dataclass
class AuditRecord:
    """One executed action."""

    entry_id: uuid.UUID
    trip_id: uuid.UUID
    kind: str
    outcome: str
    payload: dict[str, Any]
    created_at: datetime


def temp_positions(count: int, base: int) -> list[int]:
    """Phase-1 positions for a batch of ``count`` rows.

    A random block far above any real position, one slot per row, so values
    collide neither with final positions nor with each other, nor with a
    concurrent batch that drew a different block.
    """
    stride = max(1000, count)
    offset = base + random.randrange(10_000) * stride
    return [offset + index for index in range(count)]


class ItineraryStore(Protocol):
    """Async store of trips and their destinations."""

    async def create_trip(
        self,
        title: str,
        start_date: date,
        days: int,
        *,
        budget_min: float | None = None,
        budget_max: float | None = None,
    ) -> TripRecord: ...

    async def get_trip(self, trip_id: uuid.UUID) -> TripRecord | None: ...

    async def update_trip(
        self,
        trip_id: uuid.UUID,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        budget_min: float | None = None,
        budget_max: float | None = None,
    ) -> TripRecord:
        """Update trip fields that are not None.

        Raises:
            TripNotFoundError: Unknown trip
        """
        ...

    async def list_destinations(self, trip_id: uuid.UUID) -> list[DestinationRecord]:
        """Committed destinations ordered by (day, position)."""
        ...

    async def insert_destination(
        self, trip_id: uuid.UUID, destination: NewDestination
    ) -> DestinationRecord:
        """Insert one destination.

        Raises:
            TripNotFoundError: Unknown trip
            PositionConflictError: (day, position) already taken
        """
        ...

    async def update_destination(
        self, destination_id: uuid.UUID, fields: Mapping[str, Any]
    ) -> DestinationRecord:
        """Update non-positional fields.

        Raises:
            DestinationNotFoundError: Unknown destination
        """
        ...

    async def delete_destination(self, destination_id: uuid.UUID) -> None:
        """Delete one destination. Siblings are not renumbered here."""
        ...

    async def apply_positions(
        self, trip_id: uuid.UUID, updates: Sequence[PositionUpdate]
    ) -> None:
        """Write final (day, position) for a batch of rows with the two-phase protocol.

        Phase 1 moves every row to a temporary position, phase 2 writes the
        final values. Readers never observe the intermediate state.

        Raises:
            PositionConflictError: The final state violates uniqueness
        """
        ...

    async def record_action(
        self, trip_id: uuid.UUID, kind: str, outcome: str, payload: dict[str, Any]
    ) -> None: ...

    async def list_actions(self, trip_id: uuid.UUID) -> list[AuditRecord]: ...
