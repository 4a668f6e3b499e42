"""In-memory implementation of the itinerary store."""

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, date, datetime
from typing import Any

from tripsync.app.db.repositories import (
    MUTABLE_DESTINATION_FIELDS,
    AuditRecord,
    DestinationNotFoundError,
    DestinationRecord,
    NewDestination,
    PositionConflictError,
    TripNotFoundError,
    TripRecord,
    temp_positions,
)
from tripsync.app.models.common import PlaceCategory
from tripsync.app.ordering.engine import PositionUpdate, end_date_for


@dataclass(frozen=True)
class WriteLogEntry:
    """One row write, recorded in order."""

    destination_id: uuid.UUID
    day: int
    position: int
    phase: str  # "insert", "temp", "final"


class InMemoryItineraryStore:
    """In-memory ItineraryStore.

    Uniqueness of (trip, day, position) is checked on every single row write,
    the way a database checks it per statement. Position batches are staged on
    a copy and committed in one step.
    """

    def __init__(
        self,
        temp_position_base: int = 100_000,
        settle_ms: int = 0,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._trips: dict[uuid.UUID, TripRecord] = {}
        self._destinations: dict[uuid.UUID, DestinationRecord] = {}
        self._audit: list[AuditRecord] = []
        self._temp_position_base = temp_position_base
        self._settle_ms = settle_ms
        self._sleep = sleep_fn or asyncio.sleep
        self.write_log: list[WriteLogEntry] = []

    # Trips

    async def create_trip(
        self,
        title: str,
        start_date: date,
        days: int,
        *,
        budget_min: float | None = None,
        budget_max: float | None = None,
    ) -> TripRecord:
        record = TripRecord(
            trip_id=uuid.uuid4(),
            title=title,
            start_date=start_date,
            end_date=end_date_for(start_date, days),
            budget_min=budget_min,
            budget_max=budget_max,
            created_at=datetime.now(UTC),
        )
        self._trips[record.trip_id] = record
        return record

    async def get_trip(self, trip_id: uuid.UUID) -> TripRecord | None:
        return self._trips.get(trip_id)

    async def update_trip(
        self,
        trip_id: uuid.UUID,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        budget_min: float | None = None,
        budget_max: float | None = None,
    ) -> TripRecord:
        record = self._trips.get(trip_id)
        if record is None:
            raise TripNotFoundError(str(trip_id))

        changes = {
            k: v
            for k, v in {
                "start_date": start_date,
                "end_date": end_date,
                "budget_min": budget_min,
                "budget_max": budget_max,
            }.items()
            if v is not None
        }
        record = replace(record, **changes)
        self._trips[trip_id] = record
        return record

    # Destinations

    async def list_destinations(self, trip_id: uuid.UUID) -> list[DestinationRecord]:
        rows = [d for d in self._destinations.values() if d.trip_id == trip_id]
        return sorted(rows, key=lambda d: (d.day, d.position))

    def _write_row(
        self,
        rows: dict[uuid.UUID, DestinationRecord],
        record: DestinationRecord,
        phase: str,
    ) -> None:
        for other in rows.values():
            if (
                other.destination_id != record.destination_id
                and other.trip_id == record.trip_id
                and other.day == record.day
                and other.position == record.position
            ):
                raise PositionConflictError(
                    f"day {record.day} position {record.position} already taken "
                    f"by {other.destination_id}"
                )
        rows[record.destination_id] = record
        self.write_log.append(
            WriteLogEntry(record.destination_id, record.day, record.position, phase)
        )

    async def insert_destination(
        self, trip_id: uuid.UUID, destination: NewDestination
    ) -> DestinationRecord:
        if trip_id not in self._trips:
            raise TripNotFoundError(str(trip_id))

        record = DestinationRecord(
            destination_id=uuid.uuid4(),
            trip_id=trip_id,
            name=destination.name,
            day=destination.day,
            position=destination.position,
            category=destination.category,
            latitude=destination.latitude,
            longitude=destination.longitude,
            address=destination.address,
            place_ref=destination.place_ref,
            rating=destination.rating,
            estimated_cost=destination.estimated_cost,
            visit_minutes=destination.visit_minutes,
            photos=list(destination.photos),
            created_at=datetime.now(UTC),
        )
        self._write_row(self._destinations, record, "insert")
        return record

    async def update_destination(
        self, destination_id: uuid.UUID, fields: Mapping[str, Any]
    ) -> DestinationRecord:
        record = self._destinations.get(destination_id)
        if record is None:
            raise DestinationNotFoundError(str(destination_id))

        unknown = set(fields) - MUTABLE_DESTINATION_FIELDS
        if unknown:
            raise ValueError(f"cannot update {sorted(unknown)}")

        changes = dict(fields)
        if "category" in changes:
            changes["category"] = PlaceCategory(changes["category"])
        record = replace(record, **changes)
        self._destinations[destination_id] = record
        return record

    async def delete_destination(self, destination_id: uuid.UUID) -> None:
        if self._destinations.pop(destination_id, None) is None:
            raise DestinationNotFoundError(str(destination_id))

    async def apply_positions(
        self, trip_id: uuid.UUID, updates: Sequence[PositionUpdate]
    ) -> None:
        if not updates:
            return

        staged = dict(self._destinations)
        for update in updates:
            row = staged.get(update.destination_id)
            if row is None or row.trip_id != trip_id:
                raise DestinationNotFoundError(str(update.destination_id))

        # Phase 1: temporary positions
        for update, temp in zip(
            updates, temp_positions(len(updates), self._temp_position_base), strict=True
        ):
            row = staged[update.destination_id]
            self._write_row(staged, replace(row, position=temp), "temp")

        if self._settle_ms > 0:
            await self._sleep(self._settle_ms / 1000)

        # Phase 2: final positions
        for update in updates:
            row = staged[update.destination_id]
            self._write_row(staged, replace(row, day=update.day, position=update.position), "final")

        self._destinations = staged

    # Audit

    async def record_action(
        self, trip_id: uuid.UUID, kind: str, outcome: str, payload: dict[str, Any]
    ) -> None:
        self._audit.append(
            AuditRecord(
                entry_id=uuid.uuid4(),
                trip_id=trip_id,
                kind=kind,
                outcome=outcome,
                payload=payload,
                created_at=datetime.now(UTC),
            )
        )

    async def list_actions(self, trip_id: uuid.UUID) -> list[AuditRecord]:
        return [a for a in self._audit if a.trip_id == trip_id]
