"""SQL implementation of the itinerary store."""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import date
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.db.models import Destination, SyncAuditEntry, Trip
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

logger = logging.getLogger(__name__)


def _trip_record(row: Trip) -> TripRecord:
    return TripRecord(
        trip_id=row.trip_id,
        title=row.title,
        start_date=row.start_date,
        end_date=row.end_date,
        budget_min=row.budget_min,
        budget_max=row.budget_max,
        created_at=row.created_at,
    )


def _destination_record(row: Destination) -> DestinationRecord:
    return DestinationRecord(
        destination_id=row.destination_id,
        trip_id=row.trip_id,
        name=row.name,
        day=row.day,
        position=row.position,
        category=PlaceCategory(row.category),
        latitude=row.latitude,
        longitude=row.longitude,
        address=row.address,
        place_ref=row.place_ref,
        rating=row.rating,
        estimated_cost=row.estimated_cost,
        visit_minutes=row.visit_minutes,
        photos=list(row.photos or []),
        created_at=row.created_at,
    )


class SqlItineraryStore:
    """AsyncSession-backed ItineraryStore. Each method commits its own work."""

    def __init__(
        self,
        session: AsyncSession,
        temp_position_base: int = 100_000,
        settle_ms: int = 0,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._session = session
        self._temp_position_base = temp_position_base
        self._settle_ms = settle_ms
        self._sleep = sleep_fn or asyncio.sleep

    async def _get_trip_row(self, trip_id: uuid.UUID) -> Trip | None:
        return await self._session.get(Trip, trip_id, populate_existing=True)

    async def create_trip(
        self,
        title: str,
        start_date: date,
        days: int,
        *,
        budget_min: float | None = None,
        budget_max: float | None = None,
    ) -> TripRecord:
        row = Trip(
            trip_id=uuid.uuid4(),
            title=title,
            start_date=start_date,
            end_date=end_date_for(start_date, days),
            budget_min=budget_min,
            budget_max=budget_max,
        )
        self._session.add(row)
        await self._session.flush()
        record = _trip_record(row)
        await self._session.commit()
        return record

    async def get_trip(self, trip_id: uuid.UUID) -> TripRecord | None:
        row = await self._get_trip_row(trip_id)
        return _trip_record(row) if row is not None else None

    async def update_trip(
        self,
        trip_id: uuid.UUID,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        budget_min: float | None = None,
        budget_max: float | None = None,
    ) -> TripRecord:
        row = await self._get_trip_row(trip_id)
        if row is None:
            raise TripNotFoundError(str(trip_id))

        if start_date is not None:
            row.start_date = start_date
        if end_date is not None:
            row.end_date = end_date
        if budget_min is not None:
            row.budget_min = budget_min
        if budget_max is not None:
            row.budget_max = budget_max

        await self._session.flush()
        record = _trip_record(row)
        await self._session.commit()
        return record

    async def list_destinations(self, trip_id: uuid.UUID) -> list[DestinationRecord]:
        query = (
            select(Destination)
            .where(Destination.trip_id == trip_id)
            .order_by(Destination.day, Destination.position)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(query)
        return [_destination_record(row) for row in result.scalars().all()]

    async def insert_destination(
        self, trip_id: uuid.UUID, destination: NewDestination
    ) -> DestinationRecord:
        if await self._get_trip_row(trip_id) is None:
            raise TripNotFoundError(str(trip_id))

        row = Destination(
            destination_id=uuid.uuid4(),
            trip_id=trip_id,
            name=destination.name,
            day=destination.day,
            position=destination.position,
            category=destination.category.value,
            latitude=destination.latitude,
            longitude=destination.longitude,
            address=destination.address,
            place_ref=destination.place_ref,
            rating=destination.rating,
            estimated_cost=destination.estimated_cost,
            visit_minutes=destination.visit_minutes,
            photos=list(destination.photos),
        )
        self._session.add(row)
        try:
            await self._session.flush()
        except IntegrityError as e:
            await self._session.rollback()
            raise PositionConflictError(
                f"day {destination.day} position {destination.position} already taken"
            ) from e

        record = _destination_record(row)
        await self._session.commit()
        return record

    async def update_destination(
        self, destination_id: uuid.UUID, fields: Mapping[str, Any]
    ) -> DestinationRecord:
        unknown = set(fields) - MUTABLE_DESTINATION_FIELDS
        if unknown:
            raise ValueError(f"cannot update {sorted(unknown)}")

        row = await self._session.get(Destination, destination_id, populate_existing=True)
        if row is None:
            raise DestinationNotFoundError(str(destination_id))

        for key, value in fields.items():
            if key == "category":
                value = PlaceCategory(value).value
            setattr(row, key, value)

        await self._session.flush()
        record = _destination_record(row)
        await self._session.commit()
        return record

    async def delete_destination(self, destination_id: uuid.UUID) -> None:
        row = await self._session.get(Destination, destination_id)
        if row is None:
            raise DestinationNotFoundError(str(destination_id))
        await self._session.delete(row)
        await self._session.commit()

    async def apply_positions(
        self, trip_id: uuid.UUID, updates: Sequence[PositionUpdate]
    ) -> None:
        if not updates:
            return

        temps = temp_positions(len(updates), self._temp_position_base)
        try:
            # Phase 1: temporary positions
            for u, temp in zip(updates, temps, strict=True):
                result = await self._session.execute(
                    update(Destination)
                    .where(Destination.destination_id == u.destination_id)
                    .where(Destination.trip_id == trip_id)
                    .values(position=temp)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise DestinationNotFoundError(str(u.destination_id))
            await self._session.flush()

            if self._settle_ms > 0:
                await self._sleep(self._settle_ms / 1000)

            # Phase 2: final positions
            for u in updates:
                await self._session.execute(
                    update(Destination)
                    .where(Destination.destination_id == u.destination_id)
                    .values(day=u.day, position=u.position)
                    .execution_options(synchronize_session=False)
                )
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            logger.error(
                "Position write violated uniqueness; batch rolled back",
                extra={"structured": {"trip_id": str(trip_id), "rows": len(updates)}},
            )
            raise PositionConflictError(f"position batch for trip {trip_id} collided") from e
        except DestinationNotFoundError:
            await self._session.rollback()
            raise

    async def record_action(
        self, trip_id: uuid.UUID, kind: str, outcome: str, payload: dict[str, Any]
    ) -> None:
        self._session.add(
            SyncAuditEntry(
                entry_id=uuid.uuid4(), trip_id=trip_id, kind=kind, outcome=outcome, payload=payload
            )
        )
        await self._session.commit()

    async def list_actions(self, trip_id: uuid.UUID) -> list[AuditRecord]:
        query = (
            select(SyncAuditEntry)
            .where(SyncAuditEntry.trip_id == trip_id)
            .order_by(SyncAuditEntry.created_at)
        )
        result = await self._session.execute(query)
        return [
            AuditRecord(
                entry_id=row.entry_id,
                trip_id=row.trip_id,
                kind=row.kind,
                outcome=row.outcome,
                payload=row.payload,
                created_at=row.created_at,
            )
            for row in result.scalars().all()
        ]
