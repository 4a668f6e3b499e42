"""Action resolver: applies one AI turn's actions to a trip.

Actions never run in arrival order. The batch is validated, stably sorted by
``ACTION_PRIORITY`` and executed one action at a time under the trip's lock.

Every action is best-effort. A failing action is logged, recorded in the
report and the audit log, and the next action runs. Two conditions end the
whole call: an unknown trip (raised before anything runs) and a position
conflict.
"""

import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from tripsync.app.db.repositories import (
    DestinationNotFoundError,
    DestinationRecord,
    ItineraryStore,
    NewDestination,
    PositionConflictError,
    TripNotFoundError,
    TripRecord,
)
from tripsync.app.models.actions import (
    ADVISORY_KINDS,
    ActionKind,
    AddDestinations,
    DestinationDescriptor,
    ModifyTrip,
    MoveDestination,
    RemoveDestinations,
    ReorderDestinations,
    TripAction,
    UpdateTripInfo,
    parse_actions,
    sort_by_priority,
)
from tripsync.app.models.common import PlaceCategory
from tripsync.app.models.places import ResolvedPlace
from tripsync.app.models.sync import FailureEvent, ProgressEvent, SkippedAction, SyncReport
from tripsync.app.ordering.engine import (
    ItineraryLayout,
    assign_days,
    clamp_day,
    effective_day_count,
    end_date_for,
    renormalize,
)
from tripsync.app.places.resolver import CoordinateResolver
from tripsync.app.sync.context import SyncContext
from tripsync.app.sync.locks import TripLockRegistry, get_trip_locks
from tripsync.app.sync.matching import (
    AmbiguousNameError,
    extract_names_from_text,
    match_destinations,
    names_from_payload,
)
from tripsync.app.tools.executor import CancelToken, CollaboratorCancelledError
from tripsync.app.utils.metrics import record_sync_action

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], Awaitable[None] | None]
FailureCallback = Callable[[FailureEvent], Awaitable[None] | None]


class MalformedActionError(ValueError):
    """Action validated structurally but cannot be executed."""


class SyncCancelled(Exception):
    """Raised internally to unwind once the cancel token is set."""


async def _emit(callback: Callable[[Any], Any] | None, event: Any) -> None:
    if callback is None:
        return
    result = callback(event)
    if inspect.isawaitable(result):
        await result


def _category_for(descriptor: DestinationDescriptor, place: ResolvedPlace | None) -> PlaceCategory:
    if descriptor.place_type:
        return PlaceCategory.from_place_type(descriptor.place_type)
    if place is not None:
        for place_type in ("lodging", "restaurant"):
            if place_type in place.place_types:
                return PlaceCategory.from_place_type(place_type)
    return PlaceCategory.attraction


@dataclass
class _Batch:
    """Mutable state of one ``apply`` call."""

    trip: TripRecord
    day_count: int
    context: SyncContext
    report: SyncReport
    on_progress: ProgressCallback | None
    on_failure: FailureCallback | None
    cancel_token: CancelToken | None
    target_day: int | None = None
    location_hint: str | None = None
    progress_index: int = 0
    progress_total: int = 0

    @property
    def trip_id(self) -> uuid.UUID:
        return self.trip.trip_id

    def check_cancelled(self) -> None:
        if self.cancel_token is not None and self.cancel_token.cancelled:
            raise SyncCancelled()

    def widen(self, destinations: Iterable[DestinationRecord]) -> None:
        self.day_count = effective_day_count(self.trip.day_count, (d.day for d in destinations))

    async def advance(self, destination_name: str) -> None:
        """Count one ADD destination as handled and report progress."""
        self.progress_index += 1
        event = ProgressEvent(
            current_index=self.progress_index,
            total=self.progress_total,
            destination_name=destination_name,
        )
        self.report.progress.append(event)
        await _emit(self.on_progress, event)


class ActionResolver:
    """Applies typed AI actions to a trip's destinations."""

    def __init__(
        self,
        store: ItineraryStore,
        coordinates: CoordinateResolver | None = None,
        locks: TripLockRegistry | None = None,
    ) -> None:
        self._store = store
        self._coordinates = coordinates
        self._locks = locks or get_trip_locks()

    async def apply(
        self,
        actions: Iterable[Any],
        trip_id: uuid.UUID,
        *,
        context: SyncContext | None = None,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        cancel_token: CancelToken | None = None,
    ) -> SyncReport:
        """Apply one AI turn.

        Args:
            actions: Raw or typed actions; unusable items become NO_ACTION
            trip_id: Trip to modify
            context: Conversation state from the previous turn
            on_progress: Called once each ADD destination has been stored or reported failed
            on_failure: Called for each destination that could not be located or added
            cancel_token: Once set, no further action or destination is started

        Raises:
            TripNotFoundError: Unknown trip
            PositionConflictError: A position write collided; the batch stops
        """
        ordered = sort_by_priority(parse_actions(actions))
        context = context or SyncContext(trip_id=trip_id)

        async with self._locks.lock_for(trip_id):
            trip = await self._store.get_trip(trip_id)
            if trip is None:
                raise TripNotFoundError(str(trip_id))

            destinations = await self._store.list_destinations(trip_id)
            batch = _Batch(
                trip=trip,
                day_count=effective_day_count(trip.day_count, (d.day for d in destinations)),
                context=context,
                report=SyncReport(previous_location=context.previous_location),
                on_progress=on_progress,
                on_failure=on_failure,
                cancel_token=cancel_token,
                progress_total=sum(
                    len(a.destinations) for a in ordered if isinstance(a, AddDestinations)
                ),
            )

            try:
                for action in ordered:
                    batch.check_cancelled()
                    await self._run_action(action, batch)
            except (SyncCancelled, CollaboratorCancelledError):
                batch.report.cancelled = True
                logger.info(
                    "Sync cancelled",
                    extra={"structured": {"trip_id": str(trip_id)}},
                )

        report = batch.report
        logger.info(
            report.summary,
            extra={
                "structured": {
                    "trip_id": str(trip_id),
                    "applied": report.applied,
                    "skipped": [s.kind for s in report.skipped],
                    "cancelled": report.cancelled,
                }
            },
        )
        return report

    async def _run_action(self, action: TripAction, batch: _Batch) -> None:
        kind = action.kind
        payload = action.model_dump(mode="json")

        if kind in ADVISORY_KINDS:
            if kind != ActionKind.NO_ACTION:
                batch.report.advisories.append(payload)
            record_sync_action(kind.value, "advisory")
            return

        try:
            if isinstance(action, ModifyTrip):
                await self._modify_trip(action, batch)
            elif isinstance(action, UpdateTripInfo):
                await self._update_trip_info(action, batch)
            elif isinstance(action, RemoveDestinations):
                await self._remove(action, batch)
            elif isinstance(action, AddDestinations):
                await self._add(action, batch)
            elif isinstance(action, ReorderDestinations):
                await self._reorder(action, batch)
            elif isinstance(action, MoveDestination):
                await self._move(action, batch)
        except (SyncCancelled, CollaboratorCancelledError):
            raise
        except PositionConflictError:
            record_sync_action(kind.value, "failed")
            logger.error(
                "Position conflict while applying %s; aborting batch",
                kind.value,
                extra={"structured": {"trip_id": str(batch.trip_id), "action": kind.value}},
            )
            raise
        except (MalformedActionError, DestinationNotFoundError, AmbiguousNameError) as e:
            logger.warning(
                "Skipping %s: %s",
                kind.value,
                e,
                extra={"structured": {"trip_id": str(batch.trip_id), "action": kind.value}},
            )
            batch.report.skipped.append(SkippedAction(kind=kind.value, reason=str(e)))
            record_sync_action(kind.value, "skipped")
            await self._store.record_action(batch.trip_id, kind.value, "skipped", payload)
            return
        except Exception as e:
            logger.exception(
                "Action %s failed",
                kind.value,
                extra={"structured": {"trip_id": str(batch.trip_id), "action": kind.value}},
            )
            batch.report.skipped.append(
                SkippedAction(kind=kind.value, reason=f"{type(e).__name__}: {e}")
            )
            record_sync_action(kind.value, "failed")
            await self._store.record_action(batch.trip_id, kind.value, "failed", payload)
            return

        batch.report.applied.append(kind.value)
        record_sync_action(kind.value, "applied")
        await self._store.record_action(batch.trip_id, kind.value, "applied", payload)

    async def _modify_trip(self, action: ModifyTrip, batch: _Batch) -> None:
        mod = action.trip_modification
        if mod.new_total_days is not None:
            batch.trip = await self._store.update_trip(
                batch.trip_id, end_date=end_date_for(batch.trip.start_date, mod.new_total_days)
            )
            batch.widen(await self._store.list_destinations(batch.trip_id))

        target = mod.target_day
        if target is None and mod.extend_to_province and mod.modification_type == "ADD_DAYS":
            target = batch.trip.day_count
        if target is not None:
            batch.target_day = clamp_day(target, batch.day_count)
            batch.report.target_day = batch.target_day

        if mod.extend_to_province:
            batch.location_hint = mod.extend_to_province
            batch.report.previous_location = mod.extend_to_province

        logger.info(
            "Trip modified",
            extra={
                "structured": {
                    "trip_id": str(batch.trip_id),
                    "day_count": batch.day_count,
                    "target_day": batch.target_day,
                }
            },
        )

    async def _update_trip_info(self, action: UpdateTripInfo, batch: _Batch) -> None:
        end_date = None
        if action.days is not None or action.start_date is not None:
            start = action.start_date or batch.trip.start_date
            end_date = end_date_for(start, action.days or batch.trip.day_count)

        batch.trip = await self._store.update_trip(
            batch.trip_id,
            start_date=action.start_date,
            end_date=end_date,
            budget_min=action.budget_min,
            budget_max=action.budget_max,
        )
        batch.widen(await self._store.list_destinations(batch.trip_id))

    async def _remove(self, action: RemoveDestinations, batch: _Batch) -> None:
        names = action.destination_names or names_from_payload(action.destinations)
        if not names:
            names = extract_names_from_text(action.context)
            if names:
                logger.warning(
                    "Removal targets taken from free text",
                    extra={"structured": {"trip_id": str(batch.trip_id), "names": names}},
                )
        if not names:
            raise MalformedActionError("no destination names to remove")

        destinations = await self._store.list_destinations(batch.trip_id)
        doomed: dict[uuid.UUID, DestinationRecord] = {}
        ambiguous: list[AmbiguousNameError] = []
        for name in names:
            try:
                matches = match_destinations(name, destinations)
            except AmbiguousNameError as e:
                ambiguous.append(e)
                continue
            if not matches:
                logger.info("No destination matches %r", name)
            for dest in matches:
                doomed[dest.destination_id] = dest
        if not doomed:
            if ambiguous:
                raise ambiguous[0]
            raise DestinationNotFoundError(f"no destination matches {names}")

        for e in ambiguous:
            logger.warning(
                "Not removing %r: %s",
                e.name,
                e,
                extra={"structured": {"trip_id": str(batch.trip_id)}},
            )
            batch.report.skipped.append(
                SkippedAction(kind=ActionKind.REMOVE_DESTINATIONS.value, reason=str(e))
            )

        for dest in doomed.values():
            await self._store.delete_destination(dest.destination_id)
            batch.report.removed.append(dest.name)

        # Renumber only after every delete has completed
        remaining = await self._store.list_destinations(batch.trip_id)
        await self._store.apply_positions(batch.trip_id, renormalize(remaining))

    async def _resolve_place(
        self, descriptor: DestinationDescriptor, hint: str | None, batch: _Batch
    ) -> ResolvedPlace | None:
        if self._coordinates is None:
            return None
        return await self._coordinates.resolve(
            descriptor.name,
            descriptor.hint_address or hint,
            trip_id=str(batch.trip_id),
            cancel_token=batch.cancel_token,
        )

    async def _add(self, action: AddDestinations, batch: _Batch) -> None:
        report = batch.report
        destinations = await self._store.list_destinations(batch.trip_id)
        layout = ItineraryLayout.from_destinations(destinations)

        group_day = action.day if action.day is not None else batch.target_day
        days = assign_days([d.day for d in action.destinations], batch.day_count, group_day)
        hint = action.location_context or batch.location_hint or batch.context.previous_location
        if action.location_context:
            report.previous_location = action.location_context

        for descriptor, day in zip(action.destinations, days, strict=True):
            batch.check_cancelled()
            place = None
            latitude, longitude = descriptor.latitude, descriptor.longitude
            if not descriptor.has_coordinates:
                place = await self._resolve_place(descriptor, hint, batch)
                if place is None:
                    report.unlocated.append(descriptor.name)
                    await _emit(
                        batch.on_failure,
                        FailureEvent(destination_name=descriptor.name, reason="not_found"),
                    )
                else:
                    latitude, longitude = place.latitude, place.longitude

            new = NewDestination(
                name=descriptor.name,
                day=day,
                position=layout.count(day) + 1,
                category=_category_for(descriptor, place),
                latitude=latitude,
                longitude=longitude,
                address=place.address if place else descriptor.hint_address,
                place_ref=place.place_ref if place else None,
                rating=place.rating if place else None,
                visit_minutes=round(descriptor.min_hours * 60) if descriptor.min_hours else None,
                photos=place.photos if place else [],
            )
            try:
                record = await self._store.insert_destination(batch.trip_id, new)
            except PositionConflictError:
                raise
            except Exception as e:
                logger.exception(
                    "Failed to add destination %r",
                    descriptor.name,
                    extra={"structured": {"trip_id": str(batch.trip_id), "day": day}},
                )
                report.failed.append(descriptor.name)
                await _emit(
                    batch.on_failure,
                    FailureEvent(destination_name=descriptor.name, reason=type(e).__name__),
                )
            else:
                layout.append(day, record.destination_id)
                report.added.append(record.name)

            await batch.advance(descriptor.name)

    async def _reorder(self, action: ReorderDestinations, batch: _Batch) -> None:
        destinations = await self._store.list_destinations(batch.trip_id)
        layout = ItineraryLayout.from_destinations(destinations)

        entries: list[tuple[uuid.UUID, int, int]] = []
        used: set[uuid.UUID] = set()
        for order in action.destination_order:
            candidates = [
                d for d in match_destinations(order.name, destinations) if d.destination_id not in used
            ]
            if not candidates:
                raise DestinationNotFoundError(f"no destination matches {order.name!r}")
            dest = candidates[0]
            used.add(dest.destination_id)
            entries.append((dest.destination_id, clamp_day(order.day, batch.day_count), order.position))

        layout.reorder(entries)
        await self._store.apply_positions(batch.trip_id, layout.diff(destinations))

    async def _move(self, action: MoveDestination, batch: _Batch) -> None:
        destinations = await self._store.list_destinations(batch.trip_id)
        matches = match_destinations(action.destination_name, destinations)
        if not matches:
            raise DestinationNotFoundError(f"no destination matches {action.destination_name!r}")

        dest = matches[0]
        layout = ItineraryLayout.from_destinations(destinations)
        layout.move(
            dest.destination_id,
            clamp_day(action.target_day, batch.day_count),
            action.target_position,
        )
        await self._store.apply_positions(batch.trip_id, layout.diff(destinations))
        batch.report.moved.append(dest.name)
