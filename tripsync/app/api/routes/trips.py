"""Trip endpoints - AI action sync, manual edits and route views."""

import uuid
from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from tripsync.app.api.deps import get_coordinate_resolver, get_distance_estimator, get_store
from tripsync.app.config import get_settings
from tripsync.app.db.repositories import (
    DestinationRecord,
    ItineraryStore,
    TripNotFoundError,
    TripRecord,
)
from tripsync.app.models.common import Coordinates, PlaceCategory
from tripsync.app.models.route import (
    BestDaySuggestion,
    DailyTimeEstimate,
    DayPlanValidation,
    DistanceValidation,
    RouteImprovements,
    RouteMetrics,
)
from tripsync.app.models.sync import SyncReport
from tripsync.app.ordering.engine import effective_day_count
from tripsync.app.places.resolver import CoordinateResolver
from tripsync.app.routing.day_plan import estimate_daily_time, find_best_day, validate_day_plan
from tripsync.app.routing.distance import DistanceEstimator, validate_distance
from tripsync.app.sync.context import SyncContext
from tripsync.app.sync.manual import ItineraryEditor
from tripsync.app.sync.resolver import ActionResolver

router = APIRouter(prefix="/trips", tags=["trips"])

StoreDep = Annotated[ItineraryStore, Depends(get_store)]


class CreateTripRequest(BaseModel):
    """Request body for POST /trips."""

    title: str = Field(..., min_length=1)
    start_date: date
    days: int = Field(1, ge=1, le=60)
    budget_min: float | None = Field(None, ge=0)
    budget_max: float | None = Field(None, ge=0)


class TripResponse(BaseModel):
    trip_id: uuid.UUID
    title: str
    start_date: date
    end_date: date
    day_count: int
    budget_min: float | None
    budget_max: float | None


class DestinationResponse(BaseModel):
    destination_id: uuid.UUID
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


class ApplyActionsRequest(BaseModel):
    """Request body for POST /trips/{trip_id}/actions.

    Actions are validated inside the resolver so one bad item does not
    reject the whole batch.
    """

    actions: list[Any] = Field(default_factory=list)
    previous_location: str | None = None


class ApplyActionsResponse(BaseModel):
    report: SyncReport
    summary: str
    context: SyncContext
    destinations: list[DestinationResponse]


class DayOrderRequest(BaseModel):
    """Full visiting order of one day, as destination ids."""

    destination_ids: list[uuid.UUID] = Field(..., min_length=1)


class MoveRequest(BaseModel):
    day: int = Field(..., ge=1)
    position: int | None = Field(None, ge=1)


class SegmentResponse(BaseModel):
    from_name: str
    to_name: str
    distance_km: float
    duration_minutes: float
    source: str
    check: DistanceValidation


class RouteResponse(BaseModel):
    day: int
    metrics: RouteMetrics
    segments: list[SegmentResponse]
    validation: DayPlanValidation
    estimate: DailyTimeEstimate


class OptimizeResponse(BaseModel):
    day: int
    smart: bool
    applied: bool
    improvements: RouteImprovements
    metrics: RouteMetrics
    used_real_distances: bool
    stops: list[DestinationResponse]


def _trip_response(trip: TripRecord, destinations: list[DestinationRecord]) -> TripResponse:
    return TripResponse(
        trip_id=trip.trip_id,
        title=trip.title,
        start_date=trip.start_date,
        end_date=trip.end_date,
        day_count=effective_day_count(trip.day_count, (d.day for d in destinations)),
        budget_min=trip.budget_min,
        budget_max=trip.budget_max,
    )


def _destination_response(record: DestinationRecord) -> DestinationResponse:
    return DestinationResponse(
        destination_id=record.destination_id,
        name=record.name,
        day=record.day,
        position=record.position,
        category=record.category,
        latitude=record.latitude,
        longitude=record.longitude,
        address=record.address,
        place_ref=record.place_ref,
        rating=record.rating,
        estimated_cost=record.estimated_cost,
        visit_minutes=record.visit_minutes,
        photos=record.photos,
    )


async def _day_stops(store: ItineraryStore, trip_id: uuid.UUID, day: int) -> list[DestinationRecord]:
    if await store.get_trip(trip_id) is None:
        raise TripNotFoundError(str(trip_id))
    return [d for d in await store.list_destinations(trip_id) if d.day == day]


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(request: CreateTripRequest, store: StoreDep) -> TripResponse:
    """Create a trip spanning ``days`` days from ``start_date``."""
    trip = await store.create_trip(
        request.title,
        request.start_date,
        request.days,
        budget_min=request.budget_min,
        budget_max=request.budget_max,
    )
    return _trip_response(trip, [])


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(trip_id: uuid.UUID, store: StoreDep) -> TripResponse:
    """Trip with its effective day count."""
    trip = await store.get_trip(trip_id)
    if trip is None:
        raise TripNotFoundError(str(trip_id))
    return _trip_response(trip, await store.list_destinations(trip_id))


@router.get("/{trip_id}/destinations", response_model=list[DestinationResponse])
async def list_destinations(trip_id: uuid.UUID, store: StoreDep) -> list[DestinationResponse]:
    """Destinations ordered by (day, position)."""
    if await store.get_trip(trip_id) is None:
        raise TripNotFoundError(str(trip_id))
    return [_destination_response(d) for d in await store.list_destinations(trip_id)]


@router.post("/{trip_id}/actions", response_model=ApplyActionsResponse)
async def apply_actions(
    trip_id: uuid.UUID,
    request: ApplyActionsRequest,
    store: StoreDep,
    coordinates: Annotated[CoordinateResolver, Depends(get_coordinate_resolver)],
) -> ApplyActionsResponse:
    """Apply one AI turn's actions and return the re-read itinerary.

    Returns:
        Sync report, updated conversation context and the destination list
        as stored after the sync
    """
    resolver = ActionResolver(store, coordinates)
    context = SyncContext(trip_id=trip_id, previous_location=request.previous_location)
    report = await resolver.apply(request.actions, trip_id, context=context)

    destinations = await store.list_destinations(trip_id)
    return ApplyActionsResponse(
        report=report,
        summary=report.summary,
        context=SyncContext(trip_id=trip_id, previous_location=report.previous_location),
        destinations=[_destination_response(d) for d in destinations],
    )


@router.put("/{trip_id}/days/{day}/order", response_model=list[DestinationResponse])
async def reorder_day(
    trip_id: uuid.UUID, day: int, request: DayOrderRequest, store: StoreDep
) -> list[DestinationResponse]:
    """Drag-and-drop reorder within one day."""
    destinations = await ItineraryEditor(store).reorder_day(trip_id, day, request.destination_ids)
    return [_destination_response(d) for d in destinations]


@router.post(
    "/{trip_id}/destinations/{destination_id}/move", response_model=list[DestinationResponse]
)
async def move_destination(
    trip_id: uuid.UUID, destination_id: uuid.UUID, request: MoveRequest, store: StoreDep
) -> list[DestinationResponse]:
    """Move one destination to another day and/or position."""
    destinations = await ItineraryEditor(store).move_destination(
        trip_id, destination_id, request.day, request.position
    )
    return [_destination_response(d) for d in destinations]


@router.delete(
    "/{trip_id}/destinations/{destination_id}", response_model=list[DestinationResponse]
)
async def delete_destination(
    trip_id: uuid.UUID, destination_id: uuid.UUID, store: StoreDep
) -> list[DestinationResponse]:
    """Delete one destination and renumber its day."""
    destinations = await ItineraryEditor(store).delete_destination(trip_id, destination_id)
    return [_destination_response(d) for d in destinations]


@router.get("/{trip_id}/days/{day}/route", response_model=RouteResponse)
async def day_route(
    trip_id: uuid.UUID,
    day: int,
    store: StoreDep,
    estimator: Annotated[DistanceEstimator, Depends(get_distance_estimator)],
) -> RouteResponse:
    """Route metrics and plan checks for one day in its current order."""
    stops = await _day_stops(store, trip_id, day)
    metrics, segments = await estimator.route(stops, trip_id=str(trip_id))
    return RouteResponse(
        day=day,
        metrics=metrics,
        segments=[
            SegmentResponse(
                from_name=s.from_name,
                to_name=s.to_name,
                distance_km=s.distance_km,
                duration_minutes=s.duration_minutes,
                source=s.source,
                check=validate_distance(s.distance_km),
            )
            for s in segments
        ],
        validation=validate_day_plan(stops),
        estimate=await estimate_daily_time(stops, estimator, trip_id=str(trip_id)),
    )


@router.post("/{trip_id}/days/{day}/optimize", response_model=OptimizeResponse)
async def optimize_day(
    trip_id: uuid.UUID,
    day: int,
    store: StoreDep,
    estimator: Annotated[DistanceEstimator, Depends(get_distance_estimator)],
    smart: Annotated[bool, Query()] = True,
    apply: Annotated[bool, Query()] = False,
) -> OptimizeResponse:
    """Suggest a shorter visiting order; persist it when ``apply`` is set.

    The order comes from straight-line distances; the before/after figures use
    road distances when the directions service answers.
    """
    route = await ItineraryEditor(store).optimize_day(trip_id, day, smart=smart, apply=apply)
    improvements, metrics = await estimator.compare(
        route.original, route.stops, trip_id=str(trip_id)
    )

    return OptimizeResponse(
        day=day,
        smart=smart,
        applied=apply,
        improvements=improvements,
        metrics=metrics,
        used_real_distances=metrics.used_real_distances,
        stops=[_destination_response(d) for d in route.stops],
    )


@router.get("/{trip_id}/best-day", response_model=BestDaySuggestion | None)
async def best_day(
    trip_id: uuid.UUID,
    store: StoreDep,
    lat: Annotated[float, Query(ge=-90, le=90)],
    lng: Annotated[float, Query(ge=-180, le=180)],
) -> BestDaySuggestion | None:
    """Day holding the stop nearest to a new location; null when none is nearby."""
    if await store.get_trip(trip_id) is None:
        raise TripNotFoundError(str(trip_id))

    stops_by_day: dict[int, list[DestinationRecord]] = {}
    for dest in await store.list_destinations(trip_id):
        stops_by_day.setdefault(dest.day, []).append(dest)

    return find_best_day(
        Coordinates(lat=lat, lng=lng),
        stops_by_day,
        threshold_km=get_settings().nearby_threshold_km,
    )
