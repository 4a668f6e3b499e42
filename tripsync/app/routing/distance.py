"""Distance estimation between stops.

Straight-line figures use the haversine formula over a spherical Earth. When a
directions collaborator is configured, ``DistanceEstimator`` asks it for road
distances per segment and silently falls back to haversine for any segment it
cannot answer.
"""

import logging
import math
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from tripsync.app.adapters.directions import DirectionsClient
from tripsync.app.models.common import Coordinates, Severity
from tripsync.app.models.route import DistanceValidation, RouteImprovements, RouteMetrics
from tripsync.app.tools.executor import (
    CancelToken,
    CollaboratorConfig,
    CollaboratorContext,
    CollaboratorError,
    CollaboratorExecutor,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
DEFAULT_SPEED_KMH = 40.0
MAX_SEGMENT_KM = 20.0


class Stop(Protocol):
    """Anything with a name and optional coordinates."""

    name: str
    latitude: float | None
    longitude: float | None


def coordinates_of(stop: Stop) -> Coordinates | None:
    if stop.latitude is None or stop.longitude is None:
        return None
    return Coordinates(lat=stop.latitude, lng=stop.longitude)


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance in kilometers."""
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def stop_distance_km(a: Stop, b: Stop) -> float:
    """Distance between two stops; both must have coordinates."""
    ca, cb = coordinates_of(a), coordinates_of(b)
    if ca is None or cb is None:
        raise ValueError("both stops need coordinates")
    return haversine_km(ca, cb)


def route_distance_km(stops: Sequence[Stop]) -> float:
    """Sum of hops between consecutive located stops.

    Stops without coordinates add nothing; the chain resumes from the last
    located stop.
    """
    total = 0.0
    previous: Coordinates | None = None
    for stop in stops:
        current = coordinates_of(stop)
        if current is None:
            continue
        if previous is not None:
            total += haversine_km(previous, current)
        previous = current
    return total


def estimated_travel_minutes(distance_km: float, speed_kmh: float = DEFAULT_SPEED_KMH) -> float:
    """Travel time at a constant average urban speed."""
    return distance_km / speed_kmh * 60


def validate_distance(
    distance_km: float, user_added: bool = False, max_km: float = MAX_SEGMENT_KM
) -> DistanceValidation:
    """Judge one hop against the recommended daily travel radius."""
    if distance_km <= max_km:
        return DistanceValidation(valid=True, distance_km=distance_km, severity=Severity.ok)

    minutes = round(estimated_travel_minutes(distance_km))
    if user_added:
        return DistanceValidation(
            valid=True,
            distance_km=distance_km,
            severity=Severity.warning,
            message=f"{distance_km:.1f} km is fairly far (about {minutes} min by car)",
        )
    return DistanceValidation(
        valid=False,
        distance_km=distance_km,
        severity=Severity.error,
        message=(
            f"{distance_km:.1f} km exceeds the recommended {max_km:.0f} km "
            f"(about {minutes} min by car)"
        ),
    )


@dataclass
class RouteSegment:
    """One hop between consecutive located stops."""

    from_name: str
    to_name: str
    distance_km: float
    duration_minutes: float
    source: str  # "directions" or "haversine"


class DistanceEstimator:
    """Route totals with optional real road distances."""

    def __init__(
        self,
        directions: DirectionsClient | None = None,
        executor: CollaboratorExecutor | None = None,
        config: CollaboratorConfig | None = None,
        speed_kmh: float = DEFAULT_SPEED_KMH,
    ) -> None:
        self._directions = directions
        self._executor = executor or CollaboratorExecutor()
        self._config = config or CollaboratorConfig(timeout_ms=4000)
        self._speed_kmh = speed_kmh

    def _haversine_segment(self, a: Stop, b: Stop) -> RouteSegment:
        km = stop_distance_km(a, b)
        return RouteSegment(
            from_name=a.name,
            to_name=b.name,
            distance_km=km,
            duration_minutes=estimated_travel_minutes(km, self._speed_kmh),
            source="haversine",
        )

    async def segment(
        self,
        a: Stop,
        b: Stop,
        trip_id: str | None = None,
        cancel_token: CancelToken | None = None,
    ) -> RouteSegment:
        """Distance between two located stops; never raises for collaborator failures."""
        if self._directions is None:
            return self._haversine_segment(a, b)

        origin, destination = coordinates_of(a), coordinates_of(b)
        if origin is None or destination is None:
            raise ValueError("both stops need coordinates")

        ctx = CollaboratorContext(
            trace_id=str(uuid.uuid4()), trip_id=trip_id, collaborator=self._directions.source
        )
        directions = self._directions
        try:
            result = await self._executor.execute(
                ctx,
                self._config,
                lambda: directions.leg(origin, destination),
                cancel_token,
            )
        except CollaboratorError as e:
            logger.info(
                "Directions unavailable, using haversine",
                extra={"structured": {"from": a.name, "to": b.name, "reason": type(e).__name__}},
            )
            return self._haversine_segment(a, b)

        leg = result.value
        if leg is None:
            return self._haversine_segment(a, b)
        return RouteSegment(
            from_name=a.name,
            to_name=b.name,
            distance_km=leg.distance_km,
            duration_minutes=leg.duration_minutes,
            source="directions",
        )

    async def route(
        self,
        stops: Sequence[Stop],
        trip_id: str | None = None,
        cancel_token: CancelToken | None = None,
    ) -> tuple[RouteMetrics, list[RouteSegment]]:
        """Totals and per-hop segments for an ordered list of stops."""
        located = [s for s in stops if coordinates_of(s) is not None]
        segments = [
            await self.segment(a, b, trip_id, cancel_token)
            for a, b in zip(located, located[1:], strict=False)
        ]
        metrics = RouteMetrics(
            total_distance_km=sum(s.distance_km for s in segments),
            estimated_minutes=sum(s.duration_minutes for s in segments),
            used_real_distances=any(s.source == "directions" for s in segments),
        )
        return metrics, segments

    async def compare(
        self,
        original: Sequence[Stop],
        optimized: Sequence[Stop],
        trip_id: str | None = None,
    ) -> tuple[RouteImprovements, RouteMetrics]:
        """Measure a reordering with the same distance source as ``route``.

        Returns:
            Savings (never negative) and the metrics of the optimized order
        """
        before, _ = await self.route(original, trip_id)
        after, _ = await self.route(optimized, trip_id)
        improvements = RouteImprovements(
            original_distance_km=before.total_distance_km,
            optimized_distance_km=after.total_distance_km,
            saved_distance_km=max(0.0, before.total_distance_km - after.total_distance_km),
            saved_minutes=max(0.0, before.estimated_minutes - after.estimated_minutes),
        )
        return improvements, after
