"""Visiting order for one day's stops.

Both variants are greedy nearest-neighbor heuristics. They give a reasonable
order quickly; they are not a TSP solver and the result is not minimal.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from tripsync.app.models.common import PlaceCategory
from tripsync.app.models.route import RouteImprovements
from tripsync.app.routing.distance import (
    DEFAULT_SPEED_KMH,
    Stop,
    coordinates_of,
    estimated_travel_minutes,
    route_distance_km,
    stop_distance_km,
)

S = TypeVar("S", bound=Stop)

# A restaurant is slotted in after this many attractions
ATTRACTIONS_PER_MEAL = 3


@dataclass
class OptimizedRoute(Generic[S]):
    stops: list[S]
    original: list[S]
    improvements: RouteImprovements


def category_of(stop: Stop) -> PlaceCategory:
    """Category of a stop; untyped stops count as attractions."""
    value = getattr(stop, "category", None)
    if isinstance(value, PlaceCategory):
        return value
    return PlaceCategory.from_place_type(value)


def _nearest_neighbor(start: S, candidates: list[S]) -> list[S]:
    """Order candidates greedily starting from ``start`` (not included).

    Ties go to the candidate that came first in the input.
    """
    ordered: list[S] = []
    remaining = list(candidates)
    current = start
    while remaining:
        best_index = 0
        best_distance = stop_distance_km(current, remaining[0])
        for i in range(1, len(remaining)):
            d = stop_distance_km(current, remaining[i])
            if d < best_distance:
                best_index, best_distance = i, d
        current = remaining.pop(best_index)
        ordered.append(current)
    return ordered


def _improvements(
    original: Sequence[Stop], optimized: Sequence[Stop], speed_kmh: float
) -> RouteImprovements:
    before = route_distance_km(original)
    after = route_distance_km(optimized)
    saved = max(0.0, before - after)
    return RouteImprovements(
        original_distance_km=before,
        optimized_distance_km=after,
        saved_distance_km=saved,
        saved_minutes=estimated_travel_minutes(saved, speed_kmh),
    )


def optimize(stops: Sequence[S], speed_kmh: float = DEFAULT_SPEED_KMH) -> OptimizedRoute[S]:
    """Nearest-neighbor order anchored on the first located stop.

    Stops without coordinates keep their relative order at the end.
    """
    located = [s for s in stops if coordinates_of(s) is not None]
    unlocated = [s for s in stops if coordinates_of(s) is None]

    if len(located) < 2:
        ordered = list(stops)
    else:
        ordered = [located[0], *_nearest_neighbor(located[0], located[1:]), *unlocated]

    return OptimizedRoute(
        stops=ordered,
        original=list(stops),
        improvements=_improvements(stops, ordered, speed_kmh),
    )


def optimize_smart(stops: Sequence[S], speed_kmh: float = DEFAULT_SPEED_KMH) -> OptimizedRoute[S]:
    """Lodging first, attractions by nearest neighbor, a meal every third attraction."""
    located = [s for s in stops if coordinates_of(s) is not None]
    if len(located) < 2:
        return optimize(stops, speed_kmh)

    unlocated = [s for s in stops if coordinates_of(s) is None]
    lodgings = [s for s in located if category_of(s) == PlaceCategory.lodging]
    restaurants = [s for s in located if category_of(s) == PlaceCategory.restaurant]
    attractions = [
        s for s in located if category_of(s) in (PlaceCategory.attraction, PlaceCategory.other)
    ]

    ordered: list[S] = list(lodgings)
    if attractions:
        if lodgings:
            tour = _nearest_neighbor(lodgings[-1], attractions)
        else:
            tour = [attractions[0], *_nearest_neighbor(attractions[0], attractions[1:])]

        for count, attraction in enumerate(tour, start=1):
            ordered.append(attraction)
            if count % ATTRACTIONS_PER_MEAL == 0 and restaurants:
                meal = min(restaurants, key=lambda r: stop_distance_km(attraction, r))
                restaurants.remove(meal)
                ordered.append(meal)

    ordered.extend(restaurants)
    ordered.extend(unlocated)

    return OptimizedRoute(
        stops=ordered,
        original=list(stops),
        improvements=_improvements(stops, ordered, speed_kmh),
    )
