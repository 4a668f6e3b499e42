"""Per-day plan checks: time budget, completeness, best day for a new place."""

from collections.abc import Mapping, Sequence

from tripsync.app.models.common import Coordinates, PlaceCategory
from tripsync.app.models.route import (
    BestDaySuggestion,
    DailyTimeEstimate,
    DayPlanValidation,
    TimeBreakdown,
)
from tripsync.app.routing.distance import (
    DistanceEstimator,
    Stop,
    coordinates_of,
    haversine_km,
)
from tripsync.app.routing.sequencer import category_of

DEFAULT_VISIT_HOURS = 1.5
MEAL_HOURS = 1.25
TRANSITION_BUFFER_HOURS = 0.25
SOFT_LIMIT_HOURS = 6.0
HARD_LIMIT_HOURS = 8.0
MAX_ATTRACTIONS_PER_DAY = 4

_SUGGESTIONS = {
    "lodging": "Add a place to stay",
    "restaurant": "Add a restaurant",
    "attraction": "Add an attraction",
}


def missing_components(stops: Sequence[Stop]) -> list[str]:
    categories = {category_of(s) for s in stops}
    missing = []
    if PlaceCategory.lodging not in categories:
        missing.append("lodging")
    if PlaceCategory.restaurant not in categories:
        missing.append("restaurant")
    if PlaceCategory.attraction not in categories:
        missing.append("attraction")
    return missing


def visit_hours(stop: Stop) -> float:
    minutes = getattr(stop, "visit_minutes", None)
    if minutes:
        return minutes / 60
    return DEFAULT_VISIT_HOURS


async def estimate_daily_time(
    stops: Sequence[Stop], estimator: DistanceEstimator, trip_id: str | None = None
) -> DailyTimeEstimate:
    """Estimate how long one day's plan takes.

    Lodging does not count towards activity time. Travel time comes from the
    estimator, so it uses road durations when those are available.
    """
    attractions = [s for s in stops if category_of(s) == PlaceCategory.attraction]
    visiting = sum(visit_hours(s) for s in attractions)
    meals = MEAL_HOURS * sum(1 for s in stops if category_of(s) == PlaceCategory.restaurant)

    metrics, _ = await estimator.route(stops, trip_id)
    travel = metrics.estimated_minutes / 60
    buffer = max(0, len(stops) - 1) * TRANSITION_BUFFER_HOURS
    total = visiting + travel + meals + buffer

    warnings: list[str] = []
    if total > HARD_LIMIT_HOURS:
        warnings.append(
            f"This day takes {total:.1f} hours, over the {HARD_LIMIT_HOURS:.0f} hour limit; "
            "consider fewer stops"
        )
    elif total > SOFT_LIMIT_HOURS:
        warnings.append(
            f"This day takes {total:.1f} hours, close to the "
            f"{SOFT_LIMIT_HOURS:.0f}-{HARD_LIMIT_HOURS:.0f} hour limit"
        )
    if len(attractions) > MAX_ATTRACTIONS_PER_DAY:
        warnings.append(f"More than {MAX_ATTRACTIONS_PER_DAY} attractions may feel rushed")
    if meals < 1:
        warnings.append("Add at least one restaurant")

    return DailyTimeEstimate(
        total_hours=total,
        breakdown=TimeBreakdown(visiting=visiting, travel=travel, meals=meals, buffer=buffer),
        is_over_limit=total > HARD_LIMIT_HOURS,
        missing_components=missing_components(stops),
        warnings=warnings,
    )


def validate_day_plan(stops: Sequence[Stop]) -> DayPlanValidation:
    missing = missing_components(stops)
    return DayPlanValidation(
        is_complete=not missing,
        missing_components=missing,
        suggestions=[_SUGGESTIONS[m] for m in missing],
    )


def find_best_day(
    location: Coordinates,
    stops_by_day: Mapping[int, Sequence[Stop]],
    threshold_km: float = 20.0,
) -> BestDaySuggestion | None:
    """Day holding the stop nearest to ``location``, if it is within the threshold."""
    best: tuple[float, int, str] | None = None
    for day in sorted(stops_by_day):
        for stop in stops_by_day[day]:
            coords = coordinates_of(stop)
            if coords is None:
                continue
            d = haversine_km(location, coords)
            if best is None or d < best[0]:
                best = (d, day, stop.name)

    if best is None or best[0] > threshold_km:
        return None

    distance, day, name = best
    return BestDaySuggestion(
        day=day,
        reason=f'Near "{name}" on day {day} ({distance:.1f} km)',
        distance_km=distance,
    )
