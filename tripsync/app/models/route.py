"""Route models - distance figures and day-plan validation for display."""

from pydantic import BaseModel, Field

from tripsync.app.models.common import Severity


class RouteMetrics(BaseModel):
    """Distance/time summary for an ordered set of stops."""

    total_distance_km: float = Field(..., ge=0)
    estimated_minutes: float = Field(..., ge=0)
    used_real_distances: bool = False


class RouteImprovements(BaseModel):
    """Before/after comparison produced by the route sequencer."""

    original_distance_km: float
    optimized_distance_km: float
    saved_distance_km: float
    saved_minutes: float


class DistanceValidation(BaseModel):
    """Verdict on a single hop distance."""

    valid: bool
    distance_km: float
    severity: Severity
    message: str | None = None
    can_override: bool = True


class TimeBreakdown(BaseModel):
    """Hours spent per activity type in one day."""

    visiting: float
    travel: float
    meals: float
    buffer: float


class DailyTimeEstimate(BaseModel):
    """Estimated length of one day's plan."""

    total_hours: float
    breakdown: TimeBreakdown
    is_over_limit: bool
    missing_components: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class DayPlanValidation(BaseModel):
    """Whether a day has lodging, food and something to see."""

    is_complete: bool
    missing_components: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class BestDaySuggestion(BaseModel):
    """Day whose stops are nearest to a new location."""

    day: int
    reason: str
    distance_km: float


class DirectionsLeg(BaseModel):
    """Driving distance and time between two points from the directions collaborator."""

    distance_km: float = Field(..., ge=0)
    duration_minutes: float = Field(..., ge=0)
