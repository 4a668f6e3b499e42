"""Models package - re-exports for convenience."""

from tripsync.app.models.actions import (
    ACTION_PRIORITY,
    ActionKind,
    AddDestinations,
    AskPersonalInfo,
    DestinationDescriptor,
    DestinationOrder,
    ModifyTrip,
    MoveDestination,
    NoAction,
    RecommendPlaces,
    RemoveDestinations,
    ReorderDestinations,
    TripAction,
    TripActions,
    TripModification,
    UpdateTripInfo,
    parse_actions,
    sort_by_priority,
)
from tripsync.app.models.common import Coordinates, PlaceCategory, Provenance, Severity
from tripsync.app.models.places import PlaceResult, PlaceSearchResponse, ResolvedPlace
from tripsync.app.models.route import (
    BestDaySuggestion,
    DailyTimeEstimate,
    DayPlanValidation,
    DirectionsLeg,
    DistanceValidation,
    RouteImprovements,
    RouteMetrics,
    TimeBreakdown,
)
from tripsync.app.models.sync import FailureEvent, ProgressEvent, SkippedAction, SyncReport

__all__ = [
    # Common
    "Coordinates",
    "PlaceCategory",
    "Provenance",
    "Severity",
    # Actions
    "ACTION_PRIORITY",
    "ActionKind",
    "AddDestinations",
    "AskPersonalInfo",
    "DestinationDescriptor",
    "DestinationOrder",
    "ModifyTrip",
    "MoveDestination",
    "NoAction",
    "RecommendPlaces",
    "RemoveDestinations",
    "ReorderDestinations",
    "TripAction",
    "TripActions",
    "TripModification",
    "UpdateTripInfo",
    "parse_actions",
    "sort_by_priority",
    # Places
    "PlaceResult",
    "PlaceSearchResponse",
    "ResolvedPlace",
    # Route
    "BestDaySuggestion",
    "DailyTimeEstimate",
    "DayPlanValidation",
    "DirectionsLeg",
    "DistanceValidation",
    "RouteImprovements",
    "RouteMetrics",
    "TimeBreakdown",
    # Sync
    "FailureEvent",
    "ProgressEvent",
    "SkippedAction",
    "SyncReport",
]
