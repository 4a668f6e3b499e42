"""Common types and enums shared across all models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Coordinates(BaseModel):
    """Geographic coordinates (WGS84)."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class PlaceCategory(str, Enum):
    """Category of a stop in the itinerary."""

    attraction = "attraction"
    lodging = "lodging"
    restaurant = "restaurant"
    other = "other"

    @classmethod
    def from_place_type(cls, place_type: str | None) -> "PlaceCategory":
        """Map an AI/place-search type string onto a category.

        The AI layer speaks Google place types ("tourist_attraction"), the
        store speaks categories.
        """
        if not place_type:
            return cls.attraction
        normalized = place_type.strip().lower()
        if normalized in ("tourist_attraction", "attraction", "point_of_interest"):
            return cls.attraction
        if normalized in ("lodging", "hotel"):
            return cls.lodging
        if normalized in ("restaurant", "cafe", "food", "meal"):
            return cls.restaurant
        return cls.other


class Severity(str, Enum):
    """Validation severity."""

    ok = "ok"
    warning = "warning"
    error = "error"


class Provenance(BaseModel):
    """Provenance metadata for collaborator results."""

    source: str  # e.g. "places.google", "places.cache", "directions.haversine"
    ref_id: str | None = None
    source_url: str | None = None
    fetched_at: datetime
    cache_hit: bool | None = None
