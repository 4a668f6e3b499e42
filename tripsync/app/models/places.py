"""Place search models - collaborator wire shapes and resolver output."""

from pydantic import BaseModel, Field

from tripsync.app.models.common import Coordinates, Provenance


class PlaceResult(BaseModel):
    """One result returned by the place-search collaborator."""

    name: str
    formatted_address: str | None = None
    location: Coordinates
    place_ref: str | None = None
    rating: float | None = None
    user_ratings_total: int | None = None
    place_types: list[str] = Field(default_factory=list)
    photos: list[str] = Field(default_factory=list)
    open_now: bool | None = None


class PlaceSearchResponse(BaseModel):
    """Results for a single text query."""

    query: str
    results: list[PlaceResult] = Field(default_factory=list)


class ResolvedPlace(BaseModel):
    """Outcome of a successful coordinate resolution."""

    latitude: float
    longitude: float
    address: str | None = None
    place_ref: str | None = None
    name: str | None = None
    rating: float | None = None
    photos: list[str] = Field(default_factory=list)
    place_types: list[str] = Field(default_factory=list)
    matched_query: str
    strategy: str
    provenance: Provenance
