"""FastAPI dependencies wiring stores and collaborators from settings."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tripsync.app.adapters.directions import GoogleDirectionsClient
from tripsync.app.adapters.fixtures import FixturePlacesClient
from tripsync.app.adapters.places import GooglePlacesClient, PlaceSearchClient
from tripsync.app.config import Settings, get_settings
from tripsync.app.db.engine import get_session
from tripsync.app.db.repositories import ItineraryStore
from tripsync.app.db.sql_repositories import SqlItineraryStore
from tripsync.app.places.cache import PlaceCache
from tripsync.app.places.resolver import CoordinateResolver
from tripsync.app.routing.distance import DistanceEstimator
from tripsync.app.tools.executor import CollaboratorConfig, CollaboratorExecutor
from tripsync.app.utils.logging import StructuredCollaboratorLogger
from tripsync.app.utils.metrics import PrometheusCollaboratorMetrics


def collaborator_config(settings: Settings) -> CollaboratorConfig:
    return CollaboratorConfig(
        timeout_ms=settings.collaborator_timeout_ms,
        breaker_failure_threshold=settings.circuit_breaker_failures,
        breaker_window_seconds=settings.circuit_breaker_window_sec,
        breaker_half_open_seconds=settings.circuit_breaker_half_open_sec,
    )


def collaborator_executor() -> CollaboratorExecutor:
    return CollaboratorExecutor(
        metrics=PrometheusCollaboratorMetrics(), logger=StructuredCollaboratorLogger()
    )


@lru_cache
def get_coordinate_resolver() -> CoordinateResolver:
    """Process-wide resolver; offline fixtures when no Places key is configured."""
    settings = get_settings()
    client: PlaceSearchClient
    if settings.google_places_api_key:
        client = GooglePlacesClient(
            api_key=settings.google_places_api_key,
            base_url=settings.places_base_url,
            language=settings.places_language,
            region=settings.places_region,
        )
    else:
        client = FixturePlacesClient()

    return CoordinateResolver(
        client,
        executor=collaborator_executor(),
        config=collaborator_config(settings),
        cache=PlaceCache(ttl_seconds=settings.place_cache_ttl_seconds),
        country_qualifier=settings.country_qualifier,
        attraction_qualifier=settings.attraction_qualifier,
    )


@lru_cache
def get_distance_estimator() -> DistanceEstimator:
    """Process-wide estimator; haversine only when no Directions key is configured."""
    settings = get_settings()
    directions = None
    if settings.google_directions_api_key:
        directions = GoogleDirectionsClient(
            api_key=settings.google_directions_api_key,
            base_url=settings.directions_base_url,
            mode=settings.directions_mode,
        )
    return DistanceEstimator(
        directions,
        executor=collaborator_executor(),
        config=collaborator_config(settings),
        speed_kmh=settings.average_speed_kmh,
    )


def get_store(session: Annotated[AsyncSession, Depends(get_session)]) -> ItineraryStore:
    settings = get_settings()
    return SqlItineraryStore(
        session,
        temp_position_base=settings.temp_position_base,
        settle_ms=settings.position_settle_ms,
    )
