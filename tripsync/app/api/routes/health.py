"""Health check endpoints."""

import json
from typing import Any

from fastapi import APIRouter, Response
from sqlalchemy import text

from tripsync.app.config import Settings, get_settings
from tripsync.app.db.engine import get_async_engine

router = APIRouter()


async def check_db() -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


def collaborator_modes(settings: Settings) -> dict[str, str]:
    """Which place-search and directions backends are in use."""
    return {
        "places": "google" if settings.google_places_api_key else "fixtures",
        "directions": "google" if settings.google_directions_api_key else "haversine",
    }


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check; 200 whenever the process is serving."""
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz() -> dict[str, Any] | Response:
    """Readiness check.

    Returns:
        200 with component status if the database answers, 503 otherwise
    """
    db_ok, db_status = await check_db()

    response_body = {
        "status": "ok" if db_ok else "degraded",
        "components": {"db": db_status, **collaborator_modes(get_settings())},
    }

    if not db_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body
