"""Tests for the directions adapter."""

import httpx
import pytest

from tripsync.app.adapters.directions import GoogleDirectionsClient
from tripsync.app.models.common import Coordinates

ORIGIN = Coordinates(lat=13.7437, lng=100.4889)
DESTINATION = Coordinates(lat=13.7999, lng=100.5503)


def _client(payload: dict, seen: list[httpx.Request] | None = None) -> GoogleDirectionsClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(200, json=payload)

    return GoogleDirectionsClient(
        api_key="test-key", client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )


@pytest.mark.asyncio
async def test_leg_converts_meters_and_seconds() -> None:
    """Test that the first leg of the first route is returned in km and minutes."""
    seen: list[httpx.Request] = []
    payload = {
        "status": "OK",
        "routes": [
            {"legs": [{"distance": {"value": 12345}, "duration": {"value": 1800}}]},
            {"legs": [{"distance": {"value": 99999}, "duration": {"value": 9999}}]},
        ],
    }

    leg = await _client(payload, seen).leg(ORIGIN, DESTINATION)

    assert leg is not None
    assert leg.distance_km == pytest.approx(12.345)
    assert leg.duration_minutes == pytest.approx(30.0)

    params = seen[0].url.params
    assert params["origin"] == "13.7437,100.4889"
    assert params["destination"] == "13.7999,100.5503"
    assert params["mode"] == "driving"


@pytest.mark.asyncio
async def test_leg_none_when_no_route() -> None:
    leg = await _client({"status": "ZERO_RESULTS", "routes": []}).leg(ORIGIN, DESTINATION)
    assert leg is None


@pytest.mark.asyncio
async def test_leg_none_when_route_has_no_legs() -> None:
    leg = await _client({"status": "OK", "routes": [{"legs": []}]}).leg(ORIGIN, DESTINATION)
    assert leg is None
