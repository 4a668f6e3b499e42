"""Directions adapter using the Google Directions API."""

from typing import Protocol

import httpx

from tripsync.app.models.common import Coordinates
from tripsync.app.models.route import DirectionsLeg


class DirectionsClient(Protocol):
    """Contract of the directions collaborator."""

    source: str

    async def leg(self, origin: Coordinates, destination: Coordinates) -> DirectionsLeg | None: ...


class GoogleDirectionsClient:
    """Google Directions client returning the first leg of the first route."""

    source = "directions.google"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://maps.googleapis.com/maps/api/directions/json",
        mode: str = "driving",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._mode = mode
        self._client = client

    async def leg(self, origin: Coordinates, destination: Coordinates) -> DirectionsLeg | None:
        """Fetch driving distance/time between two points.

        Returns:
            DirectionsLeg, or None when the API reports no route

        Raises:
            httpx.HTTPError: On network or HTTP errors
        """
        params = {
            "origin": f"{origin.lat},{origin.lng}",
            "destination": f"{destination.lat},{destination.lng}",
            "mode": self._mode,
            "key": self._api_key,
        }

        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=4.0)
            close_client = True

        try:
            response = await client.get(self._base_url, params=params)
            response.raise_for_status()
            data = response.json()
        finally:
            if close_client:
                await client.aclose()

        if data.get("status") != "OK" or not data.get("routes"):
            return None
        legs = data["routes"][0].get("legs") or []
        if not legs:
            return None

        # Directions reports meters and seconds
        return DirectionsLeg(
            distance_km=legs[0]["distance"]["value"] / 1000,
            duration_minutes=legs[0]["duration"]["value"] / 60,
        )
