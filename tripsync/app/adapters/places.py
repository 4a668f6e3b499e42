"""Place search adapter using the Google Places Text Search API."""

import logging
from typing import Any, Protocol

import httpx

from tripsync.app.models.common import Coordinates
from tripsync.app.models.places import PlaceResult, PlaceSearchResponse

logger = logging.getLogger(__name__)


class PlaceSearchClient(Protocol):
    """Contract of the place-search collaborator: query -> ranked results."""

    source: str

    async def search(self, query: str) -> PlaceSearchResponse: ...


def parse_text_search(query: str, data: dict[str, Any]) -> PlaceSearchResponse:
    """Convert a Text Search JSON body into a PlaceSearchResponse.

    Results without a geometry are dropped; a non-OK status yields no results.
    """
    status = data.get("status", "OK")
    if status != "OK":
        if status != "ZERO_RESULTS":
            logger.warning(
                "Place search returned status %s",
                status,
                extra={"structured": {"query": query, "status": status}},
            )
        return PlaceSearchResponse(query=query)

    results: list[PlaceResult] = []
    for item in data.get("results", []):
        location = (item.get("geometry") or {}).get("location")
        if not location or "lat" not in location or "lng" not in location:
            continue
        results.append(
            PlaceResult(
                name=item.get("name", ""),
                formatted_address=item.get("formatted_address"),
                location=Coordinates(lat=location["lat"], lng=location["lng"]),
                place_ref=item.get("place_id"),
                rating=item.get("rating"),
                user_ratings_total=item.get("user_ratings_total"),
                place_types=item.get("types", []),
                photos=[
                    p["photo_reference"] for p in item.get("photos", []) if "photo_reference" in p
                ],
                open_now=(item.get("opening_hours") or {}).get("open_now"),
            )
        )
    return PlaceSearchResponse(query=query, results=results)


class GooglePlacesClient:
    """Google Places Text Search client."""

    source = "places.google"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://maps.googleapis.com/maps/api/place",
        language: str = "th",
        region: str = "th",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize client.

        Args:
            api_key: Places API key
            base_url: Places API base URL
            language: Result language
            region: Region bias (ccTLD)
            client: Optional httpx client (for testing with mocks)
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._language = language
        self._region = region
        self._client = client

    @property
    def url(self) -> str:
        return f"{self._base_url}/textsearch/json"

    async def search(self, query: str) -> PlaceSearchResponse:
        """Run one text search.

        Raises:
            httpx.HTTPError: On network or HTTP errors
        """
        params = {
            "query": query,
            "language": self._language,
            "region": self._region,
            "key": self._api_key,
        }

        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=4.0)
            close_client = True

        try:
            response = await client.get(self.url, params=params)
            response.raise_for_status()
            return parse_text_search(query, response.json())
        finally:
            if close_client:
                await client.aclose()
