"""Tests for the place search adapters."""

import httpx
import pytest

from tripsync.app.adapters.fixtures import FixturePlacesClient, load_place_fixtures
from tripsync.app.adapters.places import GooglePlacesClient, parse_text_search

TEXT_SEARCH_OK = {
    "status": "OK",
    "results": [
        {
            "name": "Wat Pho",
            "formatted_address": "2 Sanam Chai Rd, Bangkok 10200, Thailand",
            "geometry": {"location": {"lat": 13.7465, "lng": 100.4927}},
            "place_id": "ChIJ-wat-pho",
            "rating": 4.7,
            "user_ratings_total": 52000,
            "types": ["tourist_attraction", "place_of_worship"],
            "photos": [{"photo_reference": "photo-1"}, {"height": 100}],
            "opening_hours": {"open_now": True},
        },
        {"name": "No geometry", "formatted_address": "Somewhere"},
    ],
}


@pytest.mark.asyncio
async def test_google_places_parses_text_search() -> None:
    """Test that the client sends the query and parses results."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=TEXT_SEARCH_OK)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    places = GooglePlacesClient(api_key="test-key", client=client)

    response = await places.search("Wat Pho")

    assert response.query == "Wat Pho"
    assert len(response.results) == 1
    result = response.results[0]
    assert result.name == "Wat Pho"
    assert result.location.lat == 13.7465
    assert result.place_ref == "ChIJ-wat-pho"
    assert result.photos == ["photo-1"]
    assert result.open_now is True
    assert result.place_types == ["tourist_attraction", "place_of_worship"]

    params = seen[0].url.params
    assert seen[0].url.path.endswith("/textsearch/json")
    assert params["query"] == "Wat Pho"
    assert params["key"] == "test-key"
    assert params["language"] == "th"
    assert params["region"] == "th"


@pytest.mark.asyncio
async def test_google_places_raises_on_http_error() -> None:
    """Test that HTTP errors propagate for the executor to handle."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    places = GooglePlacesClient(api_key="test-key", client=client)

    with pytest.raises(httpx.HTTPStatusError):
        await places.search("Wat Pho")


def test_zero_results_is_empty() -> None:
    response = parse_text_search("nothing", {"status": "ZERO_RESULTS", "results": []})
    assert response.results == []


def test_error_status_is_empty() -> None:
    response = parse_text_search("q", {"status": "REQUEST_DENIED", "results": TEXT_SEARCH_OK["results"]})
    assert response.results == []


def test_load_place_fixtures_has_bangkok_landmarks() -> None:
    table = load_place_fixtures()
    assert "wat arun" in table
    assert "grand palace" in table


@pytest.mark.asyncio
async def test_fixture_client_matches_contained_key() -> None:
    """Test that a query matches any fixture key it contains."""
    client = FixturePlacesClient()

    response = await client.search("Grand Palace Bangkok")

    assert [r.name for r in response.results] == ["The Grand Palace"]
    assert client.queries == ["Grand Palace Bangkok"]


@pytest.mark.asyncio
async def test_fixture_client_unknown_query_is_empty() -> None:
    response = await FixturePlacesClient().search("Atlantis")
    assert response.results == []


@pytest.mark.asyncio
async def test_fixture_client_failing_query_raises() -> None:
    client = FixturePlacesClient(failing_queries={"Wat Pho"})
    with pytest.raises(ConnectionError):
        await client.search("Wat Pho")
