"""Fixture-based place search used offline and in tests."""

import json
from pathlib import Path
from typing import Any

from tripsync.app.adapters.places import parse_text_search
from tripsync.app.models.places import PlaceSearchResponse

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


def load_place_fixtures(path: Path | None = None) -> dict[str, list[dict[str, Any]]]:
    """Load the key -> Text Search results table."""
    fixtures_path = path or FIXTURES_DIR / "places.json"
    with open(fixtures_path, encoding="utf-8") as f:
        return json.load(f)


class FixturePlacesClient:
    """In-memory place search.

    A query matches the first fixture key it contains (case-insensitive).
    Every query is recorded in ``queries`` so tests can assert which variants
    were tried.
    """

    source = "fixtures.places"

    def __init__(
        self,
        table: dict[str, list[dict[str, Any]]] | None = None,
        failing_queries: set[str] | None = None,
    ) -> None:
        self._table = {k.casefold(): v for k, v in (table or load_place_fixtures()).items()}
        self._failing = failing_queries or set()
        self.queries: list[str] = []

    async def search(self, query: str) -> PlaceSearchResponse:
        self.queries.append(query)
        if query in self._failing:
            raise ConnectionError(f"fixture failure for {query!r}")

        folded = query.casefold()
        for key, results in self._table.items():
            if key in folded:
                return parse_text_search(query, {"status": "OK", "results": results})
        return PlaceSearchResponse(query=query)
