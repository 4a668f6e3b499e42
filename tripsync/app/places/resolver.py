"""Coordinate resolution for bare destination names.

The resolver turns a name such as ``"Wat Arun (วัดอรุณ)"`` into an ordered,
lazily evaluated sequence of candidate queries and asks the place-search
collaborator about each in turn. The first result judged relevant wins.

Candidate order:
1. Parenthetical alternate name, bare and with the country qualifier
2. The raw name
3. The raw name plus the location hint (when one is known)
4. The raw name plus the attraction qualifier
5. The raw name plus the country qualifier
6. The name with parenthetical content stripped (if different)
7. The first significant word plus the country qualifier

Queries qualified by country or hint, and the raw name itself, are trusted:
their first result is accepted without a name check.
"""

import logging
import re
import uuid
from collections.abc import Iterator
from dataclasses import dataclass

from tripsync.app.adapters.places import PlaceSearchClient
from tripsync.app.adapters.provenance import provenance_for_cache
from tripsync.app.models.places import PlaceResult, ResolvedPlace
from tripsync.app.places.cache import PlaceCache
from tripsync.app.tools.executor import (
    CancelToken,
    CollaboratorCancelledError,
    CollaboratorConfig,
    CollaboratorContext,
    CollaboratorError,
    CollaboratorExecutor,
)
from tripsync.app.utils.metrics import record_place_resolution

logger = logging.getLogger(__name__)

STOPWORDS = frozenset({"the", "a", "an", "at", "in", "on", "of", "to", "ร้าน", "โรงแรม"})
MIN_QUERY_LENGTH = 3

_PARENTHETICAL = re.compile(r"\(([^)]*)\)")


@dataclass(frozen=True)
class CandidateQuery:
    """One query the resolver may send, with how to judge its results."""

    text: str
    strategy: str
    core_term: str
    trusted: bool


def strip_parentheticals(name: str) -> str:
    return " ".join(_PARENTHETICAL.sub(" ", name).split())


def is_searchable(query: str) -> bool:
    """Skip queries that are too short or carry no letters worth searching."""
    stripped = query.strip()
    if len(stripped) < MIN_QUERY_LENGTH:
        return False
    return not all(ch.isdigit() or ch.isspace() for ch in stripped)


def first_significant_word(name: str) -> str | None:
    for word in strip_parentheticals(name).split():
        if len(word) >= MIN_QUERY_LENGTH and word.casefold() not in STOPWORDS and not word.isdigit():
            return word
    return None


def is_relevant(result: PlaceResult, core_term: str) -> bool:
    """Result name contains the core term, or the other way round."""
    found = result.name.casefold().strip()
    term = core_term.casefold().strip()
    if not found or not term:
        return False
    return term in found or found in term


def pick_result(results: list[PlaceResult], hint: str | None) -> PlaceResult | None:
    """First result, unless another one mentions the location hint."""
    if not results:
        return None
    if hint:
        folded = hint.casefold()
        for result in results:
            haystack = f"{result.name} {result.formatted_address or ''}".casefold()
            if folded in haystack:
                return result
    return results[0]


class CoordinateResolver:
    """Resolves destination names to coordinates via the place-search collaborator."""

    def __init__(
        self,
        client: PlaceSearchClient,
        executor: CollaboratorExecutor | None = None,
        config: CollaboratorConfig | None = None,
        cache: PlaceCache | None = None,
        country_qualifier: str = "ประเทศไทย",
        attraction_qualifier: str = "สถานที่ท่องเที่ยว",
    ) -> None:
        self._client = client
        self._executor = executor or CollaboratorExecutor()
        self._config = config or CollaboratorConfig(timeout_ms=4000)
        self._cache = cache
        self._country = country_qualifier
        self._attraction = attraction_qualifier

    def candidate_queries(self, name: str, hint: str | None = None) -> Iterator[CandidateQuery]:
        """Yield candidate queries in precedence order, skipping duplicates and junk."""
        seen: set[str] = set()
        name = name.strip()
        stripped = strip_parentheticals(name)
        hint = hint.strip() if hint else None

        def candidates() -> Iterator[CandidateQuery]:
            alternate = _PARENTHETICAL.search(name)
            if alternate and alternate.group(1).strip():
                alt = alternate.group(1).strip()
                yield CandidateQuery(alt, "alternate_name", alt, trusted=False)
                yield CandidateQuery(
                    f"{alt} {self._country}", "alternate_name_country", alt, trusted=True
                )
            yield CandidateQuery(name, "raw_name", name, trusted=True)
            if hint:
                yield CandidateQuery(f"{name} {hint}", "with_hint", stripped, trusted=True)
            yield CandidateQuery(
                f"{name} {self._attraction}", "with_attraction_qualifier", stripped, trusted=False
            )
            yield CandidateQuery(f"{name} {self._country}", "with_country", stripped, trusted=True)
            if stripped != name:
                yield CandidateQuery(stripped, "stripped_name", stripped, trusted=False)
            word = first_significant_word(name)
            if word:
                yield CandidateQuery(f"{word} {self._country}", "first_word", word, trusted=True)

        for candidate in candidates():
            key = candidate.text.casefold()
            if key in seen or not is_searchable(candidate.text):
                continue
            seen.add(key)
            yield candidate

    async def resolve(
        self,
        name: str,
        hint: str | None = None,
        trip_id: str | None = None,
        cancel_token: CancelToken | None = None,
    ) -> ResolvedPlace | None:
        """Resolve a name to coordinates, or None when nothing relevant was found.

        Collaborator failures on one query are logged and the next query is
        tried. Only cancellation propagates.
        """
        if self._cache is not None:
            cached = self._cache.get(name, hint)
            if cached is not None:
                record_place_resolution("cache_hit")
                return cached.model_copy(update={"provenance": provenance_for_cache(cached.provenance)})

        client = self._client
        for candidate in self.candidate_queries(name, hint):
            ctx = CollaboratorContext(
                trace_id=str(uuid.uuid4()), trip_id=trip_id, collaborator=client.source
            )
            try:
                result = await self._executor.execute(
                    ctx,
                    self._config,
                    lambda q=candidate.text: client.search(q),
                    cancel_token,
                )
            except CollaboratorCancelledError:
                raise
            except CollaboratorError as e:
                logger.warning(
                    "Place search failed for query variant, trying next",
                    extra={
                        "structured": {
                            "destination": name,
                            "strategy": candidate.strategy,
                            "reason": type(e).__name__,
                        }
                    },
                )
                continue

            chosen = pick_result(result.value.results, hint)
            if chosen is None:
                continue
            if not candidate.trusted and not is_relevant(chosen, candidate.core_term):
                logger.debug(
                    "Discarding irrelevant result %r for %r", chosen.name, candidate.text
                )
                continue

            place = ResolvedPlace(
                latitude=chosen.location.lat,
                longitude=chosen.location.lng,
                address=chosen.formatted_address,
                place_ref=chosen.place_ref,
                name=chosen.name,
                rating=chosen.rating,
                photos=chosen.photos,
                place_types=chosen.place_types,
                matched_query=candidate.text,
                strategy=candidate.strategy,
                provenance=result.provenance.model_copy(update={"ref_id": chosen.place_ref}),
            )
            logger.info(
                "Resolved destination coordinates",
                extra={
                    "structured": {
                        "destination": name,
                        "strategy": candidate.strategy,
                        "trip_id": trip_id,
                    }
                },
            )
            record_place_resolution("resolved")
            if self._cache is not None:
                self._cache.set(name, hint, place)
            return place

        record_place_resolution("miss")
        logger.info(
            "No relevant place found",
            extra={"structured": {"destination": name, "trip_id": trip_id}},
        )
        return None
