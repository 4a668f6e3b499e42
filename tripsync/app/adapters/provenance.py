"""Provenance helpers for collaborator adapters."""

from tripsync.app.models.common import Provenance


def provenance_for_cache(original: Provenance) -> Provenance:
    """Re-stamp a stored provenance as a cache hit."""
    return original.model_copy(update={"cache_hit": True})
