"""Finding destinations by the names the AI uses for them."""

import re
from collections.abc import Iterable, Sequence
from typing import Any

from tripsync.app.db.repositories import DestinationRecord

# "ลบ X ออกจาก ..." / "remove X from ..."
_REMOVE_PATTERNS = (
    re.compile(r"ลบ\s*(.+?)\s*ออกจาก"),
    re.compile(r"\bremove\s+(.+?)\s+from\b", re.IGNORECASE),
)
_NAME_SEPARATORS = re.compile(r"\s*(?:,|、|\band\b|และ)\s*", re.IGNORECASE)


class AmbiguousNameError(LookupError):
    """A partial name matched more than one destination."""

    def __init__(self, name: str, candidates: Sequence[DestinationRecord]) -> None:
        self.name = name
        self.candidates = list(candidates)
        listed = ", ".join(repr(d.name) for d in self.candidates)
        super().__init__(f"{name!r} is ambiguous: {listed}")


def match_destinations(
    name: str, destinations: Sequence[DestinationRecord]
) -> list[DestinationRecord]:
    """Destinations matching ``name``: exact, then case-insensitive, then substring.

    The exact and case-insensitive tiers return every match. The substring tier
    only accepts destinations whose name contains ``name`` and must be unique.

    Raises:
        AmbiguousNameError: ``name`` is a substring of several destination names
    """
    wanted = name.strip()
    if not wanted:
        return []

    exact = [d for d in destinations if d.name.strip() == wanted]
    if exact:
        return exact

    folded = wanted.casefold()
    same = [d for d in destinations if d.name.strip().casefold() == folded]
    if same:
        return same

    partial = [d for d in destinations if folded in d.name.casefold()]
    if len(partial) > 1:
        raise AmbiguousNameError(wanted, partial)
    return partial


def names_from_payload(destinations: Iterable[dict[str, Any]] | None) -> list[str]:
    """Names from a loose ``destinations`` payload."""
    if not destinations:
        return []
    names = []
    for item in destinations:
        name = item.get("name") if isinstance(item, dict) else None
        if isinstance(name, str) and name.strip():
            names.append(name.strip())
    return names


def extract_names_from_text(text: str | None) -> list[str]:
    """Best-effort names from a free-text removal request."""
    if not text:
        return []
    for pattern in _REMOVE_PATTERNS:
        found = pattern.search(text)
        if found:
            return [n for n in _NAME_SEPARATORS.split(found.group(1).strip()) if n]
    return []
