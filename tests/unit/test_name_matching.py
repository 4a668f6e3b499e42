"""Unit tests for destination name matching and free-text removal targets."""

import uuid
from datetime import UTC, datetime

import pytest

from tripsync.app.db.repositories import DestinationRecord
from tripsync.app.models.common import PlaceCategory
from tripsync.app.sync.matching import (
    AmbiguousNameError,
    extract_names_from_text,
    match_destinations,
    names_from_payload,
)


def _dest(name: str, day: int = 1, position: int = 1) -> DestinationRecord:
    return DestinationRecord(
        destination_id=uuid.uuid4(),
        trip_id=uuid.uuid4(),
        name=name,
        day=day,
        position=position,
        category=PlaceCategory.attraction,
        latitude=None,
        longitude=None,
        address=None,
        place_ref=None,
        rating=None,
        estimated_cost=None,
        visit_minutes=None,
        photos=[],
        created_at=datetime.now(UTC),
    )


class TestMatchDestinations:
    """Exact, then case-insensitive, then substring."""

    def test_exact_match_beats_substring(self) -> None:
        pho = _dest("Wat Pho")
        dests = [pho, _dest("Wat Pho Massage School")]

        assert match_destinations("Wat Pho", dests) == [pho]

    def test_case_insensitive(self) -> None:
        arun = _dest("Wat Arun")
        assert match_destinations("wat arun", [arun, _dest("Wat Pho")]) == [arun]

    def test_unique_substring(self) -> None:
        market = _dest("Chatuchak Weekend Market")
        palace = _dest("Grand Palace")

        assert match_destinations("chatuchak", [market, palace]) == [market]

    def test_longer_request_does_not_match_shorter_name(self) -> None:
        pho = _dest("Pho")
        dests = [pho, _dest("Wat Arun")]

        assert match_destinations("Wat Pho Temple Bangkok", dests) == []

    def test_substring_of_several_names_is_ambiguous(self) -> None:
        temples = [_dest("Wat Arun"), _dest("Wat Pho"), _dest("Wat Saket")]

        with pytest.raises(AmbiguousNameError) as exc_info:
            match_destinations("Wat", [*temples, _dest("Chatuchak Market")])

        assert exc_info.value.candidates == temples
        assert "Wat Saket" in str(exc_info.value)

    def test_all_matches_of_a_tier_are_returned(self) -> None:
        first, second = _dest("Night Market", 1), _dest("Night Market", 2)
        assert match_destinations("Night Market", [first, second]) == [first, second]

    def test_no_match(self) -> None:
        assert match_destinations("Phuket", [_dest("Wat Pho")]) == []
        assert match_destinations("  ", [_dest("Wat Pho")]) == []


class TestRemovalNames:
    """Where removal targets come from."""

    def test_names_from_payload(self) -> None:
        payload = [{"name": " Wat Pho "}, {"name": ""}, {"title": "x"}, "junk"]
        assert names_from_payload(payload) == ["Wat Pho"]  # type: ignore[arg-type]

    def test_thai_free_text(self) -> None:
        assert extract_names_from_text("ลบ วัดพระแก้ว ออกจากวันที่ 2") == ["วัดพระแก้ว"]

    def test_thai_free_text_with_several_names(self) -> None:
        assert extract_names_from_text("ลบวัดโพธิ์และวัดอรุณออกจากทริป") == ["วัดโพธิ์", "วัดอรุณ"]

    def test_english_free_text(self) -> None:
        names = extract_names_from_text("Please remove Wat Pho and Wat Arun from day 1")
        assert names == ["Wat Pho", "Wat Arun"]

    def test_unrecognized_text(self) -> None:
        assert extract_names_from_text("make it cheaper") == []
        assert extract_names_from_text(None) == []
