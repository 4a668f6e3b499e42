"""Unit tests for day assignment, position density and layout edits."""

import uuid
from dataclasses import dataclass
from datetime import date

import pytest

from tripsync.app.ordering.engine import (
    ItineraryLayout,
    PositionUpdate,
    assign_days,
    clamp_day,
    day_span,
    effective_day_count,
    end_date_for,
    renormalize,
    should_auto_distribute,
)


@dataclass
class Row:
    destination_id: uuid.UUID
    day: int
    position: int


def _rows(*placements: tuple[int, int]) -> list[Row]:
    return [Row(uuid.uuid4(), day, position) for day, position in placements]


def _apply(rows: list[Row], updates: list[PositionUpdate]) -> None:
    by_id = {r.destination_id: r for r in rows}
    for update in updates:
        by_id[update.destination_id].day = update.day
        by_id[update.destination_id].position = update.position


def _is_dense(rows: list[Row]) -> bool:
    days: dict[int, list[int]] = {}
    for row in rows:
        days.setdefault(row.day, []).append(row.position)
    return all(sorted(p) == list(range(1, len(p) + 1)) for p in days.values())


class TestTripDays:
    """Trip length from dates."""

    def test_day_span(self) -> None:
        assert day_span(date(2026, 3, 1), date(2026, 3, 4)) == 3
        assert day_span(date(2026, 3, 1), date(2026, 3, 1)) == 1

    @pytest.mark.parametrize("days", [1, 2, 5, 14])
    def test_end_date_round_trips(self, days: int) -> None:
        start = date(2026, 12, 30)
        assert day_span(start, end_date_for(start, days)) == days

    def test_effective_day_count_covers_days_in_use(self) -> None:
        assert effective_day_count(3, [1, 5, 2]) == 5
        assert effective_day_count(3, []) == 3

    @pytest.mark.parametrize("day,expected", [(0, 1), (-2, 1), (2, 2), (3, 3), (7, 3)])
    def test_clamp_day(self, day: int, expected: int) -> None:
        assert clamp_day(day, 3) == expected


class TestAssignDays:
    """Per-destination day precedence."""

    def test_six_unhinted_over_three_days(self) -> None:
        assert assign_days([None] * 6, 3) == [1, 1, 2, 2, 3, 3]

    def test_four_unhinted_over_three_days(self) -> None:
        assert assign_days([None] * 4, 3) == [1, 1, 2, 2]

    def test_single_explicit_hint_still_distributes_the_rest(self) -> None:
        assert assign_days([None, None, 2, None, None, None], 3) == [1, 1, 2, 2, 3, 3]

    def test_explicit_hint_wins_over_distribution(self) -> None:
        assert assign_days([None, None, None, None, 1, None], 3) == [1, 1, 2, 2, 1, 3]

    def test_spread_hints_disable_distribution(self) -> None:
        assert assign_days([1, 3, None, None], 3) == [1, 3, 1, 1]

    def test_group_day_disables_distribution(self) -> None:
        assert assign_days([None] * 4, 3, group_day=3) == [3, 3, 3, 3]

    def test_group_day_does_not_override_hints(self) -> None:
        assert assign_days([1, None, None], 3, group_day=2) == [1, 2, 2]

    def test_two_items_are_not_distributed(self) -> None:
        assert assign_days([None, None], 3) == [1, 1]

    def test_single_day_trip(self) -> None:
        assert assign_days([None] * 5, 1) == [1] * 5

    def test_out_of_range_hints_are_clamped(self) -> None:
        assert assign_days([5, 0, -1], 3) == [3, 1, 1]

    def test_should_auto_distribute(self) -> None:
        assert should_auto_distribute([None, None, None], 3, False) is True
        assert should_auto_distribute([None, None, None], 3, True) is False
        assert should_auto_distribute([None, None, None], 1, False) is False
        assert should_auto_distribute([1, 2, None], 3, False) is False


class TestItineraryLayout:
    """Dense layout edits."""

    def test_insert_splices_and_diff_shifts_followers(self) -> None:
        rows = _rows((1, 1), (1, 2))
        layout = ItineraryLayout.from_destinations(rows)
        new_id = uuid.uuid4()

        assert layout.insert(1, new_id, 1) == 1
        assert layout.ids(1) == [new_id, rows[0].destination_id, rows[1].destination_id]

        updates = layout.diff(rows)
        assert updates == [
            PositionUpdate(rows[0].destination_id, 1, 2),
            PositionUpdate(rows[1].destination_id, 1, 3),
        ]

    def test_move_across_days(self) -> None:
        rows = _rows((1, 1), (1, 2), (1, 3), (2, 1), (2, 2))
        temple = rows[2]
        layout = ItineraryLayout.from_destinations(rows)

        assert layout.move(temple.destination_id, 2, 1) == 1
        _apply(rows, layout.diff(rows))

        assert (temple.day, temple.position) == (2, 1)
        assert [(r.day, r.position) for r in rows[3:]] == [(2, 2), (2, 3)]
        assert _is_dense(rows)

    def test_move_to_end_when_position_missing(self) -> None:
        rows = _rows((1, 1), (2, 1), (2, 2))
        layout = ItineraryLayout.from_destinations(rows)

        layout.move(rows[0].destination_id, 2)

        assert layout.ids(2)[-1] == rows[0].destination_id
        assert layout.count(1) == 0
        assert layout.days() == [2]

    def test_reorder_honors_requested_positions(self) -> None:
        a, b, c = _rows((1, 1), (1, 2), (1, 3))
        layout = ItineraryLayout.from_destinations([a, b, c])

        layout.reorder(
            [(c.destination_id, 1, 1), (a.destination_id, 1, 2), (b.destination_id, 1, 3)]
        )

        assert layout.ids(1) == [c.destination_id, a.destination_id, b.destination_id]

    def test_reorder_keeps_unmentioned_relative_order(self) -> None:
        a, b, c, d = _rows((1, 1), (1, 2), (1, 3), (1, 4))
        layout = ItineraryLayout.from_destinations([a, b, c, d])

        layout.reorder([(d.destination_id, 1, 1)])

        assert layout.ids(1) == [d.destination_id, a.destination_id, b.destination_id, c.destination_id]

    def test_remove_unknown_raises(self) -> None:
        with pytest.raises(KeyError):
            ItineraryLayout().remove(uuid.uuid4())

    def test_membership_and_day_of(self) -> None:
        rows = _rows((3, 1))
        layout = ItineraryLayout.from_destinations(rows)
        assert rows[0].destination_id in layout
        assert layout.day_of(rows[0].destination_id) == 3
        assert layout.day_of(uuid.uuid4()) is None


class TestRenormalize:
    """Gap closing."""

    def test_closes_gaps_keeping_order(self) -> None:
        rows = _rows((1, 1), (1, 3), (1, 7), (2, 4))

        _apply(rows, renormalize(rows))

        assert [(r.day, r.position) for r in rows] == [(1, 1), (1, 2), (1, 3), (2, 1)]

    def test_idempotent(self) -> None:
        rows = _rows((1, 2), (1, 5), (2, 3))
        _apply(rows, renormalize(rows))

        assert renormalize(rows) == []

    def test_dense_list_needs_no_updates(self) -> None:
        assert renormalize(_rows((1, 1), (1, 2), (2, 1))) == []
