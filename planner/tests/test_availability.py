from datetime import date
from unittest.mock import patch

import pytest

from planner.availability import (
    BLOCKS_PER_DAY,
    PALETTE_SIZE,
    GuestEntry,
    _floored_max,
    aggregate_blocks,
    aggregate_days,
    compare_responses,
    days_with_time_responses,
    guest_entries_for_day,
    heat_tier,
)
from planner.models.plans import GuestResponse, TimeWindow


def _block(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return (int(hours) * 60 + int(minutes)) // 15


def _w(start: str, end: str) -> TimeWindow:
    return TimeWindow(start=start, end=end)


def _response(make_response, name, dates, windows=None):
    return GuestResponse(**make_response(name, dates, selected_time_windows=windows))


class TestHeatTier:
    @pytest.mark.parametrize(
        "count,max_count,expected",
        [
            (5, 5, 5),
            (4, 5, 5),
            (3, 5, 4),
            (2, 5, 3),
            (1, 5, 2),
            (1, 6, 1),
            (0, 5, 0),
            (0, 1, 0),
        ],
    )
    def test_thresholds(self, count, max_count, expected):
        assert heat_tier(count, max_count) == expected

    def test_tiers_never_decrease_with_count(self):
        tiers = [heat_tier(c, 10) for c in range(0, 11)]
        assert tiers == sorted(tiers)
        assert tiers[0] == 0
        assert tiers[-1] == 5


class TestAggregateDays:
    def test_concrete_scenario(self, make_response):
        responses = [
            _response(make_response, "Alice", ["2024-03-01", "2024-03-02"]),
            _response(make_response, "Bob", ["2024-03-02"]),
        ]

        heatmap = aggregate_days(date(2024, 3, 1), date(2024, 3, 3), responses)

        assert [(d.key, d.count, list(d.names)) for d in heatmap.days] == [
            ("2024-03-01", 1, ["Alice"]),
            ("2024-03-02", 2, ["Alice", "Bob"]),
            ("2024-03-03", 0, []),
        ]
        assert heatmap.max_count == 2
        assert [heatmap.tier(d) for d in heatmap.days] == [3, 5, 0]

    def test_empty_responses_clamp_max_and_leave_days_uncolored(self):
        heatmap = aggregate_days(date(2024, 3, 1), date(2024, 3, 5), [])

        assert len(heatmap.days) == 5
        assert all(d.count == 0 for d in heatmap.days)
        assert heatmap.max_count == 1
        assert all(heatmap.tier(d) == 0 for d in heatmap.days)

    def test_count_matches_responses_selecting_each_day(self, make_response):
        responses = [
            _response(make_response, "Ann", ["2024-03-02"]),
            _response(make_response, "Ben", ["2024-03-01", "2024-03-03"]),
            _response(make_response, "Cat", ["2024-03-03"]),
            _response(make_response, "Dan", ["2024-03-03", "2024-03-01"]),
        ]

        heatmap = aggregate_days(date(2024, 3, 1), date(2024, 3, 3), responses)

        for entry in heatmap.days:
            expected = [r.guest_name for r in responses if entry.key in r.selected_dates]
            assert list(entry.names) == expected
            assert entry.count == len(expected)

    def test_out_of_range_selections_are_not_emitted(self, make_response):
        responses = [_response(make_response, "Alice", ["2024-02-28", "2024-03-01", "2024-03-09"])]

        heatmap = aggregate_days(date(2024, 3, 1), date(2024, 3, 2), responses)

        assert [d.key for d in heatmap.days] == ["2024-03-01", "2024-03-02"]
        assert heatmap.get("2024-03-01").count == 1
        assert heatmap.get("2024-02-28") is None

    def test_duplicate_dates_in_one_response_count_once(self, make_response):
        responses = [_response(make_response, "Alice", ["2024-03-01", "2024-03-01"])]

        heatmap = aggregate_days(date(2024, 3, 1), date(2024, 3, 1), responses)

        assert heatmap.days[0].count == 1

    def test_single_day_range(self):
        heatmap = aggregate_days(date(2024, 3, 1), date(2024, 3, 1), [])
        assert [d.key for d in heatmap.days] == ["2024-03-01"]

    def test_range_ending_on_last_representable_day(self):
        heatmap = aggregate_days(date(9999, 12, 30), date(9999, 12, 31), [])
        assert [d.key for d in heatmap.days] == ["9999-12-30", "9999-12-31"]

    def test_max_count_computed_once(self, make_response):
        heatmap = aggregate_days(
            date(2024, 3, 1), date(2024, 3, 3), [_response(make_response, "Alice", ["2024-03-02"])]
        )

        with patch("planner.availability._floored_max", wraps=_floored_max) as floored:
            tiers = [heatmap.tier(d) for d in heatmap.days]

        assert tiers == [0, 5, 0]
        assert floored.call_count == 1


class TestAggregateBlocks:
    def test_ninety_six_blocks(self):
        heatmap = aggregate_blocks([], [])
        assert len(heatmap.blocks) == BLOCKS_PER_DAY == 96
        assert heatmap.blocks[0].start_minute == 0
        assert heatmap.blocks[-1].end_minute == 24 * 60
        assert heatmap.max_count == 1
        assert all(heatmap.tier(b) == 0 for b in heatmap.blocks)
        assert not any(b.in_planner_window for b in heatmap.blocks)

    def test_concrete_time_scenario(self):
        heatmap = aggregate_blocks(
            [_w("09:00", "12:00")],
            [
                GuestEntry("Alice", (_w("09:00", "10:00"),)),
                GuestEntry("Bob", (_w("09:30", "11:00"),)),
            ],
        )

        assert heatmap.lookup(_block("09:30")).names == ("Alice", "Bob")
        assert heatmap.lookup(_block("11:00")).count == 0
        assert heatmap.lookup(_block("10:30")).names == ("Bob",)
        assert heatmap.max_count == 2

    def test_partial_overlap_covers_block(self):
        heatmap = aggregate_blocks([], [GuestEntry("Alice", (_w("09:00", "09:20"),))])

        assert heatmap.blocks[_block("09:00")].count == 1
        assert heatmap.blocks[_block("09:15")].count == 1
        assert heatmap.blocks[_block("08:45")].count == 0
        assert heatmap.blocks[_block("09:30")].count == 0

    def test_guest_counted_once_per_block(self):
        heatmap = aggregate_blocks(
            [], [GuestEntry("Alice", (_w("09:00", "10:00"), _w("09:30", "09:45")))]
        )

        block = heatmap.lookup(_block("09:30"))
        assert (block.count, block.names) == (1, ("Alice",))

    def test_reference_flag_needs_containment_but_participation_needs_overlap(self):
        heatmap = aggregate_blocks(
            [_w("09:00", "17:00")], [GuestEntry("Alice", (_w("08:00", "10:00"),))]
        )

        edge = heatmap.blocks[_block("08:45")]
        assert edge.in_planner_window is False
        assert edge.count == 1
        assert heatmap.blocks[_block("09:00")].in_planner_window is True
        assert heatmap.blocks[_block("16:45")].in_planner_window is True
        assert heatmap.blocks[_block("17:00")].in_planner_window is False

    def test_participation_not_filtered_by_planner_windows(self):
        heatmap = aggregate_blocks(
            [_w("09:00", "10:00")], [GuestEntry("Alice", (_w("20:00", "21:00"),))]
        )

        assert heatmap.blocks[_block("20:00")].count == 1
        assert heatmap.blocks[_block("20:00")].in_planner_window is False

    def test_tiers_scale_within_the_day(self):
        heatmap = aggregate_blocks(
            [],
            [
                GuestEntry("A", (_w("09:00", "10:00"),)),
                GuestEntry("B", (_w("09:00", "09:30"),)),
                GuestEntry("C", (_w("09:00", "09:15"),)),
            ],
        )

        assert heatmap.tier(heatmap.blocks[_block("09:00")]) == 5
        assert heatmap.tier(heatmap.blocks[_block("09:15")]) == 4
        assert heatmap.tier(heatmap.blocks[_block("09:30")]) == 2
        assert heatmap.tier(heatmap.blocks[_block("10:00")]) == 0

    def test_lookup_rejects_out_of_range_index(self):
        heatmap = aggregate_blocks([], [])
        with pytest.raises(IndexError):
            heatmap.lookup(96)
        with pytest.raises(IndexError):
            heatmap.lookup(-1)

    def test_lookup_returns_the_block(self):
        heatmap = aggregate_blocks([], [GuestEntry("Alice", (_w("09:00", "09:15"),))])

        block = heatmap.lookup(_block("09:00"))

        assert block is heatmap.blocks[_block("09:00")]
        assert block.index == _block("09:00")

    def test_max_count_computed_once(self):
        heatmap = aggregate_blocks([], [GuestEntry("Alice", (_w("09:00", "10:00"),))])

        with patch("planner.availability._floored_max", wraps=_floored_max) as floored:
            tiers = {heatmap.tier(b) for b in heatmap.blocks}

        assert tiers == {0, 5}
        assert floored.call_count == 1

    def test_block_label_and_summary(self):
        heatmap = aggregate_blocks(
            [], [GuestEntry("Alice", (_w("09:00", "10:00"),)), GuestEntry("Bob", (_w("09:00", "09:15"),))]
        )

        block = heatmap.blocks[_block("09:00")]
        assert block.label == "9:00am – 9:15am"
        assert block.summary == "2 available: Alice, Bob"
        assert heatmap.blocks[0].summary == "No one available"


class TestDaySelection:
    def test_guest_entries_for_day_keep_response_order(self, make_response):
        responses = [
            _response(make_response, "Alice", ["2024-03-01"], {"2024-03-01": [_w("09:00", "10:00")]}),
            _response(make_response, "Bob", ["2024-03-02"], {"2024-03-02": [_w("11:00", "12:00")]}),
            _response(make_response, "Cat", ["2024-03-01"], {"2024-03-01": [_w("13:00", "14:00")]}),
            _response(make_response, "Dan", ["2024-03-01"]),
        ]

        entries = guest_entries_for_day(responses, "2024-03-01")

        assert [e.guest_name for e in entries] == ["Alice", "Cat"]
        assert entries[1].windows[0].start == "13:00"

    def test_days_with_time_responses(self, make_response):
        responses = [
            _response(make_response, "Alice", ["2024-03-02"], {"2024-03-02": [_w("09:00", "10:00")]}),
            _response(make_response, "Bob", ["2024-03-09"], {"2024-03-09": [_w("09:00", "10:00")]}),
            _response(make_response, "Cat", ["2024-03-01"]),
        ]

        days = days_with_time_responses(date(2024, 3, 1), date(2024, 3, 3), responses)

        assert days == [date(2024, 3, 2)]


class TestCompareResponses:
    def test_people_per_day_with_stable_palette_slots(self, make_response):
        alice = _response(make_response, "Alice", ["2024-03-01", "2024-03-02"])
        bob = _response(make_response, "Bob", ["2024-03-02"])

        people, days = compare_responses(date(2024, 3, 1), date(2024, 3, 3), [bob, alice])

        assert [(p.name, p.color_index) for p in people] == [("Bob", 0), ("Alice", 1)]
        assert [[p.name for p in d.people] for d in days] == [["Alice"], ["Bob", "Alice"], []]

    def test_palette_wraps(self, make_response):
        responses = [_response(make_response, f"G{i}", ["2024-03-01"]) for i in range(PALETTE_SIZE + 1)]

        people, _ = compare_responses(date(2024, 3, 1), date(2024, 3, 1), responses)

        assert people[PALETTE_SIZE].color_index == 0
