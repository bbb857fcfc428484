"""Availability aggregation for plan results.

Everything here is a pure function of its arguments: the caller fetches a
consistent snapshot of a plan and its responses and the aggregates are rebuilt
on every read.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from functools import cached_property
from typing import Protocol

from planner.timewindows import (
    MINUTES_PER_DAY,
    Window,
    day_key,
    format_clock,
    iter_days,
    to_minutes,
)

BLOCK_MINUTES = 15
BLOCKS_PER_DAY = MINUTES_PER_DAY // BLOCK_MINUTES

# Checked in order, first match wins. Anything below the last threshold is tier 1.
TIER_THRESHOLDS: tuple[tuple[float, int], ...] = ((0.8, 5), (0.6, 4), (0.4, 3), (0.2, 2))

PALETTE_SIZE = 8


class Respondent(Protocol):
    id: str
    guest_name: str
    selected_dates: Sequence[str]
    selected_time_windows: Mapping[str, Sequence[Window]] | None


def heat_tier(count: int, max_count: int) -> int:
    """Quantize ``count / max_count`` into tiers 1-5; zero counts get tier 0."""
    if count <= 0:
        return 0
    ratio = count / max_count
    for threshold, tier in TIER_THRESHOLDS:
        if ratio >= threshold:
            return tier
    return 1


def _floored_max(counts: Iterable[int]) -> int:
    return max([*counts, 1])


@dataclass(frozen=True)
class DayCount:
    day: date
    count: int
    names: tuple[str, ...]

    @property
    def key(self) -> str:
        return self.day.isoformat()


@dataclass(frozen=True)
class DayHeatmap:
    days: tuple[DayCount, ...]

    @cached_property
    def max_count(self) -> int:
        return _floored_max(d.count for d in self.days)

    def tier(self, entry: DayCount) -> int:
        return heat_tier(entry.count, self.max_count)

    def get(self, key: str) -> DayCount | None:
        for entry in self.days:
            if entry.key == key:
                return entry
        return None


def aggregate_days(start: date, end: date, responses: Sequence[Respondent]) -> DayHeatmap:
    """Count, for each day in ``[start, end]``, the responses that selected it.

    Names follow response order. Selected dates outside the range are never
    represented because only in-range days are emitted.
    """
    selections = [
        (r.guest_name, {day_key(d) for d in r.selected_dates}) for r in responses
    ]
    days = []
    for day in iter_days(start, end):
        key = day.isoformat()
        names = tuple(name for name, keys in selections if key in keys)
        days.append(DayCount(day=day, count=len(names), names=names))
    return DayHeatmap(days=tuple(days))


@dataclass(frozen=True)
class GuestEntry:
    guest_name: str
    windows: tuple[Window, ...]


@dataclass(frozen=True)
class TimeBlock:
    index: int
    count: int
    names: tuple[str, ...]
    in_planner_window: bool

    @property
    def start_minute(self) -> int:
        return self.index * BLOCK_MINUTES

    @property
    def end_minute(self) -> int:
        return (self.index + 1) * BLOCK_MINUTES

    @property
    def label(self) -> str:
        return f"{format_clock(self.start_minute)} – {format_clock(self.end_minute)}"

    @property
    def summary(self) -> str:
        if self.count == 0:
            return "No one available"
        return f"{self.count} available: {', '.join(self.names)}"


@dataclass(frozen=True)
class BlockHeatmap:
    blocks: tuple[TimeBlock, ...]

    @cached_property
    def max_count(self) -> int:
        return _floored_max(b.count for b in self.blocks)

    def tier(self, block: TimeBlock) -> int:
        return heat_tier(block.count, self.max_count)

    def lookup(self, index: int) -> TimeBlock:
        """Return the block at ``index``; raises IndexError when out of range."""
        if not 0 <= index < len(self.blocks):
            raise IndexError(f"block index out of range: {index}")
        return self.blocks[index]


def _spans(windows: Iterable[Window]) -> list[tuple[int, int]]:
    return [(to_minutes(w.start), to_minutes(w.end)) for w in windows]


def aggregate_blocks(
    planner_windows: Sequence[Window],
    guest_entries: Sequence[GuestEntry],
) -> BlockHeatmap:
    """Split the day into 15-minute blocks and count covering guests.

    The planner flag requires a block to sit fully inside a planner window.
    A guest covers a block when any of their windows overlaps it at all, and
    is counted once per block.
    """
    planner = _spans(planner_windows)
    guests = [(entry.guest_name, _spans(entry.windows)) for entry in guest_entries]
    blocks = []
    for index in range(BLOCKS_PER_DAY):
        block_start = index * BLOCK_MINUTES
        block_end = block_start + BLOCK_MINUTES
        in_planner = any(block_start >= ws and block_end <= we for ws, we in planner)
        names = tuple(
            name
            for name, spans in guests
            if any(gs < block_end and ge > block_start for gs, ge in spans)
        )
        blocks.append(
            TimeBlock(index=index, count=len(names), names=names, in_planner_window=in_planner)
        )
    return BlockHeatmap(blocks=tuple(blocks))


def guest_entries_for_day(responses: Sequence[Respondent], key: str) -> list[GuestEntry]:
    entries = []
    for r in responses:
        windows = (r.selected_time_windows or {}).get(key)
        if windows:
            entries.append(GuestEntry(guest_name=r.guest_name, windows=tuple(windows)))
    return entries


def days_with_time_responses(
    start: date, end: date, responses: Sequence[Respondent]
) -> list[date]:
    """In-range days for which at least one response submitted time windows."""
    keys = {
        day_key(k)
        for r in responses
        for k, windows in (r.selected_time_windows or {}).items()
        if windows
    }
    return [day for day in iter_days(start, end) if day.isoformat() in keys]


@dataclass(frozen=True)
class ComparedPerson:
    response_id: str
    name: str
    color_index: int


@dataclass(frozen=True)
class ComparisonDay:
    day: date
    people: tuple[ComparedPerson, ...]


def compare_responses(
    start: date, end: date, responses: Sequence[Respondent]
) -> tuple[list[ComparedPerson], list[ComparisonDay]]:
    """Side-by-side view of a handful of responses.

    Each response keeps the palette slot of its position in ``responses``.
    """
    people = [
        ComparedPerson(response_id=r.id, name=r.guest_name, color_index=i % PALETTE_SIZE)
        for i, r in enumerate(responses)
    ]
    selections = [{day_key(d) for d in r.selected_dates} for r in responses]
    days = [
        ComparisonDay(
            day=day,
            people=tuple(p for p, keys in zip(people, selections) if day.isoformat() in keys),
        )
        for day in iter_days(start, end)
    ]
    return people, days
