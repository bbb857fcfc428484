"""Calendar-day keys and "HH:mm" clock helpers.

Every day key in the service is produced by :func:`day_key`, so plan windows,
response windows and the aggregator's day iteration always agree.
"""

import re
from collections.abc import Iterator
from datetime import UTC, date, datetime, timedelta
from typing import Protocol

MINUTES_PER_DAY = 24 * 60

DAY_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$")


class Window(Protocol):
    start: str
    end: str


def day_key(value: date | datetime | str) -> str:
    """Return the ``YYYY-MM-DD`` key of the UTC calendar day of ``value``.

    Naive datetimes are treated as UTC. Strings may be plain ISO dates or ISO
    datetimes (a trailing ``Z`` is accepted).
    """
    if isinstance(value, str):
        value = value.strip()
        if DAY_KEY_RE.match(value):
            return date.fromisoformat(value).isoformat()
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        try:
            return value.astimezone(UTC).date().isoformat()
        except OverflowError:
            raise ValueError(f"date out of range: {value.isoformat()}") from None
    return value.isoformat()


def parse_day(value: date | datetime | str) -> date:
    return date.fromisoformat(day_key(value))


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        # date.max has no successor
        if current == end:
            break
        current += timedelta(days=1)


def is_valid_time(value: str) -> bool:
    return bool(TIME_RE.match(value))


def to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def from_minutes(minutes: int) -> str:
    """Inverse of :func:`to_minutes`; the end of the day renders as ``24:00``."""
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def format_clock(minutes: int) -> str:
    """Render minutes since midnight as a 12-hour label, e.g. ``9:15am``."""
    hours, mins = divmod(minutes, 60)
    hours %= 24
    suffix = "pm" if hours >= 12 else "am"
    display = 12 if hours % 12 == 0 else hours % 12
    return f"{display}:{mins:02d}{suffix}"


def format_window_label(window: Window) -> str:
    return f"{format_clock(to_minutes(window.start))}–{format_clock(to_minutes(window.end))}"


def format_windows_label(windows: list[Window]) -> str:
    return ", ".join(format_window_label(w) for w in windows)


def format_hour_tick(hour: int) -> str:
    """Axis tick for the time heatmap (``12a``, ``3a``, ``12p``, ``9p``)."""
    hour %= 24
    if hour == 0:
        return "12a"
    if hour == 12:
        return "12p"
    if hour > 12:
        return f"{hour - 12}p"
    return f"{hour}a"
