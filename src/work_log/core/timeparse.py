"""Parsing of time, duration and interval expressions.

All expressions are resolved against an explicit ``now``. Results keep the
awareness of ``now``: a naive ``now`` gives naive local wall-clock results,
an aware ``now`` gives results in its timezone.

Instant expressions:
    now                  the anchor itself
    2024-01-02 14:00     ISO date or date-time (``T`` separator and offsets allowed)
    14, 14:30, 14:30:15  clock time, closest such time in the search direction
    today, yesterday     midnight of that day, or a clock time on it
                         (``yesterday 14:00``); ``tomorrow`` works the same way
    15 9:00              day of month at a clock time
    15-3 9:00            day-month at a clock time
    2h, 45m, 1:30h       compact offsets from now in the search direction
    3 hours ago          offset into the past
    in 20 minutes        offset into the future

Interval expressions:
    today, yesterday, week, last-week, month, last-month, year
    START - END          explicit range; swapped if given backwards
    <instant>            from the instant until now
"""

import re
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Callable, Optional

from work_log.core.errors import UnknownInterval, UnparseableDuration, UnparseableTime
from work_log.core.models import Interval

WEEK_STARTS = {"monday": 0, "sunday": 6}

_UNIT_SECONDS = {
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hr": 3600,
    "hrs": 3600,
    "hour": 3600,
    "hours": 3600,
    "d": 86400,
    "day": 86400,
    "days": 86400,
    "w": 604800,
    "week": 604800,
    "weeks": 604800,
}

_DURATION = re.compile(r"(?:\s*\d+(?:\.\d+)?\s*[a-z]+)+\s*")
_DURATION_TOKEN = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]+)")
_CLOCK_DURATION = re.compile(r"(\d{1,2}):(\d{1,2})h?")

_CLOCK = re.compile(r"(\d{1,2})(?::(\d{1,2}))?(?::(\d{1,2}))?")
_DAY_KEYWORD = re.compile(r"(today|yesterday|tomorrow)(?:\s+(?:at\s+)?(\S+))?")
_DAY_CLOCK = re.compile(r"(\d{1,2})\s+(\d{1,2}:\d{1,2})")
_DAY_MONTH_CLOCK = re.compile(r"(\d{1,2})-(\d{1,2})\s+(\d{1,2}:\d{1,2})")
_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}.*")

_DAY_OFFSETS = {"yesterday": -1, "today": 0, "tomorrow": 1}


class Direction(Enum):
    """Which side of now an ambiguous expression resolves to."""

    PAST = "past"
    FUTURE = "future"


def parse_duration(text: str) -> timedelta:
    """Parse a positive duration.

    Accepts ``<quantity><unit>`` tokens, optionally separated by spaces
    (``90m``, ``1h30m``, ``2 hours 15 minutes``, ``1.5h``), and the clock
    form ``H:MM`` meaning hours and minutes.

    Args:
        text: Duration expression

    Returns:
        The parsed duration

    Raises:
        UnparseableDuration: On an unknown unit, malformed input, or a total
            that is not positive
    """
    normalized = text.strip().lower()
    if not normalized:
        raise UnparseableDuration("Empty duration")

    clock = _CLOCK_DURATION.fullmatch(normalized)
    if clock:
        hours, minutes = int(clock.group(1)), int(clock.group(2))
        if minutes > 59:
            raise UnparseableDuration(f"Invalid duration: {text}")
        seconds = float(hours * 3600 + minutes * 60)
    elif _DURATION.fullmatch(normalized):
        seconds = 0.0
        for quantity, unit in _DURATION_TOKEN.findall(normalized):
            if unit not in _UNIT_SECONDS:
                raise UnparseableDuration(f"Unknown duration unit '{unit}' in: {text}")
            seconds += float(quantity) * _UNIT_SECONDS[unit]
    else:
        raise UnparseableDuration(f"Invalid duration: {text}")

    if seconds <= 0:
        raise UnparseableDuration(f"Duration must be positive: {text}")
    return timedelta(seconds=seconds)


def _combine(now: datetime, day: date, clock: time) -> datetime:
    return datetime.combine(day, clock, tzinfo=now.tzinfo)


def _shift(now: datetime, delta: timedelta) -> datetime:
    """Move ``now`` by an absolute amount of time."""
    if now.tzinfo is None:
        # Naive values are local wall-clock time; shift in absolute time
        return (now.astimezone() + delta).astimezone().replace(tzinfo=None)
    return now + delta


def _match_awareness(parsed: datetime, now: datetime) -> datetime:
    if now.tzinfo is None:
        if parsed.tzinfo is None:
            return parsed
        return parsed.astimezone().replace(tzinfo=None)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=now.tzinfo)
    return parsed.astimezone(now.tzinfo)


def _parse_clock(text: str, original: str) -> time:
    match = _CLOCK.fullmatch(text)
    if not match:
        raise UnparseableTime(f"Invalid time specifier: {original}")
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    second = int(match.group(3) or 0)
    try:
        return time(hour, minute, second)
    except ValueError:
        raise UnparseableTime(f"Invalid time of day in: {original}")


def _on_side(candidate: datetime, now: datetime, direction: Direction) -> bool:
    if direction is Direction.PAST:
        return candidate <= now
    return candidate >= now


def _nearest(
    now: datetime,
    direction: Direction,
    candidates: Callable[[int], Optional[datetime]],
    original: str,
    limit: int,
) -> datetime:
    """Return the first valid candidate on the right side of now.

    ``candidates(k)`` builds the k-th candidate stepping away from now, or
    None if that step has no valid date.
    """
    for step in range(limit):
        candidate = candidates(step if direction is Direction.FUTURE else -step)
        if candidate is not None and _on_side(candidate, now, direction):
            return candidate
    raise UnparseableTime(f"No valid date matches: {original}")


def _add_months(year: int, month: int, months: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def _date_or_none(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_clock_time(clock: time, now: datetime, direction: Direction) -> datetime:
    candidate = _combine(now, now.date(), clock)
    if direction is Direction.PAST and candidate > now:
        return _combine(now, now.date() - timedelta(days=1), clock)
    if direction is Direction.FUTURE and candidate < now:
        return _combine(now, now.date() + timedelta(days=1), clock)
    return candidate


def _parse_day_of_month(
    day: int, clock: time, now: datetime, direction: Direction, original: str
) -> datetime:
    def candidate(months: int) -> Optional[datetime]:
        year, month = _add_months(now.year, now.month, months)
        found = _date_or_none(year, month, day)
        return _combine(now, found, clock) if found else None

    return _nearest(now, direction, candidate, original, limit=13)


def _parse_day_month(
    day: int, month: int, clock: time, now: datetime, direction: Direction, original: str
) -> datetime:
    def candidate(years: int) -> Optional[datetime]:
        found = _date_or_none(now.year + years, month, day)
        return _combine(now, found, clock) if found else None

    return _nearest(now, direction, candidate, original, limit=9)


def _parse_iso(text: str, now: datetime, original: str) -> datetime:
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise UnparseableTime(f"Invalid date: {original}")
    return _match_awareness(parsed, now)


def parse_instant(text: str, now: datetime, direction: Direction = Direction.PAST) -> datetime:
    """Resolve a time expression to an instant.

    Args:
        text: Time expression (see module docstring for the grammar)
        now: Anchor for relative expressions
        direction: Side of ``now`` that ambiguous expressions resolve to

    Returns:
        The resolved instant

    Raises:
        UnparseableTime: If the expression is not recognized

    Example:
        >>> parse_instant("yesterday 14:00", datetime(2024, 1, 2, 10, 0))
        datetime.datetime(2024, 1, 1, 14, 0)
    """
    normalized = " ".join(text.strip().lower().split())
    if not normalized:
        raise UnparseableTime("Empty time specifier")

    if normalized == "now":
        return now

    if normalized.endswith(" ago"):
        return _shift(now, -_relative_duration(normalized[: -len(" ago")], text))
    if normalized.startswith("in "):
        return _shift(now, _relative_duration(normalized[len("in ") :], text))

    match = _DAY_KEYWORD.fullmatch(normalized)
    if match:
        day = now.date() + timedelta(days=_DAY_OFFSETS[match.group(1)])
        clock = _parse_clock(match.group(2), text) if match.group(2) else time(0)
        return _combine(now, day, clock)

    match = _CLOCK.fullmatch(normalized)
    if match:
        return _parse_clock_time(_parse_clock(normalized, text), now, direction)

    match = _DAY_CLOCK.fullmatch(normalized)
    if match:
        clock = _parse_clock(match.group(2), text)
        return _parse_day_of_month(int(match.group(1)), clock, now, direction, text)

    match = _DAY_MONTH_CLOCK.fullmatch(normalized)
    if match:
        clock = _parse_clock(match.group(3), text)
        return _parse_day_month(
            int(match.group(1)), int(match.group(2)), clock, now, direction, text
        )

    if _ISO_DATE.fullmatch(normalized):
        return _parse_iso(" ".join(text.split()).upper(), now, text)

    try:
        offset = parse_duration(normalized)
    except UnparseableDuration:
        raise UnparseableTime(f"Invalid time specifier: {text}")
    return _shift(now, offset if direction is Direction.FUTURE else -offset)


def _relative_duration(text: str, original: str) -> timedelta:
    try:
        return parse_duration(text)
    except UnparseableDuration as e:
        raise UnparseableTime(f"Invalid time specifier: {original} ({e})")


def _day_start(now: datetime, day: date) -> datetime:
    return _combine(now, day, time(0))


def _month_bounds(now: datetime, months_back: int) -> Interval:
    year, month = _add_months(now.year, now.month, -months_back)
    next_year, next_month = _add_months(year, month, 1)
    return Interval(
        _day_start(now, date(year, month, 1)),
        _day_start(now, date(next_year, next_month, 1)),
    )


def _week_bounds(now: datetime, week_start: str, weeks_back: int) -> Interval:
    if week_start not in WEEK_STARTS:
        raise ValueError(f"week_start must be one of {sorted(WEEK_STARTS)}, got {week_start!r}")
    today = now.date()
    first = today - timedelta(days=(today.weekday() - WEEK_STARTS[week_start]) % 7)
    first -= timedelta(weeks=weeks_back)
    return Interval(_day_start(now, first), _day_start(now, first + timedelta(days=7)))


def resolve_interval(text: str, now: datetime, week_start: str = "monday") -> Interval:
    """Resolve an interval keyword or range to ``[start, end)``.

    Calendar keywords are aligned to day, week, month and year boundaries of
    ``now``. A range written backwards is swapped, so ``start <= end``
    always holds.

    Args:
        text: Interval expression
        now: Anchor for keywords and relative expressions
        week_start: First day of the week for ``week``/``last-week``

    Returns:
        The resolved interval

    Raises:
        UnknownInterval: If the expression is not a keyword, range or instant
        UnparseableTime: If one side of an explicit range cannot be parsed
    """
    normalized = " ".join(text.strip().lower().split())
    if not normalized:
        raise UnknownInterval("Empty interval")

    today = now.date()
    keyword = normalized.replace(" ", "-")
    if keyword == "today":
        return Interval(_day_start(now, today), _day_start(now, today + timedelta(days=1)))
    if keyword == "yesterday":
        return Interval(_day_start(now, today - timedelta(days=1)), _day_start(now, today))
    if keyword in ("week", "this-week"):
        return _week_bounds(now, week_start, 0)
    if keyword == "last-week":
        return _week_bounds(now, week_start, 1)
    if keyword in ("month", "this-month"):
        return _month_bounds(now, 0)
    if keyword == "last-month":
        return _month_bounds(now, 1)
    if keyword in ("year", "this-year"):
        return Interval(
            _day_start(now, date(now.year, 1, 1)), _day_start(now, date(now.year + 1, 1, 1))
        )

    if " - " in normalized:
        left, right = normalized.split(" - ", 1)
        start = parse_instant(left, now)
        end = parse_instant(right, now)
        return Interval(min(start, end), max(start, end))

    try:
        instant = parse_instant(normalized, now)
    except UnparseableTime:
        raise UnknownInterval(f"Unknown interval: {text}")
    return Interval(min(instant, now), max(instant, now))
