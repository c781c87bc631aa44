"""Summarizing the work log into time spent per project."""

from collections.abc import Iterable, Iterator
from datetime import datetime

from work_log.core.models import Event, EventKind, Interval, ProjectSummary, ensure_aware


def iter_sessions(events: Iterable[Event], now: datetime) -> Iterator[tuple[Event, datetime]]:
    """Pair each Start event with the instant its work ended.

    Events are expected to alternate Start/Stop. A trailing Start with no
    Stop yet is treated as running until ``now``. Work never ends after
    ``now``, so a Stop logged ahead of time only counts once it has passed.

    Args:
        events: Events in log order
        now: Latest instant any work can end at

    Yields:
        ``(start_event, end_instant)`` tuples
    """
    now = ensure_aware(now)
    pending = None
    for event in events:
        if event.kind is EventKind.START:
            pending = event
        elif pending is not None:
            yield pending, max(min(event.timestamp, now), pending.timestamp)
            pending = None

    if pending is not None:
        yield pending, max(now, pending.timestamp)


def summarize(events: Iterable[Event], interval: Interval, now: datetime) -> ProjectSummary:
    """Sum up the time worked per project inside ``interval``.

    Every work session is clipped to the interval and only the overlapping
    part counts. Work still in progress counts up to the earlier of ``now``
    and the end of the interval.

    Args:
        events: Events in log order
        interval: Interval to report on
        now: Current time

    Returns:
        Project totals, in order of the first session that counted
    """
    summary = ProjectSummary()
    for start, end in iter_sessions(events, now):
        summary.add(
            start.project or "",
            start.description,
            interval.overlap(start.timestamp, end),
        )
    return summary
