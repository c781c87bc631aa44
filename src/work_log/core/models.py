"""Core data models for the work log."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from work_log.core.errors import LogUnreadable

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
NO_DESCRIPTION = "No description"


def ensure_aware(instant: datetime) -> datetime:
    """Return ``instant`` as a timezone-aware datetime.

    Naive datetimes are read as local wall-clock time.
    """
    if instant.tzinfo is None:
        return instant.astimezone()
    return instant


def format_timestamp(instant: datetime) -> str:
    """Encode an instant as a fixed-width UTC timestamp."""
    return ensure_aware(instant).astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(text: str) -> datetime:
    """Decode a timestamp written by :func:`format_timestamp` into local time."""
    return datetime.strptime(text, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc).astimezone()


class EventKind(Enum):
    """Kind of a log event. The value is the token written to the log."""

    START = "Start"
    STOP = "Stop"


@dataclass
class Event:
    """A single start or stop record in the work log.

    Attributes:
        timestamp: When the event happened (stored with second precision)
        kind: Start or Stop
        project: Project identifier, required on Start events only
        description: Free text, optional and only allowed on Start events
    """

    timestamp: datetime
    kind: EventKind
    project: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        self.timestamp = ensure_aware(self.timestamp).replace(microsecond=0)

        if self.kind is EventKind.START:
            if not self.project or any(c.isspace() for c in self.project):
                raise ValueError(
                    f"Invalid project name {self.project!r}: "
                    "must be non-empty and contain no whitespace"
                )
            if self.description is not None:
                self.description = self.description.strip() or None
            if self.description and ("\n" in self.description or "\r" in self.description):
                raise ValueError("Description must fit on a single line")
        elif self.project is not None or self.description is not None:
            raise ValueError("Stop events carry no project or description")

    @classmethod
    def start(
        cls, timestamp: datetime, project: str, description: Optional[str] = None
    ) -> "Event":
        return cls(timestamp, EventKind.START, project, description)

    @classmethod
    def stop(cls, timestamp: datetime) -> "Event":
        return cls(timestamp, EventKind.STOP)

    @property
    def is_start(self) -> bool:
        return self.kind is EventKind.START

    def to_line(self) -> str:
        """Encode the event as one log line (without the trailing newline)."""
        parts = [format_timestamp(self.timestamp), self.kind.value]
        if self.is_start:
            parts.append(self.project or "")
            if self.description:
                parts.append(self.description)
        return " ".join(parts)

    @classmethod
    def from_line(cls, line: str, line_number: int = 0) -> "Event":
        """Decode one log line.

        Raises:
            LogUnreadable: If the line is not a valid event
        """
        parts = line.strip().split(" ", 3)
        if len(parts) < 2:
            raise LogUnreadable(f"expected '<timestamp> <kind> ...', got {line!r}", line_number)

        try:
            timestamp = parse_timestamp(parts[0])
        except ValueError:
            raise LogUnreadable(f"invalid timestamp {parts[0]!r}", line_number)

        try:
            kind = EventKind(parts[1])
        except ValueError:
            raise LogUnreadable(f"unknown event kind {parts[1]!r}", line_number)

        try:
            if kind is EventKind.STOP:
                if len(parts) != 2:
                    raise ValueError("Stop events carry no project or description")
                return cls.stop(timestamp)
            if len(parts) < 3:
                raise ValueError("Start event without a project")
            description = parts[3] if len(parts) == 4 else None
            return cls.start(timestamp, parts[2], description)
        except ValueError as e:
            raise LogUnreadable(str(e), line_number)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind.value,
            "project": self.project or "",
            "description": self.description or "",
        }


@dataclass
class Interval:
    """Half-open range ``[start, end)`` of instants."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if ensure_aware(self.start) > ensure_aware(self.end):
            raise ValueError(f"Interval start {self.start} is after its end {self.end}")

    @property
    def duration(self) -> timedelta:
        return ensure_aware(self.end) - ensure_aware(self.start)

    def contains(self, instant: datetime) -> bool:
        instant = ensure_aware(instant)
        return ensure_aware(self.start) <= instant < ensure_aware(self.end)

    def overlap(self, start: datetime, end: datetime) -> timedelta:
        """Length of the part of ``[start, end)`` that lies inside this interval."""
        lower = max(ensure_aware(start), ensure_aware(self.start))
        upper = min(ensure_aware(end), ensure_aware(self.end))
        if upper <= lower:
            return timedelta(0)
        return upper - lower


@dataclass
class ProjectSummary:
    """Time worked per project within an interval.

    Projects keep the order in which they first received time.

    Attributes:
        totals: Project name to accumulated duration
        descriptions: Project name to description to accumulated duration
    """

    totals: dict[str, timedelta] = field(default_factory=dict)
    descriptions: dict[str, dict[str, timedelta]] = field(default_factory=dict)

    def add(self, project: str, description: Optional[str], duration: timedelta) -> None:
        """Add a positive duration to a project. Other durations are ignored."""
        if duration <= timedelta(0):
            return
        self.totals[project] = self.totals.get(project, timedelta(0)) + duration
        by_description = self.descriptions.setdefault(project, {})
        key = description or NO_DESCRIPTION
        by_description[key] = by_description.get(key, timedelta(0)) + duration

    @property
    def total(self) -> timedelta:
        return sum(self.totals.values(), timedelta(0))

    def __len__(self) -> int:
        return len(self.totals)

    def __bool__(self) -> bool:
        return bool(self.totals)

    def as_dict(self) -> dict[str, int]:
        """Project totals in whole seconds."""
        return {project: int(d.total_seconds()) for project, d in self.totals.items()}
