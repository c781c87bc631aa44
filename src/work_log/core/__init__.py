"""Core functionality for the work log."""

from work_log.core.aggregator import summarize
from work_log.core.models import Event, EventKind, Interval, ProjectSummary
from work_log.core.storage import LogStore
from work_log.core.tracker import WorkTracker

__all__ = [
    "Event",
    "EventKind",
    "Interval",
    "ProjectSummary",
    "LogStore",
    "WorkTracker",
    "summarize",
]
