"""Rendering of work summaries."""

import csv
import io
import json
from datetime import timedelta
from enum import Enum
from typing import Optional

from rich.console import Console  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]
from rich.text import Text  # type: ignore[import-not-found]

from work_log.core.models import Interval, ProjectSummary

APPROX_HOUR = 30
APPROX_MINUTES = 15


class TimeFormat(Enum):
    """How durations are printed."""

    MINUTES = "minutes"
    MINUTES_APPROX = "minutes-approx"
    HOURS_APPROX = "hours"
    HUMAN_READABLE = "human-readable"

    @classmethod
    def from_name(cls, name: str) -> "TimeFormat":
        """Look up a format by name or short alias.

        Raises:
            ValueError: If the name is not a known format
        """
        aliases = {"m": "minutes", "ma": "minutes-approx", "h": "hours", "hr": "human-readable"}
        try:
            return cls(aliases.get(name, name))
        except ValueError:
            raise ValueError(
                "Valid values are [m, minutes, ma, minutes-approx, h, hours, hr, human-readable]"
            )


def approximate_hours(duration: timedelta) -> float:
    """Round to whole hours, adding half an hour past 15 and a full hour past 30 minutes."""
    total_minutes = int(duration.total_seconds()) // 60
    hours, minutes = divmod(total_minutes, 60)
    if minutes > APPROX_HOUR:
        return hours + 1.0
    if minutes > APPROX_MINUTES:
        return hours + 0.5
    return float(hours)


def approximate_minutes(duration: timedelta) -> int:
    """Round minutes up to the next quarter hour."""
    minutes = int(duration.total_seconds()) // 60
    remainder = minutes % APPROX_MINUTES
    if remainder:
        return minutes + APPROX_MINUTES - remainder
    return minutes


def _unit(count: int, name: str) -> str:
    return f"1 {name}" if count == 1 else f"{count} {name}s"


def human_readable(duration: timedelta) -> str:
    """Format a duration as e.g. ``2 hours and 1 minute``."""
    total_minutes = int(duration.total_seconds()) // 60
    hours, minutes = divmod(total_minutes, 60)

    if hours == 0 and minutes == 0:
        return "Less than a minute"
    if hours == 0:
        return _unit(minutes, "minute")
    if minutes == 0:
        return _unit(hours, "hour")
    return f"{_unit(hours, 'hour')} and {_unit(minutes, 'minute')}"


def format_time(time_format: TimeFormat, duration: timedelta) -> str:
    """Format a duration in the given time format."""
    if time_format is TimeFormat.MINUTES:
        return str(int(duration.total_seconds()) // 60)
    if time_format is TimeFormat.MINUTES_APPROX:
        return str(approximate_minutes(duration))
    if time_format is TimeFormat.HOURS_APPROX:
        return f"{approximate_hours(duration):g}"
    return human_readable(duration)


def as_csv(summary: ProjectSummary, time_format: TimeFormat) -> str:
    """Render a summary as CSV rows of project, description and time spent."""
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(["Project", "Description", "Time Spent"])
    for project, descriptions in summary.descriptions.items():
        for description, duration in descriptions.items():
            writer.writerow([project, description, format_time(time_format, duration)])
    return output.getvalue()


def as_json(summary: ProjectSummary, time_format: TimeFormat) -> str:
    """Render a summary as a JSON object of project to description to time spent."""
    data = {
        project: {
            description: format_time(time_format, duration)
            for description, duration in descriptions.items()
        }
        for project, descriptions in summary.descriptions.items()
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


class ReportGenerator:
    """Print work summaries to the terminal."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize report generator.

        Args:
            console: Rich console for output. Creates default if None.
        """
        self.console = console or Console()

    def summary_report(
        self,
        summary: ProjectSummary,
        interval: Interval,
        time_format: TimeFormat = TimeFormat.HUMAN_READABLE,
        descriptions: bool = False,
    ) -> None:
        """Display time per project for an interval.

        Args:
            summary: Summary to display
            interval: Interval the summary covers
            time_format: Format for durations
            descriptions: Also break each project down by description
        """
        if not summary:
            self.console.print("[yellow]No work done![/yellow]")
            return

        total = summary.total
        title = (
            f"Work from {interval.start:%Y-%m-%d %H:%M} to {interval.end:%Y-%m-%d %H:%M}"
        )
        table = Table(title=title)
        table.add_column("Project", style="cyan")
        table.add_column("Time", style="magenta", justify="right")
        table.add_column("% Total", style="green", justify="right")
        table.add_column("Bar", style="blue")

        for project, duration in summary.totals.items():
            pct = (duration / total) * 100 if total else 0.0
            table.add_row(
                Text(project),
                format_time(time_format, duration),
                f"{pct:.1f}%",
                self._create_bar(pct),
            )
            if descriptions:
                for description, spent in summary.descriptions[project].items():
                    table.add_row(
                        Text(f"  {description}", style="dim"),
                        format_time(time_format, spent),
                        "",
                        "",
                    )

        self.console.print(table)
        self.console.print(f"[bold]Total:[/bold] {format_time(time_format, total)}")

    def _create_bar(self, percentage: float, width: int = 25) -> Text:
        """Create a visual bar for percentage display.

        Args:
            percentage: Percentage value (0-100)
            width: Width of the bar in characters

        Returns:
            Rich Text object with colored bar
        """
        filled = int((percentage / 100) * width)
        empty = width - filled

        bar = Text()
        bar.append("█" * filled, style="blue")
        bar.append("░" * empty, style="dim")

        return bar
