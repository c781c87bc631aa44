"""Work tracking operations built on the log store."""

import logging
import os
import signal
import subprocess
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from work_log.core.aggregator import summarize
from work_log.core.errors import AlternationViolation, CommandFailed, TimeOutOfRange
from work_log.core.models import Event, Interval, ProjectSummary, ensure_aware
from work_log.core.storage import LogStore
from work_log.core.timeparse import Direction, parse_instant, resolve_interval

logger = logging.getLogger(__name__)


def shell_command(command: str, shell: Optional[str] = None) -> list[str]:
    """Build the argument list that runs ``command`` through a shell.

    Args:
        command: Command line to run
        shell: Shell to use. Defaults to $SHELL, falling back to sh

    Returns:
        Arguments for :class:`subprocess.Popen`
    """
    if sys.platform == "win32" and shell is None:
        return ["cmd", "/c", command]
    return [shell or os.environ.get("SHELL") or "sh", "-c", command]


@contextmanager
def _signals_as_exit() -> Iterator[None]:
    """Turn SIGTERM and SIGHUP into SystemExit so cleanup code still runs."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum: int, frame: Any) -> None:
        raise SystemExit(128 + signum)

    signals = [signal.SIGTERM]
    if hasattr(signal, "SIGHUP"):
        signals.append(signal.SIGHUP)

    previous = {sig: signal.signal(sig, handler) for sig in signals}
    try:
        yield
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old if old is not None else signal.SIG_DFL)


class WorkTracker:
    """Start, stop and report on work recorded in a log store."""

    def __init__(
        self,
        store: LogStore,
        clock: Optional[Callable[[], datetime]] = None,
        week_start: str = "monday",
    ):
        """Initialize work tracker.

        Args:
            store: Open log store
            clock: Source of the current time. Defaults to datetime.now
            week_start: First day of the week for weekly summaries
        """
        self.store = store
        self.clock = clock or datetime.now
        self.week_start = week_start

    def now(self) -> datetime:
        return self.clock()

    def start(self, project: str, description: Optional[str] = None) -> Event:
        """Start working on a project now.

        Raises:
            AlternationViolation: If work is already in progress
        """
        event = self.store.append(Event.start(self.now(), project, description))
        logger.info(f"Started work on {project}")
        return event

    def stop(self) -> tuple[Event, Event]:
        """Stop the work in progress now.

        Returns:
            Tuple of (start event of the stopped work, new stop event)

        Raises:
            AlternationViolation: If no work is in progress
        """
        current = self.store.current()
        if current is None:
            raise AlternationViolation("Unable to stop, no work in progress")
        stop = self.store.append(Event.stop(self.now()))
        logger.info(f"Stopped work on {current.project}")
        return current, stop

    def since(
        self,
        time_text: str,
        project: str,
        description: Optional[str] = None,
        stop: bool = False,
    ) -> Event:
        """Record that work on a project started at an earlier time.

        Args:
            time_text: When the work started, resolved backwards from now
            project: Project name
            description: Optional description
            stop: Also stop the work now

        Returns:
            The appended start event

        Raises:
            TimeOutOfRange: If the time resolves to the future
            AlternationViolation: If work is already in progress
            NonMonotonicTimestamp: If the time is before the last logged event
        """
        now = self.now()
        instant = parse_instant(time_text, now, Direction.PAST)
        if ensure_aware(instant) > ensure_aware(now):
            raise TimeOutOfRange(f"'{time_text}' is in the future")

        event = self.store.append(Event.start(instant, project, description))
        logger.info(f"Started work on {project} at {instant}")
        if stop:
            self.store.append(Event.stop(now))
            logger.info(f"Stopped work on {project}")
        return event

    def until(self, time_text: str) -> Event:
        """Record that the work in progress stops at a later time.

        Raises:
            TimeOutOfRange: If the time resolves to the past
            AlternationViolation: If no work is in progress
        """
        now = self.now()
        instant = parse_instant(time_text, now, Direction.FUTURE)
        if ensure_aware(instant) < ensure_aware(now):
            raise TimeOutOfRange(f"'{time_text}' is in the past")

        event = self.store.append(Event.stop(instant))
        logger.info(f"Work stops at {instant}")
        return event

    def between(
        self, range_text: str, project: str, description: Optional[str] = None
    ) -> tuple[Event, Event]:
        """Record a finished piece of work in the past.

        Args:
            range_text: Interval of the work, e.g. ``9:00 - 11:30``
            project: Project name
            description: Optional description

        Returns:
            Tuple of (start event, stop event)

        Raises:
            TimeOutOfRange: If the interval ends in the future
            AlternationViolation: If work is already in progress
        """
        now = self.now()
        interval = resolve_interval(range_text, now, self.week_start)
        if ensure_aware(interval.end) > ensure_aware(now):
            raise TimeOutOfRange(f"'{range_text}' ends in the future")

        start = self.store.append(Event.start(interval.start, project, description))
        stop = self.store.append(Event.stop(interval.end))
        logger.info(f"Logged work on {project} from {interval.start} to {interval.end}")
        return start, stop

    def run_while(
        self,
        command: str,
        project: str,
        description: Optional[str] = None,
        shell: Optional[str] = None,
    ) -> int:
        """Track a project for as long as a command runs.

        The stop event is appended however the command ends, including when
        this process is interrupted or terminated while waiting. An
        interrupted command is terminated first. If the command stopped the
        work itself, no second stop is appended.

        Args:
            command: Command line to run through the shell
            project: Project name
            description: Optional description
            shell: Shell to run the command with

        Returns:
            The command's exit status (always 0, other values raise)

        Raises:
            AlternationViolation: If work is already in progress
            CommandFailed: If the command cannot start or exits non-zero
        """
        current = self.store.current()
        if current is not None:
            raise AlternationViolation(
                f"Already working on {current.project}. Stop the current work first."
            )

        argv = shell_command(command, shell)
        started = self.start(project, description)
        process: Optional[subprocess.Popen] = None
        try:
            with _signals_as_exit():
                try:
                    process = subprocess.Popen(argv)
                except OSError as e:
                    raise CommandFailed(f"Failed to start {argv[0]}: {e}")
                logger.info(f"Running {command!r} (PID: {process.pid})")
                returncode = process.wait()
        finally:
            if process is not None and process.poll() is None:
                logger.info(f"Terminating {command!r} (PID: {process.pid})")
                process.terminate()
                process.wait()
            # The command may have stopped or switched the work itself
            if self.store.current() == started:
                self.store.append(Event.stop(self.now()))
                logger.info(f"Stopped work on {project}")
            else:
                logger.info(f"Work on {project} was already stopped")

        if returncode != 0:
            raise CommandFailed(f"Command exited with status {returncode}", returncode)
        return returncode

    def status(self) -> Optional[Event]:
        """Get the start event of the work in progress, or None if free."""
        return self.store.current()

    def is_working(self) -> bool:
        return self.store.is_open()

    def elapsed(self, event: Event) -> timedelta:
        """Time since ``event`` happened."""
        return max(ensure_aware(self.now()) - event.timestamp, timedelta(0))

    def summary(self, interval_text: str) -> tuple[Interval, ProjectSummary]:
        """Summarize the work done within an interval.

        Returns:
            Tuple of (resolved interval, per-project summary)
        """
        now = self.now()
        interval = resolve_interval(interval_text, now, self.week_start)
        events = self.store.read_all()
        return interval, summarize(events, interval, now)
