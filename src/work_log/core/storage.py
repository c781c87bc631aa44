"""Append-only work log storage with file locking and validation."""

import logging
import os
import sys
from pathlib import Path
from types import TracebackType
from typing import IO, Any, Optional

from work_log.core.errors import (
    AlternationViolation,
    LogAccessError,
    LogUnreadable,
    NonMonotonicTimestamp,
)
from work_log.core.models import Event, EventKind

logger = logging.getLogger(__name__)


def _lock_file(file_obj: Any, exclusive: bool = True) -> None:
    """Lock a file in a cross-platform way.

    Args:
        file_obj: File object to lock
        exclusive: If True, acquire exclusive lock; if False, acquire shared lock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        # msvcrt has no shared locks; serialize readers too
        msvcrt.locking(file_obj.fileno(), msvcrt.LK_LOCK, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        mode = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(file_obj.fileno(), mode)


def _unlock_file(file_obj: Any) -> None:
    """Unlock a file in a cross-platform way.

    Args:
        file_obj: File object to unlock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        file_obj.seek(0)
        msvcrt.locking(file_obj.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        fcntl.flock(file_obj.fileno(), fcntl.LOCK_UN)


def check_next(last: Optional[Event], event: Event) -> None:
    """Check that ``event`` may follow ``last`` in the log.

    Raises:
        AlternationViolation: If both events have the same kind, or the log
            would start with a Stop
        NonMonotonicTimestamp: If ``event`` is older than ``last``
    """
    if last is None:
        if event.kind is EventKind.STOP:
            raise AlternationViolation("Unable to stop, no work in progress")
        return

    if last.kind is event.kind:
        if event.kind is EventKind.START:
            raise AlternationViolation(
                f"Already working on {last.project}. Stop the current work first."
            )
        raise AlternationViolation("Unable to stop, no work in progress")

    if event.timestamp < last.timestamp:
        raise NonMonotonicTimestamp(
            f"Event at {event.timestamp:%Y-%m-%d %H:%M:%S} is earlier than the last "
            f"logged event at {last.timestamp:%Y-%m-%d %H:%M:%S}"
        )


class LogStore:
    """Ordered, append-only persistence of events in a text file.

    Use as a context manager so the file handle is released on every path::

        with LogStore(path) as log:
            log.append(Event.start(datetime.now(), "project"))
    """

    def __init__(self, path: Path):
        """Initialize log store.

        Args:
            path: Location of the log file. Created on first open.
        """
        self.path = Path(path).expanduser()
        self._file: Optional[IO[str]] = None

    def open(self) -> "LogStore":
        """Open the log file, creating it and its directory if needed.

        Raises:
            LogAccessError: If the file cannot be opened
        """
        if self._file is not None:
            return self
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.path, "a+", encoding="utf-8")
        except OSError as e:
            raise LogAccessError(f"Unable to open work log {self.path}: {e}")
        logger.debug(f"Opened work log {self.path}")
        return self

    def close(self) -> None:
        """Close the log file. Safe to call more than once."""
        if self._file is not None:
            self._file.close()
            self._file = None
            logger.debug(f"Closed work log {self.path}")

    @property
    def closed(self) -> bool:
        return self._file is None

    def __enter__(self) -> "LogStore":
        return self.open()

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def _handle(self) -> IO[str]:
        if self._file is None:
            raise LogAccessError(f"Work log {self.path} is not open")
        return self._file

    def _read_events(self, file_obj: IO[str]) -> list[Event]:
        """Decode and validate every line of the log.

        Raises:
            LogUnreadable: On the first line that is malformed or breaks the
                alternation or ordering of the log
        """
        file_obj.seek(0)
        events: list[Event] = []
        for line_number, line in enumerate(file_obj, start=1):
            if not line.strip():
                continue
            event = Event.from_line(line, line_number)
            try:
                check_next(events[-1] if events else None, event)
            except (AlternationViolation, NonMonotonicTimestamp) as e:
                raise LogUnreadable(str(e), line_number)
            events.append(event)
        return events

    def read_all(self) -> list[Event]:
        """Read the full ordered sequence of events.

        Returns:
            All events, oldest first

        Raises:
            LogUnreadable: If the log contains a malformed line
            LogAccessError: If the log cannot be read
        """
        file_obj = self._handle()
        try:
            file_obj.seek(0)
            _lock_file(file_obj, exclusive=False)
            try:
                return self._read_events(file_obj)
            finally:
                _unlock_file(file_obj)
        except OSError as e:
            raise LogAccessError(f"Unable to read work log {self.path}: {e}")

    def last(self) -> Optional[Event]:
        """Get the most recent event, or None if the log is empty."""
        events = self.read_all()
        return events[-1] if events else None

    def is_open(self) -> bool:
        """Check whether work is in progress (the last event is a Start)."""
        last = self.last()
        return last is not None and last.kind is EventKind.START

    def current(self) -> Optional[Event]:
        """Get the Start event of the work in progress, if any."""
        last = self.last()
        if last is not None and last.kind is EventKind.START:
            return last
        return None

    def append(self, event: Event) -> Event:
        """Append an event, durably, after validating it against the log.

        The read, validation and write happen under one exclusive lock.

        Args:
            event: Event to append

        Returns:
            The appended event

        Raises:
            AlternationViolation: If the event has the same kind as the last one
            NonMonotonicTimestamp: If the event is older than the last one
            LogUnreadable: If the existing log is corrupt
            LogAccessError: If the log cannot be written
        """
        file_obj = self._handle()
        try:
            file_obj.seek(0)
            _lock_file(file_obj, exclusive=True)
            try:
                events = self._read_events(file_obj)
                check_next(events[-1] if events else None, event)

                # Append mode writes at the end regardless of the read position
                file_obj.write(event.to_line() + "\n")
                file_obj.flush()
                os.fsync(file_obj.fileno())
            finally:
                _unlock_file(file_obj)
        except OSError as e:
            raise LogAccessError(f"Unable to write to work log {self.path}: {e}")

        logger.debug(f"Appended to {self.path}: {event.to_line()}")
        return event
