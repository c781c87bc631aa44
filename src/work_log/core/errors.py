"""Error types raised by the work log core.

Every error carries the process exit code the CLI uses for it:

- 2: user errors (bad input, or an operation the log state does not allow)
- 3: log file errors (unreadable or inaccessible log)
- 4: system errors (a tracked command failed)
"""


class WorkLogError(Exception):
    """Base class for all work log errors."""

    exit_code = 2


class AlternationViolation(WorkLogError):
    """Appending the event would put two events of the same kind in a row."""


class NonMonotonicTimestamp(WorkLogError):
    """The event is older than the last event in the log."""


class UnparseableTime(WorkLogError):
    """A time expression could not be resolved to an instant."""


class TimeOutOfRange(UnparseableTime):
    """A resolved instant lies on the wrong side of now."""


class UnparseableDuration(WorkLogError):
    """A duration expression is invalid or not positive."""


class UnknownInterval(WorkLogError):
    """An interval keyword or expression is not recognized."""


class LogUnreadable(WorkLogError):
    """The log file exists but contains a line that cannot be decoded."""

    exit_code = 3

    def __init__(self, message: str, line_number: int = 0):
        if line_number:
            message = f"Corrupt work log at line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class LogAccessError(WorkLogError):
    """The log file could not be opened, read or written."""

    exit_code = 3


class CommandFailed(WorkLogError):
    """A command run under ``while`` could not start or exited non-zero."""

    exit_code = 4

    def __init__(self, message: str, returncode: int = -1):
        super().__init__(message)
        self.returncode = returncode
