"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest  # type: ignore[import-not-found]

from work_log.core.storage import LogStore


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "posix: Tests that need a POSIX shell")


@pytest.fixture
def log_path(tmp_path: Path) -> Path:
    """Path of a work log inside a not yet existing directory."""
    return tmp_path / "data" / "work.log"


@pytest.fixture
def store(log_path: Path) -> LogStore:
    """Open log store on a temporary file."""
    with LogStore(log_path) as log:
        yield log


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at Tuesday 2024-01-02 10:00 local time."""
    return FakeClock(datetime(2024, 1, 2, 10, 0, 0))
