"""Shared fixtures for dircleaner tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from dircleaner.models import Candidate


class FakeClock:
    """Settable stand-in for the cache clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_file():
    """Create a file of the given number of bytes, parents included."""

    def _make(path: Path, size: int) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x" * size)
        return path

    return _make


def make_candidate(name: str, size: int, days_old: int = 0) -> Candidate:
    when = datetime(2024, 1, 31, tzinfo=timezone.utc) - timedelta(days=days_old)
    return Candidate(name=name, size=size, mtime=when, atime=when, hint="")
