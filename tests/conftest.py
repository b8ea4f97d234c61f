"""
Pytest configuration and shared fixtures.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.database import EventStore  # noqa: E402
from services.notices import NoticeBoard  # noqa: E402
from services.reconciler import SyncReconciler  # noqa: E402

from fixtures.fake_provider import FakeCalendarProvider  # noqa: E402


def utc(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


class FakeClock:
    """Settable UTC clock shared by the store and the fake provider."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(utc(2026, 2, 15, 12))


@pytest.fixture
def store(tmp_path, clock):
    """EventStore on a fresh database file."""
    return EventStore(tmp_path / "calendar.db", clock=clock)


@pytest.fixture
def provider(clock):
    return FakeCalendarProvider(clock=clock)


@pytest.fixture
def notices():
    return NoticeBoard()


@pytest.fixture
def reconciler(store, provider, notices):
    return SyncReconciler(store, provider, notices)


@pytest.fixture
def sample_event():
    """Sample event payload for testing."""
    return {
        "title": "Design review",
        "description": "Walk through the Q1 roadmap",
        "location": "Room 4",
        "start_time": utc(2026, 2, 15, 9),
        "end_time": utc(2026, 2, 15, 10),
        "guests": ["ana@example.com"],
        "notify_before": 15,
    }


@pytest.fixture
def make_event(store, sample_event):
    """Factory creating stored events; keyword arguments override the sample payload."""

    def _make(**overrides):
        return store.create({**sample_event, **overrides})

    return _make
