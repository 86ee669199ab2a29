"""
AntiSpam - Test Fixtures
========================

Shared fixtures for all tests.
"""

import os
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Keep test logs out of the working tree; must happen before src imports
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="antispam-logs-"))

from src.core.database import DatabaseManager  # noqa: E402
from src.services.antispam import (  # noqa: E402
    AlertReference,
    CachedMessage,
    IncidentLifecycle,
    SlidingWindowCache,
)


START_TIME = 1_700_000_000.0


class FakeClock:
    """Unix-seconds clock that only moves when told to."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def as_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.now, tz=timezone.utc)


@pytest.fixture
def clock():
    """Fixed clock starting at START_TIME."""
    return FakeClock()


@pytest.fixture
def temp_db_path(tmp_path):
    """Create a temporary database path for testing."""
    return tmp_path / "test_antispam.db"


@pytest.fixture
def test_db(temp_db_path):
    """Create a fresh test database instance."""
    db = DatabaseManager(temp_db_path)
    yield db
    db.close()


@pytest.fixture
def cache(test_db, clock):
    """Sliding window cache with the smallest allowed bound."""
    return SlidingWindowCache(test_db, max_messages=20, ttl_seconds=3600, clock=clock)


@pytest.fixture
def incidents(test_db, clock):
    """Incident lifecycle over the test database."""
    return IncidentLifecycle(test_db, clock=clock)


@pytest.fixture
def executor():
    """Recording action executor; every capability is an AsyncMock."""
    mock = AsyncMock()
    mock.post_or_update_incident_card.return_value = AlertReference(channel_id=900, message_id=5000)
    mock.resolve_invite_destination.return_value = None
    mock.fetch_joined_at.return_value = None
    return mock


@pytest.fixture
def make_message(clock):
    """Factory for cached messages posted 'now' unless told otherwise."""
    counter = {"next_id": 1000}

    def _make(content="", channel_id=1, attachment_count=0, posted_at=None, message_id=None):
        counter["next_id"] += 1
        return CachedMessage(
            content=content,
            channel_id=channel_id,
            message_id=message_id if message_id is not None else counter["next_id"],
            posted_at=int(clock() if posted_at is None else posted_at),
            attachment_count=attachment_count,
        )

    return _make
