"""
Shared pytest fixtures and event helpers.
"""

import logging

import pytest

from tests.fake_adapter import FakeCalendarAdapter
from tourney_calendar_sync.models import CanonicalEvent
from tourney_calendar_sync.store import SyncStateStore

SOURCE_ID = "bwf"


def make_raw_event(event_id: str, name: str = "Malaysia Open", **overrides) -> dict:
    """Return a canonical event in its JSON form."""
    raw = {
        "id": event_id,
        "name": name,
        "dateStart": "2025-01-07",
        "dateEnd": "2025-01-12",
        "location": {"city": "Kuala Lumpur", "country": "Malaysia", "venue": "Axiata Arena"},
        "category": "HSBC BWF World Tour Super 1000",
        "level": "Super 1000",
        "prize": "1,450,000",
        "url": "https://bwfworldtour.bwfbadminton.com/tournament/4741",
        "description": "Tournament description",
        "source": "BWF",
        "lastUpdated": "2025-01-01T00:00:00Z",
    }
    raw.update(overrides)
    return raw


def make_event(event_id: str, name: str = "Malaysia Open", **overrides) -> CanonicalEvent:
    return CanonicalEvent.from_dict(make_raw_event(event_id, name, **overrides))


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "sync-state.json"


@pytest.fixture
def store(state_path):
    return SyncStateStore(state_path, retries=3, backoff=0, sleep=lambda seconds: None)


@pytest.fixture
def adapter():
    return FakeCalendarAdapter()


@pytest.fixture
def sync_logger():
    return logging.getLogger("test_sync")
