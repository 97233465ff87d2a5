"""Shared test fixtures for dependency injection testing."""

from datetime import datetime, timedelta, timezone
from typing import Dict, Set, Tuple

import pytest

from episode_tracker.config_provider import MockConfigProvider
from episode_tracker.errors import ProviderError
from episode_tracker.progress import ShowSummary
from episode_tracker.repository import ProgressStore, WatchlistStore
from episode_tracker.tracker import ProgressTracker
from episode_tracker.workflows import TrackingWorkflow

T0 = datetime(2024, 3, 1, 20, 0, tzinfo=timezone.utc)

SHOW_ID = 1399


class FakeMetadata:
    """In-memory metadata provider.

    counts maps (show_id, season) to an episode count; any pair listed
    in failing raises ProviderError instead.
    """

    def __init__(self, counts: Dict[Tuple[int, int], int], failing: Set[Tuple[int, int]] = None):
        self.counts = dict(counts)
        self.failing = set(failing or ())
        self.calls = []

    def get_season_episode_count(self, show_id: int, season_number: int) -> int:
        self.calls.append((show_id, season_number))
        if (show_id, season_number) in self.failing:
            raise ProviderError(f"Season {season_number} of show {show_id} lookup failed: 503")
        return self.counts[(show_id, season_number)]

    def get_show_summary(self, show_id: int) -> ShowSummary:
        seasons = sorted(s for (sid, s) in self.counts if sid == show_id)
        return ShowSummary(
            id=show_id,
            title=f"Show {show_id}",
            total_seasons=len(seasons),
            total_episodes=sum(self.counts[(show_id, s)] for s in seasons),
        )


class Clock:
    """Deterministic clock that advances a minute per call."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(minutes=1)
        return current


@pytest.fixture
def summary():
    """Two seasons: 10 and 8 episodes."""
    return ShowSummary(id=SHOW_ID, title="Game of Thrones", total_seasons=2, total_episodes=18)


@pytest.fixture
def metadata():
    return FakeMetadata({(SHOW_ID, 1): 10, (SHOW_ID, 2): 8})


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "tracker.db"


@pytest.fixture
def store(db_path):
    store = ProgressStore(db_path)
    yield store
    store.close()


@pytest.fixture
def watchlist_store(db_path):
    store = WatchlistStore(db_path)
    yield store
    store.close()


@pytest.fixture
def tracker(metadata, store, clock):
    return ProgressTracker(metadata, store, user_id="alice", clock=clock)


@pytest.fixture
def workflow(tracker, store, watchlist_store):
    return TrackingWorkflow(tracker, store, watchlist=watchlist_store)


@pytest.fixture
def mock_config_provider(db_path):
    """Provide a mock configuration provider for testing.

    Returns a MockConfigProvider with a test TMDB key and a temp database.
    """
    return MockConfigProvider(data={
        "tmdb": {"api_key": "test-token"},
        "tracker": {"user_id": "alice", "database": str(db_path)},
    })
