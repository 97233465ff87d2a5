"""Tests for the read-only progress and stats queries."""

from datetime import timedelta

from conftest import SHOW_ID, T0
from episode_tracker.progress import (
    SeasonProgress,
    ShowProgress,
    ShowSummary,
    WatchStatus,
    mark_show_completed,
    mark_show_dropped,
    new_progress,
    toggle_episode,
)
from episode_tracker.queries import ProgressQuery, StatsQuery
from episode_tracker.queries.progress import ProgressSummary


def _summary(show_id, title):
    return ShowSummary(id=show_id, title=title, total_seasons=2, total_episodes=18)


def _seed(store):
    watching = toggle_episode(new_progress(_summary(1, "Dark"), {1: 10, 2: 8}, now=T0), 1, 3, now=T0)
    store.put_record("alice", 1, watching)
    completed = mark_show_completed(new_progress(_summary(2, "Lost"), {1: 10, 2: 8}), now=T0 + timedelta(days=1))
    store.put_record("alice", 2, completed)
    dropped = mark_show_dropped(new_progress(_summary(3, "Bones"), {1: 10, 2: 8}, degraded=[2]), now=T0)
    store.put_record("alice", 3, dropped)


class TestProgressSummary:

    def test_percentage(self):
        assert ProgressSummary(watched=1, total=3).percentage == 33
        assert ProgressSummary(watched=0, total=0).percentage == 0


class TestProgressQuery:

    def test_tracked_excludes_dropped(self, store):
        _seed(store)
        rows = ProgressQuery(store, "alice").tracked()
        assert [r.title for r in rows] == ["Lost", "Dark"]

    def test_tracked_with_dropped(self, store):
        _seed(store)
        rows = ProgressQuery(store, "alice").tracked(include_dropped=True)
        assert {r.show_id for r in rows} == {1, 2, 3}

    def test_row_fields(self, store):
        _seed(store)
        row = ProgressQuery(store, "alice").watching()[0]
        assert row.bookmark == "S1E3"
        assert (row.overall.watched, row.overall.total) == (1, 18)
        assert (row.season.watched, row.season.total) == (1, 10)
        assert row.status is WatchStatus.WATCHING

    def test_by_status(self, store):
        _seed(store)
        query = ProgressQuery(store, "alice")
        assert [r.show_id for r in query.completed()] == [2]
        assert [r.show_id for r in query.by_status(WatchStatus.DROPPED)] == [3]

    def test_degraded(self, store):
        _seed(store)
        rows = ProgressQuery(store, "alice").degraded()
        assert [(r.show_id, r.degraded_seasons) for r in rows] == [(3, [2])]

    def test_show_detail(self, store):
        _seed(store)
        detail = ProgressQuery(store, "alice").show_detail(1)

        assert detail["title"] == "Dark"
        assert detail["bookmark"] == "S1E3"
        assert detail["problems"] == []
        assert detail["version"] == 1
        assert detail["seasons"][0] == {
            "season": 1,
            "watched": [3],
            "total_episodes": 10,
            "complete": False,
            "degraded": False,
        }

    def test_show_detail_reports_problems(self, store):
        broken = ShowProgress(
            show_id=SHOW_ID,
            show_summary=_summary(SHOW_ID, "Broken"),
            seasons={1: SeasonProgress(total_episodes=10, episodes_watched=(4,))},
            current_position=(1, 1),
        )
        store.put_record("alice", SHOW_ID, broken)
        detail = ProgressQuery(store, "alice").show_detail(SHOW_ID)
        assert len(detail["problems"]) == 1

    def test_show_detail_missing(self, store):
        assert ProgressQuery(store, "alice").show_detail(404) is None


class TestStatsQuery:

    def test_counts(self, store, watchlist_store):
        _seed(store)
        watchlist_store.add("alice", 1)
        watchlist_store.add("alice", 50)

        stats = StatsQuery(store, "alice", watchlist=watchlist_store).get_stats()

        assert (stats.watching, stats.completed, stats.dropped) == (1, 1, 1)
        assert stats.tracked == 3
        assert stats.episodes_watched == 1 + 18
        assert stats.watchlist == 1

    def test_empty(self, store):
        stats = StatsQuery(store, "nobody").get_stats()
        assert stats.tracked == 0
        assert stats.watchlist == 0
