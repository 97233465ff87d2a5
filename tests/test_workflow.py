"""Tests for TrackingWorkflow: load, transition, write back."""

import pytest

from conftest import SHOW_ID
from episode_tracker.errors import ConflictError, InvariantViolation, NotTrackedError
from episode_tracker.progress import WatchStatus, toggle_episode
from episode_tracker.workflows import TrackingWorkflow


class TestStartTracking:

    def test_removes_watchlist_entry(self, workflow, watchlist_store, summary):
        watchlist_store.add("alice", SHOW_ID, title="Game of Thrones")

        result = workflow.start_tracking(SHOW_ID, summary)

        assert result.removed_from_watchlist is True
        assert not watchlist_store.contains("alice", SHOW_ID)
        assert result.progress.version == 1

    def test_not_on_watchlist(self, workflow, summary):
        result = workflow.start_tracking(SHOW_ID, summary)
        assert result.removed_from_watchlist is False

    def test_without_watchlist(self, tracker, store, summary):
        workflow = TrackingWorkflow(tracker, store)
        assert workflow.start_tracking(SHOW_ID, summary).progress.seasons


class TestMutations:

    def test_toggle_episode_persists(self, workflow, store, summary):
        workflow.start_tracking(SHOW_ID, summary)

        progress = workflow.toggle_episode(SHOW_ID, 1, 5)

        assert progress.version == 2
        assert store.get_record("alice", SHOW_ID).current_position == (1, 5)

    def test_scenario_sequence(self, workflow, summary):
        workflow.start_tracking(SHOW_ID, summary)
        workflow.toggle_episode(SHOW_ID, 1, 5)
        assert workflow.toggle_episode(SHOW_ID, 2, 3).current_position == (2, 3)
        assert workflow.toggle_episode(SHOW_ID, 2, 3).current_position == (1, 5)

        completed = workflow.mark_completed(SHOW_ID)
        assert completed.status is WatchStatus.COMPLETED
        assert completed.current_position == (2, 8)

        demoted = workflow.toggle_episode(SHOW_ID, 1, 1)
        assert demoted.status is WatchStatus.WATCHING
        assert demoted.current_position == (2, 8)

    def test_toggle_season_and_status(self, workflow, store, summary):
        workflow.start_tracking(SHOW_ID, summary)
        workflow.toggle_season(SHOW_ID, 1)
        assert workflow.mark_dropped(SHOW_ID).status is WatchStatus.DROPPED
        assert workflow.mark_watching(SHOW_ID).status is WatchStatus.WATCHING
        assert store.get_record("alice", SHOW_ID).seasons[1].is_complete

    def test_untracked_show(self, workflow):
        with pytest.raises(NotTrackedError) as exc:
            workflow.toggle_episode(404, 1, 1)
        assert exc.value.show_id == 404

    def test_invalid_toggle_leaves_record(self, workflow, store, summary):
        workflow.start_tracking(SHOW_ID, summary)
        with pytest.raises(InvariantViolation):
            workflow.toggle_episode(SHOW_ID, 1, 11)
        assert store.get_record("alice", SHOW_ID).version == 1

    def test_refresh_persists(self, workflow, metadata, store, summary):
        workflow.start_tracking(SHOW_ID, summary)
        metadata.counts[(SHOW_ID, 2)] = 9

        result = workflow.refresh(SHOW_ID)

        assert result.progress.version == 2
        assert store.get_record("alice", SHOW_ID).seasons[2].total_episodes == 9

    def test_stop_tracking(self, workflow, store, summary):
        workflow.start_tracking(SHOW_ID, summary)
        assert workflow.stop_tracking(SHOW_ID) is True
        with pytest.raises(NotTrackedError):
            workflow.load(SHOW_ID)


class TestConcurrency:

    def _interleave(self, workflow, store):
        """A second writer updates the record between our load and our write."""
        original_load = workflow.load

        def racing_load(show_id):
            loaded = original_load(show_id)
            store.put_record("alice", show_id, toggle_episode(loaded, 2, 1))
            return loaded

        workflow.load = racing_load

    def test_last_writer_wins_by_default(self, workflow, store, summary):
        workflow.start_tracking(SHOW_ID, summary)
        self._interleave(workflow, store)

        progress = workflow.toggle_episode(SHOW_ID, 1, 1)

        assert progress.seasons[2].episodes_watched == ()
        assert store.get_record("alice", SHOW_ID).seasons[1].episodes_watched == (1,)

    def test_strict_rejects_stale_write(self, tracker, store, watchlist_store, summary):
        workflow = TrackingWorkflow(tracker, store, watchlist=watchlist_store, strict=True)
        workflow.start_tracking(SHOW_ID, summary)
        self._interleave(workflow, store)

        with pytest.raises(ConflictError):
            workflow.toggle_episode(SHOW_ID, 1, 1)

        stored = store.get_record("alice", SHOW_ID)
        assert stored.seasons[2].episodes_watched == (1,)
        assert stored.seasons[1].episodes_watched == ()
