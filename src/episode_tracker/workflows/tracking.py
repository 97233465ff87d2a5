"""Tracking Workflow - read-modify-write around the progress tracker.

Each call loads the whole record, applies one tracker transition and
writes the whole record back in a single put. By default the write is
last-writer-wins; with strict=True the loaded version is sent along and
a concurrent change raises ConflictError instead of being overwritten.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import NotTrackedError
from ..progress import ShowProgress, ShowSummary
from ..repository import ProgressStore, WatchlistStore
from ..tracker import ProgressTracker, RefreshResult

logger = logging.getLogger(__name__)


@dataclass
class StartResult:
    """Result of start_tracking()."""
    progress: ShowProgress
    removed_from_watchlist: bool = False


class TrackingWorkflow:
    """Coordinates the tracker, the progress store and the watchlist."""

    def __init__(
        self,
        tracker: ProgressTracker,
        store: ProgressStore,
        watchlist: Optional[WatchlistStore] = None,
        strict: bool = False,
    ):
        """Initialize workflow.

        Args:
            tracker: Progress tracker for the current user
            store: Progress store the tracker writes to
            watchlist: Watchlist store (optional)
            strict: Reject writes if the record changed since it was read
        """
        self.tracker = tracker
        self.store = store
        self.watchlist = watchlist
        self.strict = strict

    @property
    def user_id(self) -> str:
        return self.tracker.user_id

    def load(self, show_id: int) -> ShowProgress:
        """Load a record.

        Raises:
            NotTrackedError: If the show is not being tracked
        """
        progress = self.store.get_record(self.user_id, show_id)
        if progress is None:
            raise NotTrackedError(self.user_id, show_id)
        return progress

    def _apply(self, show_id: int, change: Callable[[ShowProgress], ShowProgress]) -> ShowProgress:
        current = self.load(show_id)
        updated = change(current)
        expected = current.version if self.strict else None
        return self.store.put_record(self.user_id, show_id, updated, expected_version=expected)

    def start_tracking(self, show_id: int, show_summary: Optional[ShowSummary] = None) -> StartResult:
        """Create the progress record and drop the show from the watchlist."""
        progress = self.tracker.initialize(show_id, show_summary)
        removed = False
        if self.watchlist is not None and self.watchlist.contains(self.user_id, show_id):
            removed = self.watchlist.remove(self.user_id, show_id)
            logger.info(f"Removed show {show_id} from watchlist now that it is tracked")
        return StartResult(progress=progress, removed_from_watchlist=removed)

    def toggle_episode(self, show_id: int, season: int, episode: int) -> ShowProgress:
        return self._apply(show_id, lambda p: self.tracker.toggle_episode(p, season, episode))

    def toggle_season(self, show_id: int, season: int) -> ShowProgress:
        return self._apply(show_id, lambda p: self.tracker.toggle_season(p, season))

    def mark_completed(self, show_id: int) -> ShowProgress:
        return self._apply(show_id, self.tracker.mark_show_completed)

    def mark_watching(self, show_id: int) -> ShowProgress:
        return self._apply(show_id, self.tracker.mark_show_watching)

    def mark_dropped(self, show_id: int) -> ShowProgress:
        return self._apply(show_id, self.tracker.mark_show_dropped)

    def refresh(self, show_id: int) -> RefreshResult:
        """Re-fetch season totals and persist them."""
        current = self.load(show_id)
        result = self.tracker.refresh_season_totals(current)
        expected = current.version if self.strict else None
        result.progress = self.store.put_record(self.user_id, show_id, result.progress, expected_version=expected)
        return result

    def stop_tracking(self, show_id: int) -> bool:
        return self.tracker.remove(show_id)
