"""Stats Query - per-user totals derived from the stored records.

Counts are computed on read rather than maintained as counters, so they
can never drift from the records themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..progress import WatchStatus
from ..repository import ProgressStore, WatchlistStore


@dataclass
class UserStats:
    """Totals across a user's tracked shows."""
    watching: int = 0
    completed: int = 0
    dropped: int = 0
    episodes_watched: int = 0
    watchlist: int = 0

    @property
    def tracked(self) -> int:
        return self.watching + self.completed + self.dropped


class StatsQuery:
    """Query for user-level statistics."""

    def __init__(self, store: ProgressStore, user_id: str, watchlist: Optional[WatchlistStore] = None):
        self.store = store
        self.user_id = user_id
        self.watchlist = watchlist

    def get_stats(self) -> UserStats:
        stats = UserStats()
        for progress in self.store.list_records(self.user_id, statuses=None):
            if progress.status is WatchStatus.WATCHING:
                stats.watching += 1
            elif progress.status is WatchStatus.COMPLETED:
                stats.completed += 1
            else:
                stats.dropped += 1
            stats.episodes_watched += progress.watched_episodes

        if self.watchlist is not None:
            tracked = self.store.tracked_show_ids(self.user_id)
            stats.watchlist = len(self.watchlist.list(self.user_id, exclude=tracked))
        return stats
