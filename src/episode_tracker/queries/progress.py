"""Progress Query - view tracked shows from the local store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..progress import ShowProgress, WatchStatus, check_invariants
from ..repository import ProgressStore


@dataclass
class ProgressSummary:
    """Watched/total counts with a rounded percentage."""
    watched: int
    total: int

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.watched / self.total * 100)


def overall_progress(progress: ShowProgress) -> ProgressSummary:
    """Episodes watched against the show's episode count at tracking time."""
    return ProgressSummary(watched=progress.watched_episodes, total=progress.show_summary.total_episodes)


def current_season_progress(progress: ShowProgress) -> ProgressSummary:
    """Progress through the season holding the bookmark."""
    season = progress.seasons.get(progress.current_season)
    if season is None:
        return ProgressSummary(watched=0, total=0)
    return ProgressSummary(watched=season.watched_count, total=season.total_episodes)


@dataclass
class TrackedShow:
    """One row of the tracker list."""
    show_id: int
    title: str
    status: WatchStatus
    current_season: int
    current_episode: int
    overall: ProgressSummary
    season: ProgressSummary
    degraded_seasons: List[int]

    @property
    def bookmark(self) -> str:
        return f"S{self.current_season}E{self.current_episode}"


class ProgressQuery:
    """Query for viewing tracked shows."""

    def __init__(self, store: ProgressStore, user_id: str):
        """Initialize query.

        Args:
            store: Progress store to read from
            user_id: Owner of the records
        """
        self.store = store
        self.user_id = user_id

    @staticmethod
    def _row(progress: ShowProgress) -> TrackedShow:
        return TrackedShow(
            show_id=progress.show_id,
            title=progress.show_summary.title,
            status=progress.status,
            current_season=progress.current_season,
            current_episode=progress.current_episode,
            overall=overall_progress(progress),
            season=current_season_progress(progress),
            degraded_seasons=progress.degraded_seasons,
        )

    def tracked(self, include_dropped: bool = False) -> List[TrackedShow]:
        """Watching and completed shows, most recently watched first."""
        statuses = None if include_dropped else (WatchStatus.WATCHING, WatchStatus.COMPLETED)
        return [self._row(p) for p in self.store.list_records(self.user_id, statuses=statuses)]

    def by_status(self, status: WatchStatus) -> List[TrackedShow]:
        return [self._row(p) for p in self.store.list_records(self.user_id, statuses=(status,))]

    def watching(self) -> List[TrackedShow]:
        return self.by_status(WatchStatus.WATCHING)

    def completed(self) -> List[TrackedShow]:
        return self.by_status(WatchStatus.COMPLETED)

    def degraded(self) -> List[TrackedShow]:
        """Shows with season counts that still need a successful refresh."""
        return [row for row in self.tracked(include_dropped=True) if row.degraded_seasons]

    def show_detail(self, show_id: int) -> Optional[Dict[str, Any]]:
        """Get detailed progress for a single show.

        Returns:
            Dict with show info and per-season breakdown, or None
        """
        progress = self.store.get_record(self.user_id, show_id)
        if progress is None:
            return None

        return {
            "show_id": progress.show_id,
            "title": progress.show_summary.title,
            "status": progress.status.value,
            "bookmark": f"S{progress.current_season}E{progress.current_episode}",
            "last_watched": progress.last_watched,
            "overall": overall_progress(progress),
            "seasons": [
                {
                    "season": number,
                    "watched": list(season.episodes_watched),
                    "total_episodes": season.total_episodes,
                    "complete": season.is_complete,
                    "degraded": season.degraded,
                }
                for number, season in progress.seasons.items()
            ],
            "problems": check_invariants(progress),
            "version": progress.version,
        }
