"""Progress Tracker - the watch-progress state machine for one user.

Mutating operations take the in-memory record and return the new one;
the caller persists it with put_record. Only initialize() and remove()
touch the store themselves.

Metadata lookups are best-effort:
  - initialize() substitutes default_episode_count for a season that
    cannot be fetched and flags it degraded
  - refresh_season_totals() leaves a failed season untouched and reports it
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol

from . import progress as transitions
from .errors import ProviderError
from .progress import DEFAULT_EPISODE_COUNT, ShowProgress, ShowSummary

logger = logging.getLogger(__name__)


class MetadataProvider(Protocol):
    """What the tracker needs from a metadata source."""

    def get_season_episode_count(self, show_id: int, season_number: int) -> int: ...
    def get_show_summary(self, show_id: int) -> ShowSummary: ...


class DocumentStore(Protocol):
    """What the tracker needs from the progress store."""

    def get_record(self, user_id: str, show_id: int) -> Optional[ShowProgress]: ...
    def put_record(
        self, user_id: str, show_id: int, progress: ShowProgress, expected_version: Optional[int] = None
    ) -> ShowProgress: ...
    def delete_record(self, user_id: str, show_id: int) -> bool: ...


@dataclass
class RefreshResult:
    """Outcome of refresh_season_totals()."""
    progress: ShowProgress
    refreshed_seasons: List[int] = field(default_factory=list)
    failed_seasons: Dict[int, str] = field(default_factory=dict)
    reconciled_seasons: List[int] = field(default_factory=list)
    clamped_seasons: List[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_seasons


class ProgressTracker:
    """Owns a user's per-show progress records."""

    def __init__(
        self,
        provider: Optional[MetadataProvider],
        store: DocumentStore,
        user_id: str,
        default_episode_count: int = DEFAULT_EPISODE_COUNT,
        clock: Callable[[], datetime] = transitions.utcnow,
    ):
        """Initialize tracker.

        Args:
            provider: Metadata source for season episode counts (None works
                offline: initialize and refresh then raise ProviderError)
            store: Document store for progress records
            user_id: Owner of every record this tracker touches
            default_episode_count: Episode count assumed when a season
                cannot be fetched or was never initialized
            clock: Source of mutation timestamps
        """
        self.provider = provider
        self.store = store
        self.user_id = user_id
        self.default_episode_count = default_episode_count
        self.clock = clock

    def _require_provider(self) -> MetadataProvider:
        if self.provider is None:
            raise ProviderError("No metadata provider configured (missing TMDB api_key?)")
        return self.provider

    def initialize(self, show_id: int, show_summary: Optional[ShowSummary] = None) -> ShowProgress:
        """Start tracking a show and write its fresh record.

        The returned record tells the caller tracking exists, so it can
        drop the matching watchlist entry.

        Args:
            show_id: TMDB TV id
            show_summary: Display data; fetched from the provider if omitted

        Returns:
            The stored record (status watching, position S1E1, nothing watched)

        Raises:
            ProviderError: If show_summary is omitted and cannot be fetched
            StoreError: If the record cannot be written
        """
        provider = self._require_provider()
        if show_summary is None:
            show_summary = provider.get_show_summary(show_id)

        totals: Dict[int, int] = {}
        degraded: List[int] = []
        for season_number in range(1, show_summary.total_seasons + 1):
            try:
                totals[season_number] = provider.get_season_episode_count(show_id, season_number)
                logger.debug(f"Show {show_id} season {season_number}: {totals[season_number]} episodes")
            except ProviderError as e:
                logger.warning(
                    f"Could not fetch season {season_number} of show {show_id}, "
                    f"assuming {self.default_episode_count} episodes: {e}"
                )
                totals[season_number] = self.default_episode_count
                degraded.append(season_number)

        record = transitions.new_progress(show_summary, totals, degraded=degraded, now=self.clock())
        stored = self.store.put_record(self.user_id, show_id, record)
        logger.info(
            f"Started tracking '{show_summary.title}' ({show_id}) with {len(totals)} seasons"
            + (f", {len(degraded)} degraded" if degraded else "")
        )
        return stored

    def toggle_episode(self, progress: ShowProgress, season: int, episode: int) -> ShowProgress:
        """Flip one episode between watched and unwatched."""
        return transitions.toggle_episode(
            progress, season, episode, now=self.clock(), default_total=self.default_episode_count
        )

    def toggle_season(self, progress: ShowProgress, season: int) -> ShowProgress:
        """Mark a whole season watched, or clear it when already complete."""
        return transitions.toggle_season(
            progress, season, now=self.clock(), default_total=self.default_episode_count
        )

    def mark_show_completed(self, progress: ShowProgress) -> ShowProgress:
        return transitions.mark_show_completed(progress, now=self.clock())

    def mark_show_watching(self, progress: ShowProgress) -> ShowProgress:
        return transitions.mark_show_watching(progress, now=self.clock())

    def mark_show_dropped(self, progress: ShowProgress) -> ShowProgress:
        return transitions.mark_show_dropped(progress, now=self.clock())

    def refresh_season_totals(self, progress: ShowProgress) -> RefreshResult:
        """Re-fetch episode counts for every season without touching watch history.

        Seasons 1..total_seasons are fetched (or up to the highest stored
        season when that is larger). A successful fetch also clears the
        season's degraded flag, unless the count is below the latest
        watched episode (clamped). A failed fetch leaves the season as it
        was and is listed in failed_seasons.
        """
        provider = self._require_provider()
        last_season = max([progress.show_summary.total_seasons, *progress.seasons.keys()])
        totals: Dict[int, int] = {}
        result = RefreshResult(progress=progress)

        for season_number in range(1, last_season + 1):
            try:
                totals[season_number] = provider.get_season_episode_count(progress.show_id, season_number)
            except ProviderError as e:
                logger.warning(f"Refresh of show {progress.show_id} season {season_number} failed: {e}")
                result.failed_seasons[season_number] = str(e)
                continue
            result.refreshed_seasons.append(season_number)

        result.progress, result.clamped_seasons = transitions.apply_season_totals(progress, totals)
        result.reconciled_seasons = [
            n for n in result.refreshed_seasons
            if n in progress.seasons and progress.seasons[n].degraded and not result.progress.seasons[n].degraded
        ]
        logger.info(
            f"Refreshed show {progress.show_id}: {len(result.refreshed_seasons)} seasons updated, "
            f"{len(result.failed_seasons)} failed"
        )
        return result

    def remove(self, show_id: int) -> bool:
        """Delete the show's record. Returns True if one existed.

        Raises:
            StoreError: If the delete fails
        """
        removed = self.store.delete_record(self.user_id, show_id)
        if removed:
            logger.info(f"Stopped tracking show {show_id}")
        else:
            logger.debug(f"Show {show_id} was not tracked")
        return removed
