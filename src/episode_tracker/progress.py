"""Watch-progress records and the transitions that mutate them.

A ShowProgress is an immutable value. Every transition takes the current
record and returns a new one, so persistence (and any concurrency control
around it) stays with the caller and the store.

Invariants kept by every transition:
  - each season's watched episodes lie in [1, total_episodes]
  - current_position is the latest watched (season, episode), or (1, 1)
  - a completed show has every season fully watched
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import InvariantViolation

logger = logging.getLogger(__name__)

# Episode count assumed for a season the metadata provider could not describe.
DEFAULT_EPISODE_COUNT = 10

Position = Tuple[int, int]
START_POSITION: Position = (1, 1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WatchStatus(str, Enum):
    """Lifecycle state of a tracked show."""
    WATCHING = "watching"
    COMPLETED = "completed"
    DROPPED = "dropped"


@dataclass(frozen=True)
class ShowSummary:
    """Display data captured when tracking starts (never re-derived)."""
    id: int
    title: str
    poster_path: Optional[str] = None
    vote_average: float = 0.0
    first_air_date: Optional[str] = None
    total_seasons: int = 0
    total_episodes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "poster_path": self.poster_path,
            "vote_average": self.vote_average,
            "first_air_date": self.first_air_date,
            "total_seasons": self.total_seasons,
            "total_episodes": self.total_episodes,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ShowSummary":
        return cls(
            id=int(data["id"]),
            title=data.get("title") or f"Show {data['id']}",
            poster_path=data.get("poster_path"),
            vote_average=float(data.get("vote_average") or 0.0),
            first_air_date=data.get("first_air_date"),
            total_seasons=int(data.get("total_seasons") or 0),
            total_episodes=int(data.get("total_episodes") or 0),
        )


@dataclass(frozen=True)
class SeasonProgress:
    """Watched episodes of one season.

    episodes_watched is always a sorted tuple without duplicates.
    degraded marks a total_episodes that is a fallback rather than a
    provider-confirmed count.
    """
    total_episodes: int
    episodes_watched: Tuple[int, ...] = ()
    degraded: bool = False

    def __post_init__(self):
        object.__setattr__(self, "episodes_watched", tuple(sorted(set(self.episodes_watched))))

    @property
    def watched_count(self) -> int:
        return len(self.episodes_watched)

    @property
    def is_complete(self) -> bool:
        # Count equality only; membership is guaranteed by construction.
        return self.watched_count == self.total_episodes

    @property
    def latest(self) -> Optional[int]:
        return self.episodes_watched[-1] if self.episodes_watched else None

    def with_episode(self, episode: int) -> "SeasonProgress":
        return replace(self, episodes_watched=self.episodes_watched + (episode,))

    def without_episode(self, episode: int) -> "SeasonProgress":
        return replace(self, episodes_watched=tuple(e for e in self.episodes_watched if e != episode))

    def filled(self) -> "SeasonProgress":
        return replace(self, episodes_watched=tuple(range(1, self.total_episodes + 1)))

    def cleared(self) -> "SeasonProgress":
        return replace(self, episodes_watched=())

    def with_total(self, total_episodes: int) -> "SeasonProgress":
        """Confirm a provider count, never dropping below the latest watched episode.

        A count below the latest watched episode is not taken as confirmed:
        the season keeps that episode as its total and stays degraded.
        """
        floor = self.latest or 0
        if total_episodes < floor:
            return replace(self, total_episodes=floor, degraded=True)
        return replace(self, total_episodes=total_episodes, degraded=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "episodes_watched": list(self.episodes_watched),
            "total_episodes": self.total_episodes,
            "degraded": self.degraded,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SeasonProgress":
        return cls(
            total_episodes=int(data.get("total_episodes", DEFAULT_EPISODE_COUNT)),
            episodes_watched=tuple(int(e) for e in data.get("episodes_watched") or ()),
            degraded=bool(data.get("degraded", False)),
        )


@dataclass(frozen=True)
class ShowProgress:
    """A user's watch progress for one show."""
    show_id: int
    show_summary: ShowSummary
    seasons: Mapping[int, SeasonProgress] = field(default_factory=dict)
    current_position: Position = START_POSITION
    status: WatchStatus = WatchStatus.WATCHING
    last_watched: Optional[datetime] = None
    version: int = 0

    def __post_init__(self):
        # Sorted read-only copy, never shared with the caller or another record.
        object.__setattr__(self, "seasons", MappingProxyType(_ordered(self.seasons)))

    @property
    def current_season(self) -> int:
        return self.current_position[0]

    @property
    def current_episode(self) -> int:
        return self.current_position[1]

    @property
    def is_fully_watched(self) -> bool:
        return all(s.is_complete for s in self.seasons.values())

    @property
    def watched_episodes(self) -> int:
        return sum(s.watched_count for s in self.seasons.values())

    @property
    def degraded_seasons(self) -> List[int]:
        return [n for n, s in self.seasons.items() if s.degraded]

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the stored document layout (season keys as strings)."""
        return {
            "show_info": self.show_summary.to_dict(),
            "current_season": self.current_season,
            "current_episode": self.current_episode,
            "last_watched": self.last_watched.isoformat() if self.last_watched else None,
            "status": self.status.value,
            "seasons": {str(n): s.to_dict() for n, s in self.seasons.items()},
        }

    @classmethod
    def from_document(cls, show_id: int, doc: Mapping[str, Any], version: int = 0) -> "ShowProgress":
        last_watched = doc.get("last_watched")
        return cls(
            show_id=show_id,
            show_summary=ShowSummary.from_dict(doc.get("show_info") or {"id": show_id}),
            seasons=_ordered({int(k): SeasonProgress.from_dict(v) for k, v in (doc.get("seasons") or {}).items()}),
            current_position=(int(doc.get("current_season") or 1), int(doc.get("current_episode") or 1)),
            status=WatchStatus(doc.get("status") or WatchStatus.WATCHING.value),
            last_watched=datetime.fromisoformat(last_watched) if last_watched else None,
            version=version,
        )


def _ordered(seasons: Mapping[int, SeasonProgress]) -> Dict[int, SeasonProgress]:
    return dict(sorted(seasons.items()))


def latest_watched(seasons: Mapping[int, SeasonProgress]) -> Position:
    """Lexicographic max of watched (season, episode) pairs, or (1, 1)."""
    best: Optional[Position] = None
    for number, season in seasons.items():
        if season.latest is None:
            continue
        candidate = (number, season.latest)
        if best is None or candidate > best:
            best = candidate
    return best or START_POSITION


def check_invariants(progress: ShowProgress) -> List[str]:
    """List every invariant the record breaks (empty when consistent)."""
    problems = []
    for number, season in progress.seasons.items():
        if number < 1:
            problems.append(f"season {number} is not 1-based")
        if season.watched_count > season.total_episodes:
            problems.append(
                f"season {number} has {season.watched_count} watched of {season.total_episodes}"
            )
        out_of_range = [e for e in season.episodes_watched if not 1 <= e <= season.total_episodes]
        if out_of_range:
            problems.append(f"season {number} has out-of-range episodes {out_of_range}")
    expected = latest_watched(progress.seasons)
    if progress.current_position != expected:
        problems.append(f"current position {progress.current_position} should be {expected}")
    if progress.status is WatchStatus.COMPLETED and not progress.is_fully_watched:
        problems.append("completed show is not fully watched")
    return problems


def _check_season_number(progress: ShowProgress, season: int) -> None:
    if season < 1:
        raise InvariantViolation(f"Season numbers start at 1, got {season} for show {progress.show_id}", season=season)


def _check_ranges(progress: ShowProgress) -> None:
    for number, season in progress.seasons.items():
        bad = [e for e in season.episodes_watched if not 1 <= e <= season.total_episodes]
        if number < 1 or bad:
            raise InvariantViolation(
                f"Show {progress.show_id} season {number} is inconsistent (episodes {bad}, total {season.total_episodes})",
                season=number,
            )


def _season_or_default(progress: ShowProgress, season: int, default_total: int) -> SeasonProgress:
    existing = progress.seasons.get(season)
    if existing is not None:
        return existing
    logger.warning(
        f"Season {season} of show {progress.show_id} was never initialized, "
        f"assuming {default_total} episodes until the next refresh"
    )
    return SeasonProgress(total_episodes=default_total, degraded=True)


def _settle(
    progress: ShowProgress,
    seasons: Mapping[int, SeasonProgress],
    now: Optional[datetime],
    status: Optional[WatchStatus] = None,
) -> ShowProgress:
    """Rebuild derived fields after the seasons changed."""
    seasons = _ordered(seasons)
    status = status or progress.status
    if status is WatchStatus.COMPLETED and not all(s.is_complete for s in seasons.values()):
        logger.info(f"Show {progress.show_id} is no longer fully watched, moving back to watching")
        status = WatchStatus.WATCHING
    return replace(
        progress,
        seasons=seasons,
        current_position=latest_watched(seasons),
        status=status,
        last_watched=now or utcnow(),
    )


def new_progress(
    show_summary: ShowSummary,
    season_totals: Mapping[int, int],
    degraded: Iterable[int] = (),
    now: Optional[datetime] = None,
) -> ShowProgress:
    """Build a fresh record with every season present and nothing watched."""
    degraded = set(degraded)
    seasons = {
        number: SeasonProgress(total_episodes=total, degraded=number in degraded)
        for number, total in season_totals.items()
    }
    return ShowProgress(
        show_id=show_summary.id,
        show_summary=show_summary,
        seasons=_ordered(seasons),
        current_position=START_POSITION,
        status=WatchStatus.WATCHING,
        last_watched=now or utcnow(),
    )


def toggle_episode(
    progress: ShowProgress,
    season: int,
    episode: int,
    now: Optional[datetime] = None,
    default_total: int = DEFAULT_EPISODE_COUNT,
) -> ShowProgress:
    """Mark an episode watched, or unwatched if it already was.

    Args:
        progress: Current record
        season: 1-based season number (created with default_total if absent)
        episode: 1-based episode number within the season
        now: Mutation timestamp (default: current UTC time)
        default_total: Episode count assumed for a season not yet initialized

    Returns:
        Updated record

    Raises:
        InvariantViolation: If the episode is outside [1, total_episodes]
    """
    _check_season_number(progress, season)
    _check_ranges(progress)
    current = _season_or_default(progress, season, default_total)
    if not 1 <= episode <= current.total_episodes:
        raise InvariantViolation(
            f"Episode {episode} is outside 1..{current.total_episodes} for show {progress.show_id} season {season}",
            season=season,
            episode=episode,
        )

    if episode in current.episodes_watched:
        updated = current.without_episode(episode)
        logger.debug(f"Show {progress.show_id}: unwatched S{season}E{episode}")
    else:
        updated = current.with_episode(episode)
        logger.debug(f"Show {progress.show_id}: watched S{season}E{episode}")

    return _settle(progress, {**progress.seasons, season: updated}, now)


def toggle_season(
    progress: ShowProgress,
    season: int,
    now: Optional[datetime] = None,
    default_total: int = DEFAULT_EPISODE_COUNT,
) -> ShowProgress:
    """Mark a whole season watched, or clear it if it is already complete."""
    _check_season_number(progress, season)
    _check_ranges(progress)
    current = _season_or_default(progress, season, default_total)

    if current.is_complete:
        updated = current.cleared()
        logger.debug(f"Show {progress.show_id}: cleared season {season}")
    else:
        updated = current.filled()
        logger.debug(f"Show {progress.show_id}: watched all {current.total_episodes} episodes of season {season}")

    return _settle(progress, {**progress.seasons, season: updated}, now)


def mark_show_completed(progress: ShowProgress, now: Optional[datetime] = None) -> ShowProgress:
    """Fill every season and set the status to completed."""
    _check_ranges(progress)
    seasons = {number: season.filled() for number, season in progress.seasons.items()}
    return _settle(progress, seasons, now, status=WatchStatus.COMPLETED)


def mark_show_watching(progress: ShowProgress, now: Optional[datetime] = None) -> ShowProgress:
    """Return a show to active tracking without touching watched episodes."""
    return replace(progress, status=WatchStatus.WATCHING, last_watched=now or utcnow())


def mark_show_dropped(progress: ShowProgress, now: Optional[datetime] = None) -> ShowProgress:
    """Stop following a show while keeping its history."""
    return replace(progress, status=WatchStatus.DROPPED, last_watched=now or utcnow())


def apply_season_totals(progress: ShowProgress, totals: Mapping[int, int]) -> Tuple[ShowProgress, List[int]]:
    """Overwrite season totals with provider counts, leaving watched episodes alone.

    Seasons missing from totals keep their current data. Seasons absent from
    the record are created empty. last_watched is not touched since nothing
    was watched.

    Returns:
        (updated record, seasons whose provider count was below the latest watched episode)
    """
    seasons = dict(progress.seasons)
    clamped = []
    for number, total in totals.items():
        existing = seasons.get(number)
        if existing is None:
            seasons[number] = SeasonProgress(total_episodes=total)
            continue
        if existing.latest is not None and total < existing.latest:
            logger.warning(
                f"Show {progress.show_id} season {number}: provider reports {total} episodes "
                f"but episode {existing.latest} is watched, keeping {existing.latest}"
            )
            clamped.append(number)
        seasons[number] = existing.with_total(total)

    seasons = _ordered(seasons)
    status = progress.status
    if status is WatchStatus.COMPLETED and not all(s.is_complete for s in seasons.values()):
        logger.info(f"Show {progress.show_id} has new episodes, moving back to watching")
        status = WatchStatus.WATCHING
    return replace(progress, seasons=seasons, current_position=latest_watched(seasons), status=status), clamped
