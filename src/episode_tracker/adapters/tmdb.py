"""TMDB metadata adapter.

Turns raw TMDB payloads into the season counts and show summaries the
tracker works with. Every failure surfaces as ProviderError so callers
can apply their own fallback policy.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Protocol

import requests

from ..errors import ProviderError
from ..progress import ShowSummary

logger = logging.getLogger(__name__)


class TMDBClientProtocol(Protocol):
    """Protocol defining what we need from a TMDB client."""

    def get_tv_show(self, tv_id: int) -> Dict[str, Any]: ...
    def get_tv_season(self, tv_id: int, season_number: int) -> Dict[str, Any]: ...


class TMDBAdapter:
    """Adapter for TMDB TV metadata.

    Wraps TMDBClient to provide a clean domain-focused interface.
    """

    def __init__(self, client: TMDBClientProtocol):
        """Initialize adapter with a TMDB client.

        Args:
            client: TMDBClient instance (or mock for testing)
        """
        self.client = client

    def get_season_episode_count(self, show_id: int, season_number: int) -> int:
        """Number of episodes TMDB lists for one season.

        Args:
            show_id: TMDB TV id
            season_number: 1-based season number

        Returns:
            Episode count (0 when TMDB lists no episodes)

        Raises:
            ProviderError: If the lookup fails or the payload is unusable
        """
        try:
            data = self.client.get_tv_season(show_id, season_number)
        except (requests.RequestException, ValueError) as e:
            raise ProviderError(f"Season {season_number} of show {show_id} lookup failed: {e}") from e

        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected season payload for show {show_id} season {season_number}")
        return len(data.get("episodes") or [])

    def get_show_summary(self, show_id: int) -> ShowSummary:
        """Show details captured when tracking starts.

        Raises:
            ProviderError: If the lookup fails or the payload is unusable
        """
        try:
            data = self.client.get_tv_show(show_id)
        except (requests.RequestException, ValueError) as e:
            raise ProviderError(f"Show {show_id} lookup failed: {e}") from e

        try:
            return ShowSummary(
                id=int(data["id"]),
                title=data.get("name") or data.get("original_name") or f"Show {show_id}",
                poster_path=data.get("poster_path"),
                vote_average=float(data.get("vote_average") or 0.0),
                first_air_date=data.get("first_air_date"),
                total_seasons=int(data.get("number_of_seasons") or 0),
                total_episodes=int(data.get("number_of_episodes") or 0),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(f"Unexpected show payload for {show_id}: {e}") from e
