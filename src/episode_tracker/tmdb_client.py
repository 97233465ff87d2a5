"""The Movie Database (TMDB) v3 API client."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from .http_utils import API_TIMEOUT, retry_on_transient

logger = logging.getLogger(__name__)


class TMDBClient:
    """Thin client for the TMDB TV endpoints the tracker needs."""

    BASE_URL = "https://api.themoviedb.org/3"

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[Any] = None,
        base_url: Optional[str] = None,
        max_retries: int = 2,
    ):
        """Initialize TMDB client.

        Args:
            api_key: TMDB v4 read-access token (sent as a bearer token)
            session: Object with a requests-style get(), e.g. http_cache.CachedSession
                (default: plain requests.Session, no caching)
            base_url: Override for the API root
            max_retries: Retries on 429/5xx and dropped connections
        """
        if session is None:
            if not api_key:
                raise RuntimeError("TMDB api_key is required in settings.toml [tmdb] section")
            session = requests.Session()
            session.headers.update({
                "accept": "application/json",
                "Authorization": f"Bearer {api_key}",
            })
        self.session = session
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.max_retries = max_retries

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        resp = retry_on_transient(
            self.session.get,
            url,
            params=params,
            timeout=API_TIMEOUT,
            max_retries=self.max_retries,
        )
        resp.raise_for_status()
        return resp.json()

    def get_tv_show(self, tv_id: int) -> Dict[str, Any]:
        """Fetch show details (GET /tv/{id}).

        Raises:
            requests.RequestException: On network or HTTP errors
        """
        data = self._get(f"/tv/{tv_id}")
        logger.debug(f"Fetched TMDB show {tv_id}: {data.get('name')}")
        return data

    def get_tv_season(self, tv_id: int, season_number: int) -> Dict[str, Any]:
        """Fetch one season with its episode list (GET /tv/{id}/season/{n}).

        Raises:
            requests.RequestException: On network or HTTP errors
        """
        data = self._get(f"/tv/{tv_id}/season/{season_number}")
        logger.debug(f"Fetched TMDB show {tv_id} season {season_number}: {len(data.get('episodes') or [])} episodes")
        return data
