"""Tests for the TMDB client and adapter using requests-mock.

No network access: every TMDB endpoint is mocked.
"""

from datetime import timedelta
from unittest.mock import Mock

import pytest
import requests

from episode_tracker.adapters import TMDBAdapter
from episode_tracker.errors import ProviderError
from episode_tracker.http_cache import CachedSession, get_tmdb_session
from episode_tracker.http_utils import retry_on_transient
from episode_tracker.tmdb_client import TMDBClient

BASE = "https://api.themoviedb.org/3"

SHOW_PAYLOAD = {
    "id": 1399,
    "name": "Game of Thrones",
    "poster_path": "/got.jpg",
    "vote_average": 8.4,
    "first_air_date": "2011-04-17",
    "number_of_seasons": 8,
    "number_of_episodes": 73,
}


@pytest.fixture
def client():
    return TMDBClient(api_key="test-token", max_retries=0)


@pytest.fixture
def adapter(client):
    return TMDBAdapter(client)


class TestTMDBClient:

    def test_requires_key_or_session(self):
        with pytest.raises(RuntimeError):
            TMDBClient()

    def test_sends_bearer_token(self, requests_mock, client):
        requests_mock.get(f"{BASE}/tv/1399", json=SHOW_PAYLOAD)
        assert client.get_tv_show(1399)["name"] == "Game of Thrones"
        assert requests_mock.last_request.headers["Authorization"] == "Bearer test-token"

    def test_season_endpoint(self, requests_mock, client):
        requests_mock.get(f"{BASE}/tv/1399/season/2", json={"episodes": [{}, {}]})
        assert len(client.get_tv_season(1399, 2)["episodes"]) == 2

    def test_http_error_raises(self, requests_mock, client):
        requests_mock.get(f"{BASE}/tv/1", status_code=404)
        with pytest.raises(requests.HTTPError):
            client.get_tv_show(1)

    def test_custom_base_url(self, requests_mock):
        client = TMDBClient(api_key="t", base_url="https://tmdb.local/3/")
        requests_mock.get("https://tmdb.local/3/tv/5", json={"id": 5})
        assert client.get_tv_show(5) == {"id": 5}


class TestRetry:

    def test_retries_transient_status(self):
        func = Mock(side_effect=[Mock(status_code=503), Mock(status_code=429), Mock(status_code=200)])
        sleep = Mock()

        response = retry_on_transient(func, "url", max_retries=2, sleep=sleep)

        assert response.status_code == 200
        assert func.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]

    def test_gives_up_with_last_response(self):
        func = Mock(return_value=Mock(status_code=503))
        response = retry_on_transient(func, max_retries=1, sleep=Mock())
        assert response.status_code == 503
        assert func.call_count == 2

    def test_connection_error_reraised(self):
        func = Mock(side_effect=requests.ConnectionError("reset"))
        with pytest.raises(requests.ConnectionError):
            retry_on_transient(func, max_retries=2, sleep=Mock())
        assert func.call_count == 3

    def test_client_error_not_retried(self):
        func = Mock(return_value=Mock(status_code=404))
        retry_on_transient(func, sleep=Mock())
        assert func.call_count == 1


class TestTMDBAdapter:

    def test_season_episode_count(self, requests_mock, adapter):
        requests_mock.get(f"{BASE}/tv/1399/season/1", json={"episodes": [{"episode_number": n} for n in range(1, 11)]})
        assert adapter.get_season_episode_count(1399, 1) == 10

    def test_season_without_episodes(self, requests_mock, adapter):
        requests_mock.get(f"{BASE}/tv/1399/season/9", json={"episodes": None})
        assert adapter.get_season_episode_count(1399, 9) == 0

    def test_season_http_failure(self, requests_mock, adapter):
        requests_mock.get(f"{BASE}/tv/1399/season/1", status_code=503)
        with pytest.raises(ProviderError, match="Season 1 of show 1399"):
            adapter.get_season_episode_count(1399, 1)

    def test_season_connection_failure(self, requests_mock, adapter):
        requests_mock.get(f"{BASE}/tv/1399/season/1", exc=requests.ConnectTimeout)
        with pytest.raises(ProviderError):
            adapter.get_season_episode_count(1399, 1)

    def test_season_bad_json(self, requests_mock, adapter):
        requests_mock.get(f"{BASE}/tv/1399/season/1", text="<html>oops</html>")
        with pytest.raises(ProviderError):
            adapter.get_season_episode_count(1399, 1)

    def test_show_summary(self, requests_mock, adapter):
        requests_mock.get(f"{BASE}/tv/1399", json=SHOW_PAYLOAD)

        summary = adapter.get_show_summary(1399)

        assert summary.title == "Game of Thrones"
        assert summary.total_seasons == 8
        assert summary.total_episodes == 73
        assert summary.vote_average == 8.4
        assert summary.poster_path == "/got.jpg"

    def test_show_summary_missing_id(self, requests_mock, adapter):
        requests_mock.get(f"{BASE}/tv/1399", json={"name": "No id"})
        with pytest.raises(ProviderError):
            adapter.get_show_summary(1399)

    def test_with_mock_client(self):
        client = Mock()
        client.get_tv_season.return_value = {"episodes": [{}, {}, {}]}
        assert TMDBAdapter(client).get_season_episode_count(7, 1) == 3
        client.get_tv_season.assert_called_once_with(7, 1)


class TestSession:

    def test_tmdb_session_headers_and_ttl(self, monkeypatch, tmp_path):
        monkeypatch.setattr("episode_tracker.http_cache.CONFIG_DIR", tmp_path)
        monkeypatch.setenv("TMDB_CACHE_HOURS", "6")

        session = get_tmdb_session("tok")
        try:
            assert session.expire_after == timedelta(hours=6)
            assert session.session.headers["Authorization"] == "Bearer tok"
            assert session.cache_path.parent == tmp_path
        finally:
            session.close()

    def test_client_requests_go_through_cache(self, requests_mock, tmp_path):
        requests_mock.get(f"{BASE}/tv/1399/season/1", json={"episodes": [{}, {}, {}]})

        with CachedSession(cache_dir=tmp_path, backend="memory", headers={"Authorization": "Bearer tok"}) as session:
            adapter = TMDBAdapter(TMDBClient(session=session))

            assert adapter.get_season_episode_count(1399, 1) == 3
            assert adapter.get_season_episode_count(1399, 1) == 3
            assert requests_mock.call_count == 1
            assert requests_mock.last_request.headers["Authorization"] == "Bearer tok"

            session.clear()
            adapter.get_season_episode_count(1399, 1)
            assert requests_mock.call_count == 2

    def test_errors_are_not_cached(self, requests_mock, tmp_path):
        requests_mock.get(
            f"{BASE}/tv/1399/season/1",
            [{"status_code": 404}, {"json": {"episodes": [{}]}}],
        )

        with CachedSession(cache_dir=tmp_path, backend="memory") as session:
            adapter = TMDBAdapter(TMDBClient(session=session, max_retries=0))
            with pytest.raises(ProviderError):
                adapter.get_season_episode_count(1399, 1)
            assert adapter.get_season_episode_count(1399, 1) == 1
