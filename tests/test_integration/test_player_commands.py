"""Integration tests for ``termtune player`` and ``termtune search``.

The Web API is replaced by an :class:`httpx.MockTransport` injected through
``termtune.commands.player._open_api``; the session comes from a real
session file in the isolated data directory.
"""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from termtune.app import app
from termtune.auth.session import SessionManager
from termtune.auth.session_store import SessionStore
from termtune.client.api_client import ApiClient
from termtune.exit_codes import EXIT_AUTH_FAILURE, EXIT_INVALID_USAGE, EXIT_NOT_FOUND
from termtune.models import AppConfig, TokenSet


PLAYBACK = {
    "is_playing": True,
    "progress_ms": 61000,
    "device": {"name": "Laptop", "volume_percent": 55},
    "item": {
        "name": "One More Time",
        "duration_ms": 320000,
        "artists": [{"name": "Daft Punk"}],
        "album": {"name": "Discovery"},
    },
}

SEARCH = {
    "tracks": {
        "items": [
            {
                "name": "One More Time",
                "uri": "spotify:track:0DiWol3AO6WpXZgp0goxAV",
                "artists": [{"name": "Daft Punk"}],
            }
        ]
    },
    "playlists": {
        "items": [
            None,
            {
                "name": "French House",
                "uri": "spotify:playlist:37i9",
                "owner": {"display_name": "Spotify"},
            },
        ]
    },
}


class _WebApi:
    """Route table keyed by ``(method, path)``; unmatched requests get 204."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], httpx.Response] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/v1")
        return self.routes.get((request.method, path), httpx.Response(204))


@pytest.fixture
def web_api(monkeypatch: pytest.MonkeyPatch) -> _WebApi:
    api = _WebApi()

    def _open_api(config: AppConfig, session: SessionManager) -> ApiClient:
        return ApiClient(
            session,
            base_url="https://api.example.com/v1",
            max_retries=0,
            transport=httpx.MockTransport(api),
        )

    monkeypatch.setattr("termtune.commands.player._open_api", _open_api)
    return api


@pytest.fixture
def logged_in(session_file: Path, tokens: TokenSet) -> Path:
    SessionStore(session_file).save(tokens)
    return session_file


class TestPlayerStatus:
    def test_not_logged_in(self, cli_runner, isolated_config: Path, web_api: _WebApi) -> None:
        result = cli_runner.invoke(app, ["player", "status"])

        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "auth login" in result.output
        assert web_api.requests == []

    def test_now_playing_table(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        web_api.routes[("GET", "/me/player")] = httpx.Response(200, json=PLAYBACK)
        result = cli_runner.invoke(app, ["--plain", "player", "status"])

        assert result.exit_code == 0, result.output
        assert "One More Time" in result.output
        assert "Daft Punk" in result.output
        assert "1:01 / 5:20" in result.output
        assert web_api.requests[0].headers["Authorization"] == "Bearer access-token-A"

    def test_nothing_playing(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        result = cli_runner.invoke(app, ["player", "status"])
        assert result.exit_code == 0
        assert "Nothing is playing" in result.output

    def test_json(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        web_api.routes[("GET", "/me/player")] = httpx.Response(200, json=PLAYBACK)
        result = cli_runner.invoke(app, ["--json", "--quiet", "player", "status"])
        assert json.loads(result.stdout) == PLAYBACK


class TestPlaybackControl:
    def test_play_uri(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        result = cli_runner.invoke(app, ["player", "play", "spotify:track:abc"])

        assert result.exit_code == 0, result.output
        assert "Playing spotify:track:abc" in result.output
        assert json.loads(web_api.requests[0].content) == {"uris": ["spotify:track:abc"]}

    def test_resume(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        result = cli_runner.invoke(app, ["player", "play"])
        assert result.exit_code == 0, result.output
        assert "Playback resumed" in result.output

    def test_play_rejects_non_spotify_uri(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        result = cli_runner.invoke(app, ["player", "play", "https://open.spotify.com/track/abc"])
        assert result.exit_code == EXIT_INVALID_USAGE
        assert web_api.requests == []

    @pytest.mark.parametrize(
        "command, method, path",
        [
            ("pause", "PUT", "/v1/me/player/pause"),
            ("next", "POST", "/v1/me/player/next"),
            ("previous", "POST", "/v1/me/player/previous"),
        ],
    )
    def test_simple_controls(
        self, cli_runner, logged_in: Path, web_api: _WebApi, command: str, method: str, path: str
    ) -> None:
        result = cli_runner.invoke(app, ["player", command])
        assert result.exit_code == 0, result.output
        assert (web_api.requests[0].method, web_api.requests[0].url.path) == (method, path)

    def test_volume_clamped(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        result = cli_runner.invoke(app, ["player", "volume", "150"])
        assert result.exit_code == 0, result.output
        assert "Volume set to 100%" in result.output
        assert web_api.requests[0].url.params["volume_percent"] == "100"

    def test_not_found(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        web_api.routes[("PUT", "/me/player/pause")] = httpx.Response(
            404, json={"error": {"status": 404, "message": "Player command failed: No active device found"}}
        )
        result = cli_runner.invoke(app, ["player", "pause"])
        assert result.exit_code == EXIT_NOT_FOUND
        assert "No active device found" in result.output


class TestDevices:
    def test_table(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        web_api.routes[("GET", "/me/player/devices")] = httpx.Response(
            200,
            json={"devices": [{"id": "d1", "name": "Laptop", "type": "Computer", "is_active": True, "volume_percent": 55}]},
        )
        result = cli_runner.invoke(app, ["--plain", "player", "devices"])

        assert result.exit_code == 0, result.output
        assert "Laptop\tComputer\tyes\t55\td1" in result.output

    def test_empty(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        web_api.routes[("GET", "/me/player/devices")] = httpx.Response(200, json={"devices": []})
        result = cli_runner.invoke(app, ["player", "devices"])
        assert "No devices available" in result.output


class TestSearch:
    def test_table(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        web_api.routes[("GET", "/search")] = httpx.Response(200, json=SEARCH)
        result = cli_runner.invoke(
            app, ["--plain", "search", "one more time", "-t", "track", "-t", "playlist", "-l", "5"]
        )

        assert result.exit_code == 0, result.output
        assert "track\tOne More Time\tDaft Punk\tspotify:track:0DiWol3AO6WpXZgp0goxAV" in result.output
        assert "playlist\tFrench House\tSpotify\tspotify:playlist:37i9" in result.output
        params = web_api.requests[0].url.params
        assert params["type"] == "track,playlist"
        assert params["limit"] == "5"

    def test_json(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        web_api.routes[("GET", "/search")] = httpx.Response(200, json=SEARCH)
        result = cli_runner.invoke(app, ["--json", "--quiet", "search", "one more time"])
        assert json.loads(result.stdout) == SEARCH

    def test_no_results(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        web_api.routes[("GET", "/search")] = httpx.Response(200, json={"tracks": {"items": []}})
        result = cli_runner.invoke(app, ["search", "zzzz"])
        assert result.exit_code == 0
        assert 'No results for "zzzz"' in result.output

    def test_unknown_type(self, cli_runner, logged_in: Path, web_api: _WebApi) -> None:
        result = cli_runner.invoke(app, ["search", "x", "--type", "podcast"])
        assert result.exit_code == EXIT_INVALID_USAGE
        assert web_api.requests == []


class TestRefreshDuringCommand:
    def test_expired_token_refreshed_and_persisted(
        self, cli_runner, logged_in: Path, web_api: _WebApi, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "cid")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "secret")

        async def _refresh(self: SessionManager) -> TokenSet:
            new = TokenSet(access_token="access-token-B", refresh_token="refresh-token-R1")
            self.set_tokens(new)
            return new

        monkeypatch.setattr(SessionManager, "refresh", _refresh)

        def handler(request: httpx.Request) -> httpx.Response:
            web_api.requests.append(request)
            if request.headers["Authorization"] == "Bearer access-token-A":
                return httpx.Response(401, json={"error": {"status": 401, "message": "The access token expired"}})
            return httpx.Response(200, json={"devices": []})

        def _open_api(config: AppConfig, session: SessionManager) -> ApiClient:
            return ApiClient(
                session, base_url="https://api.example.com/v1", max_retries=0,
                transport=httpx.MockTransport(handler),
            )

        monkeypatch.setattr("termtune.commands.player._open_api", _open_api)
        result = cli_runner.invoke(app, ["player", "devices"])

        assert result.exit_code == 0, result.output
        assert len(web_api.requests) == 2
        assert SessionStore(logged_in).load().access_token == "access-token-B"
