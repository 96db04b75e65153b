"""Tests for the token endpoint client."""

from __future__ import annotations

import asyncio
import base64
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from termtune.auth.token_client import TokenExchangeClient
from termtune.exceptions import ConnectionError_, TokenExchangeError, TokenProtocolError

TOKEN_URL = "https://accounts.example.com/api/token"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_client(handler) -> TokenExchangeClient:
    return TokenExchangeClient(
        "cid", "secret", token_url=TOKEN_URL, transport=httpx.MockTransport(handler)
    )


def _token_response(**overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "access_token": "A",
        "token_type": "Bearer",
        "refresh_token": "R1",
        "expires_in": 3600,
        "scope": "streaming",
    }
    data.update(overrides)
    return data


class _Recorder:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    def form(self, index: int = 0) -> dict[str, str]:
        parsed = parse_qs(self.requests[index].content.decode())
        return {k: v[0] for k, v in parsed.items()}


# ---------------------------------------------------------------------------
# exchange
# ---------------------------------------------------------------------------


class TestExchange:
    def test_success(self) -> None:
        recorder = _Recorder(httpx.Response(200, json=_token_response()))
        tokens = asyncio.run(_make_client(recorder).exchange("CODE", "VERIFIER", "http://127.0.0.1:8888/callback"))

        assert tokens.access_token == "A"
        assert tokens.refresh_token == "R1"
        assert tokens.expires_in == 3600
        assert tokens.scope == "streaming"

    def test_request_shape(self) -> None:
        recorder = _Recorder(httpx.Response(200, json=_token_response()))
        asyncio.run(_make_client(recorder).exchange("CODE", "VERIFIER", "http://127.0.0.1:8888/callback"))

        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == TOKEN_URL
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        expected = "Basic " + base64.b64encode(b"cid:secret").decode()
        assert request.headers["authorization"] == expected
        assert recorder.form() == {
            "grant_type": "authorization_code",
            "code": "CODE",
            "redirect_uri": "http://127.0.0.1:8888/callback",
            "client_id": "cid",
            "code_verifier": "VERIFIER",
        }

    def test_error_status_keeps_body_verbatim(self) -> None:
        body = '{"error":"invalid_grant","error_description":"Invalid authorization code"}'
        recorder = _Recorder(httpx.Response(400, text=body))

        with pytest.raises(TokenExchangeError) as exc_info:
            asyncio.run(_make_client(recorder).exchange("BAD", "V", "http://x/cb"))

        assert exc_info.value.status_code == 400
        assert exc_info.value.body == body
        assert "400" in str(exc_info.value)

    def test_missing_access_token(self) -> None:
        recorder = _Recorder(httpx.Response(200, json={"token_type": "Bearer"}))
        with pytest.raises(TokenProtocolError, match="access_token"):
            asyncio.run(_make_client(recorder).exchange("C", "V", "http://x/cb"))

    def test_non_json_body(self) -> None:
        recorder = _Recorder(httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(TokenProtocolError, match="not valid JSON"):
            asyncio.run(_make_client(recorder).exchange("C", "V", "http://x/cb"))

    def test_json_array_body(self) -> None:
        recorder = _Recorder(httpx.Response(200, json=["A"]))
        with pytest.raises(TokenProtocolError, match="not a JSON object"):
            asyncio.run(_make_client(recorder).exchange("C", "V", "http://x/cb"))

    def test_optional_fields_default(self) -> None:
        recorder = _Recorder(httpx.Response(200, json={"access_token": "A", "refresh_token": None}))
        tokens = asyncio.run(_make_client(recorder).exchange("C", "V", "http://x/cb"))
        assert tokens.refresh_token == ""
        assert tokens.expires_in == 3600

    def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ConnectionError_, match="Token exchange failed"):
            asyncio.run(_make_client(handler).exchange("C", "V", "http://x/cb"))


# ---------------------------------------------------------------------------
# refresh
# ---------------------------------------------------------------------------


class TestRefresh:
    def test_request_shape(self) -> None:
        recorder = _Recorder(httpx.Response(200, json=_token_response(access_token="A2")))
        asyncio.run(_make_client(recorder).refresh("R1"))
        assert recorder.form() == {"grant_type": "refresh_token", "refresh_token": "R1"}

    def test_rotated_refresh_token(self) -> None:
        recorder = _Recorder(
            httpx.Response(200, json=_token_response(access_token="A2", refresh_token="R2"))
        )
        tokens = asyncio.run(_make_client(recorder).refresh("R1"))
        assert tokens.access_token == "A2"
        assert tokens.refresh_token == "R2"

    def test_keeps_old_refresh_token_when_not_rotated(self) -> None:
        body = _token_response(access_token="A2")
        del body["refresh_token"]
        recorder = _Recorder(httpx.Response(200, json=body))

        tokens = asyncio.run(_make_client(recorder).refresh("R1"))
        assert tokens.access_token == "A2"
        assert tokens.refresh_token == "R1"

    def test_revoked_refresh_token(self) -> None:
        recorder = _Recorder(httpx.Response(400, json={"error": "invalid_grant"}))
        with pytest.raises(TokenExchangeError, match="Token refresh failed with status 400"):
            asyncio.run(_make_client(recorder).refresh("R1"))
