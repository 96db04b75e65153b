"""Client for the provider's OAuth2 token endpoint.

:class:`TokenExchangeClient` performs the two token-endpoint calls the
broker needs:

1. :meth:`~TokenExchangeClient.exchange` -- trade an authorization code and
   its PKCE verifier for a :class:`~termtune.models.TokenSet`.
2. :meth:`~TokenExchangeClient.refresh` -- mint a new access token from a
   refresh token.

Both are form-encoded POSTs authenticated with HTTP Basic client
credentials. Failures are never retried here: a rejected code or refresh
token will be rejected again.
"""

from __future__ import annotations

import base64
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from termtune.exceptions import ConnectionError_, TokenExchangeError, TokenProtocolError
from termtune.models import TokenSet
from termtune.output import debug

DEFAULT_TOKEN_URL = "https://accounts.spotify.com/api/token"


class TokenExchangeClient:
    """Exchange authorization codes and refresh tokens for access tokens.

    Args:
        client_id: The application's client id.
        client_secret: The application's client secret.
        token_url: Token endpoint URL.
        timeout: Per-request timeout in seconds.
        transport: Optional :mod:`httpx` transport, e.g.
            :class:`httpx.MockTransport` in tests.

    Example::

        client = TokenExchangeClient("cid", "secret")
        tokens = await client.exchange(code, verifier, redirect_uri)
        tokens = await client.refresh(tokens.refresh_token)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = DEFAULT_TOKEN_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._timeout = timeout
        self._transport = transport

    @property
    def client_id(self) -> str:
        return self._client_id

    async def exchange(self, code: str, code_verifier: str, redirect_uri: str) -> TokenSet:
        """Exchange an authorization code for a token set.

        Args:
            code: The authorization code received on the callback.
            code_verifier: The PKCE verifier generated for this attempt.
            redirect_uri: The exact redirect URI used in the authorization
                request.

        Returns:
            The issued :class:`~termtune.models.TokenSet`.

        Raises:
            TokenExchangeError: On a non-success status; carries the
                response body verbatim.
            TokenProtocolError: If a success response is not a JSON object
                with an ``access_token``.
            ConnectionError_: On network failures.
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": self._client_id,
            "code_verifier": code_verifier,
        }
        payload = await self._post(data, "Token exchange")
        return _parse_token_set(payload, "Token exchange")

    async def refresh(self, refresh_token: str) -> TokenSet:
        """Obtain a new access token using *refresh_token*.

        Refresh tokens are not guaranteed to rotate: when the response
        omits ``refresh_token``, the one passed in is kept.

        Args:
            refresh_token: The current refresh token.

        Returns:
            The new :class:`~termtune.models.TokenSet`.

        Raises:
            TokenExchangeError: On a non-success status.
            TokenProtocolError: On a malformed success response.
            ConnectionError_: On network failures.
        """
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        payload = await self._post(data, "Token refresh")
        tokens = _parse_token_set(payload, "Token refresh")
        if not tokens.refresh_token:
            tokens = tokens.model_copy(update={"refresh_token": refresh_token})
        return tokens

    def _basic_auth_header(self) -> str:
        raw = f"{self._client_id}:{self._client_secret}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    async def _post(self, data: dict[str, str], action: str) -> dict[str, Any]:
        """POST *data* form-encoded to the token endpoint and decode the JSON body."""
        headers = {
            "Authorization": self._basic_auth_header(),
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        debug(f"{action}: POST {self._token_url} (grant_type={data['grant_type']})")

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self._token_url, data=data, headers=headers)
        except httpx.HTTPError as exc:
            raise ConnectionError_(f"{action} failed: {exc}") from exc

        if not response.is_success:
            raise TokenExchangeError(action, response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise TokenProtocolError(f"{action} response is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise TokenProtocolError(f"{action} response is not a JSON object")
        return payload


def _parse_token_set(payload: dict[str, Any], action: str) -> TokenSet:
    if not payload.get("access_token"):
        raise TokenProtocolError(f"{action} response missing 'access_token' field")
    try:
        return TokenSet.model_validate({k: v for k, v in payload.items() if v is not None})
    except ValidationError as exc:
        raise TokenProtocolError(f"{action} response is malformed: {exc}") from exc
