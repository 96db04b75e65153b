"""Authenticated asynchronous client for the Spotify Web API.

:class:`ApiClient` wraps :class:`httpx.AsyncClient` and adds:

* bearer-token injection from the
  :class:`~termtune.auth.session.SessionManager`,
* one transparent refresh-and-retry when the API answers 401
  (:func:`refresh_on_unauthorized`),
* retry with exponential backoff on 5xx and connection errors,
* mapping of error statuses to :mod:`termtune.exceptions`.

Example::

    async with ApiClient(session) as api:
        playback = await api.get("/me/player")
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from termtune.auth.session import SessionManager
from termtune.client.response import error_message, extract_response_data
from termtune.exceptions import (
    ApiError,
    AuthError,
    ConnectionError_,
    NotFoundError,
    ServerError,
)
from termtune.models import AppConfig
from termtune.output import get_output

DEFAULT_BASE_URL = "https://api.spotify.com/v1"

_F = TypeVar("_F", bound=Callable[..., Awaitable[httpx.Response]])


def refresh_on_unauthorized(func: _F) -> _F:
    """Retry a request once after refreshing the access token on HTTP 401.

    The wrapped coroutine must be a method of an object with a ``_session``
    attribute and return an :class:`httpx.Response`. It has to read the
    access token from the session on every call so that the retry carries
    the refreshed token.

    A second 401 is returned unchanged and mapped to
    :class:`~termtune.exceptions.AuthError` by the caller. Errors from the
    refresh itself propagate as raised.
    """

    @functools.wraps(func)
    async def wrapper(self: Any, *args: Any, **kwargs: Any) -> httpx.Response:
        response = await func(self, *args, **kwargs)
        if response.status_code != 401:
            return response

        get_output().debug("Access token rejected (HTTP 401), refreshing and retrying once")
        await self._session.refresh()
        return await func(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class ApiClient:
    """Asynchronous client for authenticated Web API calls.

    Must be used as an async context manager.

    Args:
        session: Supplies the bearer token and performs refreshes.
        base_url: API root, e.g. ``https://api.spotify.com/v1``.
        timeout: Per-request timeout in seconds.
        max_retries: Extra attempts for 5xx and connection errors.
        transport: Optional :mod:`httpx` transport, e.g.
            :class:`httpx.MockTransport` in tests.
    """

    def __init__(
        self,
        session: SessionManager,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._session = session
        self._base_url = base_url
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(cls, config: AppConfig, session: SessionManager) -> ApiClient:
        """Build a client using the request settings from *config*."""
        return cls(
            session,
            base_url=config.api_base_url,
            timeout=float(config.request.timeout),
            max_retries=config.request.max_retries,
        )

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> ApiClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> Any:
        """Send an authenticated request and return the decoded body.

        Args:
            method: HTTP method.
            path: Path relative to the API root (``/me/player``).
            params: Query parameters.
            json_body: JSON-serialisable request body.

        Returns:
            The decoded JSON body, raw text, or ``None`` for empty
            responses.

        Raises:
            NotAuthenticatedError: If there is no session. Raised before any
                network I/O.
            AuthError: On 403, or on 401 after one refresh-and-retry.
            NotFoundError: On 404.
            ServerError: On 5xx after all retries are exhausted.
            ApiError: On any other error status.
            ConnectionError_: On network errors after all retries.
        """
        response = await self._send(method, path, params, json_body)
        self._map_response_error(response)
        return extract_response_data(response)

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    @refresh_on_unauthorized
    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]],
        json_body: Optional[Any],
    ) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self._session.require_access_token()}",
            "Accept": "application/json",
        }
        return await self._execute_with_retry(method, path, headers, params, json_body)

    async def _execute_with_retry(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        params: Optional[dict[str, Any]],
        json_body: Optional[Any],
    ) -> httpx.Response:
        """Execute the HTTP request with exponential-backoff retry.

        Retries on 5xx status codes and connection / timeout errors up to
        ``max_retries`` times. The delay doubles each attempt: 1 s, 2 s,
        4 s, ...
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"

        output = get_output()
        kwargs: dict[str, Any] = {"headers": headers, "params": params}
        if json_body is not None:
            kwargs["json"] = json_body

        for attempt in range(self._max_retries + 1):
            try:
                response = await self._client.request(method, path, **kwargs)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < self._max_retries:
                    delay = 2 ** attempt
                    output.debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{self._max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection failed after {self._max_retries + 1} attempts: {exc}"
                ) from exc

            if response.status_code >= 500 and attempt < self._max_retries:
                delay = 2 ** attempt
                output.debug(
                    f"Server error {response.status_code}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{self._max_retries})"
                )
                await asyncio.sleep(delay)
                continue

            output.debug(f"{method} {path} -> HTTP {response.status_code}")
            return response

        raise ServerError("Request failed after all retries")  # pragma: no cover

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        msg = error_message(response)
        full_msg = f"HTTP {status}: {msg}" if msg else f"HTTP {status}"

        if status in (401, 403):
            raise AuthError(full_msg)
        if status == 404:
            raise NotFoundError(full_msg)
        if status >= 500:
            raise ServerError(full_msg)
        raise ApiError(full_msg)
