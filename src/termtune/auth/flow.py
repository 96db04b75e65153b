"""Authorization Code + PKCE flow orchestration.

:class:`AuthorizationWaiter` drives one interactive login from start to
finish:

1. Generate fresh PKCE parameters (:func:`~termtune.auth.pkce.generate`).
2. Bind the :class:`~termtune.auth.callback.CallbackListener`.
3. Build the authorization URL and hand it to the browser launcher.
4. Await the one-shot callback result.
5. Reject provider errors and ``state`` mismatches.
6. Exchange the code via
   :class:`~termtune.auth.token_client.TokenExchangeClient`.

The waiter's progress is exposed as :class:`AuthFlowState`::

    IDLE -> AWAITING_CALLBACK -> SUCCEEDED
                              -> FAILED

No timeout is imposed by default; the user may take as long as they like
in the browser. Callers that want a bound pass ``timeout`` to
:meth:`AuthorizationWaiter.run`.
"""

from __future__ import annotations

import enum
from typing import Callable, Optional
from urllib.parse import quote, urlencode

from termtune.auth.browser import open_browser
from termtune.auth.callback import CallbackListener
from termtune.auth.pkce import generate
from termtune.auth.token_client import TokenExchangeClient
from termtune.exceptions import AuthError, AuthorizationDeniedError, StateMismatchError
from termtune.models import TokenSet
from termtune.output import debug

DEFAULT_AUTHORIZATION_URL = "https://accounts.spotify.com/authorize"


class AuthFlowState(str, enum.Enum):
    """Lifecycle of a single authorization attempt."""

    IDLE = "idle"
    AWAITING_CALLBACK = "awaiting_callback"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def build_authorization_url(
    authorization_url: str,
    client_id: str,
    redirect_uri: str,
    code_challenge: str,
    state: str,
    scopes: list[str],
) -> str:
    """Build the URL the user's browser is sent to.

    All values are percent-encoded; spaces in the scope list become
    ``%20``.

    Args:
        authorization_url: The provider's authorization endpoint.
        client_id: The application's client id.
        redirect_uri: Where the provider should redirect afterwards.
        code_challenge: S256 PKCE challenge.
        state: Anti-CSRF token echoed back on the callback.
        scopes: Requested permissions.

    Returns:
        The full authorization URL.
    """
    params = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "code_challenge_method": "S256",
        "code_challenge": code_challenge,
        "state": state,
        "scope": " ".join(scopes),
    }
    return f"{authorization_url}?{urlencode(params, quote_via=quote)}"


class AuthorizationWaiter:
    """Run the interactive Authorization Code + PKCE flow.

    One waiter handles one attempt at a time; concurrent calls to
    :meth:`run` on the same instance are rejected because they would
    compete for the same callback port.

    Args:
        token_client: Client used for the final code exchange.
        scopes: Permissions to request.
        authorization_url: The provider's authorization endpoint.
        host: Loopback address for the callback listener.
        port: Callback port. Must match the registered redirect URI.
        path: Callback path.
        launcher: Callable that presents the authorization URL to the
            user. Defaults to :func:`~termtune.auth.browser.open_browser`.
    """

    def __init__(
        self,
        token_client: TokenExchangeClient,
        scopes: list[str],
        authorization_url: str = DEFAULT_AUTHORIZATION_URL,
        host: str = "127.0.0.1",
        port: int = 8888,
        path: str = "/callback",
        launcher: Callable[[str], object] = open_browser,
    ) -> None:
        self._token_client = token_client
        self._scopes = list(scopes)
        self._authorization_url = authorization_url
        self._host = host
        self._port = port
        self._path = path
        self._launcher = launcher
        self._state = AuthFlowState.IDLE
        self._running = False

    @property
    def state(self) -> AuthFlowState:
        """Where the most recent attempt ended up."""
        return self._state

    async def run(self, timeout: Optional[float] = None) -> TokenSet:
        """Perform one complete authorization attempt.

        Args:
            timeout: Optional seconds to wait for the browser callback.
                ``None`` waits indefinitely.

        Returns:
            The :class:`~termtune.models.TokenSet` issued for the code.

        Raises:
            ListenerBindError: If the callback port cannot be bound.
            AuthorizationDeniedError: If the provider redirected back with
                an ``error``.
            StateMismatchError: If the returned ``state`` differs from the
                one sent. No token exchange is attempted.
            AuthTimeoutError: If *timeout* expires.
            TokenExchangeError: If the token endpoint rejects the code.
            TokenProtocolError: If the token response is malformed.
            AuthError: If another attempt is already running.
        """
        if self._running:
            raise AuthError("An authentication attempt is already in progress")
        self._running = True
        self._state = AuthFlowState.IDLE
        try:
            tokens = await self._run_attempt(timeout)
        except BaseException:
            self._state = AuthFlowState.FAILED
            raise
        finally:
            self._running = False
        self._state = AuthFlowState.SUCCEEDED
        return tokens

    async def _run_attempt(self, timeout: Optional[float]) -> TokenSet:
        pkce = generate()

        async with CallbackListener(self._host, self._port, self._path) as listener:
            redirect_uri = listener.redirect_uri
            url = build_authorization_url(
                self._authorization_url,
                self._token_client.client_id,
                redirect_uri,
                pkce.challenge,
                pkce.state,
                self._scopes,
            )
            self._launcher(url)
            self._state = AuthFlowState.AWAITING_CALLBACK
            debug("Waiting for the authorization callback")
            result = await listener.wait(timeout)

        if result.error is not None:
            raise AuthorizationDeniedError(result.error, result.error_description)

        if result.returned_state != pkce.state:
            raise StateMismatchError()

        assert result.code is not None
        debug("Callback state verified; exchanging authorization code")
        return await self._token_client.exchange(result.code, pkce.verifier, redirect_uri)
