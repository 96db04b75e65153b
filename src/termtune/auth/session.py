"""Session/token lifecycle manager.

:class:`SessionManager` is the single source of truth for "is there a
usable user session". It holds the current
:class:`~termtune.models.TokenSet` in memory, restores it from the
:class:`~termtune.auth.session_store.SessionStore` at startup, persists it
after every successful login or refresh, and hands the access token to the
Web API client.

Refresh is reactive: the manager never looks at ``expires_in`` on its own.
:class:`~termtune.client.api_client.ApiClient` calls :meth:`SessionManager.refresh`
when the API answers 401 and retries the request once.

Typical usage::

    session = build_session_manager(config)
    if session.current_access_token() is None:
        await session.login()
"""

from __future__ import annotations

from typing import Callable, Optional

from termtune.auth.browser import open_browser
from termtune.auth.flow import AuthorizationWaiter
from termtune.auth.session_store import SessionStore
from termtune.auth.token_client import TokenExchangeClient
from termtune.config import resolve_credential, session_path
from termtune.exceptions import AuthError, NotAuthenticatedError
from termtune.models import AppConfig, TokenSet
from termtune.output import debug

TokenClientFactory = Callable[[], TokenExchangeClient]
WaiterFactory = Callable[[TokenExchangeClient], AuthorizationWaiter]


class SessionManager:
    """Own the user's token set for the lifetime of the process.

    Args:
        store: Where the token set is persisted. ``None`` keeps the session
            in memory only.
        token_client_factory: Builds the token endpoint client on first
            use, so commands that only read the stored token never need the
            client secret.
        waiter_factory: Builds the :class:`AuthorizationWaiter` for
            :meth:`login`.
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        token_client_factory: Optional[TokenClientFactory] = None,
        waiter_factory: Optional[WaiterFactory] = None,
    ) -> None:
        self._store = store
        self._token_client_factory = token_client_factory
        self._waiter_factory = waiter_factory
        self._token_client: Optional[TokenExchangeClient] = None
        self._tokens: Optional[TokenSet] = store.load() if store is not None else None
        if self._tokens is not None:
            debug(f"Restored session from {store.path}")  # type: ignore[union-attr]

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #

    @property
    def tokens(self) -> Optional[TokenSet]:
        """The current token set, or ``None`` when not authenticated."""
        return self._tokens

    @property
    def is_authenticated(self) -> bool:
        return self._tokens is not None

    @property
    def store(self) -> Optional[SessionStore]:
        return self._store

    def set_tokens(self, tokens: TokenSet, persist: bool = True) -> None:
        """Install *tokens* as the current session, replacing any previous set.

        Args:
            tokens: The new token set.
            persist: Also write it to the session file.
        """
        self._tokens = tokens
        if persist and self._store is not None:
            self._store.save(tokens)
            debug(f"Session saved to {self._store.path}")

    def current_access_token(self) -> Optional[str]:
        """Return the bearer token, or ``None`` if no session exists."""
        if self._tokens is None:
            return None
        return self._tokens.access_token

    def require_access_token(self) -> str:
        """Return the bearer token.

        Raises:
            NotAuthenticatedError: If no session exists.
        """
        token = self.current_access_token()
        if token is None:
            raise NotAuthenticatedError()
        return token

    def logout(self) -> None:
        """Forget the session in memory and on disk."""
        self._tokens = None
        if self._store is not None:
            self._store.clear()

    # ------------------------------------------------------------------ #
    # Token acquisition
    # ------------------------------------------------------------------ #

    async def login(self, timeout: Optional[float] = None) -> TokenSet:
        """Run the interactive browser flow and install the resulting tokens.

        Args:
            timeout: Optional seconds to wait for the browser callback.

        Returns:
            The new :class:`~termtune.models.TokenSet`.

        Raises:
            AuthError: If no waiter is configured, or any subclass raised
                by :meth:`AuthorizationWaiter.run`.
            ListenerBindError: If the callback port is unavailable.
        """
        if self._waiter_factory is None:
            raise AuthError("Interactive login is not configured for this session")
        waiter = self._waiter_factory(self._get_token_client())
        tokens = await waiter.run(timeout=timeout)
        self.set_tokens(tokens)
        return tokens

    async def refresh(self) -> TokenSet:
        """Mint a new access token from the stored refresh token.

        :meth:`TokenExchangeClient.refresh` keeps the previous refresh
        token when the provider does not rotate it.

        Returns:
            The new :class:`~termtune.models.TokenSet`.

        Raises:
            NotAuthenticatedError: If there is no session or it has no
                refresh token.
            TokenExchangeError: If the token endpoint rejects the refresh.
            TokenProtocolError: If the response is malformed.
        """
        if self._tokens is None:
            raise NotAuthenticatedError()
        previous = self._tokens.refresh_token
        if not previous:
            raise NotAuthenticatedError(
                "Session has no refresh token. Run 'termtune auth login' again."
            )

        tokens = await self._get_token_client().refresh(previous)
        self.set_tokens(tokens)
        debug("Access token refreshed")
        return tokens

    def _get_token_client(self) -> TokenExchangeClient:
        if self._token_client is None:
            if self._token_client_factory is None:
                raise AuthError("No token endpoint client configured for this session")
            self._token_client = self._token_client_factory()
        return self._token_client


def build_session_manager(
    config: AppConfig,
    launcher: Callable[[str], object] = open_browser,
) -> SessionManager:
    """Create a :class:`SessionManager` wired from *config*.

    Client credentials are resolved lazily, the first time the token
    endpoint is needed.

    Args:
        config: The effective application configuration.
        launcher: Presents the authorization URL during :meth:`~SessionManager.login`.
    """
    auth = config.auth

    def _token_client() -> TokenExchangeClient:
        return TokenExchangeClient(
            client_id=resolve_credential(auth.client_id_source),
            client_secret=resolve_credential(auth.client_secret_source),
            token_url=auth.token_url,
            timeout=float(config.request.timeout),
        )

    def _waiter(token_client: TokenExchangeClient) -> AuthorizationWaiter:
        return AuthorizationWaiter(
            token_client,
            scopes=auth.scopes,
            authorization_url=auth.authorization_url,
            host=auth.callback_host,
            port=auth.callback_port,
            path=auth.callback_path,
            launcher=launcher,
        )

    return SessionManager(
        store=SessionStore(session_path(config)),
        token_client_factory=_token_client,
        waiter_factory=_waiter,
    )
