"""OAuth2 Authorization Code + PKCE broker and session management.

The main entry points are:

- :class:`AuthorizationWaiter` -- runs one interactive browser login and
  returns a :class:`~termtune.models.TokenSet`.
- :class:`CallbackListener` -- the loopback HTTP server that receives the
  provider's redirect.
- :class:`TokenExchangeClient` -- code exchange and refresh against the
  token endpoint.
- :class:`SessionManager` -- owns the current token set, persists it via
  :class:`SessionStore`, and refreshes it on demand.

Typical usage::

    from termtune.auth import build_session_manager

    session = build_session_manager(config)
    await session.login()
    token = session.require_access_token()
"""

from termtune.auth.callback import CallbackListener, parse_callback_query
from termtune.auth.flow import AuthFlowState, AuthorizationWaiter, build_authorization_url
from termtune.auth.session import SessionManager, build_session_manager
from termtune.auth.session_store import SessionStore
from termtune.auth.token_client import TokenExchangeClient

__all__ = [
    "AuthFlowState",
    "AuthorizationWaiter",
    "CallbackListener",
    "SessionManager",
    "SessionStore",
    "TokenExchangeClient",
    "build_authorization_url",
    "build_session_manager",
    "parse_callback_query",
]
