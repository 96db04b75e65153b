"""Canonical Pydantic models shared across all termtune modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Auth models** -- produced and consumed by the authentication broker:
    :class:`PKCEParams`, :class:`CallbackResult`, and :class:`TokenSet`.

**Configuration models** -- serialised as JSON in the user's config
directory: :class:`AuthSettings`, :class:`RequestConfig`,
:class:`OutputConfig`, and :class:`AppConfig`.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Auth models ---


class PKCEParams(BaseModel):
    """Ephemeral secrets for a single authentication attempt.

    Never persisted and never reused: a fresh instance is generated by
    :func:`~termtune.auth.pkce.generate` for every login.
    """

    model_config = ConfigDict(frozen=True)

    verifier: str = Field(min_length=43, max_length=128)
    challenge: str
    state: str = Field(min_length=16)


class CallbackResult(BaseModel):
    """Outcome of the browser redirect captured by the callback listener.

    At most one of :attr:`code` and :attr:`error` is set.
    """

    model_config = ConfigDict(frozen=True)

    code: Optional[str] = None
    returned_state: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        """``True`` when the callback carried an authorization code."""
        return self.code is not None and self.error is None


class TokenSet(BaseModel):
    """Credentials issued by the token endpoint.

    This is also the exact shape of the persisted session file. Fields the
    token endpoint sends beyond these four (``token_type``...) are ignored.

    Attributes:
        access_token: Bearer credential for API calls.
        refresh_token: Credential used to mint new access tokens. Empty
            when the provider did not issue one.
        expires_in: Validity window of ``access_token`` in seconds, as
            reported at issuance time.
        scope: Space-delimited granted permissions, informational.
    """

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    refresh_token: str = ""
    expires_in: int = 3600
    scope: str = ""


# --- Configuration models ---


DEFAULT_SCOPES: list[str] = [
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
    "streaming",
    "user-library-read",
    "playlist-read-private",
    "playlist-read-collaborative",
]


class AuthSettings(BaseModel):
    """Settings for the OAuth2 Authorization Code + PKCE flow.

    The callback host, port, and path must match the redirect URI
    registered for the client application on the provider's dashboard.

    Example::

        AuthSettings(
            client_id_source="env:SPOTIFY_CLIENT_ID",
            callback_port=8888,
        )
    """

    client_id_source: str = Field(
        default="env:SPOTIFY_CLIENT_ID",
        description="Credential source: env:VAR, file:/path, prompt",
    )
    client_secret_source: str = Field(
        default="env:SPOTIFY_CLIENT_SECRET",
        description="Credential source: env:VAR, file:/path, prompt",
    )
    authorization_url: str = "https://accounts.spotify.com/authorize"
    token_url: str = "https://accounts.spotify.com/api/token"
    callback_host: str = "127.0.0.1"
    callback_port: int = Field(default=8888, ge=0, le=65535)
    callback_path: str = "/callback"
    scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    login_timeout: Optional[float] = Field(
        default=None,
        description="Seconds to wait for the browser callback (None = forever)",
    )

    @property
    def redirect_uri(self) -> str:
        """Redirect URI derived from the callback host, port, and path."""
        return f"http://{self.callback_host}:{self.callback_port}{self.callback_path}"


class RequestConfig(BaseModel):
    """Default HTTP request settings applied to every Web API call."""

    timeout: int = Field(default=30, description="Request timeout in seconds")
    max_retries: int = Field(default=3, description="Max retry attempts")


class OutputConfig(BaseModel):
    """Default output format preferences."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class AppConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/termtune/config.json``.

    Loaded and saved by :func:`~termtune.config.load_config` and
    :func:`~termtune.config.save_config`. See
    :func:`~termtune.config.resolve_config` for how CLI flags and
    environment variables override it.
    """

    api_base_url: str = "https://api.spotify.com/v1"
    auth: AuthSettings = Field(default_factory=AuthSettings)
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    session_file: Optional[str] = Field(
        default=None,
        description="Path of the persisted session (default: <data_dir>/session.json)",
    )
