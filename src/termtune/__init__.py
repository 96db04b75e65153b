"""termtune -- a terminal music player front end for the Spotify Web API.

The package is organised around an authentication broker that runs the
OAuth2 Authorization Code flow with PKCE against the streaming service,
captures the browser redirect on a loopback listener, and keeps the
resulting tokens for the rest of the session.

Typical workflow::

    termtune auth login        # authorize in the browser, persist tokens
    termtune player status     # any command now uses the stored session

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and credential source resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
