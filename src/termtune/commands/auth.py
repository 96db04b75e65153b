"""Auth commands -- log in, inspect, refresh, and discard the user session.

Provides the ``termtune auth`` sub-command group. ``login`` runs the
browser-based Authorization Code + PKCE flow and persists the resulting
tokens; every other command in the CLI then picks the session up from
disk.

Typical workflow::

    termtune auth login          # authorize in the browser
    termtune auth status         # show what is stored
    termtune auth logout         # forget the session
"""

from __future__ import annotations

from typing import Optional

import typer

from termtune.commands.common import cli_errors, get_config, is_forced, run_async
from termtune.exit_codes import EXIT_AUTH_FAILURE
from termtune.output import get_output, info, mask_secret, success, suggest


auth_app = typer.Typer(no_args_is_help=True)


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        "-t",
        min=1,
        help="Seconds to wait for the browser callback (default: wait forever).",
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the authorization URL instead of opening it."
    ),
) -> None:
    """Authorize termtune with your Spotify account.

    Binds the loopback callback listener, opens the authorization URL in
    the default browser, and waits for the redirect. The code is
    exchanged for tokens, which are stored in the session file.

    Args:
        ctx: Typer context carrying ``session_file``.
        timeout: Optional bound on the wait; falls back to
            ``auth.login_timeout`` from the config.
        no_browser: Only print the URL (headless machines).

    Raises:
        typer.Exit: With code 3 on denial, state mismatch, timeout or a
            rejected exchange; code 8 if the callback port is in use.

    Example::

        termtune auth login
        termtune auth login --no-browser --timeout 300
    """
    from termtune.auth.browser import open_browser, print_url
    from termtune.auth.session import build_session_manager

    with cli_errors():
        config = get_config(ctx)
        session = build_session_manager(
            config, launcher=print_url if no_browser else open_browser
        )
        wait = timeout if timeout is not None else config.auth.login_timeout
        run_async(session.login(timeout=wait))

    success("Authentication successful.")
    if session.store is not None:
        info(f"Session saved to {session.store.path}")
    suggest("Try: termtune player status")


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show the stored session.

    Tokens are masked. Exits with code 3 when no session is stored.

    Example::

        termtune auth status
        termtune --json auth status
    """
    from termtune.auth.session import build_session_manager

    with cli_errors():
        session = build_session_manager(get_config(ctx))

    path = str(session.store.path) if session.store is not None else "-"
    tokens = session.tokens
    if tokens is None:
        info("Not authenticated.")
        info(f"Session file: {path}")
        suggest("Log in: termtune auth login")
        raise typer.Exit(code=EXIT_AUTH_FAILURE)

    headers = ["Field", "Value"]
    rows = [
        ["Session File", path],
        ["Access Token", mask_secret(tokens.access_token)],
        ["Refresh Token", mask_secret(tokens.refresh_token) if tokens.refresh_token else "-"],
        ["Expires In", f"{tokens.expires_in}s"],
        ["Scope", tokens.scope or "-"],
    ]
    get_output().print_table(headers, rows, title="Session")


@auth_app.command("refresh")
def auth_refresh(ctx: typer.Context) -> None:
    """Mint a new access token from the stored refresh token.

    Example::

        termtune auth refresh
    """
    from termtune.auth.session import build_session_manager

    with cli_errors():
        session = build_session_manager(get_config(ctx))
        run_async(session.refresh())
    success("Access token refreshed.")


@auth_app.command("logout")
def auth_logout(ctx: typer.Context) -> None:
    """Delete the stored session.

    Asks for confirmation unless the ``--force`` flag is active.

    Example::

        termtune auth logout
        termtune --force auth logout
    """
    from termtune.auth.session import build_session_manager

    with cli_errors():
        session = build_session_manager(get_config(ctx))

    if not session.is_authenticated:
        info("No session to remove.")
        return

    if not is_forced(ctx):
        confirmed = typer.confirm("Log out and delete the stored session?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    session.logout()
    success("Logged out.")
