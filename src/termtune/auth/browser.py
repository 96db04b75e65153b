"""Open the authorization URL in the user's browser."""

from __future__ import annotations

import webbrowser

from termtune.output import debug, info, warning


def open_browser(url: str) -> bool:
    """Point the default browser at *url*, degrading to printing it.

    The URL is always printed first so that users on a headless machine
    (SSH session, container) can copy it to a browser elsewhere.

    Args:
        url: The fully-formed authorization URL.

    Returns:
        ``True`` if a browser was launched, ``False`` if the user has to
        open the URL manually.
    """
    info("Opening browser for Spotify authentication...")
    info(f"If the browser doesn't open automatically, visit: {url}")

    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as exc:
        debug(f"webbrowser.open failed: {exc}")
        opened = False

    if not opened:
        warning("Could not open a browser automatically.")
        info(f"Please open this URL manually: {url}")
    return opened


def print_url(url: str) -> bool:
    """Show *url* without launching a browser (``--no-browser``)."""
    info(f"Open this URL in a browser to authorize termtune: {url}")
    return False
