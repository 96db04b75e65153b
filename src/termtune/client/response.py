"""Helpers for reading Web API responses."""

from __future__ import annotations

from typing import Any

import httpx


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Attempts to parse the body as JSON first. If that fails, returns the raw
    text. Returns ``None`` for responses with no content (e.g. ``204``).

    Args:
        response: The :class:`httpx.Response` to extract data from.

    Returns:
        A JSON-decoded object, a ``str`` of raw text, or ``None`` if the
        body is empty.
    """
    if not response.content:
        return None

    try:
        return response.json()
    except ValueError:
        return response.text


def error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of an error response.

    The Web API wraps errors as ``{"error": {"status": 401, "message": "..."}}``;
    the token endpoint uses flat ``{"error": "...", "error_description": "..."}``.
    Anything else falls back to the first 200 characters of the body.
    """
    try:
        detail = response.json()
    except ValueError:
        return response.text[:200] if response.text else ""

    if isinstance(detail, dict):
        err = detail.get("error")
        if isinstance(err, dict):
            return str(err.get("message") or "")
        return str(
            detail.get("message") or detail.get("error_description") or err or ""
        )
    return str(detail)
