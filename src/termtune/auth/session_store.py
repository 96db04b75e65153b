"""Persistent storage for the user's token set.

The session lives in a single JSON file (``~/.local/share/termtune/session.json``
by default) holding exactly the four :class:`~termtune.models.TokenSet`
fields. Writes are atomic and the file is created with ``0o600``
permissions so tokens are never world-readable, even momentarily.

A missing, unreadable, or malformed file is never an error: :meth:`SessionStore.load`
returns ``None`` and the application starts in the "not authenticated" state.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from termtune.config import atomic_write
from termtune.models import TokenSet
from termtune.output import debug


class SessionStore:
    """Read/write the persisted :class:`~termtune.models.TokenSet`.

    Args:
        path: Location of the session file.

    Example::

        store = SessionStore(Path("session.json"))
        store.save(TokenSet(access_token="A", refresh_token="R"))
        assert store.load().access_token == "A"
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """The filesystem path to the session file."""
        return self._path

    def save(self, tokens: TokenSet) -> None:
        """Persist *tokens* atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written (permissions, disk full, etc.).
        """
        text = json.dumps(tokens.model_dump(mode="json"), indent=2) + "\n"
        atomic_write(self._path, text, mode=0o600)

    def load(self) -> Optional[TokenSet]:
        """Load the stored token set.

        Returns:
            The deserialised :class:`~termtune.models.TokenSet`, or ``None``
            if the file does not exist or cannot be parsed.
        """
        if not self._path.is_file():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return TokenSet.model_validate(data)
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError, OSError) as exc:
            debug(f"Ignoring unreadable session file {self._path}: {exc}")
            return None

    def clear(self) -> None:
        """Delete the session file. No-op when it does not exist."""
        if self._path.is_file():
            self._path.unlink()
