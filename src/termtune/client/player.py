"""Player and catalog calls on top of :class:`~termtune.client.api_client.ApiClient`.

Every method is a single authenticated request; no playback state is
kept between calls.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from termtune.client.api_client import ApiClient

SEARCH_TYPES = ("album", "artist", "playlist", "track", "show", "episode")


class PlayerAPI:
    """Thin wrappers for the Web API endpoints the terminal client uses.

    Args:
        api: An open :class:`~termtune.client.api_client.ApiClient`.

    Example::

        async with ApiClient(session) as api:
            player = PlayerAPI(api)
            await player.play("spotify:track:4uLU6hMCjMI75M1A2tKUQC")
    """

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    # ------------------------------------------------------------------ #
    # Catalog
    # ------------------------------------------------------------------ #

    async def search(
        self,
        query: str,
        types: Sequence[str] = ("track",),
        limit: int = 10,
    ) -> dict[str, Any]:
        """Search the catalog.

        Args:
            query: Free-text search query.
            types: Item types to search for; see :data:`SEARCH_TYPES`.
            limit: Maximum results per type (1-50).

        Raises:
            ValueError: If *types* is empty or contains an unknown type.
        """
        if not types:
            raise ValueError("At least one search type is required")
        unknown = [t for t in types if t not in SEARCH_TYPES]
        if unknown:
            raise ValueError(f"Unknown search type(s): {', '.join(unknown)}")

        params = {"q": query, "type": ",".join(types), "limit": max(1, min(50, limit))}
        return await self._api.get("/search", params=params) or {}

    async def get_track(self, track_id: str) -> dict[str, Any]:
        return await self._api.get(f"/tracks/{track_id}") or {}

    async def get_album(self, album_id: str) -> dict[str, Any]:
        return await self._api.get(f"/albums/{album_id}") or {}

    async def get_artist(self, artist_id: str) -> dict[str, Any]:
        return await self._api.get(f"/artists/{artist_id}") or {}

    async def get_playlist(self, playlist_id: str) -> dict[str, Any]:
        return await self._api.get(f"/playlists/{playlist_id}") or {}

    # ------------------------------------------------------------------ #
    # Playback
    # ------------------------------------------------------------------ #

    async def current_playback(self) -> Optional[dict[str, Any]]:
        """Return the playback state, or ``None`` when nothing is active.

        The API answers ``204 No Content`` when the user has no active
        device.
        """
        data = await self._api.get("/me/player")
        return data or None

    async def play(self, uri: Optional[str] = None) -> None:
        """Start or resume playback.

        Args:
            uri: Optional ``spotify:`` URI. Track and episode URIs are
                played directly; album, artist and playlist URIs are played
                as a context. ``None`` resumes the current playback.
        """
        body: Optional[dict[str, Any]] = None
        if uri is not None:
            if uri.startswith(("spotify:track:", "spotify:episode:")):
                body = {"uris": [uri]}
            else:
                body = {"context_uri": uri}
        await self._api.put("/me/player/play", json_body=body)

    async def pause(self) -> None:
        await self._api.put("/me/player/pause")

    async def next_track(self) -> None:
        await self._api.post("/me/player/next")

    async def previous_track(self) -> None:
        await self._api.post("/me/player/previous")

    async def set_volume(self, percent: int) -> int:
        """Set the device volume, clamped to 0-100.

        Returns:
            The volume actually requested.
        """
        volume = max(0, min(100, percent))
        await self._api.put("/me/player/volume", params={"volume_percent": volume})
        return volume

    async def devices(self) -> list[dict[str, Any]]:
        """List the user's available playback devices."""
        data = await self._api.get("/me/player/devices") or {}
        return list(data.get("devices", []))
