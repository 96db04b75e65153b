"""Player commands -- control playback and search the catalog.

Provides the ``termtune player`` sub-command group and the top-level
``termtune search`` command. Each command opens an
:class:`~termtune.client.api_client.ApiClient` on the stored session,
makes one or two calls through :class:`~termtune.client.player.PlayerAPI`,
and renders the result. An expired access token is refreshed
transparently.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer

from termtune.auth.session import SessionManager, build_session_manager
from termtune.client.api_client import ApiClient
from termtune.client.player import PlayerAPI
from termtune.commands.common import cli_errors, get_config, run_async
from termtune.exceptions import InvalidUsageError
from termtune.exit_codes import EXIT_INVALID_USAGE
from termtune.models import AppConfig
from termtune.output import OutputFormat, error, format_response, get_output, info, success

_T = TypeVar("_T")

player_app = typer.Typer(no_args_is_help=True)


def _open_api(config: AppConfig, session: SessionManager) -> ApiClient:
    return ApiClient.from_config(config, session)


def _call(ctx: typer.Context, action: Callable[[PlayerAPI], Awaitable[_T]]) -> _T:
    """Run *action* against a freshly opened API client."""

    async def _run() -> _T:
        config = get_config(ctx)
        session = build_session_manager(config)
        async with _open_api(config, session) as api:
            return await action(PlayerAPI(api))

    with cli_errors():
        return run_async(_run())


def _json_mode() -> bool:
    return get_output().format == OutputFormat.JSON


def _artist_names(item: dict[str, Any]) -> str:
    return ", ".join(a.get("name", "") for a in item.get("artists") or [])


def _format_ms(ms: Optional[int]) -> str:
    if ms is None:
        return "-"
    seconds = ms // 1000
    return f"{seconds // 60}:{seconds % 60:02d}"


@player_app.command("status")
def player_status(ctx: typer.Context) -> None:
    """Show what is currently playing.

    Example::

        termtune player status
        termtune --json player status
    """
    playback = _call(ctx, lambda player: player.current_playback())
    if playback is None:
        info("Nothing is playing (no active device).")
        return
    if _json_mode():
        format_response(playback)
        return

    item = playback.get("item") or {}
    device = playback.get("device") or {}
    progress = f"{_format_ms(playback.get('progress_ms'))} / {_format_ms(item.get('duration_ms'))}"
    rows = [
        ["State", "playing" if playback.get("is_playing") else "paused"],
        ["Track", item.get("name", "-")],
        ["Artist", _artist_names(item) or "-"],
        ["Album", (item.get("album") or {}).get("name", "-")],
        ["Progress", progress],
        ["Device", device.get("name", "-")],
        ["Volume", f"{device.get('volume_percent', '-')}%"],
    ]
    get_output().print_table(["Field", "Value"], rows, title="Now Playing")


@player_app.command("play")
def player_play(
    ctx: typer.Context,
    uri: Optional[str] = typer.Argument(
        None, help="spotify: URI of a track, album, artist or playlist. Omit to resume."
    ),
) -> None:
    """Start or resume playback.

    Example::

        termtune player play
        termtune player play spotify:track:4uLU6hMCjMI75M1A2tKUQC
    """
    if uri is not None and not uri.startswith("spotify:"):
        with cli_errors():
            raise InvalidUsageError(f"Expected a spotify: URI, got: {uri}")
    _call(ctx, lambda player: player.play(uri))
    success(f"Playing {uri}." if uri else "Playback resumed.")


@player_app.command("pause")
def player_pause(ctx: typer.Context) -> None:
    """Pause playback."""
    _call(ctx, lambda player: player.pause())
    success("Playback paused.")


@player_app.command("next")
def player_next(ctx: typer.Context) -> None:
    """Skip to the next track."""
    _call(ctx, lambda player: player.next_track())
    success("Skipped to next track.")


@player_app.command("previous")
def player_previous(ctx: typer.Context) -> None:
    """Go back to the previous track."""
    _call(ctx, lambda player: player.previous_track())
    success("Went back to previous track.")


@player_app.command("volume")
def player_volume(
    ctx: typer.Context,
    percent: int = typer.Argument(help="Volume from 0 to 100; out-of-range values are clamped."),
) -> None:
    """Set the playback volume.

    Example::

        termtune player volume 40
    """
    volume = _call(ctx, lambda player: player.set_volume(percent))
    success(f"Volume set to {volume}%.")


@player_app.command("devices")
def player_devices(ctx: typer.Context) -> None:
    """List available playback devices."""
    devices = _call(ctx, lambda player: player.devices())
    if _json_mode():
        format_response(devices)
        return
    if not devices:
        info("No devices available. Open Spotify on a device first.")
        return

    headers = ["Name", "Type", "Active", "Volume", "ID"]
    rows = [
        [
            d.get("name", ""),
            d.get("type", ""),
            "yes" if d.get("is_active") else "no",
            str(d.get("volume_percent", "-")),
            d.get("id") or "-",
        ]
        for d in devices
    ]
    get_output().print_table(headers, rows, title="Devices")


def search_command(
    ctx: typer.Context,
    query: str = typer.Argument(help="Search query."),
    search_type: list[str] = typer.Option(
        ["track"],
        "--type",
        "-t",
        help="Item type: track, album, artist, playlist, show, episode. Repeatable.",
    ),
    limit: int = typer.Option(10, "--limit", "-l", min=1, max=50, help="Results per type."),
) -> None:
    """Search the Spotify catalog.

    Example::

        termtune search "daft punk" --type artist --type album
        termtune --json search "one more time" --limit 5
    """
    try:
        results = _call(ctx, lambda player: player.search(query, search_type, limit))
    except ValueError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    if _json_mode():
        format_response(results)
        return

    rows: list[list[str]] = []
    for key, page in results.items():
        for item in (page or {}).get("items") or []:
            if item is None:
                continue
            by = _artist_names(item) or (item.get("owner") or {}).get("display_name", "")
            rows.append([key.rstrip("s"), item.get("name", ""), by, item.get("uri", "")])

    if not rows:
        info(f'No results for "{query}".')
        return
    get_output().print_table(["Type", "Name", "By", "URI"], rows, title=f"Results for {query}")
