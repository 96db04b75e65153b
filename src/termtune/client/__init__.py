"""Web API client for termtune.

Classes:
    :class:`ApiClient` -- authenticated :class:`httpx.AsyncClient` wrapper
    with refresh-on-401, retry with exponential backoff, and error mapping.
    :class:`PlayerAPI` -- player and catalog calls built on ``ApiClient``.

Example::

    from termtune.client import ApiClient, PlayerAPI

    async with ApiClient(session) as api:
        devices = await PlayerAPI(api).devices()
"""

from termtune.client.api_client import ApiClient, refresh_on_unauthorized
from termtune.client.player import PlayerAPI

__all__ = ["ApiClient", "PlayerAPI", "refresh_on_unauthorized"]
