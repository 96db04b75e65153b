"""Loopback HTTP listener that captures the OAuth2 redirect.

:class:`CallbackListener` binds a small :func:`asyncio.start_server`
server on a fixed loopback address (``127.0.0.1:8888`` by default) before
the authorization URL is shown to the user. When the browser is redirected
to ``/callback``, the query string is parsed by
:func:`parse_callback_query` and the resulting
:class:`~termtune.models.CallbackResult` is delivered exactly once through
an :class:`asyncio.Future`. Later requests (browser retries, reloads) get
a page saying the login already completed and never replace the first
result. Requests for any other path (``/favicon.ico``) get a 404.

See Also:
    :class:`termtune.auth.flow.AuthorizationWaiter`, which consumes the
    result.
"""

from __future__ import annotations

import asyncio
import html
from http import HTTPStatus
from typing import Optional
from urllib.parse import parse_qs, urlparse

from termtune.exceptions import AuthTimeoutError, ListenerBindError
from termtune.models import CallbackResult
from termtune.output import debug

MISSING_CODE_ERROR = "Missing authorization code"

# Upper bound on request headers read from a single connection.
_MAX_HEADER_LINES = 100

# Seconds a connection may take to send its request line and headers.
READ_TIMEOUT = 5.0

# Seconds close() lets handlers finish writing their page before cancelling them.
_CLOSE_GRACE = 1.0

_SUCCESS_PAGE = (
    "<h1>Authentication Successful!</h1>"
    "<p>You can close this window and return to termtune.</p>"
)
_FAILURE_PAGE = "<h1>Authentication Failed</h1><p>{detail}</p><p>You can close this window.</p>"
_DONE_PAGE = "<h1>Already Completed</h1><p>This login attempt has already finished.</p>"


def parse_callback_query(query: str) -> CallbackResult:
    """Turn the redirect's query string into a :class:`CallbackResult`.

    * ``error`` present -- the provider refused (e.g. ``access_denied``).
    * ``code`` and ``state`` present -- the user authorized the app.
    * anything else -- reported as :data:`MISSING_CODE_ERROR`.

    Args:
        query: Raw query string, without the leading ``?``.

    Returns:
        The parsed result. At most one of ``code`` and ``error`` is set.
    """
    params = parse_qs(query)

    if "error" in params:
        return CallbackResult(
            error=params["error"][0],
            error_description=params.get("error_description", [None])[0],
        )

    code = params.get("code", [None])[0]
    state = params.get("state", [None])[0]
    if code and state:
        return CallbackResult(code=code, returned_state=state)

    return CallbackResult(error=MISSING_CODE_ERROR)


class CallbackListener:
    """Single-use loopback server for the authorization redirect.

    Use as an async context manager so the server is always closed when the
    attempt ends::

        async with CallbackListener(port=8888) as listener:
            open_browser(build_url(listener.redirect_uri))
            result = await listener.wait()

    Args:
        host: Loopback address to bind.
        port: TCP port to bind. ``0`` picks a free port; the actual port is
            then available from :attr:`port` after :meth:`start`.
        path: Callback path registered as part of the redirect URI.
        read_timeout: Seconds a connection gets to send its request. Idle
            sockets (browser preconnects) are dropped after this.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 8888,
        path: str = "/callback",
        read_timeout: float = READ_TIMEOUT,
    ) -> None:
        self._host = host
        self._port = port
        self._path = path
        self._read_timeout = read_timeout
        self._handlers: set[asyncio.Task[None]] = set()
        self._server: Optional[asyncio.AbstractServer] = None
        self._result: Optional[asyncio.Future[CallbackResult]] = None

    async def __aenter__(self) -> CallbackListener:
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    @property
    def port(self) -> int:
        """The bound port (the requested one until :meth:`start` runs)."""
        return self._port

    @property
    def redirect_uri(self) -> str:
        """The redirect URI this listener answers on."""
        return f"http://{self._host}:{self._port}{self._path}"

    @property
    def is_running(self) -> bool:
        """Whether the server is currently bound."""
        return self._server is not None

    async def start(self) -> None:
        """Bind the listener and start accepting connections.

        Raises:
            ListenerBindError: If the address cannot be bound (typically
                because another process holds the port).
        """
        loop = asyncio.get_running_loop()
        self._result = loop.create_future()
        try:
            self._server = await asyncio.start_server(
                self._handle_connection, self._host, self._port
            )
        except OSError as exc:
            raise ListenerBindError(
                f"Cannot listen on {self._host}:{self._port} for the OAuth callback: "
                f"{exc.strerror or exc}"
            ) from exc

        if self._server.sockets:
            self._port = self._server.sockets[0].getsockname()[1]
        debug(f"Callback listener bound to {self.redirect_uri}")

    async def wait(self, timeout: Optional[float] = None) -> CallbackResult:
        """Wait for the first callback to be published.

        Args:
            timeout: Seconds to wait. ``None`` waits until the user acts.

        Returns:
            The first :class:`CallbackResult` received.

        Raises:
            AuthTimeoutError: If *timeout* elapses first.
        """
        if self._result is None:
            raise RuntimeError("CallbackListener.wait() called before start()")
        try:
            return await asyncio.wait_for(asyncio.shield(self._result), timeout)
        except asyncio.TimeoutError:
            raise AuthTimeoutError(
                f"No authorization callback received within {timeout:g} seconds"
            ) from None

    def publish(self, result: CallbackResult) -> bool:
        """Deliver *result* to the waiter unless one was already delivered.

        Returns:
            ``True`` if *result* was accepted, ``False`` if an earlier
            result already won.
        """
        if self._result is None or self._result.done():
            return False
        self._result.set_result(result)
        return True

    async def close(self) -> None:
        """Stop accepting connections. Safe to call more than once."""
        if self._server is None:
            return
        server, self._server = self._server, None
        server.close()
        # wait_closed() also waits for open connections, so none may be left idle.
        pending = {task for task in self._handlers if not task.done()}
        if pending:
            _, pending = await asyncio.wait(pending, timeout=_CLOSE_GRACE)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await server.wait_closed()
        if self._result is not None and not self._result.done():
            self._result.cancel()
        debug("Callback listener closed")

    # ------------------------------------------------------------------ #
    # Connection handling
    # ------------------------------------------------------------------ #

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._handlers.add(task)
            task.add_done_callback(self._handlers.discard)
        try:
            try:
                request_line = await asyncio.wait_for(
                    self._read_request(reader), self._read_timeout
                )
            except asyncio.TimeoutError:
                debug("Callback connection sent no request in time; dropping it")
                return

            if request_line is None:
                await self._respond(writer, HTTPStatus.BAD_REQUEST, "<h1>Request Too Long</h1>")
                return

            parts = request_line.split(" ")
            if len(parts) != 3 or not parts[2].startswith("HTTP/"):
                await self._respond(writer, HTTPStatus.BAD_REQUEST, "<h1>Bad Request</h1>")
                return

            method, target, _ = parts
            parsed = urlparse(target)
            if method != "GET" or parsed.path != self._path:
                await self._respond(writer, HTTPStatus.NOT_FOUND, "<h1>Not Found</h1>")
                return

            result = parse_callback_query(parsed.query)
            if not self.publish(result):
                debug("Ignoring repeated OAuth callback")
                await self._respond(writer, HTTPStatus.OK, _DONE_PAGE)
            elif result.error is not None:
                await self._respond(
                    writer, HTTPStatus.OK, _FAILURE_PAGE.format(detail=html.escape(result.error))
                )
            else:
                await self._respond(writer, HTTPStatus.OK, _SUCCESS_PAGE)
        except (ConnectionError, asyncio.IncompleteReadError) as exc:
            debug(f"Callback connection dropped: {exc}")
        finally:
            writer.close()

    @staticmethod
    async def _read_request(reader: asyncio.StreamReader) -> Optional[str]:
        """Read the request line and skip the headers.

        Returns ``None`` when the request line exceeds the stream limit.
        Headers are still consumed so the error page reaches the client.
        """
        try:
            request_line: Optional[str] = (await reader.readline()).decode("latin-1").strip()
        except ValueError:
            request_line = None
        for _ in range(_MAX_HEADER_LINES):
            try:
                line = await reader.readline()
            except ValueError:
                continue
            if line in (b"\r\n", b"\n", b""):
                break
        return request_line

    @staticmethod
    async def _respond(writer: asyncio.StreamWriter, status: HTTPStatus, body: str) -> None:
        payload = f"<html><body>{body}</body></html>".encode("utf-8")
        head = (
            f"HTTP/1.1 {status.value} {status.phrase}\r\n"
            "Content-Type: text/html; charset=utf-8\r\n"
            f"Content-Length: {len(payload)}\r\n"
            "Connection: close\r\n"
            "\r\n"
        ).encode("ascii")
        writer.write(head + payload)
        await writer.drain()
