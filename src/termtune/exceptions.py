"""Exception hierarchy for termtune.

All exceptions inherit from :class:`TermtuneError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`termtune.exit_codes`.
The top-level error handler in :func:`termtune.app.main` catches
``TermtuneError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    TermtuneError (exit 1)
    +-- InvalidUsageError          (exit 2)
    +-- AuthError                  (exit 3)
    |   +-- NotAuthenticatedError
    |   +-- AuthorizationDeniedError
    |   +-- StateMismatchError
    |   +-- AuthTimeoutError
    |   +-- TokenExchangeError
    |   +-- TokenProtocolError
    +-- NotFoundError              (exit 4)
    +-- ApiError                   (exit 5)
    |   +-- ServerError
    +-- ConnectionError_           (exit 6)
    +-- ListenerBindError          (exit 8)
    +-- ConfigError                (exit 1)
"""

from __future__ import annotations

from termtune.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_LISTENER_UNAVAILABLE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class TermtuneError(Exception):
    """Base exception for all termtune errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`termtune.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(TermtuneError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(TermtuneError):
    """Raised when authentication or authorisation fails."""

    exit_code = EXIT_AUTH_FAILURE


class NotAuthenticatedError(AuthError):
    """Raised when an operation needs a user session and none is stored.

    This is a recoverable condition: the user can run ``termtune auth login``
    and try again.
    """

    def __init__(self, message: str = "Not authenticated. Run 'termtune auth login' first."):
        super().__init__(message)


class AuthorizationDeniedError(AuthError):
    """Raised when the authorization server redirects back with an ``error``.

    Args:
        error: The ``error`` query parameter, reported verbatim
            (e.g. ``access_denied``).
        description: Optional ``error_description`` parameter.
    """

    def __init__(self, error: str, description: str | None = None):
        message = f"Authorization failed: {error}"
        if description:
            message += f" - {description}"
        super().__init__(message)
        self.error = error
        self.description = description


class StateMismatchError(AuthError):
    """Raised when the callback ``state`` does not match the one sent.

    Treated as a security violation: the authorization code is discarded
    and no token exchange is attempted.
    """

    def __init__(self) -> None:
        super().__init__(
            "State mismatch in OAuth callback; the authorization code was discarded"
        )


class AuthTimeoutError(AuthError):
    """Raised when a caller-imposed wait for the browser callback expires."""


class TokenExchangeError(AuthError):
    """Raised when the token endpoint answers with a non-success status.

    The response body is kept unmodified in :attr:`body` because the
    provider's error detail (``invalid_grant`` and friends) is meaningful
    to the user.

    Args:
        action: Short label for the failed call (``"Token exchange"``,
            ``"Token refresh"``).
        status_code: HTTP status returned by the token endpoint.
        body: Raw response body.
    """

    def __init__(self, action: str, status_code: int, body: str):
        super().__init__(f"{action} failed with status {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class TokenProtocolError(AuthError):
    """Raised when a success response from the token endpoint is malformed."""


class NotFoundError(TermtuneError):
    """Raised when the API returns HTTP 404 (resource not found)."""

    exit_code = EXIT_NOT_FOUND


class ApiError(TermtuneError):
    """Raised when the API returns an error status not covered elsewhere."""

    exit_code = EXIT_SERVER_ERROR


class ServerError(ApiError):
    """Raised when the API returns an HTTP 5xx server error."""


class ConnectionError_(TermtuneError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ListenerBindError(TermtuneError):
    """Raised when the loopback callback listener cannot bind its port.

    Kept outside :class:`AuthError` so that "port in use" is never reported
    as a completed-but-failed authentication.
    """

    exit_code = EXIT_LISTENER_UNAVAILABLE


class ConfigError(TermtuneError):
    """Raised for configuration problems (invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE
