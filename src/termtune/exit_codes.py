"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~termtune.exceptions.TermtuneError` subclass.
Shell wrappers can inspect the exit code to tell "you need to log in"
apart from "the network is down" without parsing stderr.

Example::

    $ termtune player status
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- no session, run `termtune auth login`
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed, was denied, or no session is available."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an error status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_LISTENER_UNAVAILABLE = 8
"""The local callback listener could not bind its loopback port."""
