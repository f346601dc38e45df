"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~usso.exceptions.UssoError` subclass.
Shell wrappers can inspect the exit code to tell a rejected password from
an unreachable server without parsing stderr.

Example::

    $ usso login foo@bar.com --token-name laptop
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- credentials were rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""The SSO server rejected the account credentials (HTTP 401 / 403) during login."""

EXIT_PROTOCOL_ERROR = 5
"""The SSO server, or the resource behind a signed request, answered with a
non-success HTTP status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_DESERIALIZATION_ERROR = 7
"""The SSO server response was not valid JSON or lacked required fields."""

EXIT_SIGNING_ERROR = 8
"""An OAuth signature could not be computed for the request."""
