"""Exception hierarchy for usso.

All exceptions inherit from :class:`UssoError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`usso.exit_codes`.
The top-level error handler in :func:`usso.app.main` catches
``UssoError`` and exits with the appropriate code. Library callers can
catch the individual subclasses to tell the failure kinds apart.

Subclass hierarchy::

    UssoError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- TransportError          (exit 6)
    +-- ProtocolError           (exit 5, or 3 for HTTP 401 / 403)
    +-- ResponseError           (exit 5)
    +-- DeserializationError    (exit 7)
    +-- SigningError            (exit 8)
    +-- ConfigError             (exit 1)
"""

from __future__ import annotations

from typing import Optional

from usso.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_DESERIALIZATION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PROTOCOL_ERROR,
    EXIT_SIGNING_ERROR,
)


class UssoError(Exception):
    """Base exception for all usso errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`usso.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(UssoError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class TransportError(UssoError):
    """Raised when the token request could not be completed (DNS, refused, timeout)."""

    exit_code = EXIT_CONNECTION_ERROR


class ProtocolError(UssoError):
    """Raised when the SSO server answers the token request with a non-2xx status.

    Attributes:
        status_code: The HTTP status returned by the server.
        body: The raw response body, kept for diagnostics.
        code: The ``code`` field of a JSON error body (e.g.
            ``"INVALID_CREDENTIALS"`` or ``"TWOFACTOR_REQUIRED"``), if any.
        detail: The ``message`` field of a JSON error body, if any.
    """

    exit_code = EXIT_PROTOCOL_ERROR

    def __init__(
        self,
        status_code: int,
        body: str = "",
        code: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        message = f"HTTP {status_code}"
        if detail:
            message = f"{message}: {detail}"
        elif body:
            message = f"{message}: {body[:200]}"
        super().__init__(
            message,
            exit_code=EXIT_AUTH_FAILURE if status_code in (401, 403) else None,
        )
        self.status_code = status_code
        self.body = body
        self.code = code
        self.detail = detail

    @property
    def twofactor_required(self) -> bool:
        """Whether the server is asking for a one-time password."""
        return self.code == "TWOFACTOR_REQUIRED"


class ResponseError(UssoError):
    """Raised by ``usso request`` when a signed request gets a non-2xx status.

    The status always maps to the protocol exit code, including 401 and
    403: the resource server refused the token, not the account password.

    Attributes:
        status_code: The HTTP status returned by the resource server.
        body: The raw response body, kept for diagnostics.
    """

    exit_code = EXIT_PROTOCOL_ERROR

    def __init__(self, status_code: int, body: str = ""):
        message = f"HTTP {status_code}"
        if body:
            message = f"{message}: {body[:200]}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DeserializationError(UssoError):
    """Raised when a token response is not valid JSON or lacks required fields."""

    exit_code = EXIT_DESERIALIZATION_ERROR


class SigningError(UssoError):
    """Raised when an OAuth signature cannot be computed for a request."""

    exit_code = EXIT_SIGNING_ERROR


class ConfigError(UssoError):
    """Raised for configuration problems (invalid JSON, unreadable token files)."""

    exit_code = EXIT_GENERIC_FAILURE
