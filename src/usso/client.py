"""Token exchange: trade an email and password for an OAuth token.

:func:`get_token` performs a single ``POST {base_url}/api/v2/tokens`` with
a JSON body and turns the answer into an :class:`~usso.models.SSOData`.
Failures are mapped onto the typed errors of :mod:`usso.exceptions`:

- network / DNS / timeout failures -> :class:`~usso.exceptions.TransportError`
- non-2xx answers -> :class:`~usso.exceptions.ProtocolError`
- unparseable or incomplete bodies -> :class:`~usso.exceptions.DeserializationError`

Nothing is retried; callers re-invoke on failure.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx

from usso.exceptions import DeserializationError, ProtocolError, TransportError
from usso.models import Credentials, SSOData
from usso.output import get_output
from usso.server import UbuntuSSOServer

_REQUIRED_FIELDS = (
    "consumer_key",
    "consumer_secret",
    "token_key",
    "token_secret",
    "token_name",
)


def get_token(
    server: UbuntuSSOServer,
    email: str,
    password: str,
    token_name: str,
    *,
    otp: Optional[str] = None,
    client: Optional[httpx.Client] = None,
    timeout: float = 30.0,
    verify_ssl: bool = True,
) -> SSOData:
    """Request a new OAuth token from *server*.

    Args:
        server: The SSO instance to ask.
        email: Account email address.
        password: Account password.
        token_name: Label for the issued token.
        otp: One-time password, for accounts with two-factor auth enabled.
        client: Optional :class:`httpx.Client` to send the request with.
            When ``None`` a short-lived client is created using *timeout*
            and *verify_ssl*.
        timeout: Timeout in seconds for the short-lived client.
        verify_ssl: TLS verification for the short-lived client.

    Returns:
        The issued token, with ``base_url`` set to ``server.base_url``.

    Raises:
        TransportError: If the request could not be completed.
        ProtocolError: If the server answered with a non-2xx status.
        DeserializationError: If the body is not valid JSON or lacks a
            required field.
    """
    credentials = Credentials(
        email=email, password=password, token_name=token_name, otp=otp
    )
    url = server.token_url()
    get_output().debug(f"Requesting token '{token_name}' from {url}")

    if client is not None:
        response = _post_credentials(client, url, credentials)
    else:
        with httpx.Client(timeout=timeout, verify=verify_ssl) as owned:
            response = _post_credentials(owned, url, credentials)

    get_output().debug(f"Token endpoint answered HTTP {response.status_code}")
    if not response.is_success:
        raise _protocol_error(response)
    return parse_token_response(response.text, server.base_url)


def parse_token_response(body: str, base_url: str) -> SSOData:
    """Build an :class:`SSOData` from a token endpoint JSON body.

    Fields other than the five token fields (``href``, ``date_created``,
    ``date_updated``, ...) are ignored.

    Raises:
        DeserializationError: If *body* is not a JSON object or a required
            field is missing or not a string.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError) as exc:
        raise DeserializationError(f"Token response is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise DeserializationError(
            f"Token response must be a JSON object, got {type(data).__name__}"
        )

    missing = [name for name in _REQUIRED_FIELDS if name not in data]
    if missing:
        raise DeserializationError(
            f"Token response missing field(s): {', '.join(missing)}"
        )
    wrong = [name for name in _REQUIRED_FIELDS if not isinstance(data[name], str)]
    if wrong:
        raise DeserializationError(
            f"Token response field(s) must be strings: {', '.join(wrong)}"
        )

    return SSOData(
        base_url=base_url,
        **{name: data[name] for name in _REQUIRED_FIELDS},
    )


def _post_credentials(
    client: httpx.Client, url: str, credentials: Credentials
) -> httpx.Response:
    """Send the credentials as compact JSON and return the raw response."""
    content = json.dumps(credentials.to_payload(), separators=(",", ":"))
    try:
        return client.post(
            url,
            content=content.encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )
    except httpx.TransportError as exc:
        raise TransportError(f"Token request to {url} failed: {exc}") from exc


def _protocol_error(response: httpx.Response) -> ProtocolError:
    """Build a :class:`ProtocolError`, picking ``code``/``message`` from JSON bodies."""
    body = response.text
    code: Optional[str] = None
    detail: Optional[str] = None
    try:
        payload: Any = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        if isinstance(payload.get("code"), str):
            code = payload["code"]
        if isinstance(payload.get("message"), str):
            detail = payload["message"]
    return ProtocolError(response.status_code, body=body, code=code, detail=detail)
