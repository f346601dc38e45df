"""OAuth 1.0a request signing with an SSO-issued token.

:func:`sign_request` adds an ``Authorization`` header to an
:class:`httpx.Request`::

    Authorization: OAuth realm="API", oauth_consumer_key="...",
        oauth_token="...", oauth_signature_method="PLAINTEXT",
        oauth_signature="...", oauth_timestamp="...", oauth_nonce="...",
        oauth_version="1.0"

The default ``PLAINTEXT`` method computes no digest: the signature is
``percent_encode(consumer_secret) + "&" + percent_encode(token_secret)``
and the server compares it verbatim. ``HMAC-SHA1`` (:rfc:`5849` section
3.4.2) is available for servers that expect it, but is never used unless
asked for; the SSO resource servers verify PLAINTEXT.

:class:`SSOAuth` wraps the same logic as an :class:`httpx.Auth` so a
client signs everything it sends::

    with httpx.Client(auth=SSOAuth(token)) as client:
        client.get("https://api.example.com/me")
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import time
from collections.abc import Generator
from typing import Optional
from urllib.parse import parse_qsl, quote

import httpx

from usso.exceptions import SigningError
from usso.models import SSOData

SIGNATURE_PLAINTEXT = "PLAINTEXT"
SIGNATURE_HMAC_SHA1 = "HMAC-SHA1"
SIGNATURE_METHODS = (SIGNATURE_PLAINTEXT, SIGNATURE_HMAC_SHA1)

REALM = "API"
OAUTH_VERSION = "1.0"

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
_DEFAULT_PORTS = {"http": 80, "https": 443}


def percent_encode(value: str) -> str:
    """Percent-encode *value* per :rfc:`3986` / :rfc:`5849` section 3.6.

    Only the unreserved characters ``A-Z a-z 0-9 - . _ ~`` are left as-is;
    everything else is UTF-8 encoded and written as uppercase ``%XX``.
    A space becomes ``%20``, never ``+``.
    """
    return quote(value.encode("utf-8"), safe="~")


def generate_nonce() -> str:
    """Return a random, single-use nonce."""
    return secrets.token_hex(16)


def generate_timestamp() -> str:
    """Return the current Unix time in whole seconds."""
    return str(int(time.time()))


def plaintext_signature(consumer_secret: str, token_secret: str) -> str:
    """Return the PLAINTEXT signature (also the HMAC-SHA1 key)."""
    return percent_encode(consumer_secret) + "&" + percent_encode(token_secret)


def signature_base_string(
    request: httpx.Request, oauth_params: dict[str, str]
) -> str:
    """Build the :rfc:`5849` section 3.4.1 signature base string for *request*.

    Parameters are collected from the query string, from a form-encoded
    body, and from *oauth_params* (``realm`` and ``oauth_signature``
    excluded), then encoded, sorted and joined.
    """
    url = request.url
    port = url.port
    authority = url.host
    if ":" in authority:
        authority = f"[{authority}]"
    if port is not None and port != _DEFAULT_PORTS.get(url.scheme):
        authority = f"{authority}:{port}"
    path = url.raw_path.decode("ascii").split("?", 1)[0] or "/"
    base_uri = f"{url.scheme}://{authority}{path}"

    params: list[tuple[str, str]] = parse_qsl(
        url.query.decode("ascii"), keep_blank_values=True
    )
    content_type = request.headers.get("Content-Type", "")
    if content_type.split(";", 1)[0].strip().lower() == _FORM_CONTENT_TYPE:
        params.extend(
            parse_qsl(request.read().decode("utf-8"), keep_blank_values=True)
        )
    params.extend(
        (key, value)
        for key, value in oauth_params.items()
        if key not in ("realm", "oauth_signature")
    )

    encoded = sorted((percent_encode(k), percent_encode(v)) for k, v in params)
    normalized = "&".join(f"{k}={v}" for k, v in encoded)

    return "&".join(
        percent_encode(part)
        for part in (request.method.upper(), base_uri, normalized)
    )


def hmac_sha1_signature(
    token: SSOData, request: httpx.Request, oauth_params: dict[str, str]
) -> str:
    """Return the base64 HMAC-SHA1 signature of *request*."""
    key = plaintext_signature(token.consumer_secret, token.token_secret)
    base = signature_base_string(request, oauth_params)
    digest = hmac.new(key.encode("ascii"), base.encode("ascii"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def build_authorization_header(
    token: SSOData,
    request: httpx.Request,
    signature_method: str = SIGNATURE_PLAINTEXT,
    nonce: Optional[str] = None,
    timestamp: Optional[str] = None,
) -> str:
    """Compute the ``Authorization`` header value for *request*.

    Args:
        token: The token to sign with.
        request: The request being signed. Not modified.
        signature_method: :data:`SIGNATURE_PLAINTEXT` or
            :data:`SIGNATURE_HMAC_SHA1`.
        nonce: Override the generated nonce (tests only).
        timestamp: Override the generated timestamp (tests only).

    Raises:
        SigningError: If the method is unknown, the URL has no http(s)
            scheme or host, or a token field cannot be encoded.
    """
    if signature_method not in SIGNATURE_METHODS:
        raise SigningError(f"Unsupported signature method: {signature_method}")

    url = request.url
    if url.scheme not in _DEFAULT_PORTS or not url.host:
        raise SigningError(f"Cannot sign request with URL '{url}'")

    params = {
        "realm": REALM,
        "oauth_consumer_key": token.consumer_key,
        "oauth_token": token.token_key,
        "oauth_signature_method": signature_method,
        "oauth_signature": "",
        "oauth_timestamp": timestamp or generate_timestamp(),
        "oauth_nonce": nonce or generate_nonce(),
        "oauth_version": OAUTH_VERSION,
    }

    try:
        if signature_method == SIGNATURE_HMAC_SHA1:
            params["oauth_signature"] = hmac_sha1_signature(token, request, params)
        else:
            params["oauth_signature"] = plaintext_signature(
                token.consumer_secret, token.token_secret
            )
        return "OAuth " + ", ".join(
            f'{key}="{percent_encode(value)}"' for key, value in params.items()
        )
    except (AttributeError, TypeError, UnicodeError) as exc:
        raise SigningError(f"Cannot encode OAuth parameters: {exc}") from exc


def sign_request(
    token: SSOData,
    request: httpx.Request,
    signature_method: str = SIGNATURE_PLAINTEXT,
    nonce: Optional[str] = None,
    timestamp: Optional[str] = None,
) -> None:
    """Set the OAuth ``Authorization`` header on *request*.

    Any existing ``Authorization`` header is replaced. The header is fully
    computed before the request is touched, so on :class:`SigningError`
    the request is left unchanged.
    """
    header = build_authorization_header(
        token,
        request,
        signature_method=signature_method,
        nonce=nonce,
        timestamp=timestamp,
    )
    request.headers["Authorization"] = header


class SSOAuth(httpx.Auth):
    """httpx auth flow that signs every request with an SSO token.

    Args:
        token: The token to sign with.
        signature_method: :data:`SIGNATURE_PLAINTEXT` (default) or
            :data:`SIGNATURE_HMAC_SHA1`.
    """

    requires_request_body = True

    def __init__(
        self, token: SSOData, signature_method: str = SIGNATURE_PLAINTEXT
    ) -> None:
        self._token = token
        self._signature_method = signature_method

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        sign_request(self._token, request, signature_method=self._signature_method)
        yield request
