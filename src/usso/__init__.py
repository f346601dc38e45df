"""usso -- a client for Ubuntu SSO OAuth tokens.

Exchange an email and password for a long-lived OAuth token, then sign
outgoing HTTP requests with it so resource servers can authenticate them
without ever seeing the password.

Typical usage::

    import httpx
    from usso import PRODUCTION_SERVER, SSOAuth

    token = PRODUCTION_SERVER.get_token("foo@bar.com", password, "laptop")
    with httpx.Client(auth=SSOAuth(token)) as client:
        client.get("https://api.example.com/me")

Modules:
    server: Well-known SSO endpoints and token URL derivation.
    client: The token exchange.
    oauth: OAuth 1.0a request signing.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and token files for the CLI.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
    app: Typer CLI.
"""

__version__ = "0.1.0"

from usso.client import get_token
from usso.exceptions import (
    DeserializationError,
    ProtocolError,
    ResponseError,
    SigningError,
    TransportError,
    UssoError,
)
from usso.models import Credentials, SSOData
from usso.oauth import SSOAuth, percent_encode, sign_request
from usso.server import PRODUCTION_SERVER, STAGING_SERVER, UbuntuSSOServer

__all__ = [
    "Credentials",
    "DeserializationError",
    "PRODUCTION_SERVER",
    "ProtocolError",
    "ResponseError",
    "SSOAuth",
    "SSOData",
    "STAGING_SERVER",
    "SigningError",
    "TransportError",
    "UbuntuSSOServer",
    "UssoError",
    "get_token",
    "percent_encode",
    "sign_request",
]
