"""Ubuntu SSO server endpoints.

A :class:`UbuntuSSOServer` is an immutable value holding the base URL of an
SSO instance. Two well-known instances are provided as module constants,
and any other instance can be built from a caller-supplied base URL::

    from usso.server import PRODUCTION_SERVER, UbuntuSSOServer

    PRODUCTION_SERVER.token_url()
    # 'https://login.ubuntu.com/api/v2/tokens'

    UbuntuSSOServer(base_url="http://localhost:8000").token_url()
    # 'http://localhost:8000/api/v2/tokens'

Base URLs are used verbatim; supply them without a trailing slash.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from usso.models import SSOData

_TOKEN_PATH = "/api/v2/tokens"


class UbuntuSSOServer(BaseModel):
    """An SSO service instance identified by its base URL."""

    model_config = ConfigDict(frozen=True)

    base_url: str

    def token_url(self) -> str:
        """Return the token-issuance endpoint of this server."""
        return self.base_url + _TOKEN_PATH

    def get_token(
        self, email: str, password: str, token_name: str, **kwargs: Any
    ) -> SSOData:
        """Exchange credentials for a token. See :func:`usso.client.get_token`."""
        from usso.client import get_token

        return get_token(self, email, password, token_name, **kwargs)


PRODUCTION_SERVER = UbuntuSSOServer(base_url="https://login.ubuntu.com")
STAGING_SERVER = UbuntuSSOServer(base_url="https://login.staging.ubuntu.com")

_KNOWN_SERVERS: dict[str, UbuntuSSOServer] = {
    "production": PRODUCTION_SERVER,
    "staging": STAGING_SERVER,
}


def resolve_server(name_or_url: str) -> UbuntuSSOServer:
    """Map a well-known server name or a base URL to a server.

    Args:
        name_or_url: ``"production"``, ``"staging"`` (case-insensitive),
            or the base URL of a custom instance.

    Returns:
        The matching well-known server, or a custom one for any other value.
    """
    known = _KNOWN_SERVERS.get(name_or_url.lower())
    if known is not None:
        return known
    return UbuntuSSOServer(base_url=name_or_url)
