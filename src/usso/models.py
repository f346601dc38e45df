"""Canonical Pydantic models shared across all usso modules.

The models fall into two groups:

**Protocol models** -- exchanged with the SSO server or produced from its
responses: :class:`Credentials` and :class:`SSOData`.

**Configuration models** -- serialised as JSON in the user's config
directory: :class:`UssoConfig`.

All models use Pydantic v2. :class:`SSOData` is frozen so that a single
token can be shared by concurrent signing calls without copying.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    import httpx


# --- Protocol models ---


class Credentials(BaseModel):
    """Transient input for a token exchange.

    The ``token_name`` is a human-readable label chosen by the caller for
    the issued token; it is unrelated to the token's key or secret.

    Example::

        Credentials(email="foo@bar.com", password="secret", token_name="laptop")
    """

    email: str
    password: str
    token_name: str
    otp: Optional[str] = Field(
        default=None, description="One-time password for two-factor accounts"
    )

    def to_payload(self) -> dict[str, str]:
        """Return the JSON body of the token request.

        Key order is ``email``, ``password``, ``token_name``; ``otp`` is
        appended only when set.
        """
        payload = {
            "email": self.email,
            "password": self.password,
            "token_name": self.token_name,
        }
        if self.otp:
            payload["otp"] = self.otp
        return payload


class SSOData(BaseModel):
    """An OAuth token issued by the SSO server.

    ``base_url`` records which server issued the token. It is not part of
    the server's JSON response and is filled in by the exchanger.

    Instances are immutable. Callers own persistence: ``model_dump()`` and
    ``model_validate()`` round-trip the record through JSON.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = ""
    consumer_key: str
    consumer_secret: str
    token_key: str
    token_secret: str
    token_name: str = ""

    def sign(self, request: httpx.Request, **kwargs: Any) -> None:
        """Sign *request* in place. See :func:`usso.oauth.sign_request`."""
        from usso.oauth import sign_request

        sign_request(self, request, **kwargs)


# --- Configuration models ---


class UssoConfig(BaseModel):
    """User configuration stored in ``config.json``.

    ``server`` is either a well-known name (``production``, ``staging``) or
    the base URL of a custom SSO instance.
    """

    server: str = Field(
        default="production", description="production, staging, or a base URL"
    )
    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    token_file: Optional[str] = Field(
        default=None, description="Default token file for sign and request"
    )
