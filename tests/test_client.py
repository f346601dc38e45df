"""Tests for the token exchange."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from usso.client import get_token, parse_token_response
from usso.exceptions import (
    DeserializationError,
    ProtocolError,
    TransportError,
    UssoError,
)
from usso.exit_codes import EXIT_AUTH_FAILURE, EXIT_PROTOCOL_ERROR
from usso.models import SSOData
from usso.server import UbuntuSSOServer

EMAIL = "foo@bar.com"
PASSWORD = "foobarpwd"
TOKEN_NAME = "foo"

SERVER = UbuntuSSOServer(base_url="http://sso.test")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _SingleServingServer:
    """Record the one request it receives and answer with a fixed response."""

    def __init__(self, body: str, status_code: int = 200) -> None:
        self.body = body
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path != "/api/v2/tokens":
            return httpx.Response(404, text="404 page not found")
        return httpx.Response(self.status_code, text=self.body)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


def _client_from_handler(handler: Callable[[httpx.Request], Any]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Successful exchange
# ---------------------------------------------------------------------------


class TestGetTokenSuccess:
    def test_returns_token(self, token_response: dict[str, str]) -> None:
        server = _SingleServingServer(json.dumps(token_response))

        token = get_token(SERVER, EMAIL, PASSWORD, TOKEN_NAME, client=server.client())

        assert token == SSOData(
            base_url="http://sso.test",
            consumer_key=token_response["consumer_key"],
            consumer_secret=token_response["consumer_secret"],
            token_key=token_response["token_key"],
            token_secret=token_response["token_secret"],
            token_name=token_response["token_name"],
        )

    def test_request_body_is_exact_json(self, token_response: dict[str, str]) -> None:
        server = _SingleServingServer(json.dumps(token_response))

        get_token(SERVER, EMAIL, PASSWORD, TOKEN_NAME, client=server.client())

        assert len(server.requests) == 1
        assert server.requests[0].content == (
            b'{"email":"foo@bar.com","password":"foobarpwd","token_name":"foo"}'
        )

    def test_request_is_json_post_to_token_url(
        self, token_response: dict[str, str]
    ) -> None:
        server = _SingleServingServer(json.dumps(token_response))

        get_token(SERVER, EMAIL, PASSWORD, TOKEN_NAME, client=server.client())

        request = server.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "http://sso.test/api/v2/tokens"
        assert request.headers["Content-Type"] == "application/json"

    def test_otp_is_sent_when_given(self, token_response: dict[str, str]) -> None:
        server = _SingleServingServer(json.dumps(token_response))

        get_token(
            SERVER, EMAIL, PASSWORD, TOKEN_NAME, otp="123456", client=server.client()
        )

        assert json.loads(server.requests[0].content) == {
            "email": EMAIL,
            "password": PASSWORD,
            "token_name": TOKEN_NAME,
            "otp": "123456",
        }

    def test_server_method_delegates(self, token_response: dict[str, str]) -> None:
        server = _SingleServingServer(json.dumps(token_response))

        token = SERVER.get_token(EMAIL, PASSWORD, TOKEN_NAME, client=server.client())

        assert token.token_key == token_response["token_key"]
        assert token.base_url == SERVER.base_url

    def test_any_2xx_is_success(self, token_response: dict[str, str]) -> None:
        server = _SingleServingServer(json.dumps(token_response), status_code=201)

        token = get_token(SERVER, EMAIL, PASSWORD, TOKEN_NAME, client=server.client())

        assert token.token_name == TOKEN_NAME

    def test_single_request_per_call(self) -> None:
        server = _SingleServingServer("oops", status_code=503)

        with pytest.raises(ProtocolError):
            get_token(SERVER, EMAIL, PASSWORD, TOKEN_NAME, client=server.client())

        assert len(server.requests) == 1


class TestGetTokenOwnedClient:
    """Without ``client=``, get_token opens and closes its own httpx.Client."""

    @pytest.fixture
    def created(
        self, monkeypatch: pytest.MonkeyPatch, token_response: dict[str, str]
    ) -> list[tuple[dict[str, Any], httpx.Client]]:
        server = _SingleServingServer(json.dumps(token_response))
        real_client = httpx.Client
        clients: list[tuple[dict[str, Any], httpx.Client]] = []

        def factory(**kwargs: Any) -> httpx.Client:
            client = real_client(transport=httpx.MockTransport(server), **kwargs)
            clients.append((kwargs, client))
            return client

        monkeypatch.setattr("usso.client.httpx.Client", factory)
        return clients

    def test_timeout_and_verify_are_forwarded(self, created) -> None:
        token = get_token(
            SERVER, EMAIL, PASSWORD, TOKEN_NAME, timeout=4.5, verify_ssl=False
        )

        assert token.token_name == TOKEN_NAME
        [(kwargs, _)] = created
        assert kwargs == {"timeout": 4.5, "verify": False}

    def test_defaults(self, created) -> None:
        get_token(SERVER, EMAIL, PASSWORD, TOKEN_NAME)

        [(kwargs, _)] = created
        assert kwargs == {"timeout": 30.0, "verify": True}

    def test_client_is_closed_afterwards(self, created) -> None:
        get_token(SERVER, EMAIL, PASSWORD, TOKEN_NAME)

        [(_, client)] = created
        assert client.is_closed


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestGetTokenProtocolErrors:
    def test_non_2xx_raises_protocol_error(self) -> None:
        server = _SingleServingServer("Internal failure", status_code=500)

        with pytest.raises(ProtocolError) as exc_info:
            get_token(SERVER, EMAIL, PASSWORD, TOKEN_NAME, client=server.client())

        assert exc_info.value.status_code == 500
        assert exc_info.value.body == "Internal failure"
        assert "HTTP 500" in str(exc_info.value)
        assert exc_info.value.exit_code == EXIT_PROTOCOL_ERROR

    def test_json_error_body_is_parsed(self) -> None:
        body = json.dumps(
            {
                "code": "INVALID_CREDENTIALS",
                "message": "Provided email/password is not correct.",
                "extra": {},
            }
        )
        server = _SingleServingServer(body, status_code=401)

        with pytest.raises(ProtocolError) as exc_info:
            get_token(SERVER, EMAIL, PASSWORD, TOKEN_NAME, client=server.client())

        err = exc_info.value
        assert err.code == "INVALID_CREDENTIALS"
        assert err.detail == "Provided email/password is not correct."
        assert err.body == body
        assert err.exit_code == EXIT_AUTH_FAILURE
        assert not err.twofactor_required

    def test_twofactor_required(self) -> None:
        body = json.dumps({"code": "TWOFACTOR_REQUIRED", "message": "2FA required."})
        server = _SingleServingServer(body, status_code=401)

        with pytest.raises(ProtocolError) as exc_info:
            get_token(SERVER, EMAIL, PASSWORD, TOKEN_NAME, client=server.client())

        assert exc_info.value.twofactor_required

    def test_wrong_path_surfaces_404(self) -> None:
        server = _SingleServingServer("{}")
        other = UbuntuSSOServer(base_url="http://sso.test/prefix")

        with pytest.raises(ProtocolError) as exc_info:
            get_token(other, EMAIL, PASSWORD, TOKEN_NAME, client=server.client())

        assert exc_info.value.status_code == 404
        assert exc_info.value.body == "404 page not found"


class TestGetTokenTransportErrors:
    def test_connect_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(TransportError, match="Connection refused"):
            get_token(
                SERVER, EMAIL, PASSWORD, TOKEN_NAME, client=_client_from_handler(handler)
            )

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TransportError):
            get_token(
                SERVER, EMAIL, PASSWORD, TOKEN_NAME, client=_client_from_handler(handler)
            )

    def test_errors_share_base_class(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("DNS failure", request=request)

        with pytest.raises(UssoError):
            get_token(
                SERVER, EMAIL, PASSWORD, TOKEN_NAME, client=_client_from_handler(handler)
            )


class TestGetTokenDeserializationErrors:
    def test_invalid_json(self) -> None:
        server = _SingleServingServer("<html>not json</html>")

        with pytest.raises(DeserializationError, match="not valid JSON"):
            get_token(SERVER, EMAIL, PASSWORD, TOKEN_NAME, client=server.client())

    def test_missing_field(self, token_response: dict[str, str]) -> None:
        del token_response["token_secret"]
        server = _SingleServingServer(json.dumps(token_response))

        with pytest.raises(DeserializationError, match="token_secret"):
            get_token(SERVER, EMAIL, PASSWORD, TOKEN_NAME, client=server.client())


class TestParseTokenResponse:
    def test_ignores_metadata(self, token_response: dict[str, str]) -> None:
        token = parse_token_response(json.dumps(token_response), "https://x")
        assert token.model_dump() == {
            "base_url": "https://x",
            "consumer_key": token_response["consumer_key"],
            "consumer_secret": token_response["consumer_secret"],
            "token_key": token_response["token_key"],
            "token_secret": token_response["token_secret"],
            "token_name": token_response["token_name"],
        }

    def test_non_object_body(self) -> None:
        with pytest.raises(DeserializationError, match="JSON object"):
            parse_token_response("[1, 2, 3]", "https://x")

    def test_empty_body(self) -> None:
        with pytest.raises(DeserializationError):
            parse_token_response("", "https://x")

    def test_non_string_field(self, token_response: dict[str, Any]) -> None:
        token_response["token_key"] = 42
        with pytest.raises(DeserializationError, match="token_key"):
            parse_token_response(json.dumps(token_response), "https://x")

    def test_lists_all_missing_fields(self) -> None:
        with pytest.raises(DeserializationError) as exc_info:
            parse_token_response(json.dumps({"token_key": "abc"}), "https://x")
        message = str(exc_info.value)
        for name in ("consumer_key", "consumer_secret", "token_secret", "token_name"):
            assert name in message
