# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_identity

import base64
import socket
from types import SimpleNamespace
from typing import Any, AsyncGenerator, Callable, Generator
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
from pydantic import SecretStr

from coreason_openid.models import ProviderConfig

ISSUER = "https://idp.example.com"
BASE_URL = "https://app.example.com"
CALLBACK_URL = BASE_URL + "/api/session/openid/callback"


@pytest.fixture(autouse=True)
def mock_dns_resolution() -> Generator[MagicMock, None, None]:
    """
    Globally patches socket.getaddrinfo to return a safe public IP by default,
    so dummy domains never hit real DNS.

    Tests of the SSRF transport patch socket.getaddrinfo again with their own answers.
    """
    safe_response = [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("8.8.8.8", 443))]

    with patch("socket.getaddrinfo", return_value=safe_response) as mock:
        yield mock


class FakeIdentityProvider:
    """
    In-memory OpenID provider served through `httpx.MockTransport`.

    Mutate the attributes to change what the next request sees; every request is kept in `requests`.
    """

    def __init__(self) -> None:
        self.metadata: dict[str, Any] = {
            "issuer": ISSUER,
            "authorization_endpoint": f"{ISSUER}/authorize",
            "token_endpoint": f"{ISSUER}/oauth/token",
            "userinfo_endpoint": f"{ISSUER}/userinfo",
            "jwks_uri": f"{ISSUER}/jwks",
        }
        self.valid_code = "good-code"
        self.access_token = "at-123"
        self.token_status = 200
        self.token_payload: dict[str, Any] | None = None
        self.userinfo_status = 200
        self.claims: dict[str, Any] = {"email": "a@b.com", "name": "A B", "groups": ["admins"]}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/.well-known/openid-configuration":
            return httpx.Response(200, json=self.metadata)

        if path == "/oauth/token":
            if self.token_payload is not None:
                return httpx.Response(self.token_status, json=self.token_payload)
            expected = base64.b64encode(b"cid:secret").decode()
            if request.headers.get("Authorization") != f"Basic {expected}":
                return httpx.Response(401, json={"error": "invalid_client"})
            form = parse_qs(request.content.decode())
            if form.get("code") != [self.valid_code]:
                return httpx.Response(
                    400, json={"error": "invalid_grant", "error_description": "Authorization code is invalid"}
                )
            return httpx.Response(
                self.token_status,
                json={"access_token": self.access_token, "token_type": "Bearer", "expires_in": 3600},
            )

        if path == "/userinfo":
            if request.headers.get("Authorization") != f"Bearer {self.access_token}":
                return httpx.Response(401, json={"error": "invalid_token"})
            return httpx.Response(self.userinfo_status, json=self.claims)

        return httpx.Response(404, json={"error": "not_found"})

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def idp() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest_asyncio.fixture
async def http_client(idp: FakeIdentityProvider) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(idp.handler)) as client:
        yield client


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig(
        client_id="cid",
        client_secret=SecretStr("secret"),
        callback_url=CALLBACK_URL,
        authorization_endpoint=f"{ISSUER}/authorize",
        token_endpoint=f"{ISSUER}/oauth/token",
        userinfo_endpoint=f"{ISSUER}/userinfo",
        base_url=BASE_URL,
        admin_group="admins",
    )


@pytest.fixture
def login_service() -> MagicMock:
    service = MagicMock()
    service.login.return_value = SimpleNamespace(id=1, email="a@b.com")
    return service


@pytest.fixture
def session_manager() -> MagicMock:
    return MagicMock()


@pytest.fixture
def action_logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def make_request() -> Callable[..., SimpleNamespace]:
    """Factory for minimal objects satisfying the CallbackRequest protocol."""

    def _make(**query_params: str) -> SimpleNamespace:
        return SimpleNamespace(query_params=dict(query_params))

    return _make
