# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_identity

"""
OIDC client capability: authorization URL, code exchange and user-info retrieval.
"""

from collections.abc import Sequence
from typing import Any, Protocol

import httpx
from authlib.oauth2.auth import ClientAuth
from authlib.oauth2.rfc6749.errors import MissingCodeException
from authlib.oauth2.rfc6749.parameters import prepare_grant_uri, prepare_token_request
from authlib.oauth2.rfc6750 import add_bearer_token
from pydantic import ValidationError

from coreason_openid.exceptions import (
    OversizedResponseError,
    SecurityError,
    TokenExchangeError,
    UserInfoFetchError,
)
from coreason_openid.models import ProviderConfig, TokenResponse
from coreason_openid.transport import fetch_json
from coreason_openid.utils.logger import logger

FORM_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/x-www-form-urlencoded;charset=UTF-8",
}


class OIDCClientProtocol(Protocol):
    """The three protocol operations the login flow needs from an OIDC client library."""

    def authorization_url(self, scopes: Sequence[str], state: str, redirect_uri: str) -> str:
        """Returns the authorization endpoint URL for a code-flow request."""
        ...

    async def exchange_code(self, code: str, redirect_uri: str) -> TokenResponse:
        """
        Exchanges an authorization code for tokens.

        Raises:
            TokenExchangeError: If no bearer access token is obtained.
        """
        ...

    async def fetch_user_info(self, access_token: str) -> dict[str, Any]:
        """
        Returns the user-info claims.

        Raises:
            UserInfoFetchError: If the endpoint fails or returns something other than a JSON object.
        """
        ...


class HttpxOIDCClient:
    """
    `OIDCClientProtocol` implementation: authlib builds the RFC 6749/6750 messages,
    httpx sends them, pydantic validates the responses.

    Attributes:
        config (ProviderConfig): The resolved provider configuration.
        client (httpx.AsyncClient): The async HTTP client to use.
    """

    def __init__(self, config: ProviderConfig, client: httpx.AsyncClient) -> None:
        self.config = config
        self.client = client
        self._client_auth = ClientAuth(
            client_id=config.client_id,
            client_secret=config.client_secret.get_secret_value(),
            auth_method="client_secret_basic",
        )

    def authorization_url(self, scopes: Sequence[str], state: str, redirect_uri: str) -> str:
        return prepare_grant_uri(
            self.config.authorization_endpoint,
            client_id=self.config.client_id,
            response_type="code",
            redirect_uri=redirect_uri,
            scope=list(scopes),
            state=state,
        )

    async def exchange_code(self, code: str, redirect_uri: str) -> TokenResponse:
        """
        POSTs an authorization_code grant to the token endpoint using HTTP Basic
        client authentication.

        Args:
            code: The authorization code from the callback.
            redirect_uri: The redirect URI the authorization request used.

        Returns:
            TokenResponse: The validated token response.

        Raises:
            TokenExchangeError: On network failure, an IdP error, an invalid body,
                or a missing/non-bearer access token.
        """
        url = self.config.token_endpoint
        try:
            body = prepare_token_request("authorization_code", code=code, redirect_uri=redirect_uri)
        except MissingCodeException as e:
            raise TokenExchangeError("Missing authorization code") from e
        url, headers, body = self._client_auth.prepare("POST", url, dict(FORM_HEADERS), body)

        try:
            response, payload = await fetch_json(self.client, "POST", url, headers=headers, content=body)
        except (httpx.HTTPError, OversizedResponseError, SecurityError) as e:
            logger.error(f"Token request to {url} failed: {e}")
            raise TokenExchangeError("Unable to authenticate with the OpenID Connect provider") from e
        except ValueError as e:
            raise TokenExchangeError("Invalid response from the OpenID Connect token endpoint") from e

        error_payload = payload if isinstance(payload, dict) else {}
        if "error" in error_payload or not response.is_success:
            error = error_payload.get("error", f"HTTP {response.status_code}")
            description = error_payload.get("error_description")
            logger.warning(f"Token endpoint rejected the authorization code: {error}")
            message = "Unable to authenticate with the OpenID Connect provider"
            raise TokenExchangeError(f"{message}: {description}" if description else message)

        if not isinstance(payload, dict):
            raise TokenExchangeError("Invalid response from the OpenID Connect token endpoint")

        try:
            token = TokenResponse(**payload)
        except ValidationError as e:
            raise TokenExchangeError("OpenID Connect token response does not contain an access token") from e

        if token.token_type.lower() != "bearer":
            raise TokenExchangeError(f"Unsupported token type from OpenID Connect provider: {token.token_type}")

        return token

    async def fetch_user_info(self, access_token: str) -> dict[str, Any]:
        """
        GETs the user-info endpoint with the bearer access token.

        Args:
            access_token: The bearer access token.

        Returns:
            The user-info claims.

        Raises:
            UserInfoFetchError: On network failure, a non-2xx status or an invalid body.
        """
        url, headers, _ = add_bearer_token(
            access_token, self.config.userinfo_endpoint, {"Accept": "application/json"}, None, placement="header"
        )

        try:
            response, payload = await fetch_json(self.client, "GET", url, headers=headers)
        except (httpx.HTTPError, OversizedResponseError, SecurityError) as e:
            logger.error(f"User info request to {url} failed: {e}")
            raise UserInfoFetchError("Failed to access OpenID Connect user info endpoint") from e
        except ValueError as e:
            raise UserInfoFetchError("Invalid response from OpenID Connect user info endpoint") from e

        if not response.is_success:
            logger.warning(f"User info endpoint returned HTTP {response.status_code}")
            raise UserInfoFetchError("Failed to access OpenID Connect user info endpoint")

        if not isinstance(payload, dict):
            raise UserInfoFetchError("Invalid response from OpenID Connect user info endpoint")

        return payload
