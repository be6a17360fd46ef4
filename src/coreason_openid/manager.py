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
OpenIdManager component orchestrating the OpenID Connect login flow.
"""

from typing import Any

import anyio
import httpx
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from coreason_openid.authorization import AuthorizationRequestBuilder
from coreason_openid.callback import CallbackHandler
from coreason_openid.collaborators import ActionLogger, CallbackRequest, LoginService, SessionManager
from coreason_openid.config import OpenIdSettings
from coreason_openid.models import AuthorizationRequest, ProviderConfig
from coreason_openid.oidc_client import HttpxOIDCClient, OIDCClientProtocol
from coreason_openid.resolver import resolve_provider_config
from coreason_openid.transport import build_client


class OpenIdManagerAsync:
    """
    Async implementation of the OpenID login flow (The Core).
    Handles resources via async context manager.
    """

    def __init__(
        self,
        config: ProviderConfig,
        login_service: LoginService,
        session_manager: SessionManager,
        action_logger: ActionLogger,
        client: httpx.AsyncClient | None = None,
        oidc_client: OIDCClientProtocol | None = None,
    ) -> None:
        """
        Initialize the OpenIdManagerAsync.

        Args:
            config: The resolved provider configuration.
            login_service: Resolves or creates the local user.
            session_manager: Binds the session to the user.
            action_logger: Records the login event.
            client: External async client (optional). If not provided, one is created from the config
                and closed on exit.
            oidc_client: Alternative OIDC client implementation (optional).
        """
        self.config = config
        self._internal_client = client is None

        if client:
            self._client = client
        else:
            self._client = build_client(config.http_timeout, config.restrict_private_networks)
            # Instrument the client for distributed tracing
            HTTPXClientInstrumentor().instrument_client(self._client)

        self.oidc_client: OIDCClientProtocol = oidc_client or HttpxOIDCClient(config, self._client)
        self.authorization_builder = AuthorizationRequestBuilder(config, self.oidc_client)
        self.callback_handler = CallbackHandler(
            config=config,
            oidc_client=self.oidc_client,
            login_service=login_service,
            session_manager=session_manager,
            action_logger=action_logger,
        )

    @classmethod
    async def create(
        cls,
        settings: OpenIdSettings,
        login_service: LoginService,
        session_manager: SessionManager,
        action_logger: ActionLogger,
        client: httpx.AsyncClient | None = None,
    ) -> "OpenIdManagerAsync":
        """
        Resolves the provider configuration and builds the manager. Traffic must not be
        served if this raises.

        Raises:
            ConfigurationError: If the settings are incomplete or malformed.
            ProviderDiscoveryError: If discovery fails.
        """
        config = await resolve_provider_config(settings, client)
        return cls(config, login_service, session_manager, action_logger, client=client)

    async def __aenter__(self) -> "OpenIdManagerAsync":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Closes the HTTP client if it was created by this manager."""
        if self._internal_client:
            await self._client.aclose()

    @property
    def force_login(self) -> bool:
        """Whether the web layer should skip the local login form and redirect to the IdP."""
        return self.config.force

    def create_authorization_request(self) -> AuthorizationRequest:
        """
        Builds a new authorization request with a fresh state.

        Returns:
            AuthorizationRequest: The URL to redirect to and the state to keep for the callback.
        """
        return self.authorization_builder.build()

    def create_authorization_uri(self) -> str:
        """Returns the URL that starts a login at the IdP."""
        return self.create_authorization_request().url

    async def handle_callback(
        self, query_string: str, request: CallbackRequest, expected_state: str | None = None
    ) -> str:
        """
        Completes the login from the IdP redirect.

        Args:
            query_string: The raw query string of the callback request.
            request: The callback request. A `redirect_uri` query parameter overrides the redirect
                URI sent to the token endpoint.
            expected_state: The state issued with the authorization request.

        Returns:
            The URL to redirect the browser to (`<base_url>?openid=success`).

        Raises:
            LoginError: A subclass describing which step failed.
        """
        return await self.callback_handler.handle(query_string, request, expected_state)


class OpenIdManager:
    """
    Sync facade for OpenIdManagerAsync, for blocking web frameworks.

    Each call runs in its own event loop with its own HTTP client.
    """

    def __init__(
        self,
        config: ProviderConfig,
        login_service: LoginService,
        session_manager: SessionManager,
        action_logger: ActionLogger,
        oidc_client: OIDCClientProtocol | None = None,
    ) -> None:
        self.config = config
        self.login_service = login_service
        self.session_manager = session_manager
        self.action_logger = action_logger
        self.oidc_client = oidc_client

    @classmethod
    def create(
        cls,
        settings: OpenIdSettings,
        login_service: LoginService,
        session_manager: SessionManager,
        action_logger: ActionLogger,
    ) -> "OpenIdManager":
        """
        Blocking equivalent of `OpenIdManagerAsync.create`.

        Raises:
            ConfigurationError: If the settings are incomplete or malformed.
            ProviderDiscoveryError: If discovery fails.
        """
        config = anyio.run(resolve_provider_config, settings)
        return cls(config, login_service, session_manager, action_logger)

    def _manager(self) -> OpenIdManagerAsync:
        return OpenIdManagerAsync(
            self.config,
            self.login_service,
            self.session_manager,
            self.action_logger,
            oidc_client=self.oidc_client,
        )

    @property
    def force_login(self) -> bool:
        return self.config.force

    def create_authorization_request(self) -> AuthorizationRequest:
        async def _run() -> AuthorizationRequest:
            async with self._manager() as manager:
                return manager.create_authorization_request()

        return anyio.run(_run)

    def create_authorization_uri(self) -> str:
        return self.create_authorization_request().url

    def handle_callback(self, query_string: str, request: CallbackRequest, expected_state: str | None = None) -> str:
        async def _run() -> str:
            async with self._manager() as manager:
                return await manager.handle_callback(query_string, request, expected_state)

        return anyio.run(_run)
