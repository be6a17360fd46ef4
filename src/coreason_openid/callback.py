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
Callback Handler: processes the IdP redirect and logs the user in.
"""

from functools import partial
from urllib.parse import parse_qsl, urljoin

from anyio import to_thread
from authlib.oauth2.rfc6749.errors import MismatchingStateException, MissingCodeException
from authlib.oauth2.rfc6749.parameters import parse_authorization_code_response
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from coreason_openid.collaborators import ActionLogger, CallbackRequest, LoginService, SessionManager
from coreason_openid.exceptions import (
    AuthorizationDeniedError,
    LoginError,
    MalformedCallbackError,
    StateMismatchError,
)
from coreason_openid.identity_mapper import IdentityMapper
from coreason_openid.models import CallbackState, ProviderConfig
from coreason_openid.oidc_client import OIDCClientProtocol
from coreason_openid.utils.logger import logger

tracer = trace.get_tracer(__name__)

SUCCESS_QUERY = "?openid=success"


class CallbackHandler:
    """
    Runs one callback through
    RECEIVED_CALLBACK -> PARSED_RESPONSE -> CODE_EXCHANGED -> USER_INFO_FETCHED
    -> AUTHORIZATION_DECIDED -> DONE, stopping at the first failure.

    The handler keeps no per-callback state on the instance, so one handler serves
    concurrent callbacks.
    """

    def __init__(
        self,
        config: ProviderConfig,
        oidc_client: OIDCClientProtocol,
        login_service: LoginService,
        session_manager: SessionManager,
        action_logger: ActionLogger,
    ) -> None:
        self.config = config
        self.oidc_client = oidc_client
        self.login_service = login_service
        self.session_manager = session_manager
        self.action_logger = action_logger
        self.identity_mapper = IdentityMapper(config.admin_group, config.allow_group, config.groups_claim_name)

    def redirect_uri_for(self, request: CallbackRequest) -> str:
        """The `redirect_uri` parameter of the request, verbatim, or the configured callback URL."""
        override = request.query_params.get("redirect_uri")
        return override if override else self.config.callback_url

    def parse_callback(self, query_string: str, expected_state: str | None = None) -> str:
        """
        Extracts the authorization code from the callback query string.

        Raises:
            AuthorizationDeniedError: If the IdP returned an error response.
            StateMismatchError: If `expected_state` is given and does not match.
            MalformedCallbackError: If there is no usable code.
        """
        params = dict(parse_qsl(query_string or "", keep_blank_values=True))
        if "error" in params:
            raise AuthorizationDeniedError(params.get("error_description") or params["error"])

        try:
            parsed = parse_authorization_code_response("?" + (query_string or ""), state=expected_state)
        except MismatchingStateException as e:
            raise StateMismatchError("OpenID callback state does not match the login request") from e
        except MissingCodeException as e:
            raise MalformedCallbackError("Malformed OpenID callback") from e

        code = parsed.get("code")
        if not code:
            raise MalformedCallbackError("Malformed OpenID callback")
        return code

    async def handle(self, query_string: str, request: CallbackRequest, expected_state: str | None = None) -> str:
        """
        Processes the callback and establishes the session.

        Args:
            query_string: The raw query string the IdP redirected with.
            request: The incoming request; passed through to the session manager and action logger.
            expected_state: The state issued with the authorization request, if the caller kept it.

        Returns:
            The URL to redirect the browser to on success.

        Raises:
            LoginError: A subclass describing which step failed.
        """
        state = CallbackState.RECEIVED_CALLBACK
        with tracer.start_as_current_span("openid.handle_callback") as span:
            try:
                redirect_uri = self.redirect_uri_for(request)
                code = self.parse_callback(query_string, expected_state)
                state = self._advance(span, CallbackState.PARSED_RESPONSE)

                tokens = await self.oidc_client.exchange_code(code, redirect_uri)
                state = self._advance(span, CallbackState.CODE_EXCHANGED)

                claims = await self.oidc_client.fetch_user_info(tokens.access_token)
                state = self._advance(span, CallbackState.USER_INFO_FETCHED)

                identity = self.identity_mapper.map_claims(claims)
                span.set_attribute("openid.administrator", identity.is_administrator)
                state = self._advance(span, CallbackState.AUTHORIZATION_DECIDED)

                user = await to_thread.run_sync(
                    partial(self.login_service.login, identity.email, identity.display_name, identity.is_administrator)
                )
                self.session_manager.establish(request, user)
                self.action_logger.login(request, user)
                state = self._advance(span, CallbackState.DONE)
                span.set_status(Status(StatusCode.OK))
            except LoginError as e:
                logger.warning(f"OpenID login failed after {state}: {type(e).__name__}: {e}")
                span.record_exception(e)
                span.set_attribute("openid.state", CallbackState.FAILED.value)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

        logger.info("OpenID login succeeded")
        return urljoin(self.config.base_url, SUCCESS_QUERY)

    def _advance(self, span: trace.Span, state: CallbackState) -> CallbackState:
        logger.debug(f"OpenID callback state: {state}")
        span.set_attribute("openid.state", state.value)
        return state
