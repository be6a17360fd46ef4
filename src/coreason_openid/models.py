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
Data models for the coreason-openid package.
"""

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class OpenIdScope(StrEnum):
    OPENID = "openid"
    PROFILE = "profile"
    EMAIL = "email"


class CallbackState(StrEnum):
    """States of the callback handler. Any state may end in FAILED."""

    RECEIVED_CALLBACK = "received_callback"
    PARSED_RESPONSE = "parsed_response"
    CODE_EXCHANGED = "code_exchanged"
    USER_INFO_FETCHED = "user_info_fetched"
    AUTHORIZATION_DECIDED = "authorization_decided"
    DONE = "done"
    FAILED = "failed"


class ProviderConfig(BaseModel):
    """
    Fully resolved OpenID provider configuration.

    Built once at startup by `resolve_provider_config` and shared read-only for the
    lifetime of the process.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    force: bool = False
    client_id: str = Field(..., min_length=1)
    client_secret: SecretStr = Field(..., description="Client secret. Protected from logging.")
    callback_url: str
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str
    base_url: str
    admin_group: str | None = None
    allow_group: str | None = None
    groups_claim_name: str = "groups"
    issuer: str | None = Field(default=None, description="Set when endpoints were resolved through discovery.")
    http_timeout: float = 10.0
    restrict_private_networks: bool = False


class AuthorizationRequest(BaseModel):
    """
    A single authorization request. The caller must keep `state` (e.g. in a short-lived
    cookie) and hand it back to `handle_callback` as `expected_state`.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    state: str
    scopes: list[str]
    redirect_uri: str
    response_type: Literal["code"] = "code"

    def __repr__(self) -> str:
        return f"AuthorizationRequest(scopes={self.scopes!r}, redirect_uri={self.redirect_uri!r}, state='<REDACTED>')"

    def __str__(self) -> str:
        return self.__repr__()


class TokenResponse(BaseModel):
    """
    Successful response from the token endpoint.

    Attributes:
        access_token (str): The access token issued by the authorization server.
        token_type (str): The type of the token (e.g. "Bearer").
        id_token (str | None): The ID token, if issued.
        refresh_token (str | None): The refresh token, if issued.
        expires_in (int | None): The lifetime in seconds of the access token.
        scope (str | None): The granted scopes.
    """

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., min_length=1)
    token_type: str
    id_token: str | None = None
    refresh_token: str | None = None
    expires_in: int | None = None
    scope: str | None = None

    def __repr__(self) -> str:
        return f"TokenResponse(token_type={self.token_type!r}, expires_in={self.expires_in!r}, scope={self.scope!r})"

    def __str__(self) -> str:
        return self.__repr__()


class UserIdentity(BaseModel):
    """
    Identity derived from the user-info claims, handed to the login service.

    This model is frozen (immutable); it is never persisted by this package.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    email: str = Field(
        ..., min_length=1, description="The email address as sent by the IdP.", examples=["alice@coreason.ai"]
    )
    display_name: str = Field(..., description="The user's display name.", examples=["Alice"])
    groups: list[str] = Field(default_factory=list, description="Groups from the configured groups claim, in IdP order.")
    is_administrator: bool = False

    def __repr__(self) -> str:
        # PII fields MUST be redacted in __repr__
        return (
            f"UserIdentity(email='<REDACTED>', "
            f"display_name='<REDACTED>', "
            f"groups={self.groups!r}, "
            f"is_administrator={self.is_administrator!r})"
        )

    def __str__(self) -> str:
        return self.__repr__()
