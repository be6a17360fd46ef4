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
Configuration for the coreason-openid package.
"""

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OpenIdSettings(BaseSettings):
    """
    Raw OpenID Connect login settings, loaded from the environment.

    Endpoints come either from discovery (`issuer_url`) or from the explicit
    `auth_url` / `token_url` / `userinfo_url` triple. The settings are only parsed here;
    `resolve_provider_config` turns them into a validated `ProviderConfig`.

    Attributes:
        force (bool): Skip the local login form and redirect straight to the IdP.
        client_id (str | None): The OIDC Client ID.
        client_secret (SecretStr | None): The OIDC Client secret.
        web_url (str | None): Public base URL of the web application.
        web_address (str | None): Host used to derive `web_url` when it is not set.
        web_port (int): Port used to derive `web_url` when it is not set.
        issuer_url (str | None): Issuer used for OIDC discovery.
        auth_url (str | None): Explicit authorization endpoint.
        token_url (str | None): Explicit token endpoint.
        userinfo_url (str | None): Explicit user-info endpoint.
        admin_group (str | None): Group granting administrator rights.
        allow_group (str | None): Group required to log in at all.
        groups_claim_name (str): User-info claim (and scope) carrying the groups.
        http_timeout (float): Timeout in seconds for all IdP network operations.
        unsafe_local_dev (bool): Allow plain HTTP endpoints.
        restrict_private_networks (bool): Refuse to contact private/loopback addresses.
    """

    model_config = SettingsConfigDict(
        env_prefix="COREASON_OPENID_",
        case_sensitive=False,
    )

    force: bool = False
    client_id: str | None = None
    client_secret: SecretStr | None = None

    web_url: str | None = None
    web_address: str | None = None
    web_port: int = 8082

    issuer_url: str | None = None
    auth_url: str | None = None
    token_url: str | None = None
    userinfo_url: str | None = None

    admin_group: str | None = None
    allow_group: str | None = None
    groups_claim_name: str = "groups"

    http_timeout: float = Field(default=10.0, gt=0, description="Timeout in seconds for all IdP network operations.")
    unsafe_local_dev: bool = False
    restrict_private_networks: bool = False

    @field_validator("admin_group", "allow_group", "issuer_url", "auth_url", "token_url", "userinfo_url", "web_url")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treats empty or whitespace-only values as unset."""
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("groups_claim_name")
    @classmethod
    def validate_claim_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("groups_claim_name must not be empty")
        return v

    @model_validator(mode="after")
    def set_default_web_url(self) -> "OpenIdSettings":
        """
        Derives the web URL from address and port if it is not configured,
        and strips any trailing slash.
        """
        if self.web_url is None:
            self.web_url = f"http://{self.web_address or 'localhost'}:{self.web_port}"
        self.web_url = self.web_url.rstrip("/")
        return self
