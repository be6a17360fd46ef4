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
Authorization Request Builder: the redirect that starts a login at the IdP.
"""

from authlib.common.security import generate_token

from coreason_openid.models import AuthorizationRequest, OpenIdScope, ProviderConfig
from coreason_openid.oidc_client import OIDCClientProtocol

STATE_LENGTH = 48


class AuthorizationRequestBuilder:
    """Builds authorization-code requests against the configured authorization endpoint."""

    def __init__(self, config: ProviderConfig, oidc_client: OIDCClientProtocol) -> None:
        self.config = config
        self.oidc_client = oidc_client

    def scopes(self) -> list[str]:
        """
        `openid profile email`, plus the groups claim when an admin group is configured
        so that the IdP includes group membership in the user info.
        """
        scopes = [OpenIdScope.OPENID.value, OpenIdScope.PROFILE.value, OpenIdScope.EMAIL.value]
        if self.config.admin_group is not None and self.config.groups_claim_name not in scopes:
            scopes.append(self.config.groups_claim_name)
        return scopes

    def build(self) -> AuthorizationRequest:
        """Creates a request with a fresh random state."""
        scopes = self.scopes()
        state = generate_token(STATE_LENGTH)
        url = self.oidc_client.authorization_url(scopes, state, self.config.callback_url)
        return AuthorizationRequest(url=url, state=state, scopes=scopes, redirect_uri=self.config.callback_url)
