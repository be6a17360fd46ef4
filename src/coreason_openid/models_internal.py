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
Internal data models for the coreason-openid package.
These are not exposed in the public API.
"""

from pydantic import BaseModel, ConfigDict, Field


class ProviderMetadata(BaseModel):
    """
    OIDC Configuration from .well-known/openid-configuration.
    Only the fields needed for the authorization code flow are required.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    issuer: str = Field(..., min_length=1, description="The OIDC issuer URL.")
    authorization_endpoint: str = Field(..., min_length=1, description="The authorization endpoint URL.")
    token_endpoint: str = Field(..., min_length=1, description="The token endpoint URL.")
    userinfo_endpoint: str = Field(..., min_length=1, description="The user-info endpoint URL.")
