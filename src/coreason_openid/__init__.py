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
Server-side OpenID Connect authorization code login: IdP redirect, code exchange,
user info, group-based authorization and session hand-off.
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .config import OpenIdSettings
from .exceptions import (
    AuthorizationDeniedError,
    ConfigurationError,
    CoreasonOpenIdError,
    GroupAuthorizationDeniedError,
    LoginError,
    MalformedCallbackError,
    ProviderDiscoveryError,
    StateMismatchError,
    StorageError,
    TokenExchangeError,
    UserInfoFetchError,
)
from .manager import OpenIdManager, OpenIdManagerAsync
from .models import AuthorizationRequest, ProviderConfig, UserIdentity
from .resolver import resolve_provider_config

__all__ = [
    "AuthorizationDeniedError",
    "AuthorizationRequest",
    "ConfigurationError",
    "CoreasonOpenIdError",
    "GroupAuthorizationDeniedError",
    "LoginError",
    "MalformedCallbackError",
    "OpenIdManager",
    "OpenIdManagerAsync",
    "OpenIdSettings",
    "ProviderConfig",
    "ProviderDiscoveryError",
    "StateMismatchError",
    "StorageError",
    "TokenExchangeError",
    "UserIdentity",
    "UserInfoFetchError",
    "resolve_provider_config",
]
