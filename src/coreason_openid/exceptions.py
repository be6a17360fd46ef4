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
Custom exceptions for the coreason-openid package.
"""


class CoreasonOpenIdError(Exception):
    """Base exception for all coreason-openid errors."""


class ConfigurationError(CoreasonOpenIdError):
    """Raised when the OpenID settings are incomplete or malformed. Fatal at startup."""


class ProviderDiscoveryError(CoreasonOpenIdError):
    """Raised when the provider metadata cannot be resolved from the issuer. Fatal at startup."""


class LoginError(CoreasonOpenIdError):
    """
    Base class for failures while processing an OpenID callback.
    The message is suitable for showing to the user.
    """


class AuthorizationDeniedError(LoginError):
    """Raised when the IdP redirected back with an error (user cancelled, consent refused, etc.)."""


class MalformedCallbackError(LoginError):
    """Raised when the callback does not carry a usable authorization code."""


class StateMismatchError(MalformedCallbackError):
    """Raised when the callback `state` does not match the one issued with the authorization request."""


class TokenExchangeError(LoginError):
    """Raised when the authorization code cannot be exchanged for a bearer access token."""


class UserInfoFetchError(LoginError):
    """Raised when the user-info endpoint fails or returns unusable claims."""


class GroupAuthorizationDeniedError(LoginError):
    """Raised when the user authenticated but their groups do not permit access."""


class StorageError(LoginError):
    """Raised by the login service when the local user record cannot be resolved or created."""


class OversizedResponseError(CoreasonOpenIdError):
    """Raised when an HTTP response is too large."""


class SecurityError(CoreasonOpenIdError):
    """Raised when an outbound request targets a blocked network address."""
