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
Provider Configuration Resolver: turns `OpenIdSettings` into an immutable `ProviderConfig`.
"""

from urllib.parse import urlparse

import httpx

from coreason_openid.config import OpenIdSettings
from coreason_openid.discovery import discover_provider_metadata
from coreason_openid.exceptions import ConfigurationError, ProviderDiscoveryError
from coreason_openid.models import ProviderConfig
from coreason_openid.transport import build_client
from coreason_openid.utils.logger import logger

CALLBACK_PATH = "/api/session/openid/callback"


def validate_url(name: str, value: str | None, allow_http: bool) -> str:
    """
    Checks that `value` is an absolute http(s) URL.

    Raises:
        ConfigurationError: If the URL is missing, malformed or uses plain HTTP without `allow_http`.
    """
    if not value:
        raise ConfigurationError(f"OpenID setting '{name}' is required")
    try:
        parsed = urlparse(value)
    except ValueError as e:
        raise ConfigurationError(f"OpenID setting '{name}' is not a valid URL: {value}") from e
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"OpenID setting '{name}' is not a valid URL: {value}")
    if parsed.scheme == "http" and not allow_http:
        raise ConfigurationError(
            f"OpenID setting '{name}' is a valid URL but uses plain HTTP, which is blocked by policy: {value}. "
            "Set 'unsafe_local_dev=True' only for local testing."
        )
    return value


async def resolve_provider_config(settings: OpenIdSettings, client: httpx.AsyncClient | None = None) -> ProviderConfig:
    """
    Builds the process-wide `ProviderConfig`, failing fast on any problem.

    If `issuer_url` is set, the endpoints are discovered from the issuer; otherwise the
    explicit `auth_url`, `token_url` and `userinfo_url` are used.

    Args:
        settings: The raw settings.
        client: HTTP client for discovery. A transient client is created when omitted.

    Returns:
        ProviderConfig: The resolved configuration.

    Raises:
        ConfigurationError: If the settings are incomplete or malformed.
        ProviderDiscoveryError: If discovery fails.
    """
    if not settings.client_id:
        raise ConfigurationError("OpenID setting 'client_id' is required")
    if settings.client_secret is None or not settings.client_secret.get_secret_value():
        raise ConfigurationError("OpenID setting 'client_secret' is required")

    # web_url is always populated by the settings model validator
    base_url = validate_url("web_url", settings.web_url, allow_http=True)
    allow_http = settings.unsafe_local_dev

    if settings.issuer_url:
        issuer = validate_url("issuer_url", settings.issuer_url, allow_http)
        if settings.auth_url or settings.token_url or settings.userinfo_url:
            logger.warning("Both issuer_url and explicit endpoints are configured; using discovery from issuer_url")

        if client is None:
            async with build_client(settings.http_timeout, settings.restrict_private_networks) as transient_client:
                metadata = await discover_provider_metadata(issuer, transient_client)
        else:
            metadata = await discover_provider_metadata(issuer, client)

        try:
            authorization_endpoint = validate_url("authorization_endpoint", metadata.authorization_endpoint, allow_http)
            token_endpoint = validate_url("token_endpoint", metadata.token_endpoint, allow_http)
            userinfo_endpoint = validate_url("userinfo_endpoint", metadata.userinfo_endpoint, allow_http)
        except ConfigurationError as e:
            raise ProviderDiscoveryError(f"Discovered metadata for {issuer} is unusable: {e}") from e
    else:
        issuer = None
        authorization_endpoint = validate_url("auth_url", settings.auth_url, allow_http)
        token_endpoint = validate_url("token_url", settings.token_url, allow_http)
        userinfo_endpoint = validate_url("userinfo_url", settings.userinfo_url, allow_http)

    config = ProviderConfig(
        force=settings.force,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        callback_url=base_url + CALLBACK_PATH,
        authorization_endpoint=authorization_endpoint,
        token_endpoint=token_endpoint,
        userinfo_endpoint=userinfo_endpoint,
        base_url=base_url,
        admin_group=settings.admin_group,
        allow_group=settings.allow_group,
        groups_claim_name=settings.groups_claim_name,
        issuer=issuer,
        http_timeout=settings.http_timeout,
        restrict_private_networks=settings.restrict_private_networks,
    )
    logger.debug(f"OpenID provider configured with authorization endpoint {authorization_endpoint}")
    return config
