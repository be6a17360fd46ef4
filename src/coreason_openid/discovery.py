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
OIDC Discovery: resolves the provider endpoints from the issuer's metadata document.
"""

import httpx
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError

from coreason_openid.exceptions import OversizedResponseError, ProviderDiscoveryError, SecurityError
from coreason_openid.models_internal import ProviderMetadata
from coreason_openid.transport import fetch_json
from coreason_openid.utils.logger import logger

tracer = trace.get_tracer(__name__)

WELL_KNOWN_PATH = "/.well-known/openid-configuration"


def discovery_url(issuer: str) -> str:
    """Returns the OpenID Connect Discovery 1.0 metadata URL for an issuer."""
    return issuer.rstrip("/") + WELL_KNOWN_PATH


async def discover_provider_metadata(issuer: str, client: httpx.AsyncClient) -> ProviderMetadata:
    """
    Fetches and validates the provider metadata for `issuer`.

    A single attempt is made; callers treat failure as fatal.

    Args:
        issuer: The configured issuer URL.
        client: The async HTTP client to use.

    Returns:
        ProviderMetadata: The validated metadata.

    Raises:
        ProviderDiscoveryError: On network failure, non-2xx status, oversized or invalid
            JSON, missing endpoint fields, or an issuer mismatch.
    """
    url = discovery_url(issuer)
    with tracer.start_as_current_span("openid.discovery") as span:
        span.set_attribute("openid.discovery_url", url)
        try:
            response, data = await fetch_json(client, "GET", url, headers={"Accept": "application/json"})
            if not response.is_success:
                raise ProviderDiscoveryError(f"OIDC discovery at {url} returned HTTP {response.status_code}")
            if not isinstance(data, dict):
                raise ProviderDiscoveryError(f"OIDC discovery at {url} did not return a JSON object")
            metadata = ProviderMetadata(**data)
        except (httpx.HTTPError, OversizedResponseError, SecurityError) as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR))
            raise ProviderDiscoveryError(f"Failed to fetch OIDC configuration from {url}: {e}") from e
        except ValidationError as e:
            span.set_status(Status(StatusCode.ERROR))
            raise ProviderDiscoveryError(f"Invalid OIDC configuration from {url}: {e}") from e
        except ValueError as e:
            span.set_status(Status(StatusCode.ERROR))
            raise ProviderDiscoveryError(f"Invalid JSON in OIDC configuration from {url}: {e}") from e
        except ProviderDiscoveryError:
            span.set_status(Status(StatusCode.ERROR))
            raise

        if metadata.issuer.rstrip("/") != issuer.rstrip("/"):
            span.set_status(Status(StatusCode.ERROR))
            raise ProviderDiscoveryError(
                f"Issuer mismatch: discovery document at {url} declares '{metadata.issuer}', expected '{issuer}'"
            )

        logger.info(f"Resolved OIDC endpoints for issuer {issuer}")
        return metadata
