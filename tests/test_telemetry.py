# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_identity

from typing import Any, Callable
from unittest.mock import MagicMock, patch

import httpx
import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode, Tracer

from coreason_openid.callback import CallbackHandler
from coreason_openid.discovery import discover_provider_metadata
from coreason_openid.exceptions import GroupAuthorizationDeniedError, ProviderDiscoveryError
from coreason_openid.models import ProviderConfig
from coreason_openid.oidc_client import HttpxOIDCClient
from coreason_openid.utils.logger import logger


@pytest.fixture
def telemetry_setup() -> tuple[InMemorySpanExporter, Tracer]:
    """Sets up an OpenTelemetry tracer with an in-memory exporter."""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return exporter, provider.get_tracer("test_tracer")


@pytest.fixture
def handler(
    provider_config: ProviderConfig, http_client: httpx.AsyncClient, login_service: MagicMock
) -> CallbackHandler:
    config = provider_config.model_copy(update={"allow_group": "staff"})
    return CallbackHandler(config, HttpxOIDCClient(config, http_client), login_service, MagicMock(), MagicMock())


@pytest.mark.asyncio
async def test_callback_success_span(
    telemetry_setup: tuple[InMemorySpanExporter, Tracer], handler: CallbackHandler, make_request: Callable[..., Any]
) -> None:
    exporter, tracer = telemetry_setup

    with patch("coreason_openid.callback.tracer", tracer):
        await handler.handle("code=good-code", make_request())

    spans = exporter.get_finished_spans()
    assert len(spans) == 1
    span = spans[0]
    assert span.name == "openid.handle_callback"
    assert span.status.status_code == StatusCode.OK
    assert span.attributes is not None
    assert span.attributes["openid.state"] == "done"
    assert span.attributes["openid.administrator"] is True


@pytest.mark.asyncio
async def test_callback_failure_span(
    telemetry_setup: tuple[InMemorySpanExporter, Tracer],
    handler: CallbackHandler,
    idp: Any,
    make_request: Callable[..., Any],
) -> None:
    exporter, tracer = telemetry_setup
    idp.claims = {"email": "u@b.com", "groups": ["users"]}
    logs: list[str] = []
    handler_id = logger.add(logs.append, level="WARNING", format="{message}")

    try:
        with patch("coreason_openid.callback.tracer", tracer):
            with pytest.raises(GroupAuthorizationDeniedError):
                await handler.handle("code=good-code", make_request())
    finally:
        logger.remove(handler_id)

    span = exporter.get_finished_spans()[0]
    assert span.status.status_code == StatusCode.ERROR
    assert span.attributes is not None
    assert span.attributes["openid.state"] == "failed"
    assert any(event.name == "exception" for event in span.events)
    assert any("OpenID login failed after user_info_fetched" in log for log in logs)
    # PII stays out of the logs
    assert not any("u@b.com" in log for log in logs)


@pytest.mark.asyncio
async def test_discovery_failure_span(telemetry_setup: tuple[InMemorySpanExporter, Tracer]) -> None:
    exporter, tracer = telemetry_setup

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with patch("coreason_openid.discovery.tracer", tracer):
            with pytest.raises(ProviderDiscoveryError):
                await discover_provider_metadata("https://idp.example.com", client)

    span = exporter.get_finished_spans()[0]
    assert span.name == "openid.discovery"
    assert span.status.status_code == StatusCode.ERROR
    assert span.attributes is not None
    assert span.attributes["openid.discovery_url"] == "https://idp.example.com/.well-known/openid-configuration"
