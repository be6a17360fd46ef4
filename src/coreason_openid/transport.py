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
HTTP helpers: bounded JSON fetching and an SSRF-safe transport with DNS pinning.
"""

import ipaddress
import json
import socket
from typing import Any

import httpx
from anyio import to_thread
from loguru import logger

from coreason_openid.exceptions import OversizedResponseError, SecurityError

MAX_RESPONSE_BYTES = 1_000_000


async def fetch_json(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> tuple[httpx.Response, Any]:
    """
    Sends a request and decodes the JSON body, reading at most `MAX_RESPONSE_BYTES`.

    The status code is NOT checked, so callers can inspect OAuth error payloads
    that come back with 4xx responses. A non-2xx body that is not JSON decodes to
    `None`, leaving the status for the caller to report.

    Args:
        client: The async HTTP client to use.
        method: The HTTP method.
        url: The target URL.
        **kwargs: Passed through to `httpx.AsyncClient.stream`.

    Returns:
        The response (body already consumed) and the decoded JSON payload.

    Raises:
        httpx.HTTPError: On network failures.
        OversizedResponseError: If the body exceeds the size limit.
        ValueError: If a 2xx body is not valid JSON.
    """
    async with client.stream(method, url, **kwargs) as response:
        content_length = response.headers.get("Content-Length")
        if content_length and content_length.isdigit() and int(content_length) > MAX_RESPONSE_BYTES:
            raise OversizedResponseError(f"Response from {url} is too large")

        content = bytearray()
        async for chunk in response.aiter_bytes():
            content.extend(chunk)
            if len(content) > MAX_RESPONSE_BYTES:
                raise OversizedResponseError(f"Response from {url} is too large")

    try:
        return response, json.loads(content)
    except ValueError:
        if response.is_success:
            raise
        return response, None


class SafeHTTPTransport(httpx.AsyncHTTPTransport):
    """
    A secure HTTP transport that enforces DNS pinning to prevent SSRF/DNS Rebinding attacks.

    It resolves the hostname, rejects private, loopback, link-local, reserved and multicast
    addresses, then connects to the first safe IP while keeping the original Host header
    and SNI so TLS verification still applies to the hostname.
    """

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        hostname = request.url.host

        try:
            literal_ip = ipaddress.ip_address(hostname)
        except ValueError:
            literal_ip = None

        if literal_ip is not None:
            self._validate_ip(literal_ip, hostname)
            return await super().handle_async_request(request)

        try:
            addr_infos = await to_thread.run_sync(socket.getaddrinfo, hostname, None, 0, socket.SOCK_STREAM)
        except socket.gaierror as e:
            logger.error(f"DNS resolution failed for {hostname}: {e}")
            raise SecurityError(f"DNS resolution failed for {hostname}") from e

        target_ip: str | None = None
        for _, _, _, _, sockaddr in addr_infos:
            try:
                ip_obj = ipaddress.ip_address(sockaddr[0])
                self._validate_ip(ip_obj, hostname)
            except (SecurityError, ValueError):
                continue
            target_ip = str(ip_obj)
            break

        if not target_ip:
            logger.error(f"Security violation: No valid public IP found for {hostname}")
            raise SecurityError(f"Security violation: No valid public IP found for {hostname}")

        request.extensions["sni_hostname"] = hostname
        if "Host" not in request.headers:
            request.headers["Host"] = request.url.netloc.decode("ascii")
        request.url = request.url.copy_with(host=target_ip)

        logger.debug(f"DNS Pinned: {hostname} -> {target_ip}")
        return await super().handle_async_request(request)

    def _validate_ip(self, ip_obj: ipaddress.IPv4Address | ipaddress.IPv6Address, hostname: str) -> None:
        if (
            ip_obj.is_private
            or ip_obj.is_loopback
            or ip_obj.is_link_local
            or ip_obj.is_reserved
            or ip_obj.is_multicast
        ):
            logger.warning(f"Security violation: Blocked access to {hostname} ({ip_obj})")
            raise SecurityError(f"Access to {hostname} ({ip_obj}) is blocked")


def build_client(timeout: float, restrict_private_networks: bool = False) -> httpx.AsyncClient:
    """
    Creates an async client with the package's transport policy.

    Args:
        timeout: Timeout in seconds applied to connect/read/write/pool.
        restrict_private_networks: Use `SafeHTTPTransport` to block internal addresses.
    """
    transport = SafeHTTPTransport() if restrict_private_networks else None
    return httpx.AsyncClient(transport=transport, timeout=timeout)
