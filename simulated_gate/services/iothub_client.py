"""
Simulated Gate: IoT Hub Client
==============================

What:  Issues the one outbound "create simulated device" call per inbound request.
How:   A single httpx.AsyncClient reused across requests. `request_timeout`
       bounds each I/O phase and, through an anyio deadline, the whole exchange
       from send to the last body byte. Every failure is translated into a
       SimulatedGateError subclass so the middleware can answer 404 without
       knowing about httpx.
Who:   Owned by SimulatedDeviceMiddleware; closed by the application lifespan.

Call sequence (one attempt, never retried):
    1. build_url()        base URL + provisioning path, must be http(s) with a host
    2. encode body        CreateSimulatedDeviceRequest -> JSON bytes
    3. build_headers()    inbound headers copied, subscription key set last
    4. send               POST, redirects not followed
    5. status check       only [200, 300) passes
    6. read body          returned for diagnostic logging only
    Steps 4-6 share one deadline; expiry is a transport failure.

Concurrency:
    The client holds no per-request state. httpx.AsyncClient is safe to share
    between concurrent requests on the same event loop.
"""

import logging
from typing import Iterable, Optional, Tuple

import anyio
import httpx
from pydantic_core import PydanticSerializationError

from simulated_gate.config import Settings
from simulated_gate.exceptions import (
    RequestEncodeError,
    UpstreamResponseReadError,
    UpstreamStatusError,
    UpstreamTransportError,
    UpstreamUrlError,
)
from simulated_gate.schemas.device import CreateSimulatedDeviceRequest

logger = logging.getLogger(__name__)

# Framing headers computed by the HTTP client for the new body; copying the
# inbound values would describe the wrong payload.
FRAMING_HEADERS = frozenset({b"host", b"content-length", b"transfer-encoding", b"trailer"})

RawHeaders = Iterable[Tuple[bytes, bytes]]


class IotHubClient:
    """
    Client for the IoT hub simulator endpoint.

    Args:
        settings:  Gate configuration (hub URL, subscription key, timeout)
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self._client = httpx.AsyncClient(
            timeout=settings.request_timeout,
            transport=transport,
            follow_redirects=False,
        )

    def build_url(self) -> httpx.URL:
        """
        Parse the configured hub URL plus the provisioning path.

        Raises:
            UpstreamUrlError: URL does not parse, or has no http(s) scheme or host.
        """
        raw = self.settings.provisioning_url
        try:
            url = httpx.URL(raw)
        except httpx.InvalidURL as e:
            raise UpstreamUrlError(raw, str(e))
        if url.scheme not in ("http", "https") or not url.host:
            raise UpstreamUrlError(raw, f"'{raw}' is not an absolute http(s) URL")
        return url

    def build_headers(self, inbound: RawHeaders) -> httpx.Headers:
        """
        Copy inbound headers (order and repeated values kept) and set the key header.

        The configured subscription key replaces any value the caller sent under
        the same header name, whatever its case.
        """
        headers = httpx.Headers(
            [(name, value) for name, value in inbound if name.lower() not in FRAMING_HEADERS]
        )
        headers[self.settings.subscription_key_header] = self.settings.subscription_key
        return headers

    async def create_simulated_device(
        self,
        device_request: CreateSimulatedDeviceRequest,
        inbound_headers: RawHeaders,
    ) -> bytes:
        """
        POST the provisioning request to the hub and return the raw response body.

        Raises:
            UpstreamUrlError:          configured URL unusable
            RequestEncodeError:        request could not be serialised
            UpstreamTransportError:    connect/timeout/protocol failure
            UpstreamStatusError:       status outside [200, 300)
            UpstreamResponseReadError: response body could not be read
        """
        url = self.build_url()

        try:
            content = device_request.to_json_bytes()
        except (PydanticSerializationError, ValueError) as e:
            raise RequestEncodeError(str(e))

        request = self._client.build_request(
            "POST",
            url,
            content=content,
            headers=self.build_headers(inbound_headers),
        )

        timeout = self.settings.request_timeout
        try:
            with anyio.fail_after(timeout):
                response, body = await self._exchange(request)
        except TimeoutError:
            raise UpstreamTransportError(
                f"no complete answer within {timeout:g}s",
                context={"url": str(url), "error_type": "TimeoutError"},
            )

        logger.debug("IoT hub answered %d with %d bytes", response.status_code, len(body))
        return body

    async def _exchange(self, request: httpx.Request) -> Tuple[httpx.Response, bytes]:
        """Send, check the status and read the body. Runs under one overall deadline."""
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamTransportError(
                str(e) or type(e).__name__,
                context={"url": str(request.url), "error_type": type(e).__name__},
            )

        try:
            # 1xx and 3xx both count as failures.
            if response.status_code >= 300 or response.status_code < 200:
                raise UpstreamStatusError(response.status_code, response.reason_phrase)
            try:
                body = await response.aread()
            except httpx.HTTPError as e:
                raise UpstreamResponseReadError(str(e) or type(e).__name__)
        finally:
            # Shielded so an expired deadline still returns the connection.
            with anyio.CancelScope(shield=True):
                await response.aclose()

        return response, body

    async def aclose(self) -> None:
        """Release pooled connections. Called once on application shutdown."""
        await self._client.aclose()
