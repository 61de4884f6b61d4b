"""
Simulated Gate: Test Configuration (conftest.py)
================================================

What:  Shared pytest fixtures for the entire test suite.
How:   The IoT hub is replaced by an httpx.MockTransport around FakeHub; the
       downstream app is a RecordingApp that stores every body it receives.
       Inbound requests go through httpx.AsyncClient over ASGITransport.

Fixture Hierarchy (all function-scoped):
    ├── settings:    Settings pointing at http://iothub.test
    ├── hub:         FakeHub recording outbound requests, scriptable answers
    ├── downstream:  RecordingApp standing in for the next handler
    ├── iothub:      IotHubClient wired to the FakeHub transport
    ├── gate:        SimulatedDeviceMiddleware(downstream)
    ├── gate_client: AsyncClient sending requests into the gate
    └── slow_hub:    real TCP server on 127.0.0.1 that trickles its answer
"""

import asyncio
import json
from typing import List, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from simulated_gate.config import Settings
from simulated_gate.middleware.simulated_device import SimulatedDeviceMiddleware
from simulated_gate.services.iothub_client import IotHubClient

HUB_URL = "http://iothub.test"
SUBSCRIPTION_KEY = "gate-key"
PROVISIONING_URL = HUB_URL + "/simulator/simulated/device"


def device_link_body(identifier: str = "dev-123", product: str = "TRACKER") -> bytes:
    return json.dumps(
        {"deviceLinkOperation": {"identifier": identifier, "product": product}}
    ).encode()


class FakeHub:
    """
    MockTransport handler playing the IoT hub.

    Set `status_code`/`body` for the answer, `error` to raise a transport
    error, or `stream` to return a custom (e.g. failing) response stream.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_code = 201
        self.body = b'{"id": "sim-1", "status": "created"}'
        self.error: Optional[Exception] = None
        self.stream: Optional[httpx.AsyncByteStream] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.stream is not None:
            return httpx.Response(self.status_code, stream=self.stream)
        return httpx.Response(self.status_code, content=self.body)

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


class FailingStream(httpx.AsyncByteStream):
    """Response body that breaks while being read."""

    async def __aiter__(self):
        raise httpx.ReadError("connection reset while reading body")
        yield b""  # pragma: no cover


class SlowHub:
    """
    Real HTTP server on a loopback port that answers 201 but sends the body one
    byte every `delay` seconds. Each byte arrives well inside httpx's per-read
    timeout, so only an overall deadline stops the exchange early.
    """

    def __init__(self, body: bytes = b'{"id":1}', delay: float = 0.2):
        self.body = body
        self.delay = delay
        self.url = ""
        self.requests = 0
        self._server: Optional[asyncio.AbstractServer] = None
        self._handlers: List[asyncio.Task] = []

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        host, port = self._server.sockets[0].getsockname()[:2]
        self.url = f"http://{host}:{port}"

    async def stop(self) -> None:
        for task in self._handlers:
            task.cancel()
        await asyncio.gather(*self._handlers, return_exceptions=True)
        self._server.close()
        await self._server.wait_closed()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._handlers.append(asyncio.current_task())
        try:
            head = await reader.readuntil(b"\r\n\r\n")
            self.requests += 1
            length = 0
            for line in head.split(b"\r\n"):
                name, _, value = line.partition(b":")
                if name.strip().lower() == b"content-length":
                    length = int(value)
            await reader.readexactly(length)

            writer.write(b"HTTP/1.1 201 Created\r\nContent-Length: %d\r\n\r\n" % len(self.body))
            for i in range(len(self.body)):
                await writer.drain()
                await asyncio.sleep(self.delay)
                writer.write(self.body[i : i + 1])
            await writer.drain()
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()


class RecordingApp:
    """Downstream ASGI app that records the body it was handed."""

    def __init__(self):
        self.bodies: List[bytes] = []

    @property
    def called(self) -> bool:
        return bool(self.bodies)

    async def __call__(self, scope, receive, send):
        request = Request(scope, receive)
        self.bodies.append(await request.body())
        response = PlainTextResponse("downstream ok")
        await response(scope, receive, send)


@pytest.fixture
def settings():
    return Settings(iot_hub_url=HUB_URL, subscription_key=SUBSCRIPTION_KEY)


@pytest.fixture
def hub():
    return FakeHub()


@pytest.fixture
def downstream():
    return RecordingApp()


@pytest_asyncio.fixture
async def iothub(settings, hub):
    client = IotHubClient(settings, transport=httpx.MockTransport(hub))
    yield client
    await client.aclose()


@pytest.fixture
def gate(downstream, settings, iothub):
    return SimulatedDeviceMiddleware(downstream, settings=settings, client=iothub)


@pytest_asyncio.fixture
async def gate_client(gate):
    """
    HTTPX AsyncClient talking to the gate in-process.

    Usage:
        async def test_forward(gate_client):
            response = await gate_client.post("/device-links", content=device_link_body())
    """
    transport = ASGITransport(app=gate)
    async with AsyncClient(transport=transport, base_url="http://gate.test") as client:
        yield client


@pytest.fixture
def make_body():
    """Factory for raw device-link payload bytes."""
    return device_link_body


@pytest.fixture
def failing_stream():
    return FailingStream()


@pytest_asyncio.fixture
async def slow_hub():
    server = SlowHub()
    await server.start()
    yield server
    await server.stop()
