"""
Simulated Gate: Simulated Device Middleware
===========================================

What:  Transform-and-forward gate in front of one downstream ASGI app.
       Each device-link request first creates a simulated device on the IoT hub;
       only if that succeeds does the untouched request reach the downstream app.
How:   Pure ASGI middleware. The body is read once, decoded, turned into a
       provisioning call, and afterwards replayed to the downstream app from the
       captured bytes through a fresh `receive` callable.
Who:   Mounted by main.create_app(), or wrapped around any ASGI app:

           app = SimulatedDeviceMiddleware(downstream, settings=Settings(...))

Pipeline (per request):
    read body -> decode payload -> log device id -> provision on hub
              -> log hub answer -> replay original body -> downstream app

Failure policy:
    Any SimulatedGateError at any stage is logged and answered with a plain
    404 "404 page not found". The downstream app is not called. Nothing is
    retried and nothing carries over to the next request.
"""

import logging
from typing import Optional

from pydantic import ValidationError
from starlette.requests import ClientDisconnect, Request
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from simulated_gate.config import Settings
from simulated_gate.exceptions import BodyReadError, PayloadDecodeError, SimulatedGateError
from simulated_gate.log_format import client_network
from simulated_gate.schemas.device import CreateSimulatedDeviceRequest, CreateThingRequest
from simulated_gate.services.iothub_client import IotHubClient

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = "404 page not found"


def decode_payload(body: bytes) -> CreateThingRequest:
    """
    Decode the inbound body into a device-link payload.

    Raises:
        PayloadDecodeError: empty or malformed JSON, data after the JSON object,
            or a body not shaped like
            {"deviceLinkOperation": {"identifier": ..., "product": "TRACKER"}}
    """
    try:
        return CreateThingRequest.model_validate_json(body)
    except ValidationError as e:
        detail = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        )
        raise PayloadDecodeError(detail, context={"body_size": len(body)})


def replay_receive(body: bytes, receive: Receive) -> Receive:
    """
    A fresh `receive` that hands out `body` as one complete request message.

    Later calls fall through to the server's `receive`, so the downstream app
    still sees `http.disconnect`. The bytes live in memory; there is nothing to
    close.
    """
    replayed = False

    async def replay() -> Message:
        nonlocal replayed
        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class SimulatedDeviceMiddleware:
    """
    ASGI middleware creating a manual simulated device before forwarding.

    Args:
        app:      Downstream ASGI app, called only after a successful hub call
        settings: Gate configuration, read-only for the middleware's lifetime
        client:   Optional IotHubClient to share or to inject a test transport

    Non-HTTP scopes (lifespan, websocket) are passed through untouched.
    """

    def __init__(
        self,
        app: ASGIApp,
        settings: Settings,
        client: Optional[IotHubClient] = None,
    ):
        self.app = app
        self.settings = settings
        self.iothub = client if client is not None else IotHubClient(settings)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        try:
            body = await self.provision(request)
        except SimulatedGateError as exc:
            logger.error("%s", exc.message, extra=self._log_extra(request))
            if exc.context:
                logger.debug("Failure context: %s", exc.context)
            response = PlainTextResponse(NOT_FOUND_BODY, status_code=404)
            await response(scope, receive, send)
            return

        await self.app(scope, replay_receive(body, receive), send)

    async def provision(self, request: Request) -> bytes:
        """
        Run the provisioning pipeline and return the original body bytes.

        Raises:
            SimulatedGateError: any stage failed; the request must not be forwarded.
        """
        try:
            body = await request.body()
        except (ClientDisconnect, OSError) as e:
            raise BodyReadError(str(e) or type(e).__name__)

        operation = decode_payload(body).device_link_operation
        logger.warning(
            "found deviceId=%s", operation.hardware_id, extra=self._log_extra(request)
        )

        hub_body = await self.iothub.create_simulated_device(
            CreateSimulatedDeviceRequest.from_link_operation(operation),
            request.headers.raw,
        )
        logger.info(
            "iot hub device created: %s",
            hub_body.decode("utf-8", errors="replace"),
            extra=self._log_extra(request),
        )
        return body

    @staticmethod
    def _log_extra(request: Request) -> dict:
        return {"network": client_network(request), "url": str(request.url)}
