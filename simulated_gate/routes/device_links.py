"""
Simulated Gate: Device Link Route
=================================

What:  POST /device-links, the default downstream handler behind the gate.
How:   Runs only after SimulatedDeviceMiddleware created the simulated device,
       and reads the caller's original body replayed by the middleware. The
       body is decoded from its bytes, like the gate does, so a caller that
       sends no Content-Type is still accepted.
Who:   Mounted by main.create_app() under /api when no other downstream app is
       given. Real deployments usually pass their own downstream app instead.
"""

import logging

from fastapi import APIRouter, HTTPException, Request

from simulated_gate.exceptions import PayloadDecodeError
from simulated_gate.middleware.simulated_device import decode_payload
from simulated_gate.schemas.responses import DeviceLinkAccepted

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Device links"])


@router.post(
    "/device-links",
    status_code=202,
    response_model=DeviceLinkAccepted,
    summary="Link a device after its simulated twin was created",
)
async def link_device(request: Request) -> DeviceLinkAccepted:
    try:
        payload = decode_payload(await request.body())
    except PayloadDecodeError as e:
        raise HTTPException(status_code=422, detail=e.message)

    operation = payload.device_link_operation
    logger.info("device link accepted for deviceId=%s", operation.hardware_id)
    return DeviceLinkAccepted(identifier=operation.hardware_id, product=operation.product)
