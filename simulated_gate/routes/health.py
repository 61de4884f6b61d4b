"""
Simulated Gate: Health Check Route
==================================

What:  GET /health for monitoring and load balancer health checks.
How:   Reports process liveness and which IoT hub the gate is configured for.
       The hub itself is not called: the only hub operation creates a device.
"""

import logging
import time

import httpx
from fastapi import APIRouter, Request

from simulated_gate import __version__
from simulated_gate.schemas.responses import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialised once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    settings = request.app.state.settings
    try:
        hub_host = httpx.URL(settings.iot_hub_url).host
    except httpx.InvalidURL:
        logger.warning("Health check: configured IoT hub URL does not parse")
        hub_host = ""

    return HealthResponse(
        status="healthy",
        version=__version__,
        iot_hub_host=hub_host,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
