"""
Simulated Gate: Application Factory
===================================

What:  Builds a FastAPI host that puts SimulatedDeviceMiddleware in front of a
       downstream app.
How:   create_app() wires settings, one shared IotHubClient, the health route and
       the gated downstream app mounted under /api.
Who:   uvicorn --factory simulated_gate.main:create_app
When:  Once at server startup.

Application Layout:
    GET  /health              liveness check (not gated)
    *    /api/...             SimulatedDeviceMiddleware -> downstream app
                              default downstream: POST /api/device-links

Lifecycle:
    Startup:   configure JSON logging on stdout, log the target hub
    Shutdown:  close the IoT hub client's connection pool
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
from fastapi import FastAPI
from starlette.types import ASGIApp

from simulated_gate import __version__
from simulated_gate.config import Settings, get_settings
from simulated_gate.log_format import build_formatter
from simulated_gate.middleware.simulated_device import SimulatedDeviceMiddleware
from simulated_gate.routes import device_links, health
from simulated_gate.services.iothub_client import IotHubClient

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Structured Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure one-JSON-object-per-line logging on stdout for the whole process.

    Called once from the lifespan, before anything else logs.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter())

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[handler],
        force=True,
    )

    # Third-party libraries log every connection at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info(
        "Simulated device gate starting, provisioning against %s",
        settings.provisioning_url,
    )

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    await app.state.iothub.aclose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_downstream_app() -> FastAPI:
    """Default next handler: the device-link route, without docs endpoints."""
    downstream = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    downstream.include_router(device_links.router)
    return downstream


def create_app(
    settings: Optional[Settings] = None,
    downstream: Optional[ASGIApp] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Create the host application.

    Args:
        settings:   Gate configuration; read from the environment when omitted
        downstream: App that receives requests after a successful hub call
        transport:  httpx transport for the hub client (tests use MockTransport)
    """
    settings = settings or get_settings()
    iothub = IotHubClient(settings, transport=transport)

    app = FastAPI(
        title="Simulated Device Gate",
        description=(
            "Creates a manual simulated device on the IoT hub for every device-link "
            "request, then forwards the original request to the downstream app."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.iothub = iothub

    app.include_router(health.router)

    gate = SimulatedDeviceMiddleware(
        downstream if downstream is not None else create_downstream_app(),
        settings=settings,
        client=iothub,
    )
    app.mount("/api", gate)

    return app
