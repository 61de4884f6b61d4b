"""
Simulated Gate: Host Response Schemas
=====================================

What:  Pydantic response models for the routes served by the host application.
"""

from pydantic import BaseModel, Field

from simulated_gate.schemas.device import Product


class DeviceLinkAccepted(BaseModel):
    """
    What:  Answer of the default downstream handler.
    Who:   Returned by POST /api/device-links once the hub call succeeded.
    """
    status: str = Field(default="accepted", description="Always 'accepted'")
    identifier: str = Field(description="Hardware identifier from the original payload")
    product: Product = Field(description="Product classifier from the original payload")


class HealthResponse(BaseModel):
    """
    What:  Liveness answer for load balancers and container health checks.
    Note:  The IoT hub is not contacted; a provisioning call has side effects.
    """
    status: str = Field(description="Overall service status: healthy")
    version: str = Field(description="Application version")
    iot_hub_host: str = Field(description="Host part of the configured IoT hub URL")
    uptime_seconds: float = Field(description="Seconds since service started")
