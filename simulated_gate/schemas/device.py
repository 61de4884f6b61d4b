"""
Simulated Gate: Device Payload Schemas
======================================

What:  Pydantic models for the inbound device-link payload and the outbound
       simulated-device provisioning request.
How:   Field aliases carry the camelCase wire names; Python code uses snake_case.

Wire formats:
    Inbound (caller -> gate):
        {"deviceLinkOperation": {"identifier": "dev-123", "product": "TRACKER"}}

    Outbound (gate -> IoT hub):
        {"hardwareId": "dev-123", "productId": "TRACKER", "simulatorType": "MANUAL"}
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Product(str, Enum):
    """Device category understood by the IoT hub."""

    TRACKER = "TRACKER"


class SimulatorType(str, Enum):
    """Mode of the simulated device created on the hub."""

    MANUAL = "MANUAL"


# ══════════════════════════════════════════════════════════════════════════
# Inbound
# ══════════════════════════════════════════════════════════════════════════


class DeviceLinkOperation(BaseModel):
    hardware_id: str = Field(alias="identifier", description="Opaque hardware identifier")
    product: Product = Field(description="Product classifier")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class CreateThingRequest(BaseModel):
    """
    Envelope submitted by the caller.

    Unknown keys are ignored; a missing envelope, a missing field or an unknown
    product makes validation fail.
    """

    device_link_operation: DeviceLinkOperation = Field(alias="deviceLinkOperation")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


# ══════════════════════════════════════════════════════════════════════════
# Outbound
# ══════════════════════════════════════════════════════════════════════════


class CreateSimulatedDeviceRequest(BaseModel):
    hardware_id: str = Field(alias="hardwareId")
    product: Product = Field(alias="productId")
    simulator_type: SimulatorType = Field(default=SimulatorType.MANUAL, alias="simulatorType")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def from_link_operation(cls, operation: DeviceLinkOperation) -> "CreateSimulatedDeviceRequest":
        """Map a device-link operation 1:1 onto a manual simulator request."""
        return cls(
            hardware_id=operation.hardware_id,
            product=operation.product,
            simulator_type=SimulatorType.MANUAL,
        )

    def to_json_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")
