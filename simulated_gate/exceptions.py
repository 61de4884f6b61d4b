"""
Simulated Gate: Exception Hierarchy
===================================

What:  One exception class per stage of the provisioning pipeline.
How:   Each exception carries a log message and an optional context dict.
       SimulatedDeviceMiddleware catches SimulatedGateError in one place and
       answers 404; the class only decides what ends up in the log.
Who:   Raised by the payload decoder and IotHubClient.

Exception Hierarchy (every class -> 404 Not Found):
    SimulatedGateError (base)
    ├── BodyReadError              inbound body could not be read
    ├── PayloadDecodeError         body is not a valid device-link payload
    ├── UpstreamUrlError           configured hub URL is unusable
    ├── RequestEncodeError         provisioning request could not be serialised
    ├── UpstreamTransportError     connect/timeout/protocol failure talking to the hub
    ├── UpstreamStatusError        hub answered outside [200, 300)
    └── UpstreamResponseReadError  hub response body could not be read

Callers never see these messages; only the generic not-found body is returned.
"""

from typing import Any, Dict, Optional


class SimulatedGateError(Exception):
    """
    Base exception for all gate errors.

    Attributes:
        message:  Log message describing the failed stage
        context:  Extra debug info, logged alongside the message
    """

    def __init__(
        self,
        message: str = "simulated device gate error",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class BodyReadError(SimulatedGateError):
    def __init__(self, detail: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=f"error reading body: {detail}", context=context)


class PayloadDecodeError(SimulatedGateError):
    """
    Raised when the inbound body is not a device-link payload.

    When: empty body, malformed JSON, missing `deviceLinkOperation`,
          missing `identifier`/`product`, or an unknown product.
    """

    def __init__(self, detail: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=f"error decoding body: {detail}", context=context)


class UpstreamUrlError(SimulatedGateError):
    def __init__(self, url: str, detail: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["url"] = url
        super().__init__(message=f"error creating url: {detail}", context=ctx)


class RequestEncodeError(SimulatedGateError):
    """
    Raised when the provisioning request cannot be serialised.

    The request is built from already-validated fields, so this should not
    happen in practice; it still maps to 404 like every other stage.
    """

    def __init__(self, detail: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"error encoding create simulated device request: {detail}",
            context=context,
        )


class UpstreamTransportError(SimulatedGateError):
    """
    Raised when the call to the IoT hub fails below HTTP.

    When: connection refused, DNS failure, timeout (request_timeout elapsed),
          protocol error. Never retried.
    """

    def __init__(self, detail: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=f"error performing request to iothub: {detail}", context=context)


class UpstreamStatusError(SimulatedGateError):
    """Raised when the hub answers with a status code outside [200, 300)."""

    def __init__(
        self,
        status_code: int,
        reason: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        status = f"{status_code} {reason}".strip()
        ctx = context or {}
        ctx["status_code"] = status_code
        super().__init__(message=f"iot hub status code error: {status}", context=ctx)
        self.status_code = status_code


class UpstreamResponseReadError(SimulatedGateError):
    def __init__(self, detail: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=f"error reading iot hub response: {detail}", context=context)
