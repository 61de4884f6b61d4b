"""
Simulated Gate: Middleware Package
==================================

What:  The gate itself, SimulatedDeviceMiddleware.

Chain:
    Request → [SimulatedDeviceMiddleware] → downstream app
                     │
                     └── IoT hub (POST /simulator/simulated/device)

    The downstream app only runs after the hub answered 2xx. It then receives
    the caller's original body, not the provisioning request.
"""
