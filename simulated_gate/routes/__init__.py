"""
Simulated Gate: Host Routes
===========================

Route Inventory:
    - health.py:        GET  /health               (liveness check, not gated)
    - device_links.py:  POST /device-links         (default downstream, mounted under /api)

Routes stay thin; the provisioning work happens in the middleware before
device_links ever runs.
"""
