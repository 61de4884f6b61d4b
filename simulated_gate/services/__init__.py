"""
Simulated Gate: Services Layer
==============================

Service Inventory:
    - IotHubClient: bounded httpx client for the IoT hub simulator endpoint
"""
