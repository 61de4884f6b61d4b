"""
Simulated Gate: Package Initializer
===================================

What: Reverse-proxy step that creates a manual simulated device on an IoT hub
      before letting a device-link request through to the downstream app.

Architecture Note:

    ┌─────────────────────────────────────┐
    │   main / routes (host application)  │  ← FastAPI factory, health, default downstream
    ├─────────────────────────────────────┤
    │   middleware (the gate)             │  ← per-request pipeline, body replay
    ├─────────────────────────────────────┤
    │   services (IoT hub client)         │  ← one outbound call, error translation
    ├─────────────────────────────────────┤
    │   schemas / config / exceptions     │  ← wire models, settings, error taxonomy
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
