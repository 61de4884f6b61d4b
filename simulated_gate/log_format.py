"""
Simulated Gate: JSON Log Lines
==============================

What:  structlog ProcessorFormatter that renders every stdlib LogRecord as one
       JSON object per line.
How:   Installed on the stdout handler by main.setup_logging(). Modules keep
       plain `logging.getLogger(__name__)` loggers and attach the optional
       fields through `extra=`:

           logger.warning(
               "found deviceId=%s", hardware_id,
               extra={"network": client_network(request), "url": str(request.url)},
           )

Log Format:
    {"level": "warn", "msg": "found deviceId=dev-123", "time": "2024-01-15T12:00:00.123456Z",
     "network": {"client": {"ip": "10.0.0.7", "port": 53122}}, "url": "http://gate/api/device-links"}

    `network` and `url` are omitted when the record does not carry them.
"""

from typing import Any, Dict, Optional

import structlog
from starlette.requests import HTTPConnection
from structlog.types import EventDict, WrappedLogger

REQUEST_FIELDS = ("network", "url")

LEVEL_NAMES = {
    "debug": "debug",
    "info": "info",
    "warning": "warn",
    "error": "error",
    "critical": "error",
}


def add_level(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["level"] = LEVEL_NAMES.get(method_name, method_name)
    return event_dict


def drop_empty_request_fields(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    for key in REQUEST_FIELDS:
        if not event_dict.get(key):
            event_dict.pop(key, None)
    return event_dict


def build_formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.ExtraAdder(allow=REQUEST_FIELDS),
            add_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="time"),
            drop_empty_request_fields,
            structlog.processors.EventRenamer("msg"),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def client_network(connection: HTTPConnection) -> Optional[Dict[str, Any]]:
    """Network block for a log record, or None when the server gave no peer address."""
    if connection.client is None:
        return None
    return {"client": {"ip": connection.client.host, "port": connection.client.port}}
