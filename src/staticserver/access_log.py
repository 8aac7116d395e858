"""
=============================================================================
ACCESS LOGGING
=============================================================================

One log record per answered request, on the "staticserver.access" logger,
separate from the diagnostic loggers so it can be routed on its own:

    logging.getLogger("staticserver.access").addHandler(file_handler)

Two formats:

    text (Apache-like, for humans and GoAccess-style tools):
        127.0.0.1 - - [2024-01-01T00:00:00+00:00] "GET /index.html HTTP/1.1" 200 1024 0.52ms

    json (for log aggregators):
        {"connection_id": "a1b2c3d4", "client_ip": "127.0.0.1", "method": "GET", ...}

Connections that send nothing get no record at all.

=============================================================================
"""

import json
import logging
from dataclasses import dataclass, asdict


logger = logging.getLogger("staticserver.access")


@dataclass
class AccessLogEntry:
    """
    Structured log entry for one request.

    Attributes:
        connection_id:  Connection.id, to correlate with debug logs.
        client_ip:      Peer address.
        request_line:   Method, raw path and protocol as received.
        status_code:    Status sent to the client.
        bytes_sent:     Body bytes actually written (less than the file
                        size if the client went away mid-stream).
        duration_ms:    Time from accept to last byte.
        timestamp:      ISO-8601 UTC time the response finished.
    """

    connection_id: str
    client_ip: str
    request_line: str
    status_code: int
    bytes_sent: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.request_line}" {self.status_code} '
            f'{self.bytes_sent} {self.duration_ms:.2f}ms'
        )


def log_access(entry: AccessLogEntry, log_format: str = "text") -> None:
    """Emit ``entry`` at INFO level in the requested format."""
    if not logger.isEnabledFor(logging.INFO):
        return

    if log_format == "json":
        logger.info(json.dumps(entry.to_dict()))
    else:
        logger.info(entry.to_text())
