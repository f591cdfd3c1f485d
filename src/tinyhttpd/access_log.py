"""
=============================================================================
ACCESS LOG
=============================================================================

One line per connection that got a response, on the "tinyhttpd.access"
logger, so it can be routed separately from diagnostics:

    logging.getLogger("tinyhttpd.access").addHandler(file_handler)

Text (Apache-like):

    127.0.0.1 - - [18/Oct/2026:10:00:00 +0000] "GET /index.html" 200 11 0.84ms

JSON (one object per line, for log shippers):

    {"connection_id": "3f9a1c2e", "client_ip": "127.0.0.1", "method": "GET",
     "path": "/index.html", "status_code": 200, "content_length": 11,
     "duration_ms": 0.84, "timestamp": "18/Oct/2026:10:00:00 +0000"}

A connection that died before anything was written (client vanished,
deadline gone while waiting for a worker) produces no access line; the
diagnostic log covers it.

=============================================================================
"""

import json
import time
import logging
from dataclasses import dataclass, asdict


logger = logging.getLogger("tinyhttpd.access")


@dataclass
class AccessLogEntry:
    """
    Structured record of one served connection.

    method and path are "-" when the request line never parsed.
    duration_ms runs from accept(), so it includes time spent waiting for
    a worker.
    """

    connection_id: str
    client_ip: str
    method: str
    path: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status_code"] = int(self.status_code)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {int(self.status_code)} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def log_timestamp() -> str:
    return time.strftime("%d/%b/%Y:%H:%M:%S %z")


def printable(text: str) -> str:
    """Undecodable request bytes (surrogate escapes) shown as \\xNN."""
    return text.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="backslashreplace")


class AccessLogger:
    """Formats entries as text or JSON and emits them at INFO."""

    def __init__(self, log_format: str = "text"):
        self.log_format = log_format

    def log(self, entry: AccessLogEntry):
        if not logger.isEnabledFor(logging.INFO):
            return
        if self.log_format == "json":
            logger.info(entry.to_json())
        else:
            logger.info(entry.to_text())
