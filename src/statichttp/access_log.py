"""
=============================================================================
ACCESS LOG
=============================================================================

One record per response written, on the "statichttp.access" logger.

    TEXT FORMAT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [10/Jun/2026:10:55:36 +0000] "GET /" 200 1043 0.52ms  │
    │ ────────────────────────────────────────────────────────────────────│
    │ IP          Timestamp          Method/Path  Status Size Duration    │
    └─────────────────────────────────────────────────────────────────────┘

    JSON FORMAT (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"connection_id": "a1b2c3d4", "method": "GET", "path": "/",        │
    │  "client_ip": "127.0.0.1", "status_code": 200, ...}                 │
    └─────────────────────────────────────────────────────────────────────┘

The connection id is the same one that prefixes the connection's debug
lines, so an access record can be matched with everything else logged
for that client.

Requests that never parsed (answered with 400) have no method or path;
they are logged as "-".

Because records go through the standard logging module, routing them
elsewhere is plain logging configuration:

    logging.getLogger("statichttp.access").addHandler(file_handler)

=============================================================================
"""

import time
import json
import logging
from dataclasses import dataclass


logger = logging.getLogger("statichttp.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one request/response cycle.

    Fields:
        connection_id:  Id of the connection the request arrived on
        method:         Request method, or "-" if the request did not parse
        path:           Request target, or "-"
        client_ip:      Client's IP address
        status_code:    Response status
        content_length: Body bytes actually written
        duration_ms:    From first byte read to last byte written
        timestamp:      When the response finished
    """

    connection_id: str
    method: str
    path: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "connection_id": self.connection_id,
            "method": self.method,
            "path": self.path,
            "client_ip": self.client_ip,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Format in the style of the Apache common log format."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """
    Emits RequestLog entries in the configured format.

    Shared by all connection threads; it holds no per-request state.
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        """
        Args:
            log_format: "text" or "json".
            log_level: Level the records are logged at.
        """
        self.log_format = log_format
        self.log_level = log_level

    def log(
        self,
        connection_id: str,
        client_ip: str,
        method: str,
        path: str,
        status_code: int,
        content_length: int,
        started: float,
    ) -> RequestLog:
        """
        Build and emit one access record.

        Args:
            started: time.monotonic() value taken when the cycle began.

        Returns:
            The emitted entry (handy in tests).
        """
        entry = RequestLog(
            connection_id=connection_id,
            method=method or "-",
            path=path or "-",
            client_ip=client_ip,
            status_code=int(status_code),
            content_length=content_length,
            duration_ms=(time.monotonic() - started) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        return entry
