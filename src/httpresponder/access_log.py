"""
=============================================================================
ACCESS LOG
=============================================================================

One log record per response the server attempted to send, on the
"httpresponder.access" logger.

=============================================================================
FORMATS
=============================================================================

text (default):

    10.0.0.7 - - [18/Oct/2026:09:12:44 +0000] "GET /status" 200 11 0.84ms handled

json (for log shippers):

    {"connection_id": "3f9a1c2e", "method": "GET", "path": "/status",
     "client_ip": "10.0.0.7", "status_code": 200, "content_length": 11,
     "duration_ms": 0.84, "outcome": "handled", "sent": true,
     "timestamp": "18/Oct/2026:09:12:44 +0000"}

content_length is the number of response BYTES written (status line and
headers included), which after gzip is what actually crossed the wire.

=============================================================================
LEVELS
=============================================================================

    INFO     response sent, status < 400
    WARNING  response sent, status >= 400, or the send failed

Route the logger like any other:

    logging.getLogger("httpresponder.access").setLevel(logging.WARNING)

=============================================================================
"""

from dataclasses import dataclass, asdict
import json
import logging
import time


logger = logging.getLogger("httpresponder.access")


@dataclass
class AccessLogEntry:
    """
    Structured record of one request/response exchange.

    Attributes:
        connection_id: Id of the Connection that carried the exchange.
        method: Request method.
        path: Request path (no query string).
        client_ip: Peer address.
        status_code: Final status code.
        content_length: Bytes written to the socket (0 if the send failed).
        duration_ms: Time from accept to send completion.
        outcome: Dispatch outcome ("handled", "unhandled", ...).
        sent: Whether the response was written successfully.
        timestamp: Local time, Apache style.
    """

    connection_id: str
    method: str
    path: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    outcome: str
    sent: bool = True
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = time.strftime("%d/%b/%Y:%H:%M:%S %z")

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def to_text(self) -> str:
        line = (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms {self.outcome}'
        )
        if not self.sent:
            line += " (send failed)"
        return line


class AccessLogger:
    """
    Formats and emits AccessLogEntry records.

    Args:
        log_format: "text" or "json".
    """

    def __init__(self, log_format: str = "text"):
        self.log_format = log_format

    def format(self, entry: AccessLogEntry) -> str:
        if self.log_format == "json":
            return entry.to_json()
        return entry.to_text()

    def log(self, entry: AccessLogEntry) -> None:
        level = logging.INFO
        if entry.status_code >= 400 or not entry.sent:
            level = logging.WARNING
        logger.log(level, self.format(entry))
