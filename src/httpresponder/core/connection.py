"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket for its whole (short) life:

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED
              │                                       ▲
              └──── nothing / garbage received ───────┘

Every connection carries exactly one request. There is no keep-alive
state: after the response (or after deciding not to send one) the socket is
closed.

=============================================================================
ONE BOUNDED READ
=============================================================================

read_request() calls recv() ONCE with buffer_size bytes. It does not loop
until "\r\n\r\n" appears. For the small requests this server is meant for
(a request line and a handful of headers) one read is enough; anything
larger is cut at buffer_size and will usually fail to parse.

=============================================================================
TIMEOUTS
=============================================================================

By default the socket is fully blocking (timeout=None). A client that
connects and never sends anything keeps its thread busy until it goes
away. Pass a timeout to opt into socket timeouts.

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)

# Upper bound on bytes discarded while closing
_DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client (ip, port).
        id: Short random id used in log lines.
        state: Current ConnectionState.
        buffer_size: Size of the single read, in bytes.
        timeout: Socket timeout in seconds, None for blocking.
        bytes_sent: Total bytes written so far.

    Use as a context manager so the socket is released on every path:

        with conn:
            data = conn.read_request()
            ...
    """

    socket: socket.socket
    address: tuple
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    buffer_size: int = 2048
    timeout: Optional[float] = None
    bytes_sent: int = 0

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    def read_request(self) -> bytes:
        """
        Read one chunk of at most buffer_size bytes.

        Returns:
            The bytes received; b"" if the client closed without sending.

        Raises:
            OSError: On socket errors (including socket.timeout when a
                     timeout is configured).
        """
        self.state = ConnectionState.READING
        data = self.socket.recv(self.buffer_size)
        logger.debug(f"[{self.id}] Read {len(data)} bytes from {self.client_ip}")
        return data

    def send_response(self, data: bytes) -> bool:
        """
        Write ``data`` in full.

        Returns:
            True if sent, False if the peer went away (logged, not raised).
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        self.bytes_sent += len(data)
        return True

    def close(self):
        """
        Close the connection. Safe to call more than once.

        Sends FIN first, then discards whatever the client still had in
        flight, so the kernel does not answer unread data with a reset
        before the client has read our response.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.5)
            drained = 0
            while drained < _DRAIN_LIMIT:
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age * 1000:.1f}ms")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
