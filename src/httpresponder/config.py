"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables in one dataclass, with environment-variable loading and
fail-fast validation.

=============================================================================
SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments    python -m httpresponder --port 8081  │
    │   2. Environment variables     HTTP_PORT=8081                        │
    │   3. Defaults below                                                  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
DELIBERATE LIMITS
=============================================================================

buffer_size is the request size ceiling: one recv() of that many bytes is
all the parser ever sees.

timeout defaults to None, i.e. no per-connection timeout. A stalled client
holds one thread until it disconnects. Setting a number opts into socket
timeouts on every read and write of client connections.

There is no worker limit: each connection gets its own thread.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for HTTPServer.

    Example:
        ServerConfig(host="0.0.0.0", port=8080, log_level="DEBUG")
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" for all interfaces."""

    port: int = 8080
    """Port to listen on. 0 lets the OS choose (see HTTPServer.address)."""

    backlog: int = 128
    """Queued-but-not-accepted connections before the OS refuses more."""

    buffer_size: int = 2048
    """Bytes read from each connection; the maximum request size."""

    timeout: Optional[float] = None
    """Client socket timeout in seconds. None = wait forever."""

    accept_timeout: float = 1.0
    """How often the accept loop checks for shutdown, in seconds."""

    # ─────────────────────────────────────────────────────────────────────
    # RESPONSES
    # ─────────────────────────────────────────────────────────────────────

    compression_level: int = 6
    """gzip level (0-9) for clients sending Accept-Encoding: gzip."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: "text" (one readable line) or "json"."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build a configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST               Bind address        (default: 127.0.0.1)
        HTTP_PORT               Port                (default: 8080)
        HTTP_BUFFER_SIZE        Request size limit  (default: 2048)
        HTTP_TIMEOUT            Socket timeout, s   (default: none)
        HTTP_COMPRESSION_LEVEL  gzip level          (default: 6)
        HTTP_LOG_LEVEL          Logging level       (default: INFO)
        HTTP_LOG_FORMAT         text | json         (default: text)

        =====================================================================

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        timeout = os.getenv("HTTP_TIMEOUT")
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            buffer_size=int(os.getenv("HTTP_BUFFER_SIZE", "2048")),
            timeout=float(timeout) if timeout else None,
            compression_level=int(os.getenv("HTTP_COMPRESSION_LEVEL", "6")),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Check every value, raising on the first bad one.

        Raises:
            ValueError: Describing the offending field.
        """
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 64:
            raise ValueError("buffer_size must be >= 64")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0 (or None for no timeout)")

        if self.accept_timeout <= 0:
            raise ValueError("accept_timeout must be > 0")

        if not 0 <= self.compression_level <= 9:
            raise ValueError(f"compression_level must be 0-9, got {self.compression_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {self.log_format!r}")
