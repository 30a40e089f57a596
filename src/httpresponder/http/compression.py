"""
=============================================================================
GZIP COMPRESSION
=============================================================================

Compresses response bodies for clients that ask for gzip.

=============================================================================
NEGOTIATION
=============================================================================

    Client                                     Server
       │                                          │
       │  GET /status HTTP/1.1                     │
       │  Accept-Encoding: gzip, deflate, br  ───► │  "gzip" appears in the
       │                                          │  value → compress
       │                                          │
       │  ◄─── HTTP/1.1 200 OK                     │
       │       Content-Encoding:gzip              │
       │       Content-Length:<compressed size>   │

The check is deliberately loose:

    - the header NAME is matched case-insensitively ("accept-encoding" works)
    - only the first Accept-Encoding header is consulted
    - the VALUE is searched for the substring "gzip", any case, so
      "GZIP", "x-gzip" and "gzip;q=0" all count

Every body is compressed when the client qualifies, including empty ones
(an empty body compresses to the ~20 byte gzip frame). There is no
minimum size and no content-type filter.

=============================================================================
COMPRESSION LEVEL
=============================================================================

    0       = stored, no compression
    1       = fastest
    6       = balanced (default)
    9       = smallest output, slowest

=============================================================================
"""

import gzip

from .header import find_header
from .request import HTTPRequest


DEFAULT_LEVEL = 6


def supports_compression(request: HTTPRequest) -> bool:
    """
    True if the request's Accept-Encoding header mentions gzip.

    Args:
        request: The parsed request.
    """
    header = find_header(request.headers, "Accept-Encoding")
    if header is None:
        return False
    return "gzip" in header.value.lower()


def compress(data: bytes, level: int = DEFAULT_LEVEL) -> bytes:
    """
    Gzip ``data``.

    Errors are not caught here; the caller treats them as a failure to
    send the response.
    """
    return gzip.compress(data, compresslevel=level)


class Compressor:
    """
    Compression settings bound to one server.

    Args:
        level: gzip level, 0-9.

    Raises:
        ValueError: If level is out of range.
    """

    def __init__(self, level: int = DEFAULT_LEVEL):
        if not 0 <= level <= 9:
            raise ValueError(f"Compression level must be 0-9, got {level}")
        self.level = level

    def supports(self, request: HTTPRequest) -> bool:
        return supports_compression(request)

    def compress(self, data: bytes) -> bytes:
        return compress(data, self.level)
