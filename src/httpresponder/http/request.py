"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes read from one connection into an HTTPRequest, or
reports that the bytes are not a request at all.

=============================================================================
WHAT WE ACCEPT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /status?verbose=1 HTTP/1.1\r\n        ← request line            │
    │  Host: 192.168.1.20\r\n                    ← zero or more headers    │
    │  Accept-Encoding: gzip, deflate\r\n                                  │
    │  \r\n                                      ← empty line              │
    │  ...optional body bytes...                 ← whatever remains        │
    └─────────────────────────────────────────────────────────────────────┘

    Request line:  METHOD SP PATH SP VERSION
                   METHOD  = one or more uppercase letters
                   VERSION = HTTP/<digit>.<digit>

    Header line:   Name ":" OWS Value OWS

=============================================================================
WHAT WE REJECT
=============================================================================

The parser fails (HTTPParseError from parse(), None from try_parse()) on:

    - empty input
    - no "\r\n\r\n" terminator              (truncated / not HTTP at all)
    - malformed request line                 ("GET\r\n", binary noise, ...)
    - header line without a colon, or with a bad field name
    - Content-Length that is not a non-negative integer
    - Content-Length larger than the bytes that arrived

The listener never turns a failure into a response: the connection is just
closed with nothing written back.

=============================================================================
SIZE CEILING
=============================================================================

The listener hands the parser ONE bounded read (ServerConfig.buffer_size,
2048 bytes by default). Anything that did not fit in that read is not seen:
a request whose headers overflow the buffer fails (no terminator), and one
whose declared body overflows it fails on Content-Length.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import parse_qs, unquote, urlsplit
import logging
import re

from .header import HTTPHeader, find_header


logger = logging.getLogger(__name__)


class HTTPParseError(Exception):
    """
    Raised when raw bytes cannot be parsed into an HTTPRequest.

    Only RequestParser.parse() raises it. The listener goes through
    try_parse(), which turns it into None.
    """


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed HTTP request.

    Produced once per connection and never modified afterwards.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         "GET", "POST", ... exactly as sent
        path:           Request path, percent-decoded, WITHOUT query string
        version:        Protocol version from the request line ("HTTP/1.1")
        headers:        List of HTTPHeader in wire order (case preserved)
        body:           Bytes after the empty line (trimmed to Content-Length)
        query:          Raw query string ("verbose=1"), "" if none
        uri:            Request target exactly as sent ("/status?verbose=1")
        client_address: (ip, port) of the peer
        raw:            The bytes this request was parsed from

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: List[HTTPHeader] = field(default_factory=list)
    body: bytes = b""
    query: str = ""
    uri: str = ""
    client_address: tuple = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Value of the first header called ``name`` (case-insensitive).

        Example:
            request.get_header("accept-encoding")  # "gzip, deflate"
        """
        header = find_header(self.headers, name)
        return header.value if header is not None else default

    def has_header(self, name: str) -> bool:
        return find_header(self.headers, name) is not None

    @property
    def query_params(self) -> dict:
        """Query string as ``{name: [values]}``, blank values kept."""
        return parse_qs(self.query, keep_blank_values=True)

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters, lowercased; None if absent."""
        value = self.get_header("Content-Type")
        if not value:
            return None
        return value.split(";")[0].strip().lower()

    @property
    def text(self) -> str:
        """Body decoded as UTF-8 (undecodable bytes replaced)."""
        return self.body.decode("utf-8", errors="replace")


class RequestParser:
    """
    Parses one HTTP request out of a single chunk of bytes.

    ==========================================================================
    PARSER STEPS
    ==========================================================================

        raw bytes
            │
            ├──► 1. split at "\r\n\r\n"         (missing → failure)
            ├──► 2. decode head as UTF-8       (replacement chars allowed)
            ├──► 3. request line regex         (mismatch → failure)
            ├──► 4. header lines               (no colon → failure)
            ├──► 5. body = rest, trimmed to Content-Length
            │
            ▼
        HTTPRequest

    ==========================================================================
    """

    REQUEST_LINE_PATTERN = re.compile(r"([A-Z]+) ([^ ]+) (HTTP/\d\.\d)")

    # RFC 7230 token characters; anything else in a field name is malformed
    FIELD_NAME_PATTERN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")

    def parse(self, data: bytes, client_address: tuple = ("", 0)) -> HTTPRequest:
        """
        Parse raw request bytes.

        Args:
            data: Bytes read from the connection.
            client_address: Peer (ip, port), stored on the request.

        Returns:
            The parsed HTTPRequest.

        Raises:
            HTTPParseError: If the bytes are not a well-formed request.
        """
        if not data:
            raise HTTPParseError("Empty request")

        # ─────────────────────────────────────────────────────────────────
        # HEAD / BODY SPLIT
        # ─────────────────────────────────────────────────────────────────
        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        head = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = head.split("\r\n")

        # ─────────────────────────────────────────────────────────────────
        # REQUEST LINE
        # ─────────────────────────────────────────────────────────────────
        method, uri, version = self._parse_request_line(lines[0])
        try:
            target = urlsplit(uri)
        except ValueError as e:
            raise HTTPParseError(f"Invalid request target: {uri[:80]!r}") from e
        path = unquote(target.path) or "/"

        # ─────────────────────────────────────────────────────────────────
        # HEADERS
        # ─────────────────────────────────────────────────────────────────
        headers = self._parse_headers(lines[1:])

        # ─────────────────────────────────────────────────────────────────
        # BODY
        # ─────────────────────────────────────────────────────────────────
        content_length = self._content_length(headers)
        if content_length is not None:
            if len(body) < content_length:
                raise HTTPParseError(
                    f"Incomplete body: expected {content_length} bytes, got {len(body)}"
                )
            body = body[:content_length]

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body,
            query=target.query,
            uri=uri,
            client_address=client_address,
            raw=data,
        )

    def try_parse(self, data: bytes, client_address: tuple = ("", 0)) -> Optional[HTTPRequest]:
        """
        Like parse(), but returns None instead of raising.

        This is what the listener calls: a failed parse only ever affects
        its own connection.
        """
        try:
            return self.parse(data, client_address)
        except HTTPParseError as e:
            logger.debug(f"Rejected request from {client_address[0]}: {e}")
            return None

    def _parse_request_line(self, line: str) -> tuple:
        match = self.REQUEST_LINE_PATTERN.fullmatch(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line[:80]!r}")
        return match.groups()

    def _parse_headers(self, lines: List[str]) -> List[HTTPHeader]:
        """
        Parse header lines into HTTPHeader objects, keeping order and case.

        Lines starting with SP/HTAB are obsolete folding and are appended to
        the previous header's value.
        """
        headers: List[HTTPHeader] = []

        for line in lines:
            if line[:1] in (" ", "\t"):
                if not headers:
                    raise HTTPParseError("Header continuation without a header")
                previous = headers[-1]
                headers[-1] = previous.with_value(f"{previous.value} {line.strip()}")
                continue

            name, colon, value = line.partition(":")
            if not colon:
                raise HTTPParseError(f"Malformed header line: {line[:80]!r}")
            if not self.FIELD_NAME_PATTERN.fullmatch(name):
                raise HTTPParseError(f"Invalid header name: {name[:80]!r}")

            headers.append(HTTPHeader(name=name, value=value.strip()))

        return headers

    @staticmethod
    def _content_length(headers: List[HTTPHeader]) -> Optional[int]:
        header = find_header(headers, "Content-Length")
        if header is None:
            return None
        value = header.value.strip()
        if not re.fullmatch(r"[0-9]+", value):
            raise HTTPParseError(f"Invalid Content-Length: {header.value!r}")
        return int(value)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

_default_parser = RequestParser()


def parse_request(data: bytes, client_address: tuple = ("", 0)) -> HTTPRequest:
    """Parse with a shared RequestParser. Raises HTTPParseError."""
    return _default_parser.parse(data, client_address)


def try_parse_request(data: bytes, client_address: tuple = ("", 0)) -> Optional[HTTPRequest]:
    """Parse with a shared RequestParser. Returns None on failure."""
    return _default_parser.try_parse(data, client_address)
