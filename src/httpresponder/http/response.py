"""
=============================================================================
HTTP RESPONSE
=============================================================================

The mutable response a handler fills in, and the serializer that turns it
into the exact bytes written to the socket.

=============================================================================
WIRE FORMAT
=============================================================================

The layout below is fixed; header ORDER is part of the contract:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\r\n                      ← status line              │
    │  Access-Control-Allow-Origin:*\r\n        ← always                   │
    │  Connection:close\r\n                     ← always                   │
    │  Content-Encoding:gzip\r\n                ← only if client takes gzip│
    │  Content-Type:application/json\r\n        ← always (may be empty)    │
    │  Content-Length:11\r\n                    ← always, AFTER compression│
    │  X-Handler-Header:value\r\n               ← handler headers, in order│
    │  \r\n                                                                │
    │  {"ok":true}                              ← body bytes               │
    └─────────────────────────────────────────────────────────────────────┘

Note there is no space after the colon, and no Date or Server header.

=============================================================================
RESPONSE LIFECYCLE
=============================================================================

    HTTPResponse()          status_code=None, headers=[], body=None
         │
         ▼  handler / dispatcher
    status_code=200, body=JsonBody({...}), headers=[X-Foo:bar]
         │
         ▼  ResponseSerializer.serialize(response, request)
    b"HTTP/1.1 200 OK\r\n..."

The serializer reads the response; it never modifies it.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from .body import HTTPBody, JsonBody, StringBody, BinaryBody
from .compression import Compressor
from .header import HTTPHeader, find_header
from .request import HTTPRequest
from .status_codes import get_description


HTTP_VERSION = "HTTP/1.1"


@dataclass
class HTTPResponse:
    """
    Response under construction for one request.

    Attributes:
        status_code: Unset (None) until the handler or dispatcher picks one.
        headers: Extra headers, written after the computed ones.
        body: Optional HTTPBody; None means an empty body with no MIME type.

    Setter methods return self so calls can be chained:

        event.context.response.set_status(200).add_header("X-Unit", "C").set_json({"t": 21.5})
    """

    status_code: Optional[int] = None
    headers: List[HTTPHeader] = field(default_factory=list)
    body: Optional[HTTPBody] = None

    def set_status(self, status_code: int) -> "HTTPResponse":
        self.status_code = status_code
        return self

    def add_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Append a header. Existing headers with the same name are kept.

        Args:
            name: Header name, written as given.
            value: Header value.
        """
        self.headers.append(HTTPHeader(name=name, value=value))
        return self

    def get_header(self, name: str) -> Optional[str]:
        header = find_header(self.headers, name)
        return header.value if header is not None else None

    def set_body(self, body: Optional[HTTPBody]) -> "HTTPResponse":
        self.body = body
        return self

    def set_json(self, data: Any) -> "HTTPResponse":
        """Shortcut for ``set_body(JsonBody(data))``."""
        return self.set_body(JsonBody(data))

    def set_text(self, text: str) -> "HTTPResponse":
        """Shortcut for ``set_body(StringBody(text))``."""
        return self.set_body(StringBody(text))

    def set_bytes(self, data: bytes, mime_type: str) -> "HTTPResponse":
        """Shortcut for ``set_body(BinaryBody(data, mime_type))``."""
        return self.set_body(BinaryBody(data, mime_type))


class ResponseSerializer:
    """
    Turns an HTTPResponse into wire bytes.

    ==========================================================================
    ALGORITHM
    ==========================================================================

        1. description = get_description(status_code)   ("" if unknown)
        2. "HTTP/1.1 {code} {description}"
        3. "Access-Control-Allow-Origin:*", "Connection:close"
        4. body bytes + MIME type from response.body (or b"" and "")
        5. gzip body if the request accepts it → "Content-Encoding:gzip"
        6. "Content-Type:{mime}", "Content-Length:{len(body)}"
        7. handler headers, insertion order
        8. blank line, then body bytes

    ==========================================================================

    Args:
        compressor: Compression settings; defaults to level 6.
    """

    def __init__(self, compressor: Optional[Compressor] = None):
        self.compressor = compressor or Compressor()

    def serialize(self, response: HTTPResponse, request: HTTPRequest) -> bytes:
        """
        Serialize ``response`` as the answer to ``request``.

        Raises:
            ValueError: If the response has no status code.
            Exception: Anything raised by the body or the compressor; the
                       caller reports it as a failed send.
        """
        if response.status_code is None:
            raise ValueError("Response status code was never set")

        status_code = int(response.status_code)
        lines = [f"{HTTP_VERSION} {status_code} {get_description(status_code)}"]

        lines.append(str(HTTPHeader("Access-Control-Allow-Origin", "*")))
        lines.append(str(HTTPHeader("Connection", "close")))

        if response.body is not None:
            content = response.body.to_bytes()
            mime_type = response.body.mime_type
        else:
            content = b""
            mime_type = ""

        if self.compressor.supports(request):
            content = self.compressor.compress(content)
            lines.append(str(HTTPHeader("Content-Encoding", "gzip")))

        lines.append(str(HTTPHeader("Content-Type", mime_type)))
        lines.append(str(HTTPHeader("Content-Length", str(len(content)))))

        for header in response.headers:
            lines.append(str(header))

        # Empty element yields the blank line between headers and body
        lines.append("")

        head = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return head + content


def serialize_response(
    response: HTTPResponse,
    request: HTTPRequest,
    compression_level: int = 6,
) -> bytes:
    """One-shot serialization with a fresh ResponseSerializer."""
    return ResponseSerializer(Compressor(compression_level)).serialize(response, request)
