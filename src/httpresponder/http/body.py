"""
=============================================================================
RESPONSE BODIES
=============================================================================

A response body is "some bytes plus the MIME type that describes them".
Handlers pick a body class; the serializer only calls to_bytes() and reads
mime_type.

    ┌───────────────┬──────────────────────────────┬───────────────────────────┐
    │ Class         │ Input                        │ MIME type                 │
    ├───────────────┼──────────────────────────────┼───────────────────────────┤
    │ JsonBody      │ mapping / list / scalar      │ application/json          │
    │ StringBody    │ str                          │ text/plain; charset=utf-8 │
    │ BinaryBody    │ bytes                        │ caller supplied           │
    │ ErrorBody     │ an exception                 │ application/json          │
    └───────────────┴──────────────────────────────┴───────────────────────────┘

=============================================================================
JSON ENCODING
=============================================================================

JSON is written compactly and keeps the mapping's key order:

    JsonBody({"ok": True}).to_bytes()  →  b'{"ok":true}'   (11 bytes)

=============================================================================
STRUCTURED ERRORS
=============================================================================

When a handler raises, the dispatcher answers 500 with an ErrorBody:

    {
      "type": "KeyError",
      "message": "'temperature'",
      "stackTrace": "  File \"app.py\", line 12, in handle\n ...",
      "source": "app.sensors"
    }

"source" is the module whose code raised the exception (the innermost
traceback frame), falling back to the exception class's module.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Any, Dict
import json
import traceback


JSON_MIME_TYPE = "application/json"
TEXT_MIME_TYPE = "text/plain; charset=utf-8"


class HTTPBody(ABC):
    """Base class for response bodies."""

    mime_type: str = "application/octet-stream"

    @abstractmethod
    def to_bytes(self) -> bytes:
        """Serialize the body for the wire."""

    def __len__(self) -> int:
        return len(self.to_bytes())


class JsonBody(HTTPBody):
    """
    JSON body built from any json-serializable value.

    Args:
        data: Usually a dict; key order is preserved in the output.
    """

    mime_type = JSON_MIME_TYPE

    def __init__(self, data: Any):
        self.data = data

    def to_bytes(self) -> bytes:
        return json.dumps(
            self.data,
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")

    def __repr__(self) -> str:
        return f"JsonBody({self.data!r})"


class StringBody(HTTPBody):
    """Text body, encoded as UTF-8."""

    def __init__(self, text: str, mime_type: str = TEXT_MIME_TYPE):
        self.text = text
        self.mime_type = mime_type

    def to_bytes(self) -> bytes:
        return self.text.encode("utf-8")

    def __repr__(self) -> str:
        return f"StringBody({self.text!r}, mime_type={self.mime_type!r})"


class BinaryBody(HTTPBody):
    """Raw bytes with an explicit MIME type."""

    def __init__(self, data: bytes, mime_type: str = "application/octet-stream"):
        self.data = bytes(data)
        self.mime_type = mime_type

    def to_bytes(self) -> bytes:
        return self.data

    def __repr__(self) -> str:
        return f"BinaryBody({len(self.data)} bytes, mime_type={self.mime_type!r})"


class ErrorBody(JsonBody):
    """
    JSON description of an exception.

    Example:
        try:
            handler(event)
        except Exception as e:
            response.body = ErrorBody(e)
    """

    def __init__(self, exception: BaseException):
        self.exception = exception
        super().__init__(exception_to_dict(exception))


def exception_to_dict(exception: BaseException) -> Dict[str, str]:
    """
    Describe an exception as ``{type, message, stackTrace, source}``.

    Args:
        exception: The raised exception. Its __traceback__ may be None if
                   it was never raised; stackTrace is then "".

    Returns:
        Dict with string values, in that key order.
    """
    tb = exception.__traceback__

    source = type(exception).__module__
    if tb is not None:
        innermost = tb
        while innermost.tb_next is not None:
            innermost = innermost.tb_next
        source = innermost.tb_frame.f_globals.get("__name__", source)

    return {
        "type": type(exception).__name__,
        "message": str(exception),
        "stackTrace": "".join(traceback.format_tb(tb)) if tb is not None else "",
        "source": source,
    }
