"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows what HTTP looks like, and nothing that touches a
socket:

    header.py        HTTPHeader name/value pair
    status_codes.py  HTTPStatus and get_description()
    request.py       RequestParser → HTTPRequest
    body.py          JsonBody, StringBody, BinaryBody, ErrorBody
    response.py      HTTPResponse and ResponseSerializer
    compression.py   gzip negotiation and encoding
    context.py       HTTPContext (request + response for one connection)

=============================================================================
"""

from .header import HTTPHeader, find_header
from .status_codes import HTTPStatus, get_description
from .request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
    try_parse_request,
)
from .body import (
    HTTPBody,
    JsonBody,
    StringBody,
    BinaryBody,
    ErrorBody,
    exception_to_dict,
)
from .compression import Compressor, compress, supports_compression
from .response import HTTPResponse, ResponseSerializer, serialize_response
from .context import HTTPContext

__all__ = [
    # Headers and status
    "HTTPHeader",
    "find_header",
    "HTTPStatus",
    "get_description",

    # Requests
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "try_parse_request",

    # Bodies
    "HTTPBody",
    "JsonBody",
    "StringBody",
    "BinaryBody",
    "ErrorBody",
    "exception_to_dict",

    # Compression
    "Compressor",
    "compress",
    "supports_compression",

    # Responses
    "HTTPResponse",
    "ResponseSerializer",
    "serialize_response",
    "HTTPContext",
]
