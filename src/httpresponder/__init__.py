"""
=============================================================================
HTTPRESPONDER - Minimal Connection-Per-Request HTTP Responder
=============================================================================

A small HTTP/1.1 responder on raw sockets, meant to be embedded in a larger
application that needs to answer a handful of simple requests (status
probes, small JSON APIs) without a web framework.

=============================================================================
WHAT IT DOES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  1. Accept a TCP connection, start a thread for it                  │
    │  2. Read ONE request (a single bounded read)                        │
    │  3. Hand it to the ONE registered handler                           │
    │  4. Write ONE response, gzip'd if the client asked for it           │
    │  5. Close the connection                                            │
    └─────────────────────────────────────────────────────────────────────┘

No keep-alive, no routing, no chunked encoding, no TLS. Requests that do
not parse are dropped without a response.

=============================================================================
QUICK START
=============================================================================

    from httpresponder import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port=8080))

    @server.on_request
    def handle(event):
        if event.context.request.path == "/status":
            event.context.response.set_status(200).set_json({"ok": True})
            event.is_handled = True

    server.run()

    $ curl -i http://localhost:8080/status
    HTTP/1.1 200 OK
    Access-Control-Allow-Origin:*
    Connection:close
    Content-Type:application/json
    Content-Length:11

    {"ok":true}

=============================================================================
PACKAGE LAYOUT
=============================================================================

    httpresponder/
    ├── server.py         HTTPServer: the whole per-connection flow
    ├── config.py         ServerConfig
    ├── access_log.py     One log line per response
    ├── core/
    │   ├── socket_server.py   Listener and accept loop
    │   ├── connection.py      One client socket
    │   └── dispatcher.py      Handler slot and default statuses
    ├── http/             Parsing, bodies, serialization, gzip
    └── handlers/
        └── status.py     Sample /status handler

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig
from .core.dispatcher import Dispatcher, DispatchOutcome, RequestHandler, RequestReceivedEvent
from .http import (
    HTTPContext,
    HTTPHeader,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    HTTPBody,
    JsonBody,
    StringBody,
    BinaryBody,
    ErrorBody,
)

__all__ = [
    "__version__",

    # Server
    "HTTPServer",
    "create_app",
    "ServerConfig",

    # Handler contract
    "Dispatcher",
    "DispatchOutcome",
    "RequestHandler",
    "RequestReceivedEvent",
    "HTTPContext",

    # HTTP types
    "HTTPHeader",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "HTTPBody",
    "JsonBody",
    "StringBody",
    "BinaryBody",
    "ErrorBody",
]
