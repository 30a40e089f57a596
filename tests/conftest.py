"""
pytest configuration and fixtures.
"""

import socket
from typing import Callable, Generator, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpresponder import HTTPServer, ServerConfig
from httpresponder.core.dispatcher import RequestHandler, RequestReceivedEvent
from httpresponder.http import HTTPContext, parse_request


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /status?verbose=1&unit=C HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "probe", "interval": 5}'
    return (
        b"POST /api/probes HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json; charset=utf-8\r\n"
        + f"Content-Length: {len(body)}\r\n".encode() +
        b"\r\n"
    ) + body


@pytest.fixture
def gzip_get_request() -> bytes:
    """GET request from a client that accepts gzip."""
    return (
        b"GET /status HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Accept-Encoding: gzip, deflate\r\n"
        b"\r\n"
    )


@pytest.fixture
def make_context() -> Callable[..., HTTPContext]:
    """Build an HTTPContext from raw request bytes."""
    def _make(raw: bytes = b"GET / HTTP/1.1\r\nHost: test\r\n\r\n") -> HTTPContext:
        return HTTPContext(parse_request(raw, ("127.0.0.1", 40000)))
    return _make


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def send_raw(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """
    Send ``data`` on a fresh connection and read until the server closes.

    Returns every byte the server wrote (b"" if it wrote nothing).
    """
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        s.sendall(data)
        chunks = []
        while True:
            chunk = s.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes):
    """Split a raw response into (status line, header lines, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    return lines[0], lines[1:], body


class TestServer:
    """Test server helper running an HTTPServer in the background."""

    def __init__(self, handler: Optional[RequestHandler] = None, config: Optional[ServerConfig] = None):
        self.server = HTTPServer(config or ServerConfig(host="127.0.0.1", port=0, timeout=5.0))
        if handler is not None:
            self.server.on_request(handler)
        self.port = 0

    def start(self) -> "TestServer":
        _, self.port = self.server.start()
        return self

    def stop(self):
        self.server.shutdown()

    def request(self, data: bytes) -> bytes:
        return send_raw(self.port, data)


@pytest.fixture
def run_server() -> Generator[Callable[..., TestServer], None, None]:
    """
    Start servers on demand; all are stopped at teardown.

        def test_x(run_server):
            srv = run_server(handler)
            raw = srv.request(b"GET / HTTP/1.1\\r\\n\\r\\n")
    """
    started = []

    def _run(handler: Optional[RequestHandler] = None, config: Optional[ServerConfig] = None) -> TestServer:
        srv = TestServer(handler, config).start()
        started.append(srv)
        return srv

    yield _run

    for srv in started:
        srv.stop()


@pytest.fixture
def status_ok_handler() -> RequestHandler:
    """Answers GET /status with {"ok":true}; leaves everything else unhandled."""
    def handler(event: RequestReceivedEvent):
        request = event.context.request
        if request.method == "GET" and request.path == "/status":
            event.context.response.set_status(200).set_json({"ok": True})
            event.is_handled = True
    return handler
