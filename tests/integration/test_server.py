"""
Integration tests: a real HTTPServer on a loopback socket.
"""

import gzip
import json
import logging
import socket
import threading
import time

import pytest

from conftest import send_raw, split_response
from httpresponder import HTTPServer, ServerConfig
from httpresponder.core.dispatcher import RequestReceivedEvent
from httpresponder.handlers import StatusHandler
from httpresponder.http.response import HTTPResponse


STATUS_REQUEST = b"GET /status HTTP/1.1\r\nHost: localhost\r\n\r\n"


class NullPointer(Exception):
    pass


class TestResponses:
    """One request, one response, connection closed."""

    def test_handled_json(self, run_server, status_ok_handler):
        srv = run_server(status_ok_handler)

        raw = srv.request(STATUS_REQUEST)

        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
        assert raw.endswith(b"Content-Length:11\r\n\r\n" + b'{"ok":true}')

    def test_gzip_negotiated(self, run_server, status_ok_handler):
        srv = run_server(status_ok_handler)

        raw = srv.request(
            b"GET /status HTTP/1.1\r\n"
            b"Host: localhost\r\n"
            b"Accept-Encoding: gzip, deflate\r\n"
            b"\r\n"
        )
        status, headers, body = split_response(raw)

        assert status == "HTTP/1.1 200 OK"
        assert "Content-Encoding:gzip" in headers
        assert f"Content-Length:{len(body)}" in headers
        assert gzip.decompress(body) == b'{"ok":true}'

    def test_no_handler_501(self, run_server):
        srv = run_server()

        status, headers, body = split_response(srv.request(STATUS_REQUEST))

        assert status == "HTTP/1.1 501 Not Implemented"
        assert "Content-Length:0" in headers
        assert body == b""

    def test_unhandled_400(self, run_server, status_ok_handler):
        srv = run_server(status_ok_handler)

        status, _, _ = split_response(srv.request(b"GET /other HTTP/1.1\r\n\r\n"))

        assert status == "HTTP/1.1 400 Bad Request"

    def test_handler_exception_500(self, run_server):
        def handler(event: RequestReceivedEvent):
            raise NullPointer("x")

        srv = run_server(handler)

        status, headers, body = split_response(srv.request(STATUS_REQUEST))
        decoded = json.loads(body)

        assert status == "HTTP/1.1 500 Internal Server Error"
        assert "Content-Type:application/json" in headers
        assert body.startswith(b'{"type":"NullPointer","message":"x",')
        assert decoded["type"] == "NullPointer"
        assert decoded["message"] == "x"

    def test_fixed_headers_first(self, run_server):
        def handler(event: RequestReceivedEvent):
            event.context.response.set_status(200).add_header("X-Unit", "C").set_text("21.5")
            event.is_handled = True

        srv = run_server(handler)

        _, headers, body = split_response(srv.request(STATUS_REQUEST))

        assert headers == [
            "Access-Control-Allow-Origin:*",
            "Connection:close",
            "Content-Type:text/plain; charset=utf-8",
            "Content-Length:4",
            "X-Unit:C",
        ]
        assert body == b"21.5"

    def test_request_body_reaches_handler(self, run_server, sample_post_request):
        received = []

        def handler(event: RequestReceivedEvent):
            received.append(event.context.request.body)
            event.is_handled = True

        srv = run_server(handler)
        srv.request(sample_post_request)

        assert received == [b'{"name": "probe", "interval": 5}']

    def test_replaced_response_unhandled_gives_400(self, run_server):
        def handler(event: RequestReceivedEvent):
            event.context.response = HTTPResponse().set_json({"partial": 1})

        srv = run_server(handler)

        status, _, body = split_response(srv.request(STATUS_REQUEST))

        assert status == "HTTP/1.1 400 Bad Request"
        assert body == b'{"partial":1}'

    def test_replaced_response_then_exception_gives_500(self, run_server):
        def handler(event: RequestReceivedEvent):
            event.context.response = HTTPResponse(status_code=200)
            raise ValueError("x")

        srv = run_server(handler)

        status, headers, body = split_response(srv.request(STATUS_REQUEST))

        assert status == "HTTP/1.1 500 Internal Server Error"
        assert "Content-Type:application/json" in headers
        assert json.loads(body)["message"] == "x"

    def test_status_handler_end_to_end(self, run_server):
        srv = run_server(StatusHandler())

        status, headers, body = split_response(srv.request(STATUS_REQUEST))

        assert status == "HTTP/1.1 200 OK"
        assert "Cache-Control:no-store" in headers
        assert json.loads(body)["status"] == "healthy"


class TestDroppedConnections:
    """Input that never produces a response."""

    @pytest.mark.parametrize("noise", [
        b"\x16\x03\x01\x02\x00\x01\x00\x01\xfc\x03\x03",
        b"\x00\xff\x00\xff\r\n\r\n",
        b"HELLO\r\n\r\n",
        b"GET / HTTP/1.1\r\nHost: localhost\r\n",
    ])
    def test_garbage_closed_without_response(self, run_server, status_ok_handler, noise):
        srv = run_server(status_ok_handler)

        assert srv.request(noise) == b""

    def test_client_closing_immediately(self, run_server, status_ok_handler):
        srv = run_server(status_ok_handler)

        with socket.create_connection(("127.0.0.1", srv.port), timeout=5.0):
            pass

        # Server is still serving afterwards
        assert srv.request(STATUS_REQUEST).startswith(b"HTTP/1.1 200 OK")

    def test_garbage_does_not_affect_next_request(self, run_server, status_ok_handler):
        srv = run_server(status_ok_handler)

        assert srv.request(b"\x00\x01\x02") == b""
        assert srv.request(STATUS_REQUEST).startswith(b"HTTP/1.1 200 OK")

    def test_unserializable_body_closes_without_response(self, run_server, caplog):
        def handler(event: RequestReceivedEvent):
            if event.context.request.path == "/broken":
                event.context.response.set_status(200).set_json({"x": object()})
            else:
                event.context.response.set_status(200).set_json({"ok": True})
            event.is_handled = True

        srv = run_server(handler)

        with caplog.at_level(logging.WARNING, logger="httpresponder"):
            assert srv.request(b"GET /broken HTTP/1.1\r\n\r\n") == b""

        assert "Failed to send HTTP response" in caplog.text
        assert srv.request(STATUS_REQUEST).startswith(b"HTTP/1.1 200 OK")

    def test_headers_past_buffer_size_dropped(self, run_server, status_ok_handler):
        config = ServerConfig(host="127.0.0.1", port=0, timeout=5.0, buffer_size=256)
        srv = run_server(status_ok_handler, config)
        request = (
            b"GET /status HTTP/1.1\r\n"
            b"X-Padding: " + b"a" * 400 + b"\r\n"
            b"\r\n"
        )

        assert srv.request(request) == b""

    def test_declared_body_past_buffer_size_dropped(self, run_server):
        received = []

        def handler(event: RequestReceivedEvent):
            received.append(event.context.request.body)
            event.is_handled = True

        config = ServerConfig(host="127.0.0.1", port=0, timeout=5.0, buffer_size=256)
        srv = run_server(handler, config)
        body = b"b" * 400
        request = (
            b"POST /upload HTTP/1.1\r\n"
            + f"Content-Length: {len(body)}\r\n".encode() +
            b"\r\n"
        ) + body

        assert srv.request(request) == b""
        assert received == []


class TestConcurrency:

    def test_concurrent_connections_no_cross_talk(self, run_server):
        def handler(event: RequestReceivedEvent):
            request = event.context.request
            event.context.response.set_status(200).set_json({"echo": request.path})
            event.is_handled = True

        srv = run_server(handler)
        results = {}
        errors = []

        def client(i: int):
            try:
                raw = send_raw(srv.port, f"GET /item/{i} HTTP/1.1\r\n\r\n".encode())
                _, _, body = split_response(raw)
                results[i] = json.loads(body)["echo"]
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=client, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10.0)

        assert errors == []
        assert results == {i: f"/item/{i}" for i in range(20)}

    def test_slow_handler_does_not_block_others(self, run_server):
        release = threading.Event()

        def handler(event: RequestReceivedEvent):
            if event.context.request.path == "/slow":
                release.wait(5.0)
            event.context.response.set_status(200).set_text("done")
            event.is_handled = True

        srv = run_server(handler)

        slow = threading.Thread(target=srv.request, args=(b"GET /slow HTTP/1.1\r\n\r\n",))
        slow.start()
        try:
            started = time.monotonic()
            raw = srv.request(b"GET /fast HTTP/1.1\r\n\r\n")
            elapsed = time.monotonic() - started
        finally:
            release.set()
            slow.join(timeout=10.0)

        assert raw.startswith(b"HTTP/1.1 200 OK")
        assert elapsed < 4.0


class TestLifecycle:

    def test_start_returns_bound_address(self):
        server = HTTPServer(ServerConfig(host="127.0.0.1", port=0))
        try:
            host, port = server.start()

            assert host == "127.0.0.1"
            assert port > 0
            assert server.address == (host, port)
            assert server.is_running
        finally:
            server.shutdown()

        assert not server.is_running

    def test_start_on_port_in_use_raises(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            server = HTTPServer(ServerConfig(host="127.0.0.1", port=port))
            with pytest.raises(RuntimeError):
                server.start()

    def test_stops_accepting_after_shutdown(self, status_ok_handler):
        server = HTTPServer(ServerConfig(host="127.0.0.1", port=0))
        server.on_request(status_ok_handler)
        _, port = server.start()
        server.shutdown()

        with pytest.raises(OSError):
            send_raw(port, STATUS_REQUEST, timeout=1.0)

    def test_decorator_registration(self):
        server = HTTPServer(ServerConfig(host="127.0.0.1", port=0))

        @server.on_request
        def handler(event):
            event.is_handled = True

        assert server.dispatcher.handler is handler

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            HTTPServer(ServerConfig(compression_level=42))
