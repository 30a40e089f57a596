"""
=============================================================================
HTTP RESPONDER
=============================================================================

Ties the pieces together: accept, read, parse, dispatch, serialize, send,
close. One request per connection, one thread per connection.

=============================================================================
PER-CONNECTION FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer accept loop                                           │
    │        │ Connection                                                  │
    │        ▼                                                             │
    │  _handle_connection()  ──► new daemon thread, returns immediately   │
    │                                  │                                   │
    │                                  ▼                                   │
    │  _process_connection(conn)                                          │
    │     with conn:                         ← socket closed on ANY exit   │
    │        data = conn.read_request()      ← one bounded recv()          │
    │        request = parser.try_parse()    ← None → close, send nothing  │
    │        context = HTTPContext(request)                                │
    │        dispatcher.dispatch(context)    ← 501 / 400 / 500 / handler   │
    │        _send_response(conn, context)   ← exactly one attempt         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
FAILURE ISOLATION
=============================================================================

Nothing that goes wrong on one connection reaches the accept loop or any
other connection:

    parse failure      → connection closed, zero bytes written
    handler exception  → 500 with a JSON error body (Dispatcher)
    send failure       → logged, connection closed, no retry
    read failure       → logged, connection closed

=============================================================================
KNOWN LIMITS
=============================================================================

- No cap on concurrent connections (one thread each).
- No timeouts unless ServerConfig.timeout is set: a client that never sends,
  or a handler that never returns, pins its thread.
- Requests larger than ServerConfig.buffer_size are not read in full.
- Closing always waits up to 0.5s for the client's unread bytes, even when
  ServerConfig.timeout is None (Connection.close drain, capped at 64KB).

=============================================================================
"""

import logging
import threading
import time
from typing import Optional, Tuple

from .access_log import AccessLogEntry, AccessLogger
from .config import ServerConfig
from .core import Connection, ConnectionState, Dispatcher, DispatchOutcome, SocketServer
from .core.dispatcher import RequestHandler
from .http import Compressor, HTTPContext, RequestParser, ResponseSerializer


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Connection-per-request HTTP/1.1 responder.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=8080))

        @server.on_request
        def handle(event):
            request = event.context.request
            if request.path == "/status":
                event.context.response.set_status(200).set_json({"ok": True})
                event.is_handled = True

        server.run()            # blocking; Ctrl+C to stop

    Or, from code that keeps running:

        server.start()          # returns once listening
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser()
        self._dispatcher = Dispatcher()
        self._serializer = ResponseSerializer(Compressor(self.config.compression_level))
        self._access_log = AccessLogger(self.config.log_format)

        self._thread: Optional[threading.Thread] = None
        self._start_error: Optional[BaseException] = None
        self._running = False

    # =========================================================================
    # HANDLER REGISTRATION
    # =========================================================================

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    def on_request(self, handler: RequestHandler) -> RequestHandler:
        """
        Register the request handler. Works as a decorator.

        Only one handler is kept; registering again replaces it. Register
        before starting the server.
        """
        return self._dispatcher.register(handler)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def address(self) -> Tuple[str, int]:
        """(host, port) the server is bound to; meaningful after start()."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Serve until shutdown() or SIGINT/SIGTERM. Blocks.

        Args:
            host: Override config.host.
            port: Override config.port.
        """
        self._setup_logging()
        self._serve(host, port)

    def start(self, port: Optional[int] = None, timeout: float = 5.0) -> Tuple[str, int]:
        """
        Bind and start accepting on a background thread.

        Returns once the socket is listening. Logging is left as the host
        application configured it.

        Args:
            port: Override config.port.
            timeout: Seconds to wait for the socket to start listening.

        Returns:
            The bound (host, port).

        Raises:
            RuntimeError: If already started, or the listener did not come
                          up (the bind error is chained).
        """
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("Server already started")

        self._start_error = None
        self._thread = threading.Thread(
            target=self._serve_in_background,
            args=(port,),
            name="HTTPServer-accept",
            daemon=True,
        )
        self._thread.start()

        deadline = time.monotonic() + timeout
        while not self._socket_server.wait_until_ready(0.05):
            if not self._thread.is_alive() or time.monotonic() > deadline:
                raise RuntimeError("Server failed to start") from self._start_error

        return self.address

    def shutdown(self, timeout: Optional[float] = 5.0):
        """
        Stop accepting connections.

        Connections already accepted keep running on their own threads and
        are not waited for.
        """
        self._socket_server.shutdown()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
            self._thread = None

    def _serve(self, host: Optional[str], port: Optional[int]):
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        if not self._dispatcher.has_handler:
            logger.warning("No request handler registered; every request gets 501")

        self._running = True
        try:
            self._socket_server.start(self._handle_connection)
        finally:
            self._running = False
            logger.info("Server stopped")

    def _serve_in_background(self, port: Optional[int]):
        # start() chains the stored error into its RuntimeError
        try:
            self._serve(None, port)
        except OSError as e:
            self._start_error = e

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("httpresponder").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Start the connection's own thread (called on the accept thread)."""
        worker = threading.Thread(
            target=self._process_connection,
            args=(conn,),
            name=f"Connection-{conn.id}",
            daemon=True,
        )
        worker.start()

    def _process_connection(self, conn: Connection):
        """
        Handle one connection start to finish (runs on its own thread).

        Exactly one request is read and at most one response is sent.
        """
        with conn:
            try:
                data = conn.read_request()
            except OSError as e:
                logger.warning(f"[{conn.id}] Read failed: {e}")
                return

            if not data:
                logger.debug(f"[{conn.id}] Client closed without sending a request")
                return

            try:
                request = self._parser.try_parse(data, conn.address)
                if request is None:
                    logger.debug(f"[{conn.id}] Unparseable request dropped ({len(data)} bytes)")
                    return

                context = HTTPContext(request)
                conn.state = ConnectionState.PROCESSING
                outcome = self._dispatcher.dispatch(context)

                self._send_response(conn, context, outcome)
            except Exception as e:
                logger.exception(f"[{conn.id}] Connection error: {e}")

    def _send_response(self, conn: Connection, context: HTTPContext, outcome: DispatchOutcome):
        """
        Serialize and write the response. Failures are logged, never raised.
        """
        sent = False
        try:
            data = self._serializer.serialize(context.response, context.request)
            sent = conn.send_response(data)
        except Exception as e:
            logger.warning(f"[{conn.id}] Failed to send HTTP response: {e}")

        request = context.request
        self._access_log.log(AccessLogEntry(
            connection_id=conn.id,
            method=request.method,
            path=request.path,
            client_ip=conn.client_ip,
            status_code=int(context.response.status_code or 0),
            content_length=conn.bytes_sent,
            duration_ms=conn.age * 1000,
            outcome=outcome.value,
            sent=sent,
        ))


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """Factory for an HTTPServer; same as calling the constructor."""
    return HTTPServer(config)
