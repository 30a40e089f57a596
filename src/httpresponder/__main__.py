"""
=============================================================================
HTTPRESPONDER CLI ENTRY POINT
=============================================================================

Runs a responder with the sample StatusHandler registered.

    # Defaults (127.0.0.1:8080)
    python -m httpresponder

    # All interfaces, custom port
    python -m httpresponder --host 0.0.0.0 --port 3000

    # Verbose, JSON access log
    python -m httpresponder --log-level DEBUG --log-format json

Environment variables (see ServerConfig.from_env) supply the defaults;
command-line arguments override them.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import LOG_FORMATS, ServerConfig
from .handlers import StatusHandler
from .server import HTTPServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httpresponder",
        description="Minimal connection-per-request HTTP responder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m httpresponder                        # Run with defaults
  python -m httpresponder --port 3000            # Custom port
  python -m httpresponder --host 0.0.0.0         # Listen on all interfaces
  python -m httpresponder --log-format json      # JSON access log
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    parser.add_argument(
        "--buffer-size", "-b",
        type=int,
        default=defaults.buffer_size,
        help=f"Maximum request size in bytes (default: {defaults.buffer_size})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # RESPONSE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--compression-level", "-c",
        type=int,
        choices=range(0, 10),
        metavar="0-9",
        default=defaults.compression_level,
        help=f"gzip level for clients that accept it (default: {defaults.compression_level})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"httpresponder {__version__}"
    )

    return parser


def main(argv=None) -> int:
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Invalid environment configuration: {e}", file=sys.stderr)
        return 2

    args = build_parser(defaults).parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        buffer_size=args.buffer_size,
        timeout=defaults.timeout,
        compression_level=args.compression_level,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        server = HTTPServer(config)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    server.on_request(StatusHandler())

    try:
        server.run()
    except OSError as e:
        print(f"Failed to start server: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass

    return 0


if __name__ == "__main__":
    sys.exit(main())
