"""
=============================================================================
CLI ENTRY POINT
=============================================================================

Runs a sample server with the /ping handler.

    # Run with defaults (sample-server on 127.0.0.1:8080)
    python -m restserver

    # Custom port, all interfaces
    python -m restserver --host 0.0.0.0 --port 3000

    # Handle connections one at a time
    python -m restserver --workers 0

Flags override REST_SERVER_* environment variables, which override the
ServerConfig defaults.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_LEVELS, ServerConfig
from .errors import RestServerError
from .handlers import handle_ping
from .server import RestServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restserver",
        description="Minimal HTTP/1.1 server dispatching on exact paths",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m restserver                      # sample-server on 127.0.0.1:8080
  python -m restserver --port 3000          # Custom port
  python -m restserver --host 0.0.0.0       # Listen on all interfaces
  python -m restserver --workers 0          # Sequential handling
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # IDENTITY & NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--name", "-n", help="Server name (default: sample-server)")
    parser.add_argument("--host", "-H", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 8080)")
    parser.add_argument(
        "--timeout", "-t",
        type=float,
        help="Per-connection socket timeout in seconds (default: 30)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY & LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        dest="max_workers",
        help="Worker threads, 0 handles connections sequentially (default: 8)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        type=str.upper,
        help="Logging level (default: INFO)",
    )

    parser.add_argument("--version", "-v", action="version", version=f"restserver {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = ServerConfig.from_env(
            name=args.name,
            host=args.host,
            port=args.port,
            timeout=args.timeout,
            max_workers=args.max_workers,
            log_level=args.log_level,
        )
        server = RestServer.from_config(config)
        server.register_path("/ping", handle_ping)
        server.listen()
    except RestServerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
