"""
=============================================================================
COMMAND-LINE INTERFACE
=============================================================================

    python -m tinyhttpd [options]
    tinyhttpd [options]            (console script)

Defaults come from the environment (see ServerConfig.from_env), flags
override them.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig
from .server import HTTPServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tinyhttpd",
        description="Minimal HTTP/1.0 static file server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m tinyhttpd                       # htdocs/ on port 4000
  python -m tinyhttpd --port 0              # let the OS pick a port
  python -m tinyhttpd --root ./public       # serve another directory
  python -m tinyhttpd --workers 8           # 8 worker threads
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Address to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on, 0 for any free port (default: {defaults.port})"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=defaults.timeout,
        help="Per-connection socket timeout in seconds (default: none)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT / PERFORMANCE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=defaults.document_root,
        help=f"Document root (default: {defaults.document_root})"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.workers,
        help="Worker threads; 0 serves one connection at a time (default: %(default)s)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help="Logging level (default: %(default)s)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"tinyhttpd {__version__}"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, build the server, run it.

    Returns:
        Process exit status: 0 after a clean shutdown, 1 on configuration
        or startup errors.
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: bad environment setting: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    defaults.host = args.host
    defaults.port = args.port
    defaults.timeout = args.timeout
    defaults.document_root = args.root
    defaults.workers = args.workers
    defaults.log_level = args.log_level

    try:
        server = HTTPServer(defaults)
        server.run()
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
