"""
=============================================================================
STATIC SERVER CLI ENTRY POINT
=============================================================================

    # Serve the current directory on localhost:8080
    python -m statichttp

    # Custom root and port
    python -m statichttp --docroot ./public --port 3000

    # Listen on all interfaces (for containers)
    python -m statichttp --host 0.0.0.0

    # JSON access log for a log aggregator
    python -m statichttp --log-format json

Every option falls back to the matching HTTP_* environment variable
(see ServerConfig.from_env), then to the built-in default.

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .server import StaticServer
from .config import ServerConfig, LOG_LEVELS, LOG_FORMATS


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    """Build the argument parser, with defaults taken from `defaults`."""
    parser = argparse.ArgumentParser(
        prog="statichttp",
        description="Minimal HTTP/1.1 static file server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m statichttp                           # Serve . on 127.0.0.1:8080
  python -m statichttp --docroot ./public        # Serve another directory
  python -m statichttp --host 0.0.0.0 -p 3000    # All interfaces, port 3000
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host}, use 0.0.0.0 for containers)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on, 0 for any free port (default: {defaults.port})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # HTTP ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--docroot", "-d",
        default=defaults.doc_root,
        help=f"Directory to serve files from (default: {defaults.doc_root})"
    )

    parser.add_argument(
        "--idle-timeout", "-t",
        type=float,
        default=defaults.idle_timeout,
        help=f"Seconds allowed per request head (default: {defaults.idle_timeout})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level})"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"statichttp {__version__}"
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status: 0 after a clean shutdown, 1 on a configuration
        or startup error.
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment configuration: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        doc_root=args.docroot,
        idle_timeout=args.idle_timeout,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        server = StaticServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
