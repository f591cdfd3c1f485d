"""
=============================================================================
TINYHTTPD CLI ENTRY POINT
=============================================================================

    # Serve the current directory on port 8080
    python -m tinyhttpd

    # Serve ./public on port 3000 with 8 workers
    python -m tinyhttpd --port 3000 --dir ./public --workers 8

    # Localhost only, one log line per connection
    python -m tinyhttpd --host 127.0.0.1 --log-level DEBUG

Every flag falls back to its TINYHTTPD_* environment variable, then to the
built-in default (see ServerConfig.from_env).

Exit status: 0 after a clean shutdown (SIGINT / SIGTERM), 1 when the
configuration is invalid or the port cannot be bound.

=============================================================================
"""

import argparse
import sys
from dataclasses import replace
from typing import List, Optional

from . import __version__
from .config import ServerConfig, ConfigError, LOG_FORMATS
from .server import FileServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tinyhttpd",
        description="Minimal static file server: GET only, one request per connection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tinyhttpd                            # Serve . on 0.0.0.0:8080
  tinyhttpd -p 3000 -d ./public        # Custom port and root
  tinyhttpd -w 8 --deadline 10         # 8 workers, 10 s per connection
  tinyhttpd --log-format json          # JSON access log
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
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
        help=f"Port to listen on (default: {defaults.port})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--dir", "-d",
        dest="root",
        default=defaults.root,
        help=f"Directory to serve (default: {defaults.root})"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.workers,
        help=f"Worker threads (default: {defaults.workers})"
    )

    parser.add_argument(
        "--deadline",
        type=float,
        default=defaults.deadline,
        help=f"Seconds each connection may live (default: {defaults.deadline})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level,
        help=f"Logging level (default: {defaults.log_level})"
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
        version=f"tinyhttpd {__version__}"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, build the config and run the server until it stops.

    Returns the process exit status.
    """
    try:
        defaults = ServerConfig.from_env()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    config = replace(
        defaults,
        host=args.host,
        port=args.port,
        root=args.root,
        workers=args.workers,
        deadline=args.deadline,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        server = FileServer(config)
        server.run()
    except (ConfigError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
