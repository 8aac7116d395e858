"""
=============================================================================
STATIC SERVER CLI ENTRY POINT
=============================================================================

This module provides the command-line interface for running the server.

=============================================================================
USAGE
=============================================================================

    # Serve ./www on port 8080
    python -m staticserver

    # Custom port
    python -m staticserver 3000

    # Custom port and web root
    python -m staticserver 3000 ./public

    # Only on localhost, at most 8 concurrent connections
    python -m staticserver 3000 ./public --host 127.0.0.1 --workers 8

The installed console script ``staticserver`` takes the same arguments.

Settings not given on the command line come from the environment
(HTTP_PORT, HTTP_WEB_ROOT, ... see config.py), then from the defaults.

=============================================================================
EXIT STATUS
=============================================================================

    0   Clean shutdown (Ctrl+C / SIGTERM)
    1   Startup failed: bad port, bad setting, port in use, unwritable root

=============================================================================
"""

import argparse
import sys

from . import __version__
from .bootstrap import ensure_web_root
from .config import LOG_LEVELS, ServerConfig
from .server import StaticServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Minimal static-content HTTP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  staticserver                          # Port 8080, ./www
  staticserver 3000                     # Custom port
  staticserver 3000 ./public            # Custom port and web root
  staticserver --host 127.0.0.1         # Local connections only
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # POSITIONAL ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────
    # The port is parsed by main(), so a bad one is a startup error (exit 1)

    parser.add_argument(
        "port",
        nargs="?",
        default=None,
        help="Port to listen on (default: 8080)"
    )

    parser.add_argument(
        "web_root",
        nargs="?",
        default=None,
        help="Directory to serve (default: ./www, created if missing)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # OPTIONS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Address to bind (default: 0.0.0.0)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum concurrent connections (default: 16)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"staticserver {__version__}"
    )

    return parser


def parse_port(value: str) -> int:
    """
    Parse a port argument.

    Raises:
        ValueError: If ``value`` is not an integer in 0-65535.
    """
    try:
        port = int(value)
    except ValueError:
        raise ValueError(f"Invalid port: {value!r}") from None
    if not 0 <= port < 65536:
        raise ValueError(f"Invalid port: {port}. Must be 0-65535.")
    return port


def main(argv=None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)

    try:
        # =====================================================================
        # CREATE CONFIGURATION
        # =====================================================================
        # CLI arguments override environment variables

        overrides = {}
        if args.port is not None:
            overrides["port"] = parse_port(args.port)
        if args.web_root is not None:
            overrides["web_root"] = args.web_root
        if args.host is not None:
            overrides["host"] = args.host
        if args.workers is not None:
            overrides["max_workers"] = args.workers
            overrides["min_workers"] = min(4, args.workers)
        if args.log_level is not None:
            overrides["log_level"] = args.log_level

        config = ServerConfig.from_env(**overrides)
        config.validate()

        # =====================================================================
        # PREPARE WEB ROOT AND RUN
        # =====================================================================
        # Blocks until Ctrl+C / SIGTERM

        ensure_web_root(config.web_root, config.default_document)
        StaticServer(config).run()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


# =============================================================================
# ENTRY POINT
# =============================================================================
# This allows running: python -m staticserver

if __name__ == "__main__":
    sys.exit(main())
