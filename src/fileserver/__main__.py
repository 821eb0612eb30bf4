"""
=============================================================================
FILE SERVER CLI ENTRY POINT
=============================================================================

    # Serve the current directory on 0.0.0.0:8080
    python -m fileserver

    # Serve ./public on a custom port, error pages from ./errors
    python -m fileserver --root ./public --port 3000 --error-pages ./errors

    # Same, through the environment
    FILESERVER_ROOT=./public FILESERVER_PORT=3000 python -m fileserver

Flags override environment variables, which override defaults.

Exit status is 1 when the server cannot start (bad configuration, port
already in use, permission denied).

=============================================================================
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .config import LOG_LEVELS, ServerConfig
from .server import FileServer


logger = logging.getLogger("fileserver")


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fileserver",
        description="Minimal static-file HTTP/1.1 server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fileserver                         # Serve . on port 8080
  python -m fileserver --root ./public         # Serve ./public
  python -m fileserver --host :: --port 3000   # Dual-stack, port 3000
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Address to bind (default: {defaults.host}, use :: for IPv6)",
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILESYSTEM ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=defaults.root_dir,
        help=f"Directory to serve (default: {defaults.root_dir})",
    )

    parser.add_argument(
        "--error-pages", "-e",
        default=defaults.error_pages_dir,
        help="Directory holding <code>.html error pages (default: %(default)s)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level,
        help="Logging level (default: %(default)s)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"fileserver {__version__}",
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, build the server and run it until stopped."""
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        root_dir=args.root,
        error_pages_dir=args.error_pages,
        log_level=args.log_level,
    )

    try:
        server = FileServer(config)
        server.run()
    except (OSError, ValueError) as e:
        logger.error(f"Server failed to start: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
