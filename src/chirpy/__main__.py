"""
Command line entry point: ``python -m chirpy`` or the ``chirpy`` script.

Settings start from ``ServerConfig.from_env()`` (environment plus an
optional ``.env`` file); flags given on the command line win.
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .app import create_app
from .config import ServerConfig, LOG_LEVELS, LOG_FORMATS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chirpy",
        description="Chirpy: file server, hit counter and chirp validation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  chirpy                          # 127.0.0.1:8080, serving the current directory on /app/
  chirpy --port 3000 --root ./public
  chirpy --host 0.0.0.0 --log-format json
  chirpy --env-file deploy/.env
        """,
    )

    # ─── Network ─────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", help="Address to bind (env CHIRPY_HOST)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on, 0 for any (env CHIRPY_PORT)")
    parser.add_argument("--workers", "-w", type=int, help="Maximum worker threads (env CHIRPY_WORKERS)")

    # ─── Application ─────────────────────────────────────────────────────

    parser.add_argument("--root", "-r", help="Directory served under /app/ (env CHIRPY_FILEPATH_ROOT)")
    parser.add_argument(
        "--no-listing",
        action="store_true",
        help="Answer 403 for directories without index.html",
    )

    # ─── Logging ─────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (env CHIRPY_LOG_LEVEL)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        help="Access log format (env CHIRPY_LOG_FORMAT)",
    )

    # ─── Meta ────────────────────────────────────────────────────────────

    parser.add_argument("--env-file", help="Load environment variables from this file first")
    parser.add_argument("--version", "-v", action="version", version=f"chirpy {__version__}")

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment-derived config with command line overrides applied."""
    config = ServerConfig.from_env(args.env_file)

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.max_workers = args.workers
        config.min_workers = max(1, min(config.min_workers, args.workers))
    if args.root is not None:
        config.filepath_root = args.root
    if args.no_listing:
        config.directory_listing = False
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        server = create_app(config)
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
