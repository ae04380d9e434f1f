"""Command-line entry for eventfeed."""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import run_server


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the eventfeed CLI."""
    parser = argparse.ArgumentParser(
        prog="eventfeed",
        description="eventfeed - JSON feed of upcoming calendar events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m eventfeed                    # Serve on 0.0.0.0:3030
  python -m eventfeed --port 8080        # Serve on port 8080
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 3030, or EVENTFEED_WEB_PORT)",
    )
    parser.add_argument(
        "--host",
        metavar="HOST",
        help="Address to bind (default: 0.0.0.0, or EVENTFEED_WEB_HOST)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Root log level (default: INFO, or EVENTFEED_LOG_LEVEL)",
    )

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Run the eventfeed CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)
    run_server(args)
    sys.exit(0)


if __name__ == "__main__":
    main()
