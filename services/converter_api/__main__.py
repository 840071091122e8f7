"""Command-line entry point for the converter API.

Usage:
    python -m services.converter_api [--port 8080] [--log-level INFO] [--no-color]
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence

import uvicorn

from app.config import DEFAULT_HOST, DEFAULT_LOG_LEVEL, DEFAULT_PORT, LOG_LEVELS, Settings
from services.converter_api.main import create_app


def _bool_flag(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="silk-converter",
        description="HTTP service converting audio files to SILK",
    )
    parser.add_argument("--host", default=DEFAULT_HOST, help=f"Bind address (default: {DEFAULT_HOST})")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"Port (default: {DEFAULT_PORT})")
    parser.add_argument(
        "--debug",
        type=_bool_flag,
        default=True,
        metavar="BOOL",
        help="Debug mode: route table at startup, detailed errors (default: true)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=DEFAULT_LOG_LEVEL if DEFAULT_LOG_LEVEL in LOG_LEVELS else "DEBUG",
        help="Minimum log level (default: %(default)s)",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable coloured console logs")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    return Settings(
        host=args.host,
        port=args.port,
        debug=args.debug,
        log_level=args.log_level,
        color=not args.no_color,
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)
    app = create_app(settings)
    # log_config=None keeps uvicorn on the root handlers installed at startup
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
