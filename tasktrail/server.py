"""uvicorn entry point for ``tasktrail-server``.

Usage: tasktrail-server [--reload]
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence

from uvicorn import Config, Server

from tasktrail.core.config import get_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tasktrail-server",
        description="Run the TaskTrail HTTP API.",
    )
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--reload", action="store_true")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    config = Config(
        app="tasktrail.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        reload_dirs=["tasktrail"] if args.reload else None,
        # Logging is configured by the application itself.
        log_config=None,
    )
    Server(config=config).run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
