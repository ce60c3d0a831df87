"""Run the avatar service: ``python -m ensavatar``."""

import argparse

import uvicorn

from ensavatar.app import create_app
from ensavatar.config import Settings
from ensavatar.tracing import configure_logging


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve resized ENS avatars.")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0).")  # noqa: S104
    parser.add_argument("--port", type=int, default=3000, help="Bind port (default: 3000).")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Load settings, configure logging and run uvicorn."""
    args = _parse_args(argv)
    settings = Settings.from_env()
    log_level = (args.log_level or settings.log_level).upper()
    configure_logging(log_level)
    uvicorn.run(create_app(settings), host=args.host, port=args.port, log_level=log_level.lower())


if __name__ == "__main__":
    main()
