"""Run the relay: python -m chatrelay [--host H] [--port P] [--log-level L]"""

from __future__ import annotations

import argparse

import uvicorn

from chatrelay.config.settings import Settings
from chatrelay.core.gateway import create_app


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Browser-facing chat relay to an OpenAI-compatible upstream.")
    parser.add_argument("--host", default=None, help="bind address (default: CHATRELAY_HOST)")
    parser.add_argument("--port", type=int, default=None, help="bind port (default: CHATRELAY_PORT)")
    parser.add_argument("--log-level", default=None, help="debug|info|warning|error")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    overrides = {
        key: value
        for key, value in (("host", args.host), ("port", args.port), ("log_level", args.log_level))
        if value is not None
    }
    settings = Settings(**overrides)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
