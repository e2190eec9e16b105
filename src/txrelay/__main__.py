from __future__ import annotations

import argparse
import logging
import sys

import uvicorn

from txrelay.config import load_settings
from txrelay.errors import ConfigurationError
from txrelay.monitoring.logging_config import setup_logging

logger = logging.getLogger("txrelay")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the transaction relay")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    args = parser.parse_args(argv)

    setup_logging()
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.critical(str(e), extra={"missing": e.missing})
        return 1

    from txrelay.main import create_app

    uvicorn.run(
        create_app(settings),
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
