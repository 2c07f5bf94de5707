from __future__ import annotations

import logging
import sys

import uvicorn

from weather_api.config import configure_logging, load_settings
from weather_api.errors import ConfigError
from weather_api.main import create_app

logger = logging.getLogger("weather_api")


def main() -> int:
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level)
    logger.info("listening on %s:%s", settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
