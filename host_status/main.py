"""CLI entrypoint for launching the FastAPI service with Uvicorn."""
from __future__ import annotations

import logging
import os

import uvicorn

from .api import create_app
from .config import get_settings


def configure_logging() -> None:
    """Configure root logging from the environment, ahead of loading settings."""
    level = os.getenv("HOST_STATUS_LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def main() -> None:
    configure_logging()
    settings = get_settings()
    logging.info(
        "Starting host status service on %s:%s (rate limit %s, refresh every %ss)",
        settings.host,
        settings.port,
        "on" if settings.enable_rate_limit else "off",
        settings.update_interval,
    )

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
