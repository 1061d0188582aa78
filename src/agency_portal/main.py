"""Application entry point."""

from __future__ import annotations

import os

import structlog
import uvicorn

from agency_portal.api.app import create_app
from agency_portal.core.config import load_config
from agency_portal.core.container import build_container
from agency_portal.core.logging import configure_logging

logger = structlog.get_logger()


def run() -> None:
    """Serve the portal API."""
    config = load_config()
    configure_logging(config.logging.level, config.logging.json_output)
    container = build_container(config)
    app = create_app(container)

    host = os.getenv("PORTAL_HOST", "127.0.0.1")
    port = int(os.getenv("PORTAL_PORT", "8000"))
    logger.info("portal_starting", host=host, port=port, database=config.database.path)
    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    run()
