#!/usr/bin/env python3
"""Startup script for the Spades room server"""

import logging

import uvicorn

from .settings import ServerSettings, configure_logging

logger = logging.getLogger(__name__)


def main():
    settings = ServerSettings.from_env()
    configure_logging(settings.log_level)

    logger.info(f"Starting Spades room server on {settings.host}:{settings.port}")
    logger.info(f"Health check available at: http://{settings.host}:{settings.port}/health")
    logger.info(f"WebSocket endpoint: ws://{settings.host}:{settings.port}/ws")

    uvicorn.run(
        "spades_engine.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
