# /jewelbot/utils/lifecycle.py

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from jewelbot.utils.logging import setup_logging
from jewelbot.services.catalog_service import catalog_service
from jewelbot.services.whatsapp_service import whatsapp_service

# This file manages the application's lifespan: logging and the catalog are
# set up before the first request, outbound connections are closed on shutdown.

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    setup_logging()

    logger.info("Application starting up...")

    catalog_service.load()
    whatsapp_service.start()

    logger.info("Application startup complete. Ready to accept requests.")

    yield  # Application is now running

    logger.info("Application shutting down...")

    await whatsapp_service.close()
