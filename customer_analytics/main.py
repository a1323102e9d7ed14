"""
FastAPI Production Application

Main entry point for the Customer Analytics API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
import structlog

from customer_analytics.config import get_settings
from customer_analytics.config.logging import configure_logging
from customer_analytics.database.connection import close_database, init_database
from customer_analytics.serving.api import create_api_app

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    logger.info("Starting Customer Analytics API", environment=settings.app_env)
    await init_database()

    yield

    logger.info("Shutting down...")
    await close_database()


app = create_api_app(lifespan=lifespan)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
