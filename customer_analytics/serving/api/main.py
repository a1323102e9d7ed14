"""
FastAPI Application Factory

Creates and configures the API application.
"""

from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from customer_analytics.config import get_settings
from customer_analytics.errors import AnalyticsError
from customer_analytics.serving.api.middleware import (
    RequestLoggingMiddleware,
    analytics_error_handler,
    unhandled_error_handler,
)
from customer_analytics.serving.api.routes import (
    analytics_router,
    health_router,
    rebuild_router,
)


def create_api_app(lifespan: Optional[Any] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        lifespan: Startup/shutdown context manager; tests run without one

    Returns:
        Configured FastAPI app instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Customer Analytics API",
        description="Analytics table rebuild and faceted customer reports",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Analytics-Token"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(AnalyticsError, analytics_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health_router, tags=["Health"])
    app.include_router(analytics_router, tags=["Analytics"])
    app.include_router(rebuild_router, tags=["Rebuild"])

    return app
