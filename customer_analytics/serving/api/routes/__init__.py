"""
API Routes Module
"""
from .health import router as health_router
from .analytics import router as analytics_router
from .rebuild import router as rebuild_router

__all__ = [
    "health_router",
    "analytics_router",
    "rebuild_router",
]
