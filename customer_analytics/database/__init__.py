"""
Database Module
"""
from .connection import (
    init_database,
    close_database,
    create_tables,
    get_db,
    get_session_factory,
)
from .models import Base, AposDoc, AnalyticsOrder, AnalyticsMeta
from .watermarks import WatermarkStore

__all__ = [
    "init_database",
    "close_database",
    "create_tables",
    "get_db",
    "get_session_factory",
    "Base",
    "AposDoc",
    "AnalyticsOrder",
    "AnalyticsMeta",
    "WatermarkStore",
]
