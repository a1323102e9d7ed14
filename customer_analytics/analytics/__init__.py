"""
Analytics Query Module
"""
from .aliases import ProductAliasResolver
from .engine import FacetQueryEngine, query_analytics
from .filters import AnalyticsFilters, DateField
from .schemas import AnalyticsReport

__all__ = [
    "ProductAliasResolver",
    "FacetQueryEngine",
    "query_analytics",
    "AnalyticsFilters",
    "DateField",
    "AnalyticsReport",
]
