"""
API Dependencies

Builds the query engine and rebuild pipeline from settings and the shared
session factory. Tests replace these through ``app.dependency_overrides``.
"""

from functools import lru_cache

from customer_analytics.analytics.aliases import ProductAliasResolver
from customer_analytics.analytics.engine import FacetQueryEngine
from customer_analytics.config import get_settings
from customer_analytics.database.connection import get_session_factory
from customer_analytics.transformation.rebuild import RebuildPipeline


@lru_cache()
def get_alias_resolver() -> ProductAliasResolver:
    return ProductAliasResolver(get_settings().analytics.product_aliases)


def get_query_engine() -> FacetQueryEngine:
    return FacetQueryEngine(get_session_factory(), get_alias_resolver())


def get_rebuild_pipeline() -> RebuildPipeline:
    return RebuildPipeline.from_settings(get_session_factory(), get_settings().analytics)
