"""
Watermark Store

Persists the start time of the last successful rebuild per pipeline name,
so the next incremental run knows where to resume.
"""

from datetime import datetime
from typing import Callable, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from customer_analytics.database.models import AnalyticsMeta
from customer_analytics.database.repositories import upsert_rows

logger = structlog.get_logger(__name__)


class WatermarkStore:
    """
    Keyed get/set over the ``analytics_meta`` table.

    Reads and writes are not atomic with respect to each other; concurrent
    rebuilds of the same pipeline must be serialized by the caller.

    Example:
        store = WatermarkStore(session_factory)
        since = await store.get("analyticsOrders")
        await store.set("analyticsOrders", started_at)
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    async def get(self, key: str) -> Optional[datetime]:
        """Last successful run for ``key``, or None if never run."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(AnalyticsMeta.last_run).where(AnalyticsMeta.id == key)
            )
            return result.scalar_one_or_none()

    async def set(self, key: str, last_run: datetime) -> None:
        """Record ``last_run`` for ``key``, creating the row if needed."""
        async with self._session_factory() as session:
            await upsert_rows(
                session,
                AnalyticsMeta,
                [{"id": key, "last_run": last_run, "updated_at": last_run}],
            )
            await session.commit()
        logger.info("Watermark advanced", key=key, last_run=last_run.isoformat())
