"""
Integration Tests - Watermark Store
"""
from datetime import datetime

from customer_analytics.database.models import AnalyticsMeta


async def test_missing_key_has_no_watermark(watermarks):
    assert await watermarks.get("analyticsOrders") is None


async def test_set_then_get(watermarks):
    await watermarks.set("analyticsOrders", datetime(2024, 5, 1, 8, 30))

    assert await watermarks.get("analyticsOrders") == datetime(2024, 5, 1, 8, 30)


async def test_set_overwrites_single_row(watermarks, session_factory):
    await watermarks.set("analyticsOrders", datetime(2024, 5, 1))
    await watermarks.set("analyticsOrders", datetime(2024, 5, 2))

    async with session_factory() as session:
        meta = await session.get(AnalyticsMeta, "analyticsOrders")

    assert meta.last_run == datetime(2024, 5, 2)
    assert meta.updated_at == datetime(2024, 5, 2)
    assert await watermarks.get("analyticsOrders") == datetime(2024, 5, 2)


async def test_keys_are_independent(watermarks):
    await watermarks.set("analyticsOrders", datetime(2024, 5, 1))

    assert await watermarks.get("otherPipeline") is None
