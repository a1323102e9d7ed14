"""
Test Suite Configuration
"""
from datetime import datetime
from typing import Any, Callable, Dict, List

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from customer_analytics.analytics.aliases import ProductAliasResolver
from customer_analytics.config.settings import DEFAULT_PRODUCT_ALIASES
from customer_analytics.database.models import AnalyticsOrder, AposDoc, Base
from customer_analytics.database.watermarks import WatermarkStore

JOB_TOKEN = "test-job-token"

PORTO_ID = DEFAULT_PRODUCT_ALIASES["porto"][0]
NAVIO_ID = DEFAULT_PRODUCT_ALIASES["navio"][0]
BOULEVARD_ID = DEFAULT_PRODUCT_ALIASES["boulevard"][0]


def fixed_clock(value: datetime) -> Callable[[], datetime]:
    return lambda: value


@pytest.fixture
async def test_engine():
    """In-memory database shared by every session of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
def watermarks(session_factory) -> WatermarkStore:
    return WatermarkStore(session_factory)


@pytest.fixture
def resolver() -> ProductAliasResolver:
    return ProductAliasResolver(DEFAULT_PRODUCT_ALIASES)


@pytest.fixture
def add_docs(session_factory):
    """Insert source documents (orders and profiles)"""
    async def _add(docs: List[Dict[str, Any]]) -> None:
        async with session_factory() as session:
            session.add_all([AposDoc(**doc) for doc in docs])
            await session.commit()
    return _add


@pytest.fixture
def add_analytics(session_factory):
    """Insert analytics rows directly, filling the non-null columns"""
    async def _add(rows: List[Dict[str, Any]]) -> None:
        async with session_factory() as session:
            session.add_all([
                AnalyticsOrder(**{
                    "user_city_norm": "SEM CIDADE",
                    "user_state_norm": "SEM ESTADO",
                    "updated_at": datetime(2024, 6, 1),
                    **row,
                })
                for row in rows
            ])
            await session.commit()
    return _add


def order(id: str, buyer_id: str, products_id: str, created_at: datetime, **extra) -> Dict[str, Any]:
    return {
        "id": id,
        "type": "order",
        "status": "success",
        "buyer_id": buyer_id,
        "products_id": products_id,
        "created_at": created_at,
        "reservation_date": created_at.strftime("%Y-%m-%d"),
        **extra,
    }


def profile(id: str, **fields) -> Dict[str, Any]:
    return {"id": id, "type": "apostrophe-user", **fields}
