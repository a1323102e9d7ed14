"""
Integration Tests - Connection Management
"""
import pytest
from sqlalchemy import select, text

from customer_analytics.database import connection
from customer_analytics.database.models import AnalyticsMeta


@pytest.fixture
async def database(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'analytics.db'}"
    engine = await connection.init_database(url)
    await connection.create_tables(engine)
    yield engine
    await connection.close_database()


async def test_init_is_idempotent(database):
    assert await connection.init_database() is database
    assert connection.get_engine() is database


async def test_health_check(database):
    assert (await connection.check_database_health())["status"] == "healthy"


async def test_health_check_without_database():
    health = await connection.check_database_health()

    assert health["status"] == "unhealthy"
    assert "not initialized" in health["error"]


async def test_get_db_commits(database):
    async with connection.get_db() as db:
        db.add(AnalyticsMeta(id="committed"))

    async with connection.get_db() as db:
        assert (await db.execute(select(AnalyticsMeta.id))).scalars().all() == ["committed"]


async def test_get_db_rolls_back_on_error(database):
    with pytest.raises(RuntimeError):
        async with connection.get_db() as db:
            db.add(AnalyticsMeta(id="discarded"))
            await db.flush()
            raise RuntimeError("boom")

    async with connection.get_db() as db:
        assert (await db.execute(select(AnalyticsMeta.id))).scalars().all() == []


async def test_dependency_yields_session(database):
    dependency = connection.get_db_dependency()
    session = await dependency.__anext__()

    assert (await session.execute(text("SELECT 1"))).scalar() == 1
    await dependency.aclose()
