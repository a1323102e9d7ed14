"""
Prefect Workflow Orchestration - Analytics Rebuild

Scheduled incremental rebuild of the analytics table. One flow run at a
time drives the pipeline, so runs never overlap on the same watermark.
"""

from typing import Optional

from prefect import flow, task, get_run_logger

from customer_analytics.config import get_settings
from customer_analytics.config.logging import configure_logging
from customer_analytics.database.connection import (
    close_database,
    get_session_factory,
    init_database,
)
from customer_analytics.transformation.rebuild import RebuildMode, RebuildPipeline


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="run_rebuild",
    description="Join orders to profiles and upsert the analytics table",
)
async def run_rebuild(mode: str = "incremental", since: Optional[str] = None) -> dict:
    """Run one rebuild with the configured job token."""
    logger = get_run_logger()

    pipeline = RebuildPipeline.from_settings(get_session_factory(), get_settings().analytics)
    result = await pipeline.rebuild(mode, since=since, token=pipeline.job_token)

    logger.info(
        f"Rebuild {result.mode.value} complete: {result.rows_written} rows, "
        f"{result.unparsed_birth_dates} unparsed birth dates"
    )

    return {
        **result.to_dict(),
        "rows_written": result.rows_written,
        "unparsed_birth_dates": result.unparsed_birth_dates,
        "duration_seconds": result.duration_seconds,
    }


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="analytics_rebuild",
    description="Incremental rebuild of the customer analytics table",
)
async def analytics_rebuild(full: bool = False, since: Optional[str] = None) -> dict:
    """
    Analytics rebuild flow.

    Steps:
    1. Connect to the database
    2. Rebuild (incremental from the watermark, or full)
    3. Release the connection pool
    """
    logger = get_run_logger()
    mode = RebuildMode.FULL if full else RebuildMode.INCREMENTAL

    configure_logging()
    await init_database()
    try:
        logger.info(f"Starting analytics rebuild ({mode.value})")
        return await run_rebuild(mode.value, since)
    finally:
        await close_database()


# =============================================================================
# DEPLOYMENT CONFIGURATION
# =============================================================================

if __name__ == "__main__":
    import asyncio

    asyncio.run(analytics_rebuild())
