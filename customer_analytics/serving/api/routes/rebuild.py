"""
Rebuild Endpoint

Triggers an analytics rebuild. Protected by the shared job token, passed
as the ``token`` query parameter or the ``X-Analytics-Token`` header.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Query

from customer_analytics.transformation.rebuild import (
    RebuildMode,
    RebuildPipeline,
    rebuild_analytics,
)
from customer_analytics.serving.api.dependencies import get_rebuild_pipeline

router = APIRouter()


@router.get("/analytics/rebuild")
async def trigger_rebuild(
    token: Optional[str] = None,
    x_analytics_token: Optional[str] = Header(None, alias="X-Analytics-Token"),
    full: Optional[str] = None,
    since: Optional[str] = None,
    pipeline: RebuildPipeline = Depends(get_rebuild_pipeline),
) -> Dict[str, Any]:
    """
    Run a rebuild.

    ``full=1`` rebuilds every successful order; otherwise only orders
    created since ``since`` (or the last successful run) are processed.
    """
    mode = RebuildMode.FULL if full == "1" else RebuildMode.INCREMENTAL
    return await rebuild_analytics(
        pipeline,
        mode,
        since=since,
        token=token or x_analytics_token,
    )
