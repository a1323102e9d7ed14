"""
Customer Analytics Endpoint

Faceted customer report over the analytics table.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
import structlog

from customer_analytics.analytics.engine import FacetQueryEngine, query_analytics
from customer_analytics.serving.api.dependencies import get_query_engine

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("/clientes/analytics")
async def get_customer_analytics(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    date_field: Optional[str] = Query(None, alias="dateField"),
    state: Optional[str] = None,
    estado: Optional[str] = None,
    city: Optional[str] = None,
    cities: Optional[str] = None,
    product: Optional[str] = None,
    products: Optional[str] = None,
    product_ids: Optional[str] = Query(None, alias="productIds"),
    include_customers: Optional[str] = Query(None, alias="includeCustomers"),
    page: Optional[str] = None,
    limit: Optional[str] = None,
    top: Optional[str] = None,
    engine: FacetQueryEngine = Depends(get_query_engine),
) -> Dict[str, Any]:
    """
    Customer report.

    Every parameter is optional. The date window defaults to the current
    month; ``dateField`` selects which timestamp it applies to.
    """
    params = {
        "startDate": start_date,
        "endDate": end_date,
        "dateField": date_field,
        "state": state,
        "estado": estado,
        "city": city,
        "cities": cities,
        "product": product,
        "products": products,
        "productIds": product_ids,
        "includeCustomers": include_customers,
        "page": page,
        "limit": limit,
        "top": top,
    }
    return await query_analytics(engine, params)
