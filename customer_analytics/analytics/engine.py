"""
Facet Query Engine

Turns validated filters into one filtered read of the analytics table,
groups the rows per customer and fans the grouped frame out into every
report facet. Orders per month are read separately because they count
orders, not customers, and always use the order creation date.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from customer_analytics.analytics.aliases import ProductAliasResolver
from customer_analytics.analytics.facets import (
    MONTHLY_SCHEMA,
    RECORD_SCHEMA,
    compute_facets,
    group_customers,
    orders_by_year_month,
    records_frame,
    total_pages,
)
from customer_analytics.analytics.filters import (
    AnalyticsFilters,
    DateField,
    date_window_clauses,
    segment_clauses,
)
from customer_analytics.analytics.schemas import (
    AnalyticsReport,
    CustomerCard,
    Pagination,
    ReportFilters,
)
from customer_analytics.database.models import AnalyticsOrder
from customer_analytics.database.repositories import fetch_rows
from customer_analytics.errors import QueryFailed

logger = structlog.get_logger(__name__)


class FacetQueryEngine:
    """
    Builds analytics reports over ``analytics_orders``.

    Example:
        engine = FacetQueryEngine(session_factory, ProductAliasResolver(aliases))
        report = await engine.query(AnalyticsFilters(products=["porto"]))
        payload = report.to_payload()
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        resolver: ProductAliasResolver,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._session_factory = session_factory
        self.resolver = resolver
        self._clock = clock

    async def query(self, filters: AnalyticsFilters) -> AnalyticsReport:
        """
        Build the full report for ``filters``.

        Raises:
            QueryFailed: The store read or the aggregation failed
        """
        today = self._clock().date()
        start, end = filters.window(today)
        product_ids = self.resolver.resolve(filters.products, filters.product_ids)
        segment = segment_clauses(filters, product_ids)

        logger.debug(
            "Building analytics report",
            start=start,
            end=end,
            date_field=filters.date_field.value,
            product_ids=len(product_ids),
        )

        try:
            async with self._session_factory() as session:
                records = await fetch_rows(
                    session,
                    AnalyticsOrder,
                    list(RECORD_SCHEMA),
                    [*segment, *date_window_clauses(filters.date_field, start, end)],
                )
                monthly = await fetch_rows(
                    session,
                    AnalyticsOrder,
                    list(MONTHLY_SCHEMA),
                    [*segment, *date_window_clauses(DateField.CREATED_AT, start, end)],
                )

            customers = group_customers(records_frame(records), today)
            paging = (filters.page, filters.limit) if filters.include_customers else (None, None)
            facets = compute_facets(customers, filters.top, *paging)
            orders_by_month = orders_by_year_month(records_frame(monthly, MONTHLY_SCHEMA))

            listing: Dict[str, Any] = {}
            if filters.include_customers:
                total = facets["total_customers"]
                listing["pagination"] = Pagination(
                    page=filters.page,
                    limit=filters.limit,
                    total=total,
                    total_pages=total_pages(total, filters.limit),
                )
                listing["customers"] = [
                    CustomerCard(
                        **row,
                        products=[self.resolver.label_for(pid) for pid in row["products_ids"]],
                    )
                    for row in facets["customers"]
                ]

            report = AnalyticsReport(
                filters=ReportFilters(
                    start_date=start,
                    end_date=end,
                    date_field=filters.date_field.value,
                    state=filters.state,
                    city=filters.city,
                    cities=filters.cities or None,
                    product_ids=product_ids or None,
                ),
                overview=facets["overview"],
                by_city=facets["by_city"],
                by_state=facets["by_state"],
                age_ranges=facets["age_ranges"],
                purchase_frequency=facets["purchase_frequency"],
                customers_by_year_month=facets["customers_by_year_month"],
                orders_by_year_month=orders_by_month,
                products_breakdown=[
                    {**row, "product_label": self.resolver.label_for(row["product_id"])}
                    for row in facets["products_breakdown"]
                ],
                **listing,
            )
        except Exception as e:
            logger.error(
                "Analytics query failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise QueryFailed("Failed to build analytics report", cause=e) from e

        logger.info(
            "Analytics report built",
            orders=len(records),
            customers=report.overview.customers,
            cities=len(report.by_city),
            products=len(report.products_breakdown),
        )
        return report


async def query_analytics(
    engine: FacetQueryEngine,
    filters: Union[AnalyticsFilters, Mapping[str, Optional[str]]],
) -> Dict[str, Any]:
    """Report as a camelCase, JSON-safe dict; raw params are parsed first."""
    if not isinstance(filters, AnalyticsFilters):
        filters = AnalyticsFilters.from_params(filters)
    report = await engine.query(filters)
    return report.to_payload()
