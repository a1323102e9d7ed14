"""
Report Schemas

Pydantic models for the analytics report. Field names are snake_case in
Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReportFilters(CamelModel):
    """Effective filters, echoed back to the caller"""
    start_date: str
    end_date: str
    date_field: str
    state: Optional[str] = None
    city: Optional[str] = None
    cities: Optional[List[str]] = None
    product_ids: Optional[List[str]] = None


class Overview(CamelModel):
    customers: int = 0
    total_orders: int = 0
    avg_orders_per_customer: float = 0.0


class CityRow(CamelModel):
    city: str
    state: str
    customers: int
    avg_orders: float


class StateRow(CamelModel):
    state: str
    customers: int
    avg_orders: float


class RangeRow(CamelModel):
    range: str
    customers: int


class YearMonthRow(CamelModel):
    year: int
    month: int
    customers: int


class OrdersYearMonthRow(CamelModel):
    year: int
    month: int
    orders: int
    customers: int


class ProductRow(CamelModel):
    product_id: Optional[str] = None
    product_label: str
    customers: int


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class CustomerCard(CamelModel):
    """One buyer in the customer listing"""
    customer_id: str
    name: str = ""
    email: str = ""
    phone: str = ""
    city: str = ""
    state: str = ""
    birth_date: Optional[datetime] = None
    age_years: Optional[int] = None
    age_range: str
    order_count: int
    first_order_date: Optional[datetime] = None
    last_order_date: Optional[datetime] = None
    products_ids: List[Optional[str]] = []
    products: List[str] = []


class AnalyticsReport(CamelModel):
    """Full report returned by the facet query engine"""
    filters: ReportFilters
    overview: Overview
    by_city: List[CityRow] = []
    by_state: List[StateRow] = []
    age_ranges: List[RangeRow] = []
    purchase_frequency: List[RangeRow] = []
    customers_by_year_month: List[YearMonthRow] = []
    orders_by_year_month: List[OrdersYearMonthRow] = []
    products_breakdown: List[ProductRow] = []
    pagination: Optional[Pagination] = None
    customers: Optional[List[CustomerCard]] = None

    def to_payload(self) -> Dict[str, Any]:
        """JSON-safe dict; the customer listing only when it was requested."""
        payload = self.model_dump(mode="json", by_alias=True)
        if self.customers is None:
            payload.pop("pagination", None)
            payload.pop("customers", None)
        return payload
