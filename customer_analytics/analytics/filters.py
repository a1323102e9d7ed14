"""
Report Filters

Parses raw request parameters into ``AnalyticsFilters`` and turns them into
SQLAlchemy predicates over the analytics table. All validation happens here,
before the store is touched.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Mapping, Optional, Tuple

from sqlalchemy import ColumnElement

from customer_analytics.database.models import AnalyticsOrder
from customer_analytics.errors import InvalidArgument

DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
ALL_STATES = "todos"

MAX_LIMIT = 200
MAX_TOP = 500


class DateField(str, Enum):
    """Which timestamp the date window applies to"""
    CREATED_AT = "createdAt"
    RESERVATION_DATE = "reservationDate"
    USER_CREATED_AT = "userCreatedAt"

    @classmethod
    def parse(cls, raw: str) -> "DateField":
        for member in cls:
            if member.value.lower() == raw.strip().lower():
                return member
        raise InvalidArgument("dateField must be createdAt, reservationDate or userCreatedAt.")


def parse_list(raw: Optional[str]) -> List[str]:
    """Comma separated values, trimmed, empties dropped."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _parse_int(raw: Optional[str], default: int) -> int:
    try:
        return int(raw) or default
    except (TypeError, ValueError):
        return default


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def _validate_day(value: Optional[str], name: str) -> Optional[str]:
    if value is None:
        return None
    try:
        if not DAY_PATTERN.match(value):
            raise ValueError(value)
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as e:
        raise InvalidArgument(f"{name} must use the YYYY-MM-DD format.", cause=e) from e
    return value


def day_start(day: str) -> datetime:
    """00:00:00.000 of ``day``."""
    return datetime.strptime(day, "%Y-%m-%d")


def day_end(day: str) -> datetime:
    """23:59:59.999 of ``day``."""
    return day_start(day) + timedelta(days=1) - timedelta(milliseconds=1)


@dataclass
class AnalyticsFilters:
    """Validated report request"""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    date_field: DateField = DateField.USER_CREATED_AT
    state: Optional[str] = None
    city: Optional[str] = None
    cities: List[str] = field(default_factory=list)
    products: List[str] = field(default_factory=list)
    product_ids: List[str] = field(default_factory=list)
    include_customers: bool = False
    page: int = 1
    limit: int = 50
    top: int = 200

    def __post_init__(self):
        self.start_date = _validate_day(self.start_date, "startDate")
        self.end_date = _validate_day(self.end_date, "endDate")
        if not isinstance(self.date_field, DateField):
            self.date_field = DateField.parse(str(self.date_field))
        self.state = (self.state or "").strip() or None
        self.city = (self.city or "").strip() or None
        self.page = max(self.page, 1)
        self.limit = _clamp(self.limit, 1, MAX_LIMIT)
        self.top = _clamp(self.top, 1, MAX_TOP)

    @classmethod
    def from_params(cls, params: Mapping[str, Optional[str]]) -> "AnalyticsFilters":
        """
        Build filters from raw query-string values.

        Accepts ``estado`` as an alias of ``state`` and ``products`` as an
        alias of ``product``. Booleans are "1" or "true".
        """
        include = (params.get("includeCustomers") or "").strip().lower()
        return cls(
            start_date=params.get("startDate") or None,
            end_date=params.get("endDate") or None,
            date_field=params.get("dateField") or DateField.USER_CREATED_AT,
            state=params.get("estado") or params.get("state"),
            city=params.get("city"),
            cities=parse_list(params.get("cities")),
            products=[p.lower() for p in parse_list(params.get("product") or params.get("products"))],
            product_ids=parse_list(params.get("productIds")),
            include_customers=include in ("1", "true"),
            page=_parse_int(params.get("page"), 1),
            limit=_parse_int(params.get("limit"), 50),
            top=_parse_int(params.get("top"), 200),
        )

    def window(self, today: date) -> Tuple[str, str]:
        """Date window, defaulting to the first of the month through ``today``."""
        start = self.start_date or today.replace(day=1).isoformat()
        end = self.end_date or today.isoformat()
        return start, end


def date_window_clauses(
    date_field: DateField, start: str, end: str
) -> List[ColumnElement[bool]]:
    """Inclusive window on the selected field."""
    if date_field == DateField.RESERVATION_DATE:
        # stored as YYYY-MM-DD text, so lexical order is date order
        column = AnalyticsOrder.reservation_date
        return [column >= start, column <= end]

    if date_field == DateField.CREATED_AT:
        column = AnalyticsOrder.created_at
    else:
        column = AnalyticsOrder.user_created_at
    return [column >= day_start(start), column <= day_end(end)]


def segment_clauses(
    filters: AnalyticsFilters, product_ids: List[str]
) -> List[ColumnElement[bool]]:
    """Product, state and city restrictions shared by every aggregation."""
    clauses: List[ColumnElement[bool]] = []

    if product_ids:
        clauses.append(AnalyticsOrder.products_id.in_(product_ids))

    if filters.state and filters.state != ALL_STATES:
        clauses.append(AnalyticsOrder.user_state_norm == filters.state.upper())

    if filters.city:
        clauses.append(AnalyticsOrder.user_city_norm == filters.city.upper())
    elif filters.cities:
        clauses.append(
            AnalyticsOrder.user_city_norm.in_([c.strip().upper() for c in filters.cities])
        )

    return clauses
