"""
Customer Facets

Groups matching analytics rows into one row per buyer, derives age and
purchase-frequency brackets, and computes each report facet as an
independent pass over that grouped frame.
"""

from datetime import date
from typing import Any, Dict, List, Optional

import polars as pl

NO_AGE = "Sem idade"

AGE_BRACKETS = [
    (17, "0-17"),
    (29, "18-29"),
    (39, "30-39"),
    (49, "40-49"),
    (59, "50-59"),
    (69, "60-69"),
]
OLDEST_BRACKET = "70+"

FREQUENCY_BRACKETS = [
    (1, "1"),
    (3, "2-3"),
    (5, "4-5"),
    (9, "6-9"),
]
FREQUENCY_ORDER = ["1", "2-3", "4-5", "6-9", "10+"]

RECORD_SCHEMA = {
    "buyer_id": pl.Utf8,
    "products_id": pl.Utf8,
    "created_at": pl.Datetime("us"),
    "user_created_at": pl.Datetime("us"),
    "birth_date_normalized": pl.Datetime("us"),
    "user_city": pl.Utf8,
    "user_state": pl.Utf8,
    "user_city_norm": pl.Utf8,
    "user_state_norm": pl.Utf8,
    "user_name": pl.Utf8,
    "user_email": pl.Utf8,
    "user_phone": pl.Utf8,
}

MONTHLY_SCHEMA = {
    "buyer_id": pl.Utf8,
    "created_at": pl.Datetime("us"),
}

FIRST_SEEN = [
    "user_city",
    "user_state",
    "user_city_norm",
    "user_state_norm",
    "birth_date_normalized",
    "user_created_at",
    "user_name",
    "user_email",
    "user_phone",
]


def records_frame(rows: List[Dict[str, Any]], schema: Dict[str, Any] = RECORD_SCHEMA) -> pl.DataFrame:
    """DataFrame with a fixed schema, also when ``rows`` is empty."""
    return pl.from_dicts(rows, schema=schema)


def age_years_expr(today: date, column: str = "birth_date_normalized") -> pl.Expr:
    """Whole years since birth; one less until this year's birthday."""
    birth = pl.col(column)
    had_birthday = (birth.dt.month() < today.month) | (
        (birth.dt.month() == today.month) & (birth.dt.day() <= today.day)
    )
    years = pl.lit(today.year) - birth.dt.year().cast(pl.Int64)
    return (
        pl.when(birth.is_not_null())
        .then(years - pl.when(had_birthday).then(0).otherwise(1))
        .alias("age_years")
    )


def age_range_expr(column: str = "age_years") -> pl.Expr:
    age = pl.col(column)
    expr = pl.when(age <= AGE_BRACKETS[0][0]).then(pl.lit(AGE_BRACKETS[0][1]))
    for upper, label in AGE_BRACKETS[1:]:
        expr = expr.when(age <= upper).then(pl.lit(label))
    return (
        expr.when(age.is_not_null()).then(pl.lit(OLDEST_BRACKET))
        .otherwise(pl.lit(NO_AGE))
        .alias("age_range")
    )


def freq_range_expr(column: str = "order_count") -> pl.Expr:
    count = pl.col(column)
    expr = pl.when(count == FREQUENCY_BRACKETS[0][0]).then(pl.lit(FREQUENCY_BRACKETS[0][1]))
    for upper, label in FREQUENCY_BRACKETS[1:]:
        expr = expr.when(count <= upper).then(pl.lit(label))
    return expr.otherwise(pl.lit(FREQUENCY_ORDER[-1])).alias("freq_range")


def group_customers(records: pl.DataFrame, today: date) -> pl.DataFrame:
    """
    One row per buyer.

    Profile fields take the value of the first row seen for the buyer;
    which row that is depends on read order and carries no meaning.
    Rows without a buyer are dropped.
    """
    return (
        records.filter(pl.col("buyer_id").is_not_null())
        .group_by("buyer_id", maintain_order=True)
        .agg(
            pl.len().alias("order_count"),
            pl.col("created_at").min().alias("first_order_date"),
            pl.col("created_at").max().alias("last_order_date"),
            pl.col("products_id").unique(maintain_order=True).alias("products_ids"),
            *(pl.col(name).first() for name in FIRST_SEEN),
        )
        .rename({"buyer_id": "customer_id"})
        .with_columns(age_years_expr(today))
        .with_columns(age_range_expr(), freq_range_expr())
    )


# =============================================================================
# FACETS
# =============================================================================

def overview(customers: pl.DataFrame) -> Dict[str, Any]:
    if customers.is_empty():
        return {"customers": 0, "total_orders": 0, "avg_orders_per_customer": 0.0}
    return {
        "customers": customers.height,
        "total_orders": int(customers["order_count"].sum()),
        "avg_orders_per_customer": float(customers["order_count"].mean()),
    }


def by_city(customers: pl.DataFrame, top: int) -> List[Dict[str, Any]]:
    return (
        customers.group_by("user_city_norm", "user_state_norm")
        .agg(
            pl.len().alias("customers"),
            pl.col("order_count").mean().alias("avg_orders"),
        )
        .sort(
            ["customers", "user_city_norm", "user_state_norm"],
            descending=[True, False, False],
            nulls_last=True,
        )
        .head(top)
        .select(
            pl.col("user_city_norm").alias("city"),
            pl.col("user_state_norm").alias("state"),
            "customers",
            "avg_orders",
        )
        .to_dicts()
    )


def by_state(customers: pl.DataFrame) -> List[Dict[str, Any]]:
    return (
        customers.group_by("user_state_norm")
        .agg(
            pl.len().alias("customers"),
            pl.col("order_count").mean().alias("avg_orders"),
        )
        .sort(["customers", "user_state_norm"], descending=[True, False], nulls_last=True)
        .select(pl.col("user_state_norm").alias("state"), "customers", "avg_orders")
        .to_dicts()
    )


def age_ranges(customers: pl.DataFrame) -> List[Dict[str, Any]]:
    return (
        customers.group_by("age_range")
        .agg(pl.len().alias("customers"))
        .sort("age_range")
        .select(pl.col("age_range").alias("range"), "customers")
        .to_dicts()
    )


def purchase_frequency(customers: pl.DataFrame) -> List[Dict[str, Any]]:
    """Buckets in fixed order 1 < 2-3 < 4-5 < 6-9 < 10+; empty buckets omitted."""
    rows = (
        customers.group_by("freq_range")
        .agg(pl.len().alias("customers"))
        .select(pl.col("freq_range").alias("range"), "customers")
        .to_dicts()
    )
    return sorted(rows, key=lambda row: FREQUENCY_ORDER.index(row["range"]))


def customers_by_year_month(customers: pl.DataFrame) -> List[Dict[str, Any]]:
    return (
        customers.filter(pl.col("user_created_at").is_not_null())
        .group_by(
            pl.col("user_created_at").dt.year().alias("year"),
            pl.col("user_created_at").dt.month().alias("month"),
        )
        .agg(pl.len().alias("customers"))
        .sort(["year", "month"])
        .to_dicts()
    )


def products_breakdown(customers: pl.DataFrame) -> List[Dict[str, Any]]:
    """Customers per product id; a customer counts once per distinct product."""
    return (
        customers.select(pl.col("products_ids").alias("product_id"))
        .explode("product_id")
        .group_by("product_id")
        .agg(pl.len().alias("customers"))
        .sort(["customers", "product_id"], descending=[True, False], nulls_last=True)
        .to_dicts()
    )


def customer_page(customers: pl.DataFrame, page: int, limit: int) -> List[Dict[str, Any]]:
    """Most recent buyers first."""
    return (
        customers.sort("last_order_date", descending=True, nulls_last=True)
        .slice((page - 1) * limit, limit)
        .select(
            "customer_id",
            pl.col("user_name").fill_null("").alias("name"),
            pl.col("user_email").fill_null("").alias("email"),
            pl.col("user_phone").fill_null("").alias("phone"),
            pl.col("user_city").fill_null("").alias("city"),
            pl.col("user_state").fill_null("").alias("state"),
            pl.col("birth_date_normalized").alias("birth_date"),
            "age_years",
            "age_range",
            "order_count",
            "first_order_date",
            "last_order_date",
            "products_ids",
        )
        .to_dicts()
    )


def orders_by_year_month(records: pl.DataFrame) -> List[Dict[str, Any]]:
    """Orders and distinct buyers per month of order creation."""
    return (
        records.filter(pl.col("created_at").is_not_null())
        .group_by(
            pl.col("created_at").dt.year().alias("year"),
            pl.col("created_at").dt.month().alias("month"),
        )
        .agg(
            pl.len().alias("orders"),
            pl.col("buyer_id").n_unique().alias("customers"),
        )
        .sort(["year", "month"])
        .to_dicts()
    )


def total_pages(total: int, limit: int) -> int:
    return -(-total // limit) if total else 0


def compute_facets(
    customers: pl.DataFrame,
    top: int,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Every facet over the same grouped frame; the page only when requested."""
    facets = {
        "overview": overview(customers),
        "by_city": by_city(customers, top),
        "by_state": by_state(customers),
        "age_ranges": age_ranges(customers),
        "purchase_frequency": purchase_frequency(customers),
        "customers_by_year_month": customers_by_year_month(customers),
        "products_breakdown": products_breakdown(customers),
    }
    if page is not None and limit is not None:
        facets["customers"] = customer_page(customers, page, limit)
        facets["total_customers"] = customers.height
    return facets
