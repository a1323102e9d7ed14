"""
Integration Tests - Facet Query Engine
"""
from datetime import datetime

import pytest

from customer_analytics.analytics import engine as engine_module
from customer_analytics.analytics.engine import FacetQueryEngine, query_analytics
from customer_analytics.analytics.filters import AnalyticsFilters
from customer_analytics.errors import QueryFailed
from customer_analytics.database.watermarks import WatermarkStore
from customer_analytics.transformation.rebuild import RebuildMode, RebuildPipeline

from conftest import BOULEVARD_ID, JOB_TOKEN, NAVIO_ID, PORTO_ID, fixed_clock, order, profile

NOW = datetime(2024, 6, 15, 12, 0)


@pytest.fixture
def engine(session_factory, resolver) -> FacetQueryEngine:
    return FacetQueryEngine(session_factory, resolver, clock=fixed_clock(NOW))


def analytics_row(id, buyer_id, products_id, created_at, **extra):
    return {
        "id": id,
        "buyer_id": buyer_id,
        "products_id": products_id,
        "created_at": created_at,
        "reservation_date": created_at.strftime("%Y-%m-%d"),
        "user_created_at": datetime(2024, 1, 1),
        **extra,
    }


class TestEndToEnd:
    """Rebuild followed by a report"""

    async def test_sao_paulo_porto_scenario(self, session_factory, add_docs, engine):
        await add_docs([
            order("o1", "b1", PORTO_ID, datetime(2024, 1, 10)),
            order("o2", "b1", PORTO_ID, datetime(2024, 2, 10)),
            profile("b1", city="  são paulo ", state="sp", birthdate="01/01/1990"),
        ])
        pipeline = RebuildPipeline(session_factory, WatermarkStore(session_factory), JOB_TOKEN)
        await pipeline.rebuild(RebuildMode.FULL, token=JOB_TOKEN)

        payload = await query_analytics(engine, {
            "startDate": "2024-01-01",
            "endDate": "2024-12-31",
            "dateField": "createdAt",
        })

        assert payload["overview"]["customers"] == 1
        assert payload["overview"]["totalOrders"] == 2
        assert payload["byCity"] == [
            {"city": "SÃO PAULO", "state": "SP", "customers": 1, "avgOrders": 2.0}
        ]
        assert payload["productsBreakdown"] == [
            {"productId": PORTO_ID, "productLabel": "porto", "customers": 1}
        ]
        assert payload["ageRanges"] == [{"range": "30-39", "customers": 1}]
        assert payload["purchaseFrequency"] == [{"range": "2-3", "customers": 1}]
        assert payload["ordersByYearMonth"] == [
            {"year": 2024, "month": 1, "orders": 1, "customers": 1},
            {"year": 2024, "month": 2, "orders": 1, "customers": 1},
        ]
        assert "customers" not in payload
        assert "pagination" not in payload


class TestFilters:
    """Filters applied by the engine"""

    @pytest.fixture
    async def seeded(self, add_analytics):
        await add_analytics([
            analytics_row("o1", "b1", PORTO_ID, datetime(2024, 6, 1), user_city_norm="CAMPINAS", user_state_norm="SP"),
            analytics_row("o2", "b2", NAVIO_ID, datetime(2024, 6, 2), user_city_norm="SANTOS", user_state_norm="SP"),
            analytics_row("o3", "b3", BOULEVARD_ID, datetime(2024, 6, 3), user_city_norm="NITERÓI", user_state_norm="RJ"),
            analytics_row("o4", "b1", NAVIO_ID, datetime(2024, 5, 20), user_city_norm="CAMPINAS", user_state_norm="SP"),
            analytics_row("o5", None, PORTO_ID, datetime(2024, 6, 4)),
        ])

    async def test_default_window_is_current_month(self, engine, seeded):
        report = await engine.query(AnalyticsFilters(date_field="createdAt"))

        assert report.filters.start_date == "2024-06-01"
        assert report.filters.end_date == "2024-06-15"
        # o4 falls in May; o5 has no buyer
        assert report.overview.customers == 3
        assert report.overview.total_orders == 3

    async def test_city_takes_precedence_over_cities(self, engine, seeded):
        report = await engine.query(AnalyticsFilters(
            start_date="2024-01-01", end_date="2024-12-31", date_field="createdAt",
            city="santos", cities=["campinas", "niterói"],
        ))

        assert [(row.city, row.customers) for row in report.by_city] == [("SANTOS", 1)]

    async def test_cities_list(self, engine, seeded):
        report = await engine.query(AnalyticsFilters(
            start_date="2024-01-01", end_date="2024-12-31", date_field="createdAt",
            cities=["campinas", "niterói"],
        ))

        assert sorted(row.city for row in report.by_city) == ["CAMPINAS", "NITERÓI"]

    async def test_state_filter_and_todos(self, engine, seeded):
        window = {"start_date": "2024-01-01", "end_date": "2024-12-31", "date_field": "createdAt"}

        rj = await engine.query(AnalyticsFilters(state="rj", **window))
        everyone = await engine.query(AnalyticsFilters(state="todos", **window))

        assert [row.state for row in rj.by_state] == ["RJ"]
        assert everyone.overview.customers == 3

    async def test_product_aliases_and_ids(self, engine, seeded):
        report = await engine.query(AnalyticsFilters(
            start_date="2024-01-01", end_date="2024-12-31", date_field="createdAt",
            products=["porto"], product_ids=[BOULEVARD_ID],
        ))

        assert report.filters.product_ids[-1] == BOULEVARD_ID
        assert PORTO_ID in report.filters.product_ids
        assert sorted(r.product_label for r in report.products_breakdown) == ["boulevard", "porto"]
        assert report.overview.customers == 2

    async def test_reservation_date_window(self, engine, seeded):
        report = await engine.query(AnalyticsFilters(
            start_date="2024-05-01", end_date="2024-05-31", date_field="reservationDate",
        ))

        assert report.overview.total_orders == 1
        assert report.products_breakdown[0].product_label == "navio"

    async def test_user_created_window_is_default(self, engine, seeded):
        report = await engine.query(AnalyticsFilters(start_date="2024-01-01", end_date="2024-01-01"))

        assert report.filters.date_field == "userCreatedAt"
        assert report.overview.total_orders == 4
        assert report.customers_by_year_month[0].year == 2024

    async def test_orders_by_month_uses_created_at(self, engine, seeded):
        report = await engine.query(AnalyticsFilters(start_date="2024-01-01", end_date="2024-01-01"))

        # user_created_at matches, but no order was created on that day
        assert report.orders_by_year_month == []


class TestCustomerListing:
    """Paginated customer cards"""

    @pytest.fixture
    async def many_customers(self, add_analytics):
        await add_analytics([
            analytics_row(f"o{i}", f"b{i:02d}", PORTO_ID, datetime(2024, 6, 1, i))
            for i in range(1, 8)
        ])

    async def test_pages_are_bounded(self, engine, many_customers):
        filters = AnalyticsFilters(
            start_date="2024-06-01", end_date="2024-06-30", date_field="createdAt",
            include_customers=True, page=2, limit=3,
        )

        payload = (await engine.query(filters)).to_payload()

        assert payload["pagination"] == {"page": 2, "limit": 3, "total": 7, "totalPages": 3}
        assert len(payload["customers"]) == 3
        assert [c["customerId"] for c in payload["customers"]] == ["b04", "b03", "b02"]

    async def test_card_fields(self, engine, many_customers):
        filters = AnalyticsFilters(
            start_date="2024-06-01", end_date="2024-06-30", date_field="createdAt",
            include_customers=True, limit=1,
        )

        card = (await engine.query(filters)).to_payload()["customers"][0]

        assert card["customerId"] == "b07"
        assert card["name"] == ""
        assert card["ageRange"] == "Sem idade"
        assert card["ageYears"] is None
        assert card["orderCount"] == 1
        assert card["productsIds"] == [PORTO_ID]
        assert card["products"] == ["porto"]
        assert card["lastOrderDate"] == "2024-06-01T07:00:00"

    async def test_empty_listing(self, engine):
        filters = AnalyticsFilters(include_customers=True)

        payload = (await engine.query(filters)).to_payload()

        assert payload["pagination"]["totalPages"] == 0
        assert payload["customers"] == []


async def test_store_errors_become_query_failed(resolver):
    def broken_session():
        raise RuntimeError("connection refused")

    engine = FacetQueryEngine(broken_session, resolver, clock=fixed_clock(NOW))

    with pytest.raises(QueryFailed) as exc_info:
        await engine.query(AnalyticsFilters())

    assert isinstance(exc_info.value.cause, RuntimeError)
    assert exc_info.value.to_dict() == {
        "error": "Failed to build analytics report",
        "detail": "connection refused",
    }


async def test_report_assembly_errors_become_query_failed(engine, monkeypatch):
    def broken_report(**fields):
        raise ValueError("bad facet row")

    monkeypatch.setattr(engine_module, "AnalyticsReport", broken_report)

    with pytest.raises(QueryFailed) as exc_info:
        await engine.query(AnalyticsFilters())

    assert exc_info.value.to_dict() == {
        "error": "Failed to build analytics report",
        "detail": "bad facet row",
    }
