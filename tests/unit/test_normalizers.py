"""
Unit Tests - Field Normalization
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from customer_analytics.transformation.normalizers import (
    NO_CITY,
    NO_STATE,
    ParsedDate,
    TrueDate,
    Unparseable,
    coalesce,
    normalize_birth_date,
    normalize_location,
)


class TestNormalizeLocation:
    """Tests for city/state normalization"""

    def test_uppercases_and_trims(self):
        assert normalize_location("  são paulo ", NO_CITY) == "SÃO PAULO"
        assert normalize_location("sp", NO_STATE) == "SP"

    def test_missing_value_uses_default_label(self):
        assert normalize_location(None, NO_CITY) == "SEM CIDADE"
        assert normalize_location(None, NO_STATE) == "SEM ESTADO"

    def test_non_string_values_are_stringified(self):
        assert normalize_location(42, NO_CITY) == "42"

    def test_empty_string_is_kept(self):
        assert normalize_location("   ", NO_CITY) == ""


class TestNormalizeBirthDate:
    """Tests for birth-date classification"""

    def test_day_first_text(self):
        outcome = normalize_birth_date("15/03/1990")

        assert isinstance(outcome, ParsedDate)
        assert outcome.value == datetime(1990, 3, 15)
        assert outcome.as_timestamp() == datetime(1990, 3, 15)

    def test_iso_text_matches_day_first(self):
        assert (
            normalize_birth_date("1990-03-15").as_timestamp()
            == normalize_birth_date("15/03/1990").as_timestamp()
        )

    def test_only_first_ten_characters_count(self):
        outcome = normalize_birth_date("1990-03-15T08:30:00.000Z")

        assert isinstance(outcome, ParsedDate)
        assert outcome.value == datetime(1990, 3, 15)

    def test_true_datetime_passes_through(self):
        value = datetime(1985, 7, 4, 12, 30)
        outcome = normalize_birth_date(value)

        assert isinstance(outcome, TrueDate)
        assert outcome.value is value
        assert outcome.as_timestamp() == value

    def test_true_date_widens_to_midnight(self):
        outcome = normalize_birth_date(date(1985, 7, 4))

        assert isinstance(outcome, TrueDate)
        assert outcome.as_timestamp() == datetime(1985, 7, 4)

    def test_aware_datetime_becomes_naive_utc(self):
        value = datetime(1985, 7, 4, 1, 0, tzinfo=timezone(timedelta(hours=3)))

        assert normalize_birth_date(value).as_timestamp() == datetime(1985, 7, 3, 22, 0)

    @pytest.mark.parametrize("raw", ["not-a-date", "19900315", "", None, "31/02/1990", "1990-13-01", 12345])
    def test_unusable_input_is_unparseable(self, raw):
        outcome = normalize_birth_date(raw)

        assert isinstance(outcome, Unparseable)
        assert outcome.value is None
        assert outcome.as_timestamp() is None


def test_coalesce_returns_first_non_null():
    assert coalesce(None, "", "x") == ""
    assert coalesce(None, None) is None
    assert coalesce(0, 1) == 0
