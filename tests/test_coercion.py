"""Tests for value coercion used by rule operators."""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from conftest import NOW

from rules.coercion import (
    add_months,
    resolve_date_literal,
    resolve_relative_date,
    to_date,
    to_number,
)
from rules.models import EvaluationContext


@pytest.fixture
def context() -> EvaluationContext:
    return EvaluationContext(
        answers={"incident_date": "2025-01-31"},
        metadata={"policy_start_date": "2024-02-29", "submission_date": "2025-06-01"},
        now=NOW,
    )


class TestToNumber:
    """Tests for to_number."""

    def test_numbers_pass_through(self):
        assert to_number(1500) == 1500.0
        assert to_number(12.5) == 12.5
        assert to_number(Decimal("3.25")) == 3.25

    def test_numeric_strings(self):
        assert to_number("1500") == 1500.0
        assert to_number(" 12.5 ") == 12.5
        assert to_number("-3") == -3.0

    @pytest.mark.parametrize(
        "value", [None, True, False, "", "   ", "abc", "12abc", [], {}, [1], float("nan")]
    )
    def test_not_comparable(self, value):
        assert to_number(value) is None

    def test_infinity_is_not_comparable(self):
        assert to_number(math.inf) is None
        assert to_number("inf") is None


class TestToDate:
    """Tests for to_date."""

    def test_iso_date(self):
        assert to_date("2024-01-15") == datetime(2024, 1, 15)

    def test_flexible_formats(self):
        assert to_date("01/15/2024") == datetime(2024, 1, 15)
        assert to_date("20240115") == datetime(2024, 1, 15)

    def test_timestamp_with_z(self):
        assert to_date("2024-01-15T10:30:00Z") == datetime(2024, 1, 15, 10, 30)

    def test_timestamp_with_offset_is_normalized_to_utc(self):
        assert to_date("2024-01-15T10:30:00+02:00") == datetime(2024, 1, 15, 8, 30)

    def test_date_and_datetime_objects(self):
        assert to_date(date(2024, 1, 15)) == datetime(2024, 1, 15)
        aware = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        assert to_date(aware) == datetime(2024, 1, 15, 12, 0)

    @pytest.mark.parametrize(
        "value", [None, "", "not a date", "2024-02-30", 20240115, True, [], {}]
    )
    def test_invalid_values(self, value):
        assert to_date(value) is None


class TestRelativeDates:
    """Tests for relative date literals."""

    def test_days_from_now(self, context):
        literal = {"type": "relative", "days": -90, "from": "now"}
        assert resolve_relative_date(literal, context) == datetime(2025, 3, 17)

    def test_from_defaults_to_start_of_today(self, context):
        assert resolve_relative_date({"type": "relative", "days": 0}, context) == datetime(2025, 6, 15)

    def test_from_answer_field(self, context):
        literal = {"type": "relative", "days": 30, "from": "incident_date"}
        assert resolve_relative_date(literal, context) == datetime(2025, 3, 2)

    def test_from_metadata_field(self, context):
        literal = {"type": "relative", "days": -1, "from": "submission_date"}
        assert resolve_relative_date(literal, context) == datetime(2025, 5, 31)

    def test_months_clamp_to_month_end(self, context):
        literal = {"type": "relative", "months": 1, "from": "incident_date"}
        assert resolve_relative_date(literal, context) == datetime(2025, 2, 28)

    def test_years_clamp_leap_day(self, context):
        literal = {"type": "relative", "years": 1, "from": "policy_start_date"}
        assert resolve_relative_date(literal, context) == datetime(2025, 2, 28)

    def test_unresolvable_base(self, context):
        literal = {"type": "relative", "days": 1, "from": "unknown_field"}
        assert resolve_relative_date(literal, context) is None

    def test_unknown_type(self, context):
        assert resolve_relative_date({"type": "absolute", "days": 1}, context) is None

    def test_non_integer_offset(self, context):
        assert resolve_relative_date({"type": "relative", "days": "ten"}, context) is None
        assert resolve_relative_date({"type": "relative", "days": 1.5}, context) is None

    def test_literal_accepts_plain_dates(self, context):
        assert resolve_date_literal("2025-01-01", context) == datetime(2025, 1, 1)
        assert resolve_date_literal(12345, context) is None


class TestAddMonths:
    def test_negative_months_cross_year(self):
        assert add_months(datetime(2025, 1, 15), -2) == datetime(2024, 11, 15)

    def test_clamps_day(self):
        assert add_months(datetime(2025, 3, 31), -1) == datetime(2025, 2, 28)
