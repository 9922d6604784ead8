"""Unit tests for pt-PT value formatting."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from minutas.variables.formatting import (
    clock_fields,
    format_date,
    format_long_date,
    format_number,
    format_text,
)

NBSP = "\u00a0"


class TestFormatDate:
    @pytest.mark.parametrize("value", [
        date(2024, 5, 1),
        datetime(2024, 5, 1, 23, 59),
        "2024-05-01",
        "2024-05-01T10:00:00Z",
        "2024-05-01T10:00:00+01:00",
    ])
    def test_formats(self, value):
        assert format_date(value) == "01/05/2024"

    def test_unparsable_string_passes_through(self):
        assert format_date(" 1 de maio ") == "1 de maio"

    def test_none_and_blank(self):
        assert format_date(None) == ""
        assert format_date("") == ""

    def test_long_date(self):
        assert format_long_date(date(2024, 5, 1)) == "1 de maio de 2024"
        assert format_long_date(date(2023, 3, 31)) == "31 de março de 2023"


class TestFormatNumber:
    def test_integers_have_no_decimals(self):
        assert format_number(1500) == "1500"
        assert format_number(1500.0) == "1500"
        assert format_number(0) == "0"

    def test_grouping_starts_at_five_digits(self):
        assert format_number(12345) == f"12{NBSP}345"
        assert format_number(1234567) == f"1{NBSP}234{NBSP}567"

    def test_two_decimals_with_comma(self):
        assert format_number(12345.5) == f"12{NBSP}345,50"
        assert format_number(Decimal("2.005")) == "2,01"
        assert format_number(0.1) == "0,10"

    def test_negative(self):
        assert format_number(-12345.25) == f"-12{NBSP}345,25"

    def test_numeric_strings(self):
        assert format_number("1234.5") == "1234,50"
        assert format_number("1.234,56") == "1234,56"

    def test_dot_grouped_strings_are_integers(self):
        assert format_number("1.234") == "1234"
        assert format_number("12.345.678") == f"12{NBSP}345{NBSP}678"
        assert format_number("1.2345") == "1,23"

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-inf", "sNaN"])
    def test_non_finite_strings_pass_through(self, value):
        assert format_number(value) == value

    def test_non_finite_numbers_pass_through(self):
        assert format_number(float("nan")) == "nan"
        assert format_number(float("inf")) == "inf"
        assert format_number(Decimal("Infinity")) == "Infinity"

    def test_non_numeric_passes_through(self):
        assert format_number("n/a") == "n/a"
        assert format_number(None) == ""

    def test_bool_is_not_a_number(self):
        assert format_number(True) == "True"


class TestClockFields:
    def test_fields(self):
        now = datetime(2024, 5, 1, 9, 5, tzinfo=timezone.utc)
        f = clock_fields(now)
        assert f["data_hoje"] == date(2024, 5, 1)
        assert f["dia"] == 1
        assert f["mes"] == 5
        assert f["mes_nome"] == "maio"
        assert f["ano"] == 2024
        assert f["ano_corrente"] == 2024
        assert f["hora"] == "09:05"
        assert f["dia_semana"] == "quarta-feira"
        assert f["data_extenso"] == "1 de maio de 2024"

    def test_format_text(self):
        assert format_text(None) == ""
        assert format_text(42) == "42"
