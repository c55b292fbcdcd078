from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from caixa.core.exceptions import DateParseError, MoneyParseError
from caixa.core.normalizers import parse_local_date, parse_money, quantize_money


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2025-03-10", date(2025, 3, 10)),
        ("2025-03-10T23:30:00-03:00", date(2025, 3, 10)),
        ("2025-03-10T02:00:00Z", date(2025, 3, 10)),
        ("10/03/2025", date(2025, 3, 10)),
        (date(2025, 3, 10), date(2025, 3, 10)),
        (datetime(2025, 3, 10, 23, 59, tzinfo=timezone.utc), date(2025, 3, 10)),
        ("  2025-03-10  ", date(2025, 3, 10)),
        ("2025-1-5", date(2025, 1, 5)),
        ("5/1/2025", date(2025, 1, 5)),
        ("2025/01/05", date(2025, 1, 5)),
    ],
)
def test_parse_local_date_keeps_calendar_day(raw, expected):
    assert parse_local_date(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "não é data", "2025-02-30", "31/02/2025"])
def test_parse_local_date_rejects_garbage(raw):
    with pytest.raises(DateParseError):
        parse_local_date(raw)


def test_parse_local_date_default_replaces_failure():
    fallback = date(2000, 1, 1)
    assert parse_local_date("xyz", default=fallback) == fallback
    assert parse_local_date(None, default=None) is None


def test_date_parse_error_is_a_value_error():
    with pytest.raises(ValueError):
        parse_local_date("??")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.234,56", Decimal("1234.56")),
        ("1234.56", Decimal("1234.56")),
        ("R$ 10,00", Decimal("10.00")),
        ("1.234.567", Decimal("1234567")),
        (99.9, Decimal("99.9")),
        (150, Decimal("150")),
        (Decimal("7.25"), Decimal("7.25")),
        (None, Decimal("0")),
        ("", Decimal("0")),
    ],
)
def test_parse_money_formats(raw, expected):
    assert parse_money(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "NaN", "12,34,56", True])
def test_parse_money_rejects_garbage(raw):
    with pytest.raises(MoneyParseError):
        parse_money(raw)


def test_quantize_money_rounds_half_up():
    assert quantize_money("10,005") == Decimal("10.01")
    assert quantize_money(0.1) == Decimal("0.10")
