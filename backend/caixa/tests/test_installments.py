from datetime import date
from decimal import Decimal

import pytest

from caixa.core.installments import compute_installment_date, schedule_installments, split_installment_amounts
from caixa.core.normalizers import quantize_money


def test_first_installment_falls_next_month():
    assert schedule_installments("2025-01-15", 3) == [
        date(2025, 2, 15),
        date(2025, 3, 15),
        date(2025, 4, 15),
    ]


def test_month_end_is_clamped():
    assert schedule_installments("2025-01-31", 4) == [
        date(2025, 2, 28),
        date(2025, 3, 31),
        date(2025, 4, 30),
        date(2025, 5, 31),
    ]


def test_leap_year_february():
    assert compute_installment_date("2024-01-31", None, 0) == date(2024, 2, 29)


def test_year_rollover():
    assert compute_installment_date("2025-11-10", None, 2) == date(2026, 2, 10)


def test_custom_dates_win_over_schedule():
    custom = [{"due_date": "2025-06-01"}, {"date": "05/07/2025"}, {}]
    assert schedule_installments("2025-01-15", 3, custom) == [
        date(2025, 6, 1),
        date(2025, 7, 5),
        date(2025, 4, 15),
    ]


def test_timezone_suffix_does_not_shift_base_date():
    assert compute_installment_date("2025-01-31T23:00:00-03:00", None, 0) == date(2025, 2, 28)


def test_even_split():
    assert split_installment_amounts(500, 5) == [Decimal("100.00")] * 5


def test_remainder_goes_to_last_installment():
    amounts = split_installment_amounts("500.03", 5)
    assert amounts == [Decimal("100.00")] * 4 + [Decimal("100.03")]
    assert sum(amounts) == Decimal("500.03")


def test_split_truncates_instead_of_rounding():
    amounts = split_installment_amounts("100", 3)
    assert amounts == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]


def test_single_installment_keeps_total():
    assert split_installment_amounts("1.234,50", 1) == [Decimal("1234.50")]


@pytest.mark.parametrize("count", [0, -2])
def test_invalid_count(count):
    with pytest.raises(ValueError):
        split_installment_amounts(100, count)


@pytest.mark.parametrize("total", ["0.01", "99.99", "100", "1.234,57", "-100.01", "-7", 1000.1])
@pytest.mark.parametrize("count", [1, 2, 3, 7, 12])
def test_split_parts_always_add_up(total, count):
    parts = split_installment_amounts(total, count)
    assert len(parts) == count
    assert sum(parts) == quantize_money(total)
