from datetime import date
from decimal import Decimal, ROUND_FLOOR
from typing import Any, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from caixa.core.normalizers import TWOPLACES, parse_local_date, quantize_money


def _custom_due_date(entry: Any) -> Optional[Any]:
    if entry is None:
        return None
    if isinstance(entry, dict):
        return entry.get("due_date") or entry.get("date")
    return getattr(entry, "due_date", None) or getattr(entry, "date", None)


def compute_installment_date(
    base_date: Any,
    custom_installments: Optional[Sequence[Any]],
    index: int,
) -> date:
    """
    Due date of the installment at `index` (0-based).

    A date supplied in `custom_installments[index]` (``due_date`` or ``date``)
    is returned as is. Otherwise the installment falls `index + 1` calendar
    months after `base_date`: the first one is due the month after the
    sale/purchase, and the day of month is clamped at month end
    (2025-01-31 -> 2025-02-28).
    """
    if custom_installments and 0 <= index < len(custom_installments):
        explicit = _custom_due_date(custom_installments[index])
        if explicit:
            return parse_local_date(explicit)

    return parse_local_date(base_date) + relativedelta(months=index + 1)


def schedule_installments(
    base_date: Any,
    count: int,
    custom_installments: Optional[Sequence[Any]] = None,
) -> List[date]:
    return [compute_installment_date(base_date, custom_installments, i) for i in range(count)]


def split_installment_amounts(total: Any, count: int) -> List[Decimal]:
    """
    Split `total` into `count` installments truncated to the cent.
    The last installment absorbs the remainder so the parts add up to `total`.
    """
    if count < 1:
        raise ValueError("installment count must be at least 1")

    total_val = quantize_money(total)
    if count == 1:
        return [total_val]

    per_installment = (total_val / Decimal(count)).quantize(TWOPLACES, rounding=ROUND_FLOOR)
    amounts = [per_installment] * (count - 1)
    amounts.append(total_val - per_installment * (count - 1))
    return amounts
