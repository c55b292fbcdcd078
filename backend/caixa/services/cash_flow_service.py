"""
Fluxo de caixa mensal: realizado (pela data de pagamento) e previsto
(saldo em aberto, pela data de vencimento).
"""
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from caixa.core.normalizers import TWOPLACES
from caixa.models.transaction import EXPENSE_TYPES, INCOME_TYPES, PARTIAL, SETTLED_STATUSES, Transaction
from caixa.services.reconciliation_service import outstanding_balance


def _month_key(value: date) -> str:
    return value.strftime("%Y-%m")


def _in_range(value: Optional[date], start: Optional[date], end: Optional[date]) -> bool:
    if value is None:
        return False
    if start and value < start:
        return False
    if end and value > end:
        return False
    return True


def _realized_value(t: Transaction) -> Decimal:
    interest = Decimal(t.interest or 0)
    if t.status in SETTLED_STATUSES:
        return abs(Decimal(t.amount)) + interest
    if t.status == PARTIAL:
        return Decimal(t.paid_amount or 0) + interest
    return Decimal("0")


def _empty_bucket(month: str) -> Dict:
    zero = Decimal("0.00")
    return {
        "month": month,
        "realized_income": zero,
        "realized_expense": zero,
        "forecast_income": zero,
        "forecast_expense": zero,
    }


def monthly_cash_flow(
    db: Session,
    company_id: int,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Dict]:
    query = db.query(Transaction).filter(
        Transaction.company_id == company_id,
        or_(Transaction.type.in_(INCOME_TYPES), Transaction.type.in_(EXPENSE_TYPES)),
    )
    buckets: Dict[str, Dict] = {}

    for t in query.all():
        side = "income" if t.type in INCOME_TYPES else "expense"

        realized = _realized_value(t)
        # Parcial sem data de pagamento registrada cai no mês do vencimento
        realized_on = t.payment_date or t.date
        if realized > 0 and _in_range(realized_on, start, end):
            bucket = buckets.setdefault(_month_key(realized_on), _empty_bucket(_month_key(realized_on)))
            bucket[f"realized_{side}"] += realized

        remaining = outstanding_balance(t)
        if remaining > 0 and _in_range(t.date, start, end):
            bucket = buckets.setdefault(_month_key(t.date), _empty_bucket(_month_key(t.date)))
            bucket[f"forecast_{side}"] += remaining

    ordered = OrderedDict(sorted(buckets.items()))
    result = []
    for bucket in ordered.values():
        for key in ("realized_income", "realized_expense", "forecast_income", "forecast_expense"):
            bucket[key] = bucket[key].quantize(TWOPLACES)
        bucket["realized_balance"] = bucket["realized_income"] - bucket["realized_expense"]
        bucket["forecast_balance"] = bucket["forecast_income"] - bucket["forecast_expense"]
        result.append(bucket)
    return result
