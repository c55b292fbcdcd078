from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from caixa.core.normalizers import TWOPLACES
from caixa.models.customer import Customer
from caixa.models.supplier import Supplier
from caixa.models.transaction import EXPENSE_TYPES, INCOME_TYPES, PARTIAL, PENDING, SETTLED_STATUSES, Transaction


def _normalize_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _dec(value) -> Decimal:
    return Decimal(value or 0)


def summarize_ledger(transactions: Iterable[Transaction]) -> Dict[str, Decimal]:
    """
    Totais de um razão de cliente ou fornecedor.
    - settled: pago/completed contam valor + juros; parcial conta valor pago + juros
    - pending: pendente conta o valor cheio; parcial conta o saldo restante
    """
    settled = Decimal("0")
    pending = Decimal("0")
    count = 0
    for t in transactions:
        count += 1
        amount = abs(_dec(t.amount))
        if t.status in SETTLED_STATUSES:
            settled += amount + _dec(t.interest)
        elif t.status == PARTIAL:
            settled += _dec(t.paid_amount) + _dec(t.interest)
            pending += max(amount - _dec(t.paid_amount), Decimal("0"))
        elif t.status == PENDING:
            pending += amount
    return {
        "settled": settled.quantize(TWOPLACES),
        "pending": pending.quantize(TWOPLACES),
        "transaction_count": count,
    }


def customer_transactions(db: Session, company_id: int, customer_id: int) -> List[Transaction]:
    return (
        db.query(Transaction)
        .filter(
            Transaction.company_id == company_id,
            Transaction.customer_id == customer_id,
            Transaction.type.in_(INCOME_TYPES),
        )
        .order_by(Transaction.date, Transaction.installment_number)
        .all()
    )


def supplier_transactions(db: Session, company_id: int, supplier_id: int) -> List[Transaction]:
    return (
        db.query(Transaction)
        .filter(
            Transaction.company_id == company_id,
            Transaction.supplier_id == supplier_id,
            Transaction.type.in_(EXPENSE_TYPES),
        )
        .order_by(Transaction.date, Transaction.installment_number)
        .all()
    )


def _gross_totals(transactions: Iterable[Transaction], key: str) -> Dict[int, Decimal]:
    totals: Dict[int, Decimal] = {}
    for t in transactions:
        owner = getattr(t, key)
        if owner is None:
            continue
        totals[owner] = totals.get(owner, Decimal("0")) + abs(_dec(t.amount) + _dec(t.interest))
    return totals


def customers_with_totals(db: Session, company_id: int) -> List[tuple[Customer, Decimal]]:
    customers = db.query(Customer).filter(Customer.company_id == company_id).order_by(Customer.name).all()
    incomes = db.query(Transaction).filter(
        Transaction.company_id == company_id,
        Transaction.type.in_(INCOME_TYPES),
    ).all()
    totals = _gross_totals(incomes, "customer_id")
    return [(c, totals.get(c.id, Decimal("0")).quantize(TWOPLACES)) for c in customers]


def suppliers_with_totals(db: Session, company_id: int) -> List[tuple[Supplier, Decimal]]:
    suppliers = db.query(Supplier).filter(Supplier.company_id == company_id).order_by(Supplier.name).all()
    expenses = db.query(Transaction).filter(
        Transaction.company_id == company_id,
        Transaction.type.in_(EXPENSE_TYPES),
    ).all()
    totals = _gross_totals(expenses, "supplier_id")
    return [(s, totals.get(s.id, Decimal("0")).quantize(TWOPLACES)) for s in suppliers]


def clean_contact_fields(data: Dict[str, Optional[str]]) -> Dict[str, Optional[str]]:
    """Strip whitespace; documents keep only digits."""
    cleaned = {key: _normalize_text(value) for key, value in data.items()}
    if cleaned.get("document"):
        cleaned["document"] = "".join(ch for ch in cleaned["document"] if ch.isdigit()) or None
    return cleaned
