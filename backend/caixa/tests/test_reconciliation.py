from datetime import date
from decimal import Decimal

import pytest

from caixa.core.exceptions import ConcurrencyConflict, NotFoundError, ReconciliationError
from caixa.models import Transaction
from caixa.services.reconciliation_service import (
    PaymentConfirmation,
    cancel_payment,
    confirm_payment,
    outstanding_balance,
    settlement_status,
)


@pytest.fixture
def installment(db, admin):
    t = Transaction(
        company_id=admin.company_id,
        type="venda",
        description="Venda (1/2)",
        amount=Decimal("100.00"),
        date=date(2025, 2, 10),
        status="pendente",
    )
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


def pay(amount, interest="0", **kwargs):
    return PaymentConfirmation(
        paid_amount=Decimal(amount),
        interest=Decimal(interest),
        payment_date=date(2025, 2, 12),
        **kwargs,
    )


def test_partial_payments_accumulate_until_completed(db, admin, installment):
    t = confirm_payment(db, admin.company_id, installment.id, pay("40"))
    assert t.status == "parcial"
    assert t.paid_amount == Decimal("40.00")
    assert outstanding_balance(t) == Decimal("60.00")

    t = confirm_payment(db, admin.company_id, installment.id, pay("60"))
    assert t.status == "completed"
    assert t.paid_amount == Decimal("100.00")
    assert outstanding_balance(t) == Decimal("0.00")
    assert [p.amount for p in t.payment_history] == [Decimal("40.00"), Decimal("60.00")]


def test_interest_counts_towards_settlement(db, admin, installment):
    t = confirm_payment(db, admin.company_id, installment.id, pay("95", interest="5"))
    assert t.status == "completed"
    assert t.interest == Decimal("5.00")


def test_full_payment_in_one_go(db, admin, installment):
    t = confirm_payment(db, admin.company_id, installment.id, pay("100", payment_method="pix"))
    assert t.status == "completed"
    assert t.payment_method == "pix"
    assert t.payment_date == date(2025, 2, 12)


@pytest.mark.parametrize("amount", ["0", "-10"])
def test_non_positive_payment_is_rejected(db, admin, installment, amount):
    with pytest.raises(ReconciliationError):
        confirm_payment(db, admin.company_id, installment.id, pay(amount))


def test_settled_installment_cannot_be_paid_again(db, admin, installment):
    confirm_payment(db, admin.company_id, installment.id, pay("100"))
    with pytest.raises(ReconciliationError):
        confirm_payment(db, admin.company_id, installment.id, pay("1"))


def test_cancel_resets_payment_and_history(db, admin, installment):
    confirm_payment(db, admin.company_id, installment.id, pay("40", interest="2", has_card_fee=True, card_fee=Decimal("1.50")))
    t = cancel_payment(db, admin.company_id, installment.id)
    assert t.status == "pendente"
    assert t.paid_amount is None
    assert t.interest == Decimal("0")
    assert t.payment_date is None
    assert t.has_card_fee is False
    assert t.payment_history == []


def test_stale_version_raises_conflict(db, admin, installment):
    assert installment.version == 1
    confirm_payment(db, admin.company_id, installment.id, pay("10", expected_version=1))
    with pytest.raises(ConcurrencyConflict):
        confirm_payment(db, admin.company_id, installment.id, pay("10", expected_version=1))
    with pytest.raises(ConcurrencyConflict):
        cancel_payment(db, admin.company_id, installment.id, expected_version=1)


def test_other_company_cannot_touch_installment(db, admin, make_user, installment):
    other = make_user(email="outra@empresa.com.br")
    with pytest.raises(NotFoundError):
        confirm_payment(db, other.company_id, installment.id, pay("10"))


def test_settlement_status_uses_absolute_amount():
    assert settlement_status(Decimal("-50"), Decimal("50"), Decimal("0")) == "completed"
    assert settlement_status(Decimal("-50"), Decimal("20"), Decimal("0")) == "parcial"
