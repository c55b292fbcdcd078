"""
Conciliação de pagamentos parciais de uma parcela.

Cada confirmação acumula o valor pago, recalcula o status
(pendente -> parcial -> completed) e registra uma linha em PaymentHistory.
A leitura usa SELECT ... FOR UPDATE e a gravação confere o `version`
da linha, de modo que dois pagamentos simultâneos não se sobrepõem.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from caixa.core.exceptions import ConcurrencyConflict, NotFoundError, ReconciliationError
from caixa.core.normalizers import TWOPLACES, quantize_money
from caixa.models.payment_history import PaymentHistory
from caixa.models.transaction import COMPLETED, PARTIAL, PENDING, SETTLED_STATUSES, Transaction


logger = logging.getLogger(__name__)


@dataclass
class PaymentConfirmation:
    paid_amount: Decimal
    payment_date: date
    interest: Decimal = Decimal("0")
    payment_method: Optional[str] = None
    has_card_fee: bool = False
    card_fee: Decimal = Decimal("0")
    expected_version: Optional[int] = None


def _lock_transaction(db: Session, company_id: int, transaction_id: int) -> Transaction:
    transaction = (
        db.query(Transaction)
        .filter(Transaction.id == transaction_id, Transaction.company_id == company_id)
        .with_for_update()
        .first()
    )
    if not transaction:
        raise NotFoundError("Transação não encontrada")
    return transaction


def _check_version(transaction: Transaction, expected_version: Optional[int]) -> None:
    if expected_version is not None and transaction.version != expected_version:
        raise ConcurrencyConflict(
            f"Transação {transaction.id} foi alterada (versão {transaction.version}, esperada {expected_version})"
        )


def _commit(db: Session, transaction: Transaction) -> None:
    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        raise ConcurrencyConflict(f"Transação {transaction.id} foi alterada por outra operação") from exc
    db.refresh(transaction)


def settlement_status(total_amount: Decimal, accumulated_paid: Decimal, interest: Decimal) -> str:
    if accumulated_paid + interest >= abs(total_amount):
        return COMPLETED
    return PARTIAL


def confirm_payment(
    db: Session,
    company_id: int,
    transaction_id: int,
    payment: PaymentConfirmation,
) -> Transaction:
    new_payment = quantize_money(payment.paid_amount)
    interest = quantize_money(payment.interest)
    if new_payment <= 0:
        raise ReconciliationError("O valor do pagamento deve ser positivo")
    if interest < 0:
        raise ReconciliationError("Juros não podem ser negativos")

    transaction = _lock_transaction(db, company_id, transaction_id)
    _check_version(transaction, payment.expected_version)

    if transaction.status in SETTLED_STATUSES:
        raise ReconciliationError("Esta parcela já está paga")

    previously_paid = Decimal(transaction.paid_amount or 0)
    if transaction.status == PARTIAL and previously_paid > 0:
        accumulated = previously_paid + new_payment
    else:
        accumulated = new_payment

    old_status = transaction.status
    transaction.status = settlement_status(Decimal(transaction.amount), accumulated, interest)
    transaction.paid_amount = accumulated.quantize(TWOPLACES)
    transaction.interest = interest
    transaction.payment_date = payment.payment_date
    transaction.payment_method = payment.payment_method or transaction.payment_method
    transaction.has_card_fee = bool(payment.has_card_fee)
    transaction.card_fee = quantize_money(payment.card_fee) if payment.has_card_fee else Decimal("0")

    transaction.payment_history.append(
        PaymentHistory(
            company_id=company_id,
            amount=new_payment,
            interest=interest,
            payment_date=payment.payment_date,
            payment_method=payment.payment_method,
        )
    )

    _commit(db, transaction)
    logger.info(
        "payment confirmed transaction=%s amount=%s accumulated=%s status %s -> %s",
        transaction.id, new_payment, accumulated, old_status, transaction.status,
    )
    return transaction


def cancel_payment(
    db: Session,
    company_id: int,
    transaction_id: int,
    expected_version: Optional[int] = None,
) -> Transaction:
    transaction = _lock_transaction(db, company_id, transaction_id)
    _check_version(transaction, expected_version)

    old_status = transaction.status
    transaction.status = PENDING
    transaction.paid_amount = None
    transaction.interest = Decimal("0")
    transaction.payment_date = None
    transaction.has_card_fee = False
    transaction.card_fee = Decimal("0")
    transaction.payment_history.clear()

    _commit(db, transaction)
    logger.info("payment cancelled transaction=%s status %s -> %s", transaction.id, old_status, PENDING)
    return transaction


def outstanding_balance(transaction: Transaction) -> Decimal:
    """Valor que ainda falta pagar na parcela."""
    if transaction.status in SETTLED_STATUSES:
        return Decimal("0.00")
    total = abs(Decimal(transaction.amount))
    if transaction.status == PARTIAL:
        return max(total - Decimal(transaction.paid_amount or 0), Decimal("0")).quantize(TWOPLACES)
    return total.quantize(TWOPLACES)
