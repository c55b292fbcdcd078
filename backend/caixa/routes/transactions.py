import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from caixa.core.database import get_db
from caixa.core.deps import require_permission
from caixa.core.normalizers import parse_local_date, quantize_money
from caixa.core.roles import Permission
from caixa.core.serialization_helpers import serialize_date, serialize_datetime, serialize_money
from caixa.models.transaction import COMPLETED, EXPENSE_TYPES, INCOME_TYPES, PARTIAL, PENDING, Transaction
from caixa.models.user import User
from caixa.services import reconciliation_service, sales_purchases_service
from caixa.services.audit_service import client_ip, create_audit_log
from caixa.services.reconciliation_service import PaymentConfirmation


router = APIRouter()

Money = Union[str, float]


class TransactionCreate(BaseModel):
    type: str
    amount: Money
    date: str
    description: Optional[str] = None
    status: str = PENDING
    payment_date: Optional[str] = None
    category_id: Optional[int] = None
    customer_id: Optional[int] = None
    supplier_id: Optional[int] = None
    payment_method: Optional[str] = None
    has_card_fee: bool = False
    card_fee: Money = 0


class TransactionUpdate(BaseModel):
    """Campos editáveis; dados de pagamento só mudam pelas rotas de pagamento."""
    description: Optional[str] = None
    amount: Optional[Money] = None
    date: Optional[str] = None
    category_id: Optional[int] = None
    customer_id: Optional[int] = None
    supplier_id: Optional[int] = None
    payment_method: Optional[str] = None
    expected_version: Optional[int] = None


class PaymentIn(BaseModel):
    paid_amount: Money
    interest: Money = 0
    payment_date: Optional[str] = None
    payment_method: Optional[str] = None
    has_card_fee: bool = False
    card_fee: Money = 0
    expected_version: Optional[int] = None


class CustomInstallmentIn(BaseModel):
    date: Optional[str] = None
    due_date: Optional[str] = None
    amount: Optional[Money] = None


class RescheduleIn(BaseModel):
    base_date: str
    custom_installments: List[CustomInstallmentIn] = []


def serialize_payment_entry(entry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "amount": serialize_money(entry.amount),
        "interest": serialize_money(entry.interest),
        "payment_date": serialize_date(entry.payment_date),
        "payment_method": entry.payment_method,
        "created_at": serialize_datetime(entry.created_at),
    }


def serialize_transaction(t: Transaction, include_history: bool = False) -> Dict[str, Any]:
    data = {
        "id": t.id,
        "type": t.type,
        "description": t.description,
        "amount": serialize_money(t.amount),
        "date": serialize_date(t.date),
        "payment_date": serialize_date(t.payment_date),
        "status": t.status,
        "paid_amount": serialize_money(t.paid_amount),
        "interest": serialize_money(t.interest),
        "balance": serialize_money(reconciliation_service.outstanding_balance(t)),
        "payment_method": t.payment_method,
        "has_card_fee": t.has_card_fee,
        "card_fee": serialize_money(t.card_fee),
        "category_id": t.category_id,
        "customer_id": t.customer_id,
        "supplier_id": t.supplier_id,
        "installment_group": t.installment_group,
        "installment_number": t.installment_number,
        "installment_total": t.installment_total,
        "version": t.version,
        "created_at": serialize_datetime(t.created_at),
    }
    if include_history:
        data["payment_history"] = [serialize_payment_entry(p) for p in t.payment_history]
    return data


def _get_transaction(db: Session, company_id: int, transaction_id: int) -> Transaction:
    transaction = db.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.company_id == company_id,
    ).first()
    if not transaction:
        raise HTTPException(status_code=404, detail="Transação não encontrada")
    return transaction


@router.get("")
def list_transactions(
    customer_id: Optional[int] = Query(None, alias="customerId"),
    supplier_id: Optional[int] = Query(None, alias="supplierId"),
    type: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.view_transactions)),
):
    query = db.query(Transaction).filter(Transaction.company_id == user.company_id)
    if customer_id is not None:
        query = query.filter(Transaction.customer_id == customer_id)
    if supplier_id is not None:
        query = query.filter(Transaction.supplier_id == supplier_id)
    if type:
        # Tipos antigos (income/expense) continuam aparecendo nas buscas por venda/compra
        if type == "venda":
            query = query.filter(Transaction.type.in_(INCOME_TYPES))
        elif type == "compra":
            query = query.filter(Transaction.type.in_(EXPENSE_TYPES))
        else:
            query = query.filter(Transaction.type == type)
    if status:
        query = query.filter(Transaction.status == status)

    transactions = query.order_by(Transaction.date.desc(), Transaction.id.desc()).all()
    return [serialize_transaction(t) for t in transactions]


@router.post("", status_code=201)
def create_transaction(
    data: TransactionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.create_transactions)),
):
    sales_purchases_service.check_company_references(
        db,
        user.company_id,
        customer_id=data.customer_id,
        supplier_id=data.supplier_id,
        category_id=data.category_id,
    )
    transaction = Transaction(
        company_id=user.company_id,
        type=data.type,
        description=data.description,
        amount=quantize_money(data.amount),
        date=parse_local_date(data.date),
        payment_date=parse_local_date(data.payment_date) if data.payment_date else None,
        status=data.status,
        category_id=data.category_id,
        customer_id=data.customer_id,
        supplier_id=data.supplier_id,
        payment_method=data.payment_method,
        has_card_fee=data.has_card_fee,
        card_fee=quantize_money(data.card_fee) if data.has_card_fee else 0,
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    return serialize_transaction(transaction)


@router.get("/groups/{group}")
def get_installment_group(
    group: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.view_transactions)),
):
    installments = sales_purchases_service.get_installment_group(db, user.company_id, group)
    if not installments:
        raise HTTPException(status_code=404, detail="Grupo de parcelas não encontrado")
    return [serialize_transaction(t) for t in installments]


@router.post("/groups/{group}/reschedule")
def reschedule_installment_group(
    group: str,
    data: RescheduleIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.edit_transactions)),
):
    installments = sales_purchases_service.reschedule_installment_group(
        db,
        user.company_id,
        group,
        data.base_date,
        [c.model_dump() for c in data.custom_installments],
    )
    return [serialize_transaction(t) for t in installments]


@router.get("/{transaction_id}")
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.view_transactions)),
):
    return serialize_transaction(_get_transaction(db, user.company_id, transaction_id), include_history=True)


@router.patch("/{transaction_id}")
def update_transaction(
    transaction_id: int,
    data: TransactionUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.edit_transactions)),
):
    transaction = _get_transaction(db, user.company_id, transaction_id)
    if data.expected_version is not None and data.expected_version != transaction.version:
        raise HTTPException(status_code=409, detail="Transação alterada por outra operação")

    changes = data.model_dump(exclude_unset=True, exclude={"expected_version"})
    sales_purchases_service.check_company_references(
        db,
        user.company_id,
        **{key: changes.get(key) for key in ("customer_id", "supplier_id", "category_id")},
    )
    if "amount" in changes:
        changes["amount"] = quantize_money(changes["amount"])
    if "date" in changes:
        changes["date"] = parse_local_date(changes["date"])
    for field, value in changes.items():
        setattr(transaction, field, value)

    # Valor alterado depois de pagamentos: o status acompanha o novo total
    if "amount" in changes and transaction.status in (PARTIAL, COMPLETED) and transaction.paid_amount is not None:
        transaction.status = reconciliation_service.settlement_status(
            Decimal(transaction.amount),
            Decimal(transaction.paid_amount),
            Decimal(transaction.interest or 0),
        )

    db.commit()
    db.refresh(transaction)
    return serialize_transaction(transaction)


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.delete_transactions)),
):
    transaction = _get_transaction(db, user.company_id, transaction_id)
    db.delete(transaction)
    db.commit()
    create_audit_log(
        db,
        company_id=user.company_id,
        user_id=user.id,
        action="TRANSACTION_DELETED",
        resource_type="transaction",
        resource_id=str(transaction_id),
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


@router.get("/{transaction_id}/payments")
def list_payments(
    transaction_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.view_transactions)),
):
    transaction = _get_transaction(db, user.company_id, transaction_id)
    return [serialize_payment_entry(p) for p in transaction.payment_history]


@router.post("/{transaction_id}/payments")
def confirm_payment(
    transaction_id: int,
    data: PaymentIn,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.edit_transactions)),
):
    payment = PaymentConfirmation(
        paid_amount=quantize_money(data.paid_amount),
        interest=quantize_money(data.interest),
        payment_date=parse_local_date(data.payment_date) if data.payment_date else datetime.date.today(),
        payment_method=data.payment_method,
        has_card_fee=data.has_card_fee,
        card_fee=quantize_money(data.card_fee),
        expected_version=data.expected_version,
    )
    transaction = reconciliation_service.confirm_payment(db, user.company_id, transaction_id, payment)
    create_audit_log(
        db,
        company_id=user.company_id,
        user_id=user.id,
        action="PAYMENT_CONFIRMED",
        resource_type="transaction",
        resource_id=str(transaction_id),
        details=f"Pagamento de {payment.paid_amount} - status {transaction.status}",
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return serialize_transaction(transaction, include_history=True)


@router.delete("/{transaction_id}/payments")
def cancel_payment(
    transaction_id: int,
    request: Request,
    expected_version: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.edit_transactions)),
):
    transaction = reconciliation_service.cancel_payment(db, user.company_id, transaction_id, expected_version)
    create_audit_log(
        db,
        company_id=user.company_id,
        user_id=user.id,
        action="PAYMENT_CANCELLED",
        resource_type="transaction",
        resource_id=str(transaction_id),
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return serialize_transaction(transaction, include_history=True)
