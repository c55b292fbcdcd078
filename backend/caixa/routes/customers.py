from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from caixa.core.database import get_db
from caixa.core.deps import require_permission
from caixa.core.roles import Permission
from caixa.core.serialization_helpers import serialize_datetime, serialize_money
from caixa.models.customer import Customer
from caixa.models.user import User
from caixa.routes.transactions import serialize_transaction
from caixa.services.ledger_service import (
    clean_contact_fields,
    customer_transactions,
    customers_with_totals,
    summarize_ledger,
)


router = APIRouter()


class CustomerIn(BaseModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None


def serialize_customer(customer: Customer, total_sales=None) -> dict:
    data = {
        "id": customer.id,
        "name": customer.name,
        "email": customer.email,
        "phone": customer.phone,
        "document": customer.document,
        "created_at": serialize_datetime(customer.created_at),
        "updated_at": serialize_datetime(customer.updated_at),
    }
    if total_sales is not None:
        data["total_sales"] = serialize_money(total_sales)
    return data


def _get_customer(db: Session, company_id: int, customer_id: int) -> Customer:
    customer = db.query(Customer).filter(
        Customer.id == customer_id,
        Customer.company_id == company_id,
    ).first()
    if not customer:
        raise HTTPException(status_code=404, detail="Cliente não encontrado")
    return customer


@router.get("")
def list_customers(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.view_transactions)),
):
    """Clientes com o total bruto de vendas (valor + juros) de cada um."""
    rows = customers_with_totals(db, user.company_id)
    if search:
        term = search.lower()
        rows = [
            (c, total) for c, total in rows
            if term in c.name.lower() or term in (c.phone or "") or term in (c.document or "")
        ]
    return [serialize_customer(c, total) for c, total in rows]


@router.post("", status_code=201)
def create_customer(
    data: CustomerIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.manage_customers)),
):
    fields = clean_contact_fields(data.model_dump())
    if not fields.get("name"):
        raise HTTPException(status_code=400, detail="Nome é obrigatório")
    customer = Customer(company_id=user.company_id, **fields)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return serialize_customer(customer)


@router.get("/{customer_id}")
def get_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.view_transactions)),
):
    return serialize_customer(_get_customer(db, user.company_id, customer_id))


@router.put("/{customer_id}")
def update_customer(
    customer_id: int,
    data: CustomerUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.manage_customers)),
):
    customer = _get_customer(db, user.company_id, customer_id)
    changes = clean_contact_fields(data.model_dump(exclude_unset=True))
    if "name" in changes and not changes["name"]:
        raise HTTPException(status_code=400, detail="Nome é obrigatório")
    for field, value in changes.items():
        setattr(customer, field, value)
    db.commit()
    db.refresh(customer)
    return serialize_customer(customer)


@router.delete("/{customer_id}", status_code=204)
def delete_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.manage_customers)),
):
    customer = _get_customer(db, user.company_id, customer_id)
    db.delete(customer)
    db.commit()


@router.get("/{customer_id}/ledger")
def customer_ledger(
    customer_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.view_transactions)),
):
    customer = _get_customer(db, user.company_id, customer_id)
    transactions: List = customer_transactions(db, user.company_id, customer.id)
    summary = summarize_ledger(transactions)
    return {
        "customer": serialize_customer(customer),
        "transactions": [serialize_transaction(t) for t in transactions],
        "summary": {
            "received": serialize_money(summary["settled"]),
            "receivable": serialize_money(summary["pending"]),
            "transaction_count": summary["transaction_count"],
        },
    }
