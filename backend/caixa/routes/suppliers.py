from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from caixa.core.database import get_db
from caixa.core.deps import require_permission
from caixa.core.roles import Permission
from caixa.core.serialization_helpers import serialize_datetime, serialize_money
from caixa.models.supplier import Supplier
from caixa.models.user import User
from caixa.routes.transactions import serialize_transaction
from caixa.services.ledger_service import (
    clean_contact_fields,
    summarize_ledger,
    supplier_transactions,
    suppliers_with_totals,
)


router = APIRouter()


class SupplierIn(BaseModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None


class SupplierUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None


def serialize_supplier(supplier: Supplier, total_purchases=None) -> dict:
    data = {
        "id": supplier.id,
        "name": supplier.name,
        "email": supplier.email,
        "phone": supplier.phone,
        "document": supplier.document,
        "created_at": serialize_datetime(supplier.created_at),
        "updated_at": serialize_datetime(supplier.updated_at),
    }
    if total_purchases is not None:
        data["total_purchases"] = serialize_money(total_purchases)
    return data


def _get_supplier(db: Session, company_id: int, supplier_id: int) -> Supplier:
    supplier = db.query(Supplier).filter(
        Supplier.id == supplier_id,
        Supplier.company_id == company_id,
    ).first()
    if not supplier:
        raise HTTPException(status_code=404, detail="Fornecedor não encontrado")
    return supplier


@router.get("")
def list_suppliers(db: Session = Depends(get_db), user: User = Depends(require_permission(Permission.view_transactions))):
    return [serialize_supplier(s, total) for s, total in suppliers_with_totals(db, user.company_id)]


@router.post("", status_code=201)
def create_supplier(
    data: SupplierIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.manage_suppliers)),
):
    fields = clean_contact_fields(data.model_dump())
    if not fields.get("name"):
        raise HTTPException(status_code=400, detail="Nome é obrigatório")
    supplier = Supplier(company_id=user.company_id, **fields)
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    return serialize_supplier(supplier)


@router.get("/{supplier_id}")
def get_supplier(
    supplier_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.view_transactions)),
):
    return serialize_supplier(_get_supplier(db, user.company_id, supplier_id))


@router.put("/{supplier_id}")
def update_supplier(
    supplier_id: int,
    data: SupplierUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.manage_suppliers)),
):
    supplier = _get_supplier(db, user.company_id, supplier_id)
    changes = clean_contact_fields(data.model_dump(exclude_unset=True))
    if "name" in changes and not changes["name"]:
        raise HTTPException(status_code=400, detail="Nome é obrigatório")
    for field, value in changes.items():
        setattr(supplier, field, value)
    db.commit()
    db.refresh(supplier)
    return serialize_supplier(supplier)


@router.delete("/{supplier_id}", status_code=204)
def delete_supplier(
    supplier_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.manage_suppliers)),
):
    supplier = _get_supplier(db, user.company_id, supplier_id)
    db.delete(supplier)
    db.commit()


@router.get("/{supplier_id}/ledger")
def supplier_ledger(
    supplier_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.view_transactions)),
):
    supplier = _get_supplier(db, user.company_id, supplier_id)
    transactions = supplier_transactions(db, user.company_id, supplier.id)
    summary = summarize_ledger(transactions)
    return {
        "supplier": serialize_supplier(supplier),
        "transactions": [serialize_transaction(t) for t in transactions],
        "summary": {
            "paid": serialize_money(summary["settled"]),
            "payable": serialize_money(summary["pending"]),
            "transaction_count": summary["transaction_count"],
        },
    }
