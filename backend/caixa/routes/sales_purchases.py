from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from caixa.core.database import get_db
from caixa.core.deps import require_permission
from caixa.core.roles import Permission
from caixa.core.serialization_helpers import serialize_date, serialize_datetime, serialize_money
from caixa.models.sale import Purchase, Sale
from caixa.models.user import User
from caixa.services.sales_purchases_service import InstallmentPlan, create_purchase, create_sale


router = APIRouter()

Money = Union[str, float]


class CustomInstallmentIn(BaseModel):
    date: Optional[str] = None
    due_date: Optional[str] = None
    amount: Optional[Money] = None


class InstallmentSaleBase(BaseModel):
    total_amount: Money
    installment_count: Optional[int] = None
    status: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    payment_method: Optional[str] = None
    has_card_fee: bool = False
    card_fee: Money = 0
    custom_installments: List[CustomInstallmentIn] = []

    def to_plan(self, on: str) -> InstallmentPlan:
        return InstallmentPlan(
            date=on,
            total_amount=self.total_amount,
            installment_count=self.installment_count,
            status=self.status,
            description=self.description,
            category_id=self.category_id,
            payment_method=self.payment_method,
            has_card_fee=self.has_card_fee,
            card_fee=self.card_fee,
            custom_installments=[c.model_dump() for c in self.custom_installments],
        )


class SaleCreate(InstallmentSaleBase):
    customer_id: int
    sale_date: str


class PurchaseCreate(InstallmentSaleBase):
    supplier_id: int
    purchase_date: str


def _serialize_parent(record, counterpart_field: str) -> Dict[str, Any]:
    return {
        "id": record.id,
        counterpart_field: getattr(record, counterpart_field),
        "date": serialize_date(record.date),
        "amount": serialize_money(record.amount),
        "installment_count": record.installment_count,
        "status": record.status,
        "paid_amount": serialize_money(record.paid_amount),
        "description": record.description,
        "category_id": record.category_id,
        "payment_method": record.payment_method,
        "installment_group": record.installment_group,
        "created_at": serialize_datetime(record.created_at),
    }


@router.get("/sales")
def list_sales(db: Session = Depends(get_db), user: User = Depends(require_permission(Permission.view_transactions))):
    sales = (
        db.query(Sale)
        .filter(Sale.company_id == user.company_id, Sale.customer_id.isnot(None))
        .order_by(Sale.date.desc(), Sale.id.desc())
        .all()
    )
    return [_serialize_parent(s, "customer_id") for s in sales]


@router.post("/sales", status_code=201)
def post_sale(
    data: SaleCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.create_transactions)),
):
    sale = create_sale(db, user.company_id, data.customer_id, data.to_plan(data.sale_date))
    return _serialize_parent(sale, "customer_id")


@router.get("/purchases")
def list_purchases(db: Session = Depends(get_db), user: User = Depends(require_permission(Permission.view_transactions))):
    purchases = (
        db.query(Purchase)
        .filter(Purchase.company_id == user.company_id, Purchase.supplier_id.isnot(None))
        .order_by(Purchase.date.desc(), Purchase.id.desc())
        .all()
    )
    return [_serialize_parent(p, "supplier_id") for p in purchases]


@router.post("/purchases", status_code=201)
def post_purchase(
    data: PurchaseCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.create_transactions)),
):
    purchase = create_purchase(db, user.company_id, data.supplier_id, data.to_plan(data.purchase_date))
    return _serialize_parent(purchase, "supplier_id")
