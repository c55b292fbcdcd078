from decimal import Decimal
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from caixa.core.database import get_db
from caixa.core.deps import require_super_admin
from caixa.core.normalizers import quantize_money
from caixa.core.serialization_helpers import serialize_datetime, serialize_money
from caixa.models.subscription import Plan
from caixa.models.user import User


public_router = APIRouter()
admin_router = APIRouter()


class PlanUpdate(BaseModel):
    display_name: Optional[str] = None
    price: Optional[Union[str, float]] = None
    currency: Optional[str] = None
    interval: Optional[str] = None
    is_active: Optional[bool] = None


def serialize_plan(plan: Plan) -> dict:
    return {
        "key": plan.key,
        "display_name": plan.display_name,
        "price": serialize_money(plan.price),
        "currency": plan.currency,
        "interval": plan.interval,
        "is_active": plan.is_active,
        "updated_at": serialize_datetime(plan.updated_at),
    }


@public_router.get("/plans")
def list_public_plans(db: Session = Depends(get_db)) -> List[dict]:
    plans = db.query(Plan).filter(Plan.is_active.is_(True)).order_by(Plan.price).all()
    return [serialize_plan(p) for p in plans]


@admin_router.get("/plans")
def list_all_plans(db: Session = Depends(get_db), _: User = Depends(require_super_admin)) -> List[dict]:
    return [serialize_plan(p) for p in db.query(Plan).order_by(Plan.key).all()]


@admin_router.patch("/plans/{key}")
def update_plan(
    key: str,
    data: PlanUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    plan = db.query(Plan).filter(Plan.key == key).first()
    if not plan:
        raise HTTPException(status_code=404, detail="Plano não encontrado")

    changes = data.model_dump(exclude_unset=True)
    if "price" in changes:
        price = quantize_money(changes["price"])
        if price < Decimal("0"):
            raise HTTPException(status_code=400, detail="Preço inválido")
        changes["price"] = price
    if changes.get("interval") not in (None, "month", "lifetime"):
        raise HTTPException(status_code=400, detail="Intervalo deve ser month ou lifetime")
    for field, value in changes.items():
        setattr(plan, field, value)
    db.commit()
    db.refresh(plan)
    return serialize_plan(plan)
