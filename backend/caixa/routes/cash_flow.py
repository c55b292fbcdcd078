from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from caixa.core.database import get_db
from caixa.core.deps import require_permission
from caixa.core.normalizers import parse_local_date
from caixa.core.roles import Permission
from caixa.core.serialization_helpers import serialize_money
from caixa.models.user import User
from caixa.services.cash_flow_service import monthly_cash_flow


router = APIRouter()

MONEY_FIELDS = (
    "realized_income",
    "realized_expense",
    "realized_balance",
    "forecast_income",
    "forecast_expense",
    "forecast_balance",
)


@router.get("")
def get_cash_flow(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.view_reports)),
):
    buckets = monthly_cash_flow(
        db,
        user.company_id,
        start=parse_local_date(start) if start else None,
        end=parse_local_date(end) if end else None,
    )
    return [
        {"month": b["month"], **{field: serialize_money(b[field]) for field in MONEY_FIELDS}}
        for b in buckets
    ]
