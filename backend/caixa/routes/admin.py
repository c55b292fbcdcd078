from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from caixa.core.database import get_db
from caixa.core.deps import require_super_admin
from caixa.core.serialization_helpers import serialize_datetime, serialize_money
from caixa.models.audit_log import AuditLog
from caixa.models.company import Company
from caixa.models.subscription import Subscription
from caixa.models.user import User
from caixa.services.subscription_service import expire_overdue_subscriptions


router = APIRouter()


@router.get("/companies")
def list_companies(db: Session = Depends(get_db), _: User = Depends(require_super_admin)):
    companies = db.query(Company).order_by(Company.created_at.desc()).all()
    return [
        {
            "id": c.id,
            "name": c.name,
            "document": c.document,
            "is_active": c.is_active,
            "subscription_plan": c.subscription_plan,
            "subscription_status": c.subscription_status,
            "payment_status": c.payment_status,
            "created_at": serialize_datetime(c.created_at),
        }
        for c in companies
    ]


@router.get("/users")
def list_all_users(db: Session = Depends(get_db), _: User = Depends(require_super_admin)):
    users = db.query(User).order_by(User.created_at.desc()).all()
    return [
        {
            "id": u.id,
            "email": u.email,
            "name": u.name,
            "role": u.role,
            "is_super_admin": u.is_super_admin,
            "company_id": u.company_id,
            "created_at": serialize_datetime(u.created_at),
        }
        for u in users
    ]


@router.get("/subscriptions")
def list_subscriptions(db: Session = Depends(get_db), _: User = Depends(require_super_admin)):
    subscriptions = db.query(Subscription).order_by(Subscription.created_at.desc()).all()
    return [
        {
            "id": s.id,
            "company_id": s.company_id,
            "company_name": s.company.name if s.company else None,
            "plan": s.plan,
            "status": s.status,
            "amount": serialize_money(s.amount),
            "payment_method": s.payment_method,
            "gateway_payment_id": s.gateway_payment_id,
            "expires_at": serialize_datetime(s.expires_at),
            "created_at": serialize_datetime(s.created_at),
        }
        for s in subscriptions
    ]


@router.post("/subscriptions/expire-overdue")
def expire_overdue(db: Session = Depends(get_db), _: User = Depends(require_super_admin)):
    return {"expired": expire_overdue_subscriptions(db)}


@router.get("/audit-logs")
def list_audit_logs(
    company_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    _: User = Depends(require_super_admin),
):
    query = db.query(AuditLog)
    if company_id is not None:
        query = query.filter(AuditLog.company_id == company_id)
    if action:
        query = query.filter(AuditLog.action == action)
    logs = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
    return [
        {
            "id": log.id,
            "company_id": log.company_id,
            "user_id": log.user_id,
            "action": log.action,
            "resource_type": log.resource_type,
            "resource_id": log.resource_id,
            "details": log.details,
            "ip_address": log.ip_address,
            "status": log.status,
            "created_at": serialize_datetime(log.created_at),
        }
        for log in logs
    ]
