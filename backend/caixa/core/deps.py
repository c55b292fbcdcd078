from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from caixa.core.database import get_db
from caixa.core.roles import ADMIN_ROLES, Permission
from caixa.core.security import decode_token
from caixa.models.company import Company
from caixa.models.user import User
from caixa.services.audit_service import client_ip, create_audit_log
from caixa.services.payment_gateway import PaymentGateway


def get_current_user(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(None),
) -> User:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized - No token provided")
    token = authorization.split(" ", 1)[1]
    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized - Invalid token")
    user_id = payload.get("sub")
    company_id = payload.get("company_id")
    user = db.query(User).filter(User.id == int(user_id), User.company_id == company_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def get_company(db: Session = Depends(get_db), user: User = Depends(get_current_user)) -> Company:
    company = db.query(Company).filter(Company.id == user.company_id).first()
    if not company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return company


def require_active_subscription(
    user: User = Depends(get_current_user),
    company: Company = Depends(get_company),
) -> Company:
    if user.is_super_admin:
        return company
    if company.subscription_status != "active" or not company.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Subscription inactive - your subscription has expired or been suspended",
        )
    return company


def has_permission(user: User, permission: str) -> bool:
    if user.is_super_admin or user.role in {r.value for r in ADMIN_ROLES}:
        return True
    return bool((user.permissions or {}).get(permission))


def require_permission(*permissions: Permission):
    required = [p.value if isinstance(p, Permission) else str(p) for p in permissions]

    def checker(
        request: Request,
        db: Session = Depends(get_db),
        user: User = Depends(get_current_user),
    ) -> User:
        if all(has_permission(user, p) for p in required):
            return user
        create_audit_log(
            db,
            company_id=user.company_id,
            user_id=user.id,
            action="PERMISSION_DENIED",
            resource_type="permission",
            resource_id=",".join(required),
            details=f"User attempted to access endpoint requiring: {', '.join(required)}",
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
            status="denied",
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden - Insufficient permissions")

    return checker


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not has_permission(user, Permission.manage_users.value):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
    return user


def require_super_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_super_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden - Super Admin access required")
    return user


def get_gateway(request: Request) -> PaymentGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Payment gateway not configured")
    return gateway
