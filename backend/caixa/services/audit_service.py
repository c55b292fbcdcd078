import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from caixa.models.audit_log import AuditLog


logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def create_audit_log(
    db: Session,
    company_id: Optional[int],
    user_id: Optional[int],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    status: str = "success",
) -> AuditLog:
    """Helper function to create an audit log entry"""
    entry = AuditLog(
        company_id=company_id,
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
        status=status,
    )
    db.add(entry)
    db.commit()
    logger.info("audit action=%s resource=%s:%s company=%s user=%s", action, resource_type, resource_id, company_id, user_id)
    return entry
