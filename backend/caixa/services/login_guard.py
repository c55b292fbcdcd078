from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from caixa.core.config import settings
from caixa.models.audit_log import LoginAttempt


def remaining_login_attempts(db: Session, ip_address: str, now: Optional[datetime] = None) -> int:
    """Failed attempts left for this IP inside the rate-limit window (0 means blocked)."""
    now = now or datetime.utcnow()
    window_start = now - timedelta(seconds=settings.login_rate_limit_window_seconds)
    failed = db.query(LoginAttempt).filter(
        LoginAttempt.ip_address == ip_address,
        LoginAttempt.created_at >= window_start,
        LoginAttempt.success.is_(False),
    ).count()
    return max(settings.login_rate_limit_max_attempts - failed, 0)


def record_login_attempt(db: Session, ip_address: str, username: Optional[str], success: bool) -> None:
    db.add(LoginAttempt(ip_address=ip_address, username=username, success=success))
    db.commit()
