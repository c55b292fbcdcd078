from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from passlib.context import CryptContext

from caixa.core.config import settings


password_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def hash_password(password: str) -> str:
    return password_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    return password_context.verify(password, hashed_password)


def create_token(
    subject: str,
    expires_minutes: int,
    token_type: str,
    company_id: int,
    role: str,
    is_super_admin: bool = False,
) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload: dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "company_id": company_id,
        "role": role,
        "is_super_admin": is_super_admin,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_token_pair(user) -> tuple[str, str]:
    """Issue (access, refresh) tokens carrying the user's company scope."""
    claims = dict(
        company_id=user.company_id,
        role=user.role,
        is_super_admin=bool(user.is_super_admin),
    )
    access = create_token(str(user.id), settings.access_token_expire_minutes, token_type="access", **claims)
    refresh = create_token(str(user.id), settings.refresh_token_expire_minutes, token_type="refresh", **claims)
    return access, refresh


def decode_token(token: str) -> Optional[dict[str, Any]]:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None
