import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from caixa.core.database import get_db
from caixa.core.deps import get_company, get_current_user
from caixa.core.roles import default_permissions_for
from caixa.core.security import create_token_pair, decode_token, hash_password, verify_password
from caixa.models.company import Company
from caixa.models.user import User
from caixa.services.audit_service import client_ip
from caixa.services.login_guard import record_login_attempt, remaining_login_attempts
from caixa.services.seed import ensure_default_categories


router = APIRouter()
logger = logging.getLogger(__name__)


class SignupRequest(BaseModel):
    email: EmailStr
    password: str
    name: Optional[str] = None
    company_name: str
    document: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


def _token_response(user: User) -> TokenResponse:
    access, refresh = create_token_pair(user)
    return TokenResponse(access_token=access, refresh_token=refresh)


@router.post("/signup", response_model=TokenResponse)
def signup(data: SignupRequest, db: Session = Depends(get_db)):
    if len(data.password) < 6:
        raise HTTPException(status_code=400, detail="A senha deve ter ao menos 6 caracteres")
    if db.query(User).filter(User.email == data.email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    document = "".join(ch for ch in (data.document or "") if ch.isdigit()) or None
    company = Company(name=data.company_name.strip(), document=document)
    db.add(company)
    db.flush()

    user = User(
        email=data.email,
        name=data.name,
        hashed_password=hash_password(data.password),
        role="admin",
        permissions=default_permissions_for("admin"),
        company_id=company.id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    ensure_default_categories(db, company.id)
    logger.info("signup company=%s user=%s", company.id, user.id)
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, request: Request, db: Session = Depends(get_db)):
    ip = client_ip(request)
    if remaining_login_attempts(db, ip) == 0:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Muitas tentativas de login. Tente novamente mais tarde.",
        )

    user = db.query(User).filter(User.email == data.email).first()
    if not user or not verify_password(data.password, user.hashed_password):
        record_login_attempt(db, ip, data.email, success=False)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    record_login_attempt(db, ip, data.email, success=True)
    return _token_response(user)


@router.post("/refresh", response_model=TokenResponse)
def refresh_token_endpoint(data: RefreshRequest, db: Session = Depends(get_db)):
    payload = decode_token(data.refresh_token)
    if not payload or payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    user = db.query(User).filter(
        User.id == int(payload["sub"]),
        User.company_id == payload.get("company_id"),
    ).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return _token_response(user)


@router.get("/me")
def me(user: User = Depends(get_current_user), company: Company = Depends(get_company)):
    return {
        "user": {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "role": user.role,
            "is_super_admin": user.is_super_admin,
            "permissions": user.permissions or {},
        },
        "company": {
            "id": company.id,
            "name": company.name,
            "subscription_status": company.subscription_status,
            "subscription_plan": company.subscription_plan,
            "payment_status": company.payment_status,
        },
    }
