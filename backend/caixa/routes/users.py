from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from caixa.core.database import get_db
from caixa.core.deps import require_permission
from caixa.core.roles import Permission, Role, default_permissions_for
from caixa.core.security import hash_password
from caixa.models.user import User


router = APIRouter()


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    name: Optional[str] = None
    role: Role = Role.operator
    permissions: Optional[Dict[str, bool]] = None


class PermissionsUpdate(BaseModel):
    permissions: Dict[Permission, bool]


class UserOut(BaseModel):
    id: int
    email: EmailStr
    name: Optional[str]
    role: str
    permissions: Dict[str, bool]

    class Config:
        from_attributes = True


@router.get("", response_model=List[UserOut])
def list_users(db: Session = Depends(get_db), user: User = Depends(require_permission(Permission.manage_users))):
    return db.query(User).filter(User.company_id == user.company_id).order_by(User.id).all()


@router.post("", response_model=UserOut, status_code=201)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.manage_users)),
):
    if db.query(User).filter(User.email == data.email).first():
        raise HTTPException(status_code=400, detail="Email already exists")
    new_user = User(
        email=data.email,
        name=data.name,
        hashed_password=hash_password(data.password),
        role=data.role.value,
        permissions=data.permissions if data.permissions is not None else default_permissions_for(data.role.value),
        company_id=user.company_id,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    return new_user


@router.patch("/{user_id}/permissions", response_model=UserOut)
def update_permissions(
    user_id: int,
    data: PermissionsUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.manage_users)),
):
    target = db.query(User).filter(User.id == user_id, User.company_id == user.company_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    target.permissions = {perm.value: allowed for perm, allowed in data.permissions.items()}
    db.commit()
    db.refresh(target)
    return target


@router.delete("/{user_id}", status_code=204)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.manage_users)),
):
    target = db.query(User).filter(User.id == user_id, User.company_id == user.company_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    if target.id == user.id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself")
    db.delete(target)
    db.commit()
