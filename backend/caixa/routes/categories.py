from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from caixa.core.database import get_db
from caixa.core.deps import require_permission
from caixa.core.roles import Permission
from caixa.models.category import Category
from caixa.models.user import User
from caixa.services.seed import ensure_default_categories


router = APIRouter()

CATEGORY_TYPES = ("income", "expense")


class CategoryIn(BaseModel):
    name: str
    type: str


class CategoryOut(BaseModel):
    id: int
    name: str
    type: str

    class Config:
        from_attributes = True


@router.get("", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db), user: User = Depends(require_permission(Permission.view_transactions))):
    # Empresas antigas sem categorias recebem o conjunto padrão no primeiro acesso
    ensure_default_categories(db, user.company_id)
    return (
        db.query(Category)
        .filter(Category.company_id == user.company_id)
        .order_by(Category.type, Category.name)
        .all()
    )


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(
    data: CategoryIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission(Permission.manage_categories)),
):
    name = data.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Nome é obrigatório")
    if data.type not in CATEGORY_TYPES:
        raise HTTPException(status_code=400, detail="Tipo deve ser income ou expense")
    category = Category(company_id=user.company_id, name=name, type=data.type)
    db.add(category)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Categoria já existe")
    db.refresh(category)
    return category
