from decimal import Decimal

from sqlalchemy.orm import Session

from caixa.core.roles import default_permissions_for
from caixa.core.security import hash_password
from caixa.models.category import Category, DEFAULT_CATEGORIES
from caixa.models.company import Company
from caixa.models.subscription import Plan
from caixa.models.user import User


DEFAULT_PLANS = [
    {"key": "monthly", "display_name": "Mensal", "price": Decimal("49.90"), "interval": "month"},
    {"key": "pro", "display_name": "Vitalício", "price": Decimal("997.00"), "interval": "lifetime"},
]


def seed_plans(db: Session) -> None:
    for data in DEFAULT_PLANS:
        if not db.query(Plan).filter(Plan.key == data["key"]).first():
            db.add(Plan(currency="BRL", is_active=True, **data))
    db.commit()


def ensure_default_categories(db: Session, company_id: int) -> None:
    if db.query(Category).filter(Category.company_id == company_id).first():
        return
    for data in DEFAULT_CATEGORIES:
        db.add(Category(company_id=company_id, **data))
    db.commit()


def seed_demo(db: Session):
    seed_plans(db)
    company = db.query(Company).filter(Company.name == "Demo").first()
    if company:
        ensure_default_categories(db, company.id)
        return
    company = Company(name="Demo", subscription_status="active", payment_status="approved", subscription_plan="monthly")
    db.add(company)
    db.flush()
    user = User(
        email="admin@demo.com.br",
        name="Admin Demo",
        hashed_password=hash_password("secret123"),
        role="admin",
        permissions=default_permissions_for("admin"),
        company_id=company.id,
    )
    db.add(user)
    db.commit()
    ensure_default_categories(db, company.id)
