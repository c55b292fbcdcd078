#!/usr/bin/env python3
"""
Cria (ou promove) o super administrador da plataforma.
Uso: python create_superadmin.py [email] [senha]
Sem argumentos usa SUPERADMIN_EMAIL / SUPERADMIN_PASSWORD.
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from caixa.core.database import SessionLocal
from caixa.core.roles import default_permissions_for
from caixa.core.security import hash_password
from caixa.models.company import Company
from caixa.models.user import User


PLATFORM_COMPANY = "Caixa Plataforma"


def create_superadmin(email: str, password: str) -> int:
    if len(password) < 6:
        print("✗ A senha deve ter ao menos 6 caracteres")
        return 1

    db = SessionLocal()
    try:
        company = db.query(Company).filter(Company.name == PLATFORM_COMPANY).first()
        if not company:
            company = Company(name=PLATFORM_COMPANY, subscription_status="active", payment_status="approved")
            db.add(company)
            db.flush()
            print(f"Empresa '{PLATFORM_COMPANY}' criada com ID {company.id}")

        user = db.query(User).filter(User.email == email).first()
        if user:
            user.is_super_admin = True
            user.hashed_password = hash_password(password)
            action = "promovido"
        else:
            user = User(
                email=email,
                name="Super Admin",
                hashed_password=hash_password(password),
                role="admin",
                permissions=default_permissions_for("admin"),
                is_super_admin=True,
                company_id=company.id,
            )
            db.add(user)
            action = "criado"
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        print(f"\n✗ Erro ao criar super admin: {e}")
        raise
    finally:
        db.close()

    print(f"\n✓ Super admin {action}: {email}")
    return 0


if __name__ == "__main__":
    args = sys.argv[1:]
    email = args[0] if args else os.getenv("SUPERADMIN_EMAIL")
    password = args[1] if len(args) > 1 else os.getenv("SUPERADMIN_PASSWORD")
    if not email or not password:
        print(__doc__)
        sys.exit(2)
    sys.exit(create_superadmin(email, password))
