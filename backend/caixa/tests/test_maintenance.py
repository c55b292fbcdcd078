from datetime import date
from decimal import Decimal

from caixa.models import Sale, Transaction, User
from create_superadmin import create_superadmin
from fix_installment_dates import find_collapsed_groups, fix_installment_dates


def _collapsed_group(db, company_id):
    sale = Sale(company_id=company_id, date=date(2025, 1, 31), amount=Decimal("300"), installment_count=3,
                installment_group="sale-legacy-1")
    db.add(sale)
    for number in (1, 2, 3):
        db.add(Transaction(
            company_id=company_id,
            type="venda",
            amount=Decimal("100"),
            date=date(2025, 1, 31),
            status="pendente",
            installment_group="sale-legacy-1",
            installment_number=number,
            installment_total=3,
        ))
    db.commit()


def test_fix_installment_dates_reapplies_schedule(db, admin):
    _collapsed_group(db, admin.company_id)
    assert len(find_collapsed_groups(db)) == 1

    assert fix_installment_dates(dry_run=True) == 1
    db.expire_all()
    assert {t.date for t in db.query(Transaction).all()} == {date(2025, 1, 31)}

    assert fix_installment_dates() == 1
    db.expire_all()
    dates = [t.date for t in db.query(Transaction).order_by(Transaction.installment_number)]
    assert dates == [date(2025, 2, 28), date(2025, 3, 31), date(2025, 4, 30)]
    assert find_collapsed_groups(db) == {}


def test_create_superadmin_promotes_existing_user(db, admin):
    assert create_superadmin(admin.email, "novasenha") == 0
    db.expire_all()
    assert db.query(User).filter(User.email == admin.email).one().is_super_admin is True

    assert create_superadmin("root@caixa.com.br", "123") == 1
