#!/usr/bin/env python3
"""
Corrige grupos de parcelas gravados com todas as parcelas no mesmo vencimento.

Recalcula as datas com a regra atual (parcela i vence i meses após a data base)
usando como base a data da venda/compra, ou a data de criação da primeira
parcela quando o registro pai não existe mais.

Uso: python fix_installment_dates.py [--dry-run]
"""
import os
import sys
from collections import defaultdict

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from caixa.core.database import SessionLocal
from caixa.core.installments import compute_installment_date
from caixa.models.sale import Purchase, Sale
from caixa.models.transaction import Transaction


def _parent_date(db, group):
    for model in (Sale, Purchase):
        parent = db.query(model).filter(model.installment_group == group).first()
        if parent:
            return parent.date
    return None


def find_collapsed_groups(db):
    """Grupos com mais de uma parcela e um único vencimento."""
    groups = defaultdict(list)
    rows = (
        db.query(Transaction)
        .filter(Transaction.installment_group.isnot(None))
        .order_by(Transaction.installment_group, Transaction.installment_number)
        .all()
    )
    for t in rows:
        groups[(t.company_id, t.installment_group)].append(t)
    return {
        key: installments
        for key, installments in groups.items()
        if len(installments) > 1 and len({t.date for t in installments}) == 1
    }


def fix_installment_dates(dry_run: bool = False) -> int:
    db = SessionLocal()
    fixed = 0
    try:
        for (company_id, group), installments in find_collapsed_groups(db).items():
            base = _parent_date(db, group) or installments[0].created_at.date()
            new_dates = [
                compute_installment_date(base, None, (t.installment_number or i + 1) - 1)
                for i, t in enumerate(installments)
            ]
            print(f"{group} (empresa {company_id}): {installments[0].date} -> {', '.join(str(d) for d in new_dates)}")
            if not dry_run:
                for t, due in zip(installments, new_dates):
                    t.date = due
            fixed += 1
        if dry_run:
            db.rollback()
        else:
            db.commit()
    except Exception as e:
        db.rollback()
        print(f"\n✗ Erro ao corrigir parcelas: {e}")
        raise
    finally:
        db.close()

    print(f"\n✓ {fixed} grupo(s) {'encontrados' if dry_run else 'corrigidos'}")
    return fixed


if __name__ == "__main__":
    fix_installment_dates(dry_run="--dry-run" in sys.argv[1:])
