"""
Serviço de negócio para vendas e compras parceladas.
Cria o registro pai e as N parcelas (Transaction) numa única transação de banco.
"""
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from caixa.core.exceptions import NotFoundError
from caixa.core.installments import compute_installment_date, schedule_installments, split_installment_amounts
from caixa.core.normalizers import parse_local_date, quantize_money
from caixa.models.category import Category
from caixa.models.customer import Customer
from caixa.models.sale import Purchase, Sale
from caixa.models.supplier import Supplier
from caixa.models.transaction import PAID, PENDING, SETTLED_STATUSES, Transaction


logger = logging.getLogger(__name__)


@dataclass
class InstallmentPlan:
    """Dados comuns de uma venda ou compra parcelada."""
    date: Any
    total_amount: Any
    installment_count: Optional[int] = None
    status: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    payment_method: Optional[str] = None
    has_card_fee: bool = False
    card_fee: Any = 0
    custom_installments: List[Dict[str, Any]] = field(default_factory=list)


def installment_count_for(plan: InstallmentPlan) -> int:
    if plan.custom_installments:
        return len(plan.custom_installments)
    try:
        count = int(plan.installment_count or 1)
    except (TypeError, ValueError):
        count = 1
    return max(count, 1)


def _installment_description(base: str, number: int, count: int) -> str:
    return f"{base} ({number}/{count})" if count > 1 else base


def _build_installments(
    company_id: int,
    group: str,
    plan: InstallmentPlan,
    transaction_type: str,
    default_description: str,
    base_date,
    customer_id: Optional[int] = None,
    supplier_id: Optional[int] = None,
) -> List[Transaction]:
    count = installment_count_for(plan)
    amounts = split_installment_amounts(plan.total_amount, count)
    due_dates = schedule_installments(base_date, count, plan.custom_installments)
    is_paid = plan.status == PAID
    card_fee = quantize_money(plan.card_fee) if plan.has_card_fee else Decimal("0")
    base_description = plan.description or default_description

    installments = []
    for i, (amount, due_date) in enumerate(zip(amounts, due_dates)):
        installments.append(Transaction(
            company_id=company_id,
            type=transaction_type,
            description=_installment_description(base_description, i + 1, count),
            amount=amount,
            date=due_date,
            status=PAID if is_paid else PENDING,
            paid_amount=amount if is_paid else None,
            payment_date=base_date if is_paid else None,
            interest=Decimal("0"),
            category_id=plan.category_id,
            customer_id=customer_id,
            supplier_id=supplier_id,
            payment_method=plan.payment_method,
            installment_number=i + 1,
            installment_total=count,
            installment_group=group,
            has_card_fee=bool(plan.has_card_fee),
            card_fee=card_fee,
        ))
    return installments


def _group_key(prefix: str, parent_id: int) -> str:
    return f"{prefix}-{parent_id}-{int(time.time() * 1000)}"


_REFERENCES = (
    ("customer_id", Customer, "Cliente não encontrado"),
    ("supplier_id", Supplier, "Fornecedor não encontrado"),
    ("category_id", Category, "Categoria não encontrada"),
)


def check_company_references(db: Session, company_id: int, **refs: Optional[int]) -> None:
    """Customer, supplier and category ids must belong to `company_id`."""
    for key, model, message in _REFERENCES:
        ref_id = refs.get(key)
        if ref_id is None:
            continue
        exists = db.query(model.id).filter(model.id == ref_id, model.company_id == company_id).first()
        if not exists:
            raise NotFoundError(message)


def create_sale(db: Session, company_id: int, customer_id: int, plan: InstallmentPlan) -> Sale:
    check_company_references(db, company_id, customer_id=customer_id, category_id=plan.category_id)

    sale_date = parse_local_date(plan.date)
    total = quantize_money(plan.total_amount)
    status = plan.status or PAID

    try:
        sale = Sale(
            company_id=company_id,
            customer_id=customer_id,
            date=sale_date,
            amount=total,
            installment_count=installment_count_for(plan),
            status=status,
            paid_amount=total if status == PAID else Decimal("0.00"),
            description=plan.description or "Venda sem descrição",
            category_id=plan.category_id,
            payment_method=plan.payment_method,
        )
        db.add(sale)
        db.flush()

        sale.installment_group = _group_key("sale", sale.id)
        db.add_all(_build_installments(
            company_id, sale.installment_group, plan, "venda", "Venda", sale_date, customer_id=customer_id,
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(sale)
    logger.info("sale created id=%s group=%s total=%s installments=%s", sale.id, sale.installment_group, total, sale.installment_count)
    return sale


def create_purchase(db: Session, company_id: int, supplier_id: int, plan: InstallmentPlan) -> Purchase:
    check_company_references(db, company_id, supplier_id=supplier_id, category_id=plan.category_id)

    purchase_date = parse_local_date(plan.date)
    total = quantize_money(plan.total_amount)
    status = plan.status or PAID

    try:
        purchase = Purchase(
            company_id=company_id,
            supplier_id=supplier_id,
            date=purchase_date,
            amount=total,
            installment_count=installment_count_for(plan),
            status=status,
            paid_amount=total if status == PAID else Decimal("0.00"),
            description=plan.description or "Compra sem descrição",
            category_id=plan.category_id,
            payment_method=plan.payment_method,
        )
        db.add(purchase)
        db.flush()

        purchase.installment_group = _group_key("purchase", purchase.id)
        db.add_all(_build_installments(
            company_id, purchase.installment_group, plan, "compra", "Compra", purchase_date, supplier_id=supplier_id,
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(purchase)
    logger.info(
        "purchase created id=%s group=%s total=%s installments=%s",
        purchase.id, purchase.installment_group, total, purchase.installment_count,
    )
    return purchase


def get_installment_group(db: Session, company_id: int, group: str) -> List[Transaction]:
    return (
        db.query(Transaction)
        .filter(Transaction.company_id == company_id, Transaction.installment_group == group)
        .order_by(Transaction.installment_number)
        .all()
    )


def reschedule_installment_group(
    db: Session,
    company_id: int,
    group: str,
    base_date: Any,
    custom_installments: Optional[List[Dict[str, Any]]] = None,
) -> List[Transaction]:
    """
    Recalcula os vencimentos de um grupo a partir de uma nova data base,
    com a mesma regra usada na criação (primeira parcela no mês seguinte).
    Parcelas já quitadas mantêm seus dados de pagamento.
    """
    installments = get_installment_group(db, company_id, group)
    if not installments:
        raise NotFoundError("Grupo de parcelas não encontrado")

    base = parse_local_date(base_date)
    for transaction in installments:
        index = (transaction.installment_number or 1) - 1
        transaction.date = compute_installment_date(base, custom_installments, index)
    db.commit()

    for transaction in installments:
        db.refresh(transaction)
    logger.info(
        "installment group rescheduled group=%s base=%s settled=%s",
        group, base, sum(1 for t in installments if t.status in SETTLED_STATUSES),
    )
    return installments
