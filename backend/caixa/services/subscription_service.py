"""
Assinaturas: emissão de cobrança no gateway e ativação via webhook.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from caixa.core.config import settings
from caixa.core.exceptions import NotFoundError
from caixa.models.company import Company
from caixa.models.subscription import Plan, Subscription
from caixa.models.user import User
from caixa.services.payment_gateway import PaymentGateway, extract_ticket_url


logger = logging.getLogger(__name__)

BOLETO_METHODS = ("bolbradesco", "boleto")


def _subscription_expiry(plan: Plan, start: datetime) -> Optional[datetime]:
    if plan.interval == "lifetime":
        return None
    return start + timedelta(days=settings.subscription_period_days)


def build_payer(company: Company, admin: Optional[User], payer: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Completa os dados do pagador com o cadastro da empresa e do administrador."""
    payer = dict(payer or {})
    document = "".join(ch for ch in (payer.get("document") or company.document or "") if ch.isdigit())
    full_name = payer.get("name") or (admin.name if admin else None) or ""
    first_name, _, last_name = full_name.partition(" ")

    result = {
        "email": payer.get("email") or (admin.email if admin else ""),
        "first_name": first_name or "Admin",
        "last_name": last_name.strip() or "User",
    }
    if document:
        result["identification"] = {"type": "CNPJ" if len(document) > 11 else "CPF", "number": document}
    if payer.get("address"):
        result["address"] = payer["address"]
    return result


def start_subscription_payment(
    db: Session,
    gateway: PaymentGateway,
    company: Company,
    plan_key: str,
    payment_method_id: str,
    payer: Optional[Dict[str, Any]] = None,
    token: Optional[str] = None,
) -> Subscription:
    plan = db.query(Plan).filter(Plan.key == plan_key, Plan.is_active.is_(True)).first()
    if not plan:
        raise NotFoundError("Plano não encontrado")

    admin = (
        db.query(User)
        .filter(User.company_id == company.id, User.role == "admin")
        .order_by(User.id)
        .first()
    )
    payer_data = build_payer(company, admin, payer)

    expiration = None
    if payment_method_id in BOLETO_METHODS:
        expiration = (datetime.utcnow() + timedelta(days=settings.boleto_expiration_days)).replace(
            hour=23, minute=59, second=59, microsecond=0
        )

    payment = gateway.create_payment(
        amount=Decimal(plan.price),
        payment_method_id=payment_method_id,
        payer=payer_data,
        description=f"Assinatura {plan.display_name}",
        external_reference=str(company.id),
        metadata={"company_id": company.id, "plan": plan.key},
        token=token,
        date_of_expiration=expiration,
        idempotency_key=f"sub-{company.id}-{payment_method_id}-{int(datetime.utcnow().timestamp() * 1000)}",
    )

    subscription = Subscription(
        company_id=company.id,
        plan=plan.key,
        status="pending",
        amount=plan.price,
        payment_method=payment_method_id,
        gateway_payment_id=str(payment.get("id")) if payment.get("id") is not None else None,
        ticket_url=extract_ticket_url(payment),
    )
    db.add(subscription)
    company.subscription_plan = plan.key
    company.payment_status = payment.get("status") or "pending"
    db.commit()
    db.refresh(subscription)

    if payment.get("status") == "approved":
        activate_subscription(db, company.id, subscription.gateway_payment_id)
        db.refresh(subscription)

    logger.info(
        "subscription payment created company=%s plan=%s gateway_id=%s status=%s",
        company.id, plan.key, subscription.gateway_payment_id, payment.get("status"),
    )
    return subscription


def _find_subscription(db: Session, company_id: int, gateway_payment_id: Optional[str]) -> Optional[Subscription]:
    if not gateway_payment_id:
        return None
    return db.query(Subscription).filter(
        Subscription.company_id == company_id,
        Subscription.gateway_payment_id == gateway_payment_id,
    ).first()


def activate_subscription(db: Session, company_id: int, gateway_payment_id: Optional[str] = None) -> Company:
    company = db.query(Company).filter(Company.id == company_id).first()
    if not company:
        raise NotFoundError(f"Company {company_id} not found")

    subscription = _find_subscription(db, company_id, gateway_payment_id)
    # Notificação repetida do mesmo pagamento não renova o prazo
    if subscription is not None and subscription.status == "active":
        logger.info("subscription already active company=%s gateway_id=%s", company_id, gateway_payment_id)
        return company

    now = datetime.utcnow()
    if subscription is None:
        subscription = (
            db.query(Subscription)
            .filter(Subscription.company_id == company_id)
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            .first()
        )

    if subscription is not None:
        plan = db.query(Plan).filter(Plan.key == subscription.plan).first()
        subscription.status = "active"
        subscription.expires_at = _subscription_expiry(plan, now) if plan else None

    company.subscription_status = "active"
    company.payment_status = "approved"
    company.is_active = True
    db.commit()
    logger.info("subscription activated company=%s gateway_id=%s", company_id, gateway_payment_id)
    return company


def handle_payment_notification(db: Session, gateway: PaymentGateway, payment_id: str) -> Optional[Company]:
    """
    Reconsulta o pagamento no gateway e ativa a assinatura quando aprovado.
    Retorna a empresa ativada, ou None quando não há o que fazer.
    """
    payment = gateway.get_payment(payment_id)
    status = payment.get("status")
    company_ref = payment.get("external_reference") or (payment.get("metadata") or {}).get("company_id")
    logger.info("webhook payment id=%s status=%s reference=%s", payment_id, status, company_ref)

    if status != "approved":
        return None
    if not company_ref:
        logger.warning("payment %s approved but no company reference found", payment_id)
        return None

    try:
        company_id = int(str(company_ref).strip())
    except ValueError:
        logger.warning("payment %s has invalid company reference %r", payment_id, company_ref)
        return None
    if db.query(Company.id).filter(Company.id == company_id).first() is None:
        logger.warning("payment %s references unknown company %s", payment_id, company_id)
        return None

    gateway_payment_id = str(payment.get("id") or payment_id)
    subscription = _find_subscription(db, company_id, gateway_payment_id)
    if subscription is not None and subscription.status == "active":
        logger.info("payment %s already applied to company %s", payment_id, company_id)
        return None
    return activate_subscription(db, company_id, gateway_payment_id)


def expire_overdue_subscriptions(db: Session, now: Optional[datetime] = None) -> int:
    """Marca como expiradas as assinaturas vencidas e suspende as empresas."""
    now = now or datetime.utcnow()
    overdue = db.query(Subscription).filter(
        Subscription.status == "active",
        Subscription.expires_at.isnot(None),
        Subscription.expires_at < now,
    ).all()
    for subscription in overdue:
        subscription.status = "expired"
        if subscription.company:
            subscription.company.subscription_status = "expired"
    db.commit()
    if overdue:
        logger.info("expired %s subscriptions", len(overdue))
    return len(overdue)
