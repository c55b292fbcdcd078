import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from caixa.core.database import get_db
from caixa.core.deps import get_company, get_gateway, require_admin
from caixa.core.exceptions import GatewayError, NotFoundError
from caixa.core.serialization_helpers import serialize_datetime, serialize_money
from caixa.models.company import Company
from caixa.models.subscription import Subscription
from caixa.models.user import User
from caixa.services.audit_service import client_ip, create_audit_log
from caixa.services.payment_gateway import PaymentGateway
from caixa.services.subscription_service import (
    activate_subscription,
    handle_payment_notification,
    start_subscription_payment,
)


router = APIRouter()
logger = logging.getLogger(__name__)


class PaymentProcessRequest(BaseModel):
    plan: str
    payment_method_id: str
    token: Optional[str] = None
    payer: Optional[Dict[str, Any]] = None


def serialize_subscription(subscription: Subscription) -> dict:
    return {
        "id": subscription.id,
        "plan": subscription.plan,
        "status": subscription.status,
        "amount": serialize_money(subscription.amount),
        "payment_method": subscription.payment_method,
        "gateway_payment_id": subscription.gateway_payment_id,
        "ticket_url": subscription.ticket_url,
        "expires_at": serialize_datetime(subscription.expires_at),
    }


@router.post("/process")
def process_payment(
    data: PaymentProcessRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
    company: Company = Depends(get_company),
    gateway: PaymentGateway = Depends(get_gateway),
):
    subscription = start_subscription_payment(
        db,
        gateway,
        company,
        plan_key=data.plan,
        payment_method_id=data.payment_method_id,
        payer=data.payer,
        token=data.token,
    )
    if subscription.status == "active":
        create_audit_log(
            db,
            company_id=company.id,
            user_id=user.id,
            action="SUBSCRIPTION_ACTIVATED",
            resource_type="subscription",
            resource_id=str(subscription.id),
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    return serialize_subscription(subscription)


@router.post("/webhook")
def payment_webhook(
    request: Request,
    body: Optional[Dict[str, Any]] = Body(None),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
):
    """
    Notificação do gateway. O id do pagamento vem em `data.id` (corpo ou
    query string). Sempre responde 200 para pagamentos válidos, mesmo se a
    reconsulta falhar, para o gateway não reenviar indefinidamente.
    """
    body = body or {}
    params = request.query_params
    event_type = body.get("type") or body.get("topic") or params.get("type") or params.get("topic")
    payment_id = (body.get("data") or {}).get("id") or params.get("data.id") or params.get("id")

    if event_type not in (None, "payment") or not payment_id:
        return {"received": True}

    payment_id = str(payment_id)
    if not gateway.verify_webhook_signature(
        payment_id,
        request.headers.get("x-request-id"),
        request.headers.get("x-signature"),
    ):
        logger.warning("webhook signature mismatch payment=%s", payment_id)
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        company = handle_payment_notification(db, gateway, payment_id)
    except GatewayError as exc:
        logger.error("webhook could not fetch payment %s: %s", payment_id, exc)
        return {"received": True}
    except NotFoundError as exc:
        logger.warning("webhook payment %s: %s", payment_id, exc)
        return {"received": True}

    if company is not None:
        create_audit_log(
            db,
            company_id=company.id,
            user_id=None,
            action="SUBSCRIPTION_ACTIVATED",
            resource_type="subscription",
            resource_id=payment_id,
            details="Ativação via webhook",
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    return {"received": True}


@router.get("/status/{payment_id}")
def payment_status(
    payment_id: str,
    refresh: bool = Query(True),
    db: Session = Depends(get_db),
    company: Company = Depends(get_company),
    gateway: PaymentGateway = Depends(get_gateway),
):
    subscription = db.query(Subscription).filter(
        Subscription.company_id == company.id,
        Subscription.gateway_payment_id == payment_id,
    ).first()
    if not subscription:
        raise HTTPException(status_code=404, detail="Pagamento não encontrado")

    gateway_status = None
    if refresh and subscription.status == "pending":
        payment = gateway.get_payment(payment_id)
        gateway_status = payment.get("status")
        if gateway_status == "approved":
            activate_subscription(db, company.id, payment_id)
            db.refresh(subscription)

    return {
        "subscription": serialize_subscription(subscription),
        "gateway_status": gateway_status,
        "company_status": company.subscription_status,
    }
