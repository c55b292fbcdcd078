"""
Cliente HTTP do gateway de pagamento (API compatível com Mercado Pago).

Uma instância é criada em `create_app` e guardada em `app.state.gateway`;
as rotas a recebem por injeção de dependência.
"""
import hashlib
import hmac
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from caixa.core.exceptions import GatewayError


logger = logging.getLogger(__name__)


class PaymentGateway:
    def __init__(
        self,
        access_token: Optional[str],
        base_url: str = "https://api.mercadopago.com",
        webhook_secret: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.access_token = access_token
        self.webhook_secret = webhook_secret
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    @property
    def configured(self) -> bool:
        return bool(self.access_token)

    def close(self) -> None:
        self._client.close()

    def _headers(self, idempotency_key: Optional[str] = None) -> Dict[str, str]:
        if not self.access_token:
            raise GatewayError("Payment gateway not configured")
        headers = {"Authorization": f"Bearer {self.access_token}"}
        if idempotency_key:
            headers["X-Idempotency-Key"] = idempotency_key
        return headers

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("gateway %s %s failed: %s", method, path, exc)
            raise GatewayError(f"Gateway unreachable: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {"message": response.text}

        if response.is_error:
            message = payload.get("message") or payload.get("cause") or "Gateway request failed"
            logger.warning("gateway %s %s returned %s: %s", method, path, response.status_code, message)
            raise GatewayError(str(message), status_code=response.status_code, payload=payload)
        return payload

    def create_payment(
        self,
        amount,
        payment_method_id: str,
        payer: Dict[str, Any],
        description: str,
        external_reference: str,
        metadata: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        date_of_expiration: Optional[datetime] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "transaction_amount": float(amount),
            "payment_method_id": payment_method_id,
            "payer": payer,
            "description": description,
            "external_reference": external_reference,
            "metadata": metadata or {},
        }
        if token:
            body["token"] = token
            body["installments"] = 1
        if date_of_expiration:
            body["date_of_expiration"] = date_of_expiration.isoformat()
        return self._request("POST", "/v1/payments", json=body, headers=self._headers(idempotency_key))

    def get_payment(self, payment_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/v1/payments/{payment_id}", headers=self._headers())

    def verify_webhook_signature(self, data_id: str, request_id: Optional[str], signature: Optional[str]) -> bool:
        """
        Validate the `x-signature` header ("ts=...,v1=...") against
        HMAC-SHA256 of "id:<data_id>;request-id:<request_id>;ts:<ts>;".
        Without a configured secret every notification is accepted.
        """
        if not self.webhook_secret:
            return True
        if not signature:
            return False

        parts = {}
        for part in signature.split(","):
            key, _, value = part.strip().partition("=")
            parts[key] = value
        ts, v1 = parts.get("ts"), parts.get("v1")
        if not ts or not v1:
            return False

        manifest = f"id:{data_id};request-id:{request_id or ''};ts:{ts};"
        expected = hmac.new(self.webhook_secret.encode(), manifest.encode(), hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, v1)


def extract_ticket_url(payment: Dict[str, Any]) -> Optional[str]:
    """Boleto/PIX link from a gateway payment response."""
    details = payment.get("transaction_details") or {}
    poi = (payment.get("point_of_interaction") or {}).get("transaction_data") or {}
    return details.get("external_resource_url") or poi.get("ticket_url") or payment.get("ticket_url")
