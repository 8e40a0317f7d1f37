"""
Payzone hosted payment page.

Checkout redirects to the gateway with the order fields and an HMAC-SHA256
signature; the gateway posts the result back (form or JSON) signed the same way.
"""
import logging
from typing import Any, Dict, Mapping
from urllib.parse import urlencode

from kamleen.core.config import settings
from kamleen.core.exceptions import ProviderError
from kamleen.payments.providers.signing import hmac_sha256_hex, parse_payment_ref, require_match
from kamleen.payments.registry import register_provider
from kamleen.payments.types import (
    CheckoutParams,
    CheckoutResult,
    GatewaySettings,
    PaymentProvider,
    WebhookEvent,
    WebhookOutcome,
)

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = {"APPROVED", "SUCCESS", "SUCCEEDED"}


def _secret(gateway: GatewaySettings) -> str:
    secret = gateway.get("secret_key")
    if not secret:
        raise ProviderError("Missing Payzone secret key (gateway config or PAYZONE_SECRET_KEY)")
    return secret


@register_provider
class PayzoneProvider(PaymentProvider):
    provider_id = "payzone"

    async def create_checkout(self, gateway: GatewaySettings, params: CheckoutParams) -> CheckoutResult:
        secret = _secret(gateway)
        base_url = gateway.get("gateway_url", settings.PAYZONE_GATEWAY_URL)

        payload: Dict[str, str] = {
            "orderId": params.metadata.get("payment_id") or str(params.booking_id),
            "amount": str(params.amount),
            "currency": params.currency,
            "successUrl": params.success_url,
            "cancelUrl": params.cancel_url,
            "ipnUrl": f"{settings.APP_URL}/api/webhooks/payzone",
            "description": params.description,
        }
        if params.customer_email:
            payload["customerEmail"] = params.customer_email
        payload["signature"] = hmac_sha256_hex(payload, secret)

        separator = "&" if "?" in base_url else "?"
        return CheckoutResult(url=f"{base_url}{separator}{urlencode(payload)}", provider_payment_id=payload["orderId"])

    def parse_webhook(
        self, gateway: GatewaySettings, headers: Mapping[str, str], body: bytes, form: Mapping[str, Any]
    ) -> WebhookEvent:
        data = {k: v for k, v in form.items() if k != "signature"}
        require_match(hmac_sha256_hex(data, _secret(gateway)), str(form.get("signature") or ""))

        order_id = data.get("orderId")
        status = str(data.get("status") or "").upper()
        if status in SUCCESS_STATUSES:
            outcome = WebhookOutcome.SUCCEEDED
        else:
            outcome = WebhookOutcome.FAILED
        return WebhookEvent(
            outcome=outcome,
            payment_id=parse_payment_ref(order_id) if order_id else None,
            provider_payment_id=str(data.get("transactionId") or order_id or "") or None,
            error_code=None if outcome is WebhookOutcome.SUCCEEDED else (status or "UNKNOWN"),
            error_message=data.get("message"),
            event_type=status,
        )
