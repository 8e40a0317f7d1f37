"""
CMI (Centre Monétique Interbancaire) 3D hosted page.

Amounts travel in major units. Request and callback are both authenticated
with base64(SHA-512(sorted k=v pairs + store key)) in the `hash` field.
"""
import logging
import time
from typing import Any, Dict, Mapping
from urllib.parse import urlencode

from kamleen.core.config import settings
from kamleen.core.exceptions import ProviderError
from kamleen.payments.providers.signing import parse_payment_ref, require_match, sha512_b64
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

HASH_FIELD = "hash"


def _credentials(gateway: GatewaySettings):
    store_key = gateway.get("store_key")
    client_id = gateway.get("client_id")
    if not store_key:
        raise ProviderError("Missing CMI store key")
    if not client_id:
        raise ProviderError("Missing CMI client id")
    return client_id, store_key


@register_provider
class CmiProvider(PaymentProvider):
    provider_id = "cmi"

    async def create_checkout(self, gateway: GatewaySettings, params: CheckoutParams) -> CheckoutResult:
        client_id, store_key = _credentials(gateway)
        base_url = gateway.get("gateway_url", settings.CMI_GATEWAY_URL)

        payload: Dict[str, str] = {
            "clientid": str(client_id),
            "oid": params.metadata.get("payment_id") or str(params.booking_id),
            "amount": f"{params.amount / 100:.2f}",
            "currency": params.currency,
            "okUrl": params.success_url,
            "failUrl": params.cancel_url,
            "callbackUrl": f"{settings.APP_URL}/api/webhooks/cmi",
            "email": params.customer_email or "",
            "rnd": str(int(time.time() * 1000)),
        }
        payload[HASH_FIELD] = sha512_b64(payload, store_key)

        separator = "&" if "?" in base_url else "?"
        return CheckoutResult(url=f"{base_url}{separator}{urlencode(payload)}", provider_payment_id=payload["oid"])

    def parse_webhook(
        self, gateway: GatewaySettings, headers: Mapping[str, str], body: bytes, form: Mapping[str, Any]
    ) -> WebhookEvent:
        _, store_key = _credentials(gateway)
        data = {k: v for k, v in form.items() if k != HASH_FIELD}
        require_match(sha512_b64(data, store_key), str(form.get(HASH_FIELD) or ""))

        oid = data.get("oid")
        approved = data.get("Response") == "Approved" or data.get("ProcReturnCode") == "00"
        return WebhookEvent(
            outcome=WebhookOutcome.SUCCEEDED if approved else WebhookOutcome.FAILED,
            payment_id=parse_payment_ref(oid) if oid else None,
            provider_payment_id=str(data.get("TransId") or oid or "") or None,
            error_code=None if approved else str(data.get("ProcReturnCode") or "DECLINED"),
            error_message=None if approved else data.get("ErrMsg"),
            event_type=str(data.get("Response") or ""),
        )
