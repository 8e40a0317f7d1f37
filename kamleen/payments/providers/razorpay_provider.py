"""
Razorpay payment links (alternate card gateway).

The link's `reference_id` is our Payment id; Razorpay copies the link notes
onto the resulting payment, which is how webhooks are correlated.
"""
import hashlib
import hmac
import json
import logging
from typing import Any, Mapping

import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError

from kamleen.core.exceptions import ProviderError, WebhookVerificationError
from kamleen.payments.providers.signing import parse_payment_ref, require_match
from kamleen.payments.registry import register_provider
from kamleen.payments.types import (
    CheckoutParams,
    CheckoutResult,
    GatewaySettings,
    PaymentProvider,
    RefundParams,
    RefundResult,
    WebhookEvent,
    WebhookOutcome,
)

logger = logging.getLogger(__name__)

# the SDK talks through requests, so transport failures surface as RequestException
RAZORPAY_ERRORS = (BadRequestError, GatewayError, ServerError, requests.exceptions.RequestException)


def _client(gateway: GatewaySettings):
    key_id = gateway.get("key_id")
    key_secret = gateway.get("key_secret")
    if not key_id or not key_secret:
        raise ProviderError("Missing Razorpay credentials (gateway config or RAZORPAY_KEY_ID/SECRET)")
    return razorpay.Client(auth=(key_id, key_secret))


@register_provider
class RazorpayProvider(PaymentProvider):
    provider_id = "razorpay"
    supports_refunds = True

    async def create_checkout(self, gateway: GatewaySettings, params: CheckoutParams) -> CheckoutResult:
        client = _client(gateway)
        request = {
            "amount": params.amount,
            "currency": params.currency,
            "reference_id": params.metadata.get("payment_id") or str(params.booking_id),
            "description": params.description[:255],
            "callback_url": params.success_url,
            "callback_method": "get",
            "notes": {"booking_id": str(params.booking_id), **params.metadata},
        }
        if params.customer_email:
            request["customer"] = {"email": params.customer_email}
            request["notify"] = {"email": False, "sms": False}
        try:
            link = client.payment_link.create(request)
        except RAZORPAY_ERRORS as e:
            logger.error("Razorpay payment link failed for booking %s: %s", params.booking_id, e)
            raise ProviderError(f"Razorpay checkout failed: {e}") from e
        url = link.get("short_url")
        if not url:
            raise ProviderError("Razorpay response missing short_url")
        return CheckoutResult(url=url, provider_payment_id=link.get("id"))

    async def create_refund(self, gateway: GatewaySettings, params: RefundParams) -> RefundResult:
        if not params.provider_payment_id.startswith("pay_"):
            raise ProviderError("Razorpay refunds need a captured payment id")
        client = _client(gateway)
        try:
            refund = client.payment.refund(
                params.provider_payment_id,
                {"amount": params.amount, "notes": {"reason": params.reason or ""}},
            )
        except RAZORPAY_ERRORS as e:
            logger.error("Razorpay refund failed for %s: %s", params.provider_payment_id, e)
            raise ProviderError(f"Razorpay refund failed: {e}") from e
        return RefundResult(provider_refund_id=refund.get("id"))

    def parse_webhook(
        self, gateway: GatewaySettings, headers: Mapping[str, str], body: bytes, form: Mapping[str, Any]
    ) -> WebhookEvent:
        secret = gateway.get("webhook_secret")
        if not secret:
            raise WebhookVerificationError("Razorpay webhook secret is not configured")
        expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
        require_match(expected, headers.get("x-razorpay-signature") or "")

        payload_json = json.loads(body.decode("utf-8"))
        event = payload_json.get("event", "")
        payload = payload_json.get("payload", {})
        payment = payload.get("payment", {}).get("entity", {}) or {}
        link = payload.get("payment_link", {}).get("entity", {}) or {}

        if event == "payment_link.paid":
            outcome = WebhookOutcome.SUCCEEDED
            ref = link.get("reference_id") or (link.get("notes") or {}).get("payment_id")
        elif event == "payment.captured":
            outcome = WebhookOutcome.SUCCEEDED
            ref = (payment.get("notes") or {}).get("payment_id")
        elif event == "payment.failed":
            outcome = WebhookOutcome.FAILED
            ref = (payment.get("notes") or {}).get("payment_id")
        else:
            return WebhookEvent(outcome=WebhookOutcome.IGNORED, event_type=event)

        return WebhookEvent(
            outcome=outcome,
            payment_id=parse_payment_ref(ref) if ref else None,
            provider_payment_id=payment.get("id"),
            error_code=payment.get("error_code"),
            error_message=payment.get("error_description"),
            event_type=event,
        )
