"""
Stripe Checkout (card processor, webhook-confirmed).
"""
import json
import logging
from typing import Any, Mapping

import stripe

from kamleen.core.exceptions import ProviderError, WebhookVerificationError
from kamleen.payments.providers.signing import parse_payment_ref
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

SIGNATURE_TOLERANCE_SECONDS = 300


def _api_key(gateway: GatewaySettings) -> str:
    key = gateway.get("secret_key")
    if not key:
        raise ProviderError("Missing Stripe secret key (gateway config or STRIPE_SECRET_KEY)")
    return key


@register_provider
class StripeProvider(PaymentProvider):
    provider_id = "stripe"
    supports_refunds = True

    async def create_checkout(self, gateway: GatewaySettings, params: CheckoutParams) -> CheckoutResult:
        metadata = {"booking_id": str(params.booking_id), **params.metadata}
        try:
            session = stripe.checkout.Session.create(
                api_key=_api_key(gateway),
                mode="payment",
                payment_method_types=["card"],
                line_items=[{
                    "price_data": {
                        "currency": params.currency.lower(),
                        "unit_amount": params.amount,
                        "product_data": {"name": params.description},
                    },
                    "quantity": 1,
                }],
                success_url=params.success_url,
                cancel_url=params.cancel_url,
                customer_email=params.customer_email,
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
            )
        except stripe.StripeError as e:
            logger.error("Stripe checkout failed for booking %s: %s", params.booking_id, e)
            raise ProviderError(f"Stripe checkout failed: {e.user_message or e}") from e
        if not session.url:
            raise ProviderError("Stripe session has no redirect URL")
        return CheckoutResult(url=session.url, provider_payment_id=session.id)

    async def create_refund(self, gateway: GatewaySettings, params: RefundParams) -> RefundResult:
        api_key = _api_key(gateway)
        try:
            payment_intent = params.provider_payment_id
            if payment_intent.startswith("cs_"):
                # webhook has not yet swapped the session id for the intent id
                session = stripe.checkout.Session.retrieve(payment_intent, api_key=api_key)
                payment_intent = session.payment_intent
            refund = stripe.Refund.create(
                api_key=api_key,
                payment_intent=payment_intent,
                amount=params.amount,
                metadata={"reason": params.reason or ""},
            )
        except stripe.StripeError as e:
            logger.error("Stripe refund failed for %s: %s", params.provider_payment_id, e)
            raise ProviderError(f"Stripe refund failed: {e.user_message or e}") from e
        return RefundResult(provider_refund_id=refund.id)

    def parse_webhook(
        self, gateway: GatewaySettings, headers: Mapping[str, str], body: bytes, form: Mapping[str, Any]
    ) -> WebhookEvent:
        secret = gateway.get("webhook_secret")
        signature = headers.get("stripe-signature")
        if not secret or not signature:
            raise WebhookVerificationError("Missing Stripe signature or webhook secret")
        payload = body.decode("utf-8")
        try:
            stripe.WebhookSignature.verify_header(payload, signature, secret, SIGNATURE_TOLERANCE_SECONDS)
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError(str(e)) from e

        event = json.loads(payload)
        event_type = event.get("type", "")
        obj = event.get("data", {}).get("object", {}) or {}
        payment_ref = (obj.get("metadata") or {}).get("payment_id")

        if event_type == "checkout.session.completed":
            outcome = WebhookOutcome.PROCESSING
            provider_payment_id = obj.get("payment_intent")
        elif event_type == "payment_intent.succeeded":
            outcome = WebhookOutcome.SUCCEEDED
            provider_payment_id = obj.get("id")
        elif event_type == "payment_intent.payment_failed":
            outcome = WebhookOutcome.FAILED
            provider_payment_id = obj.get("id")
        else:
            return WebhookEvent(outcome=WebhookOutcome.IGNORED, event_type=event_type)

        error = obj.get("last_payment_error") or {}
        return WebhookEvent(
            outcome=outcome,
            payment_id=parse_payment_ref(payment_ref) if payment_ref else None,
            provider_payment_id=provider_payment_id,
            error_code=error.get("code"),
            error_message=error.get("message"),
            event_type=event_type,
        )
