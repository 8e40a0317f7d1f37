# kamleen/routers/webhook_routes.py
"""
Provider webhooks. One endpoint per gateway key:

    POST /api/webhooks/stripe     (JSON, Stripe-Signature header)
    POST /api/webhooks/payzone    (form or JSON, `signature` field)
    POST /api/webhooks/cmi        (form or JSON, `hash` field)
    POST /api/webhooks/razorpay   (JSON, X-Razorpay-Signature header)

Rejected deliveries get a 400 with a short error code and change nothing.
"""
import json
import logging
from typing import Any, Dict
from urllib.parse import parse_qsl

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from kamleen.core.exceptions import PaymentError
from kamleen.database.database import get_db
from kamleen.payments.gateway_config import get_gateway, resolve_gateway
from kamleen.payments.registry import provider_for
from kamleen.payments.types import WebhookOutcome
from kamleen.services.confirmation_service import run_booking_confirmation_side_effects
from kamleen.services.reconciliation_service import (
    apply_payment_failure,
    apply_payment_success,
    find_payment,
    mark_payment_processing,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def _reject(provider: str, error: str, detail: str = "") -> JSONResponse:
    logger.warning("Webhook %s rejected: %s %s", provider, error, detail)
    return JSONResponse({"ok": False, "error": error}, status_code=400)


def decode_body(content_type: str, body: bytes) -> Dict[str, Any]:
    """Form-encoded or JSON payload as a flat dict (empty when undecodable)."""
    text = body.decode("utf-8", errors="replace")
    if "application/x-www-form-urlencoded" in content_type:
        return dict(parse_qsl(text, keep_blank_values=True))
    try:
        data = json.loads(text) if text.strip() else {}
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


@router.post("/{provider_key}")
async def provider_webhook(
    provider_key: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    body = await request.body()
    headers = {k.lower(): v for k, v in request.headers.items()}
    provider_key = provider_key.lower()

    try:
        provider = provider_for(provider_key)
        gateway = resolve_gateway(get_gateway(db, provider_key))
        event = provider.parse_webhook(gateway, headers, body, decode_body(headers.get("content-type", ""), body))
    except PaymentError as e:
        return _reject(provider_key, e.code, e.message)
    except ValueError as e:
        return _reject(provider_key, "malformed_payload", str(e))

    if event.outcome is WebhookOutcome.IGNORED:
        logger.info("Webhook %s: ignoring event %s", provider_key, event.event_type)
        return {"ok": True}

    if event.payment_id is None:
        return _reject(provider_key, "missing_payment_reference")
    try:
        payment = find_payment(db, payment_id=event.payment_id)
    except PaymentError as e:
        return _reject(provider_key, e.code, e.message)
    if payment.provider != provider_key:
        return _reject(provider_key, "payment_not_found", f"payment {payment.id} belongs to {payment.provider}")

    try:
        if event.outcome is WebhookOutcome.SUCCEEDED:
            confirmed = apply_payment_success(db, payment, provider_payment_id=event.provider_payment_id)
            if confirmed:
                background_tasks.add_task(
                    run_booking_confirmation_side_effects, payment.booking_id, str(request.base_url)
                )
        elif event.outcome is WebhookOutcome.FAILED:
            apply_payment_failure(db, payment, error_code=event.error_code, error_message=event.error_message)
        else:
            mark_payment_processing(db, payment, provider_payment_id=event.provider_payment_id)
    except Exception as e:
        # provider will redeliver; keep internals out of the response
        logger.exception("Webhook %s: failed to apply %s for payment %s: %s",
                         provider_key, event.outcome.value, payment.id, e)
        return JSONResponse({"ok": False, "error": "internal_error"}, status_code=500)

    logger.info("Webhook %s: payment %s -> %s", provider_key, payment.id, event.outcome.value)
    return {"ok": True}
