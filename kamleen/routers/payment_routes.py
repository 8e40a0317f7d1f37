# kamleen/routers/payment_routes.py
"""
Payment routes: checkout initiation and the PayPal return/capture leg
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from kamleen.auth import require_role
from kamleen.core.config import settings
from kamleen.core.exceptions import PaymentNotFoundError
from kamleen.database.database import get_db
from kamleen.database.models import Booking, User, UserRole
from kamleen.database.payment_models import Payment
from kamleen.database.schemas import CheckoutRequest, CheckoutResponse, PayPalCaptureRequest
from kamleen.payments.gateway_config import get_gateway, list_enabled_gateways, resolve_gateway
from kamleen.payments.providers.paypal import capture_order, custom_ids
from kamleen.payments.registry import registered_keys
from kamleen.services.checkout_service import create_checkout_for_booking
from kamleen.services.confirmation_service import run_booking_confirmation_side_effects
from kamleen.services.reconciliation_service import (
    apply_payment_failure,
    apply_payment_success,
    find_payment,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])

RESERVATIONS_URL = "/dashboard/explorer/reservations"


@router.get("/health")
def payments_health(db: Session = Depends(get_db)):
    return {
        "status": "ok",
        "providers": registered_keys(),
        "enabled_gateways": [g.key for g in list_enabled_gateways(db)],
    }


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
    body: CheckoutRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.EXPLORER)),
):
    booking = db.query(Booking).filter(Booking.id == body.booking_id).first()
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    if booking.explorer_id != current_user.id:
        raise HTTPException(status_code=403, detail="You do not own this booking")

    base = settings.APP_URL.rstrip("/")
    outcome = await create_checkout_for_booking(
        db,
        booking_id=booking.id,
        success_url=body.success_url or f"{base}{RESERVATIONS_URL}?paid=1",
        cancel_url=body.cancel_url or f"{base}{RESERVATIONS_URL}?cancelled=1",
        provider_id=body.provider,
    )
    return CheckoutResponse(
        url=outcome.url,
        payment_id=outcome.payment_id,
        provider=outcome.provider,
        provider_payment_id=outcome.provider_payment_id,
    )


def _paypal_payment(db: Session, order_id: str, capture: Optional[Dict[str, Any]], payment_hint: Optional[str]) -> Payment:
    ids = custom_ids(capture or {})
    ref = ids.get("paymentId") or payment_hint
    if ref:
        try:
            return find_payment(db, payment_id=int(ref))
        except (TypeError, ValueError):
            logger.warning("PayPal return carried a malformed payment id: %r", ref)
    return find_payment(db, provider_payment_id=order_id)


async def _capture_and_apply(db: Session, order_id: str, payment_hint: Optional[str]):
    """Capture the order and reconcile; returns (payment, confirmed) or (payment, None) on decline."""
    gateway = resolve_gateway(get_gateway(db, "paypal"))
    capture = await capture_order(gateway, order_id)
    payment = _paypal_payment(db, order_id, capture, payment_hint)
    if payment.provider != "paypal":
        raise PaymentNotFoundError(f"Payment {payment.id} is not a PayPal payment")
    if capture is None:
        apply_payment_failure(db, payment, error_code="CAPTURE_DECLINED")
        return payment, None
    return payment, apply_payment_success(db, payment, provider_payment_id=order_id)


@router.get("/paypal/return")
async def paypal_return(
    background_tasks: BackgroundTasks,
    token: Optional[str] = Query(None),
    success: Optional[str] = Query(None),
    cancel: Optional[str] = Query(None),
    cancelled: Optional[str] = Query(None),
    paymentId: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    base = settings.APP_URL.rstrip("/")
    success_url = success or f"{base}{RESERVATIONS_URL}?paid=1"
    cancel_url = cancel or f"{base}{RESERVATIONS_URL}?cancelled=1"

    if cancelled == "1":
        # PayPal appends the order token to the cancel URL; without a matching
        # token the attempt is left for capture or the expiry sweep
        if token and paymentId:
            try:
                payment = find_payment(db, payment_id=int(paymentId))
                if payment.provider == "paypal" and payment.provider_payment_id == token:
                    apply_payment_failure(db, payment, error_code="USER_CANCELLED")
                else:
                    logger.warning("PayPal cancel token does not match payment %s", payment.id)
            except (ValueError, PaymentNotFoundError):
                logger.warning("PayPal cancel for unknown payment %r", paymentId)
        return RedirectResponse(cancel_url, status_code=303)
    if not token:
        return RedirectResponse(cancel_url, status_code=303)

    try:
        payment, confirmed = await _capture_and_apply(db, token, paymentId)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("PayPal return failed for order %s: %s", token, e)
        return RedirectResponse(cancel_url, status_code=303)

    if confirmed is None:
        return RedirectResponse(cancel_url, status_code=303)
    if confirmed:
        background_tasks.add_task(run_booking_confirmation_side_effects, payment.booking_id)
    return RedirectResponse(success_url, status_code=303)


@router.post("/paypal/capture")
async def paypal_capture(
    body: PayPalCaptureRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.EXPLORER)),
):
    payment = _paypal_payment(db, body.order_id, None, None)
    booking = db.query(Booking).filter(Booking.id == payment.booking_id).first()
    if booking is None or booking.explorer_id != current_user.id:
        raise HTTPException(status_code=403, detail="You do not own this booking")

    payment, confirmed = await _capture_and_apply(db, body.order_id, str(payment.id))
    if confirmed is None:
        raise HTTPException(status_code=400, detail="PayPal capture was declined")
    if confirmed:
        background_tasks.add_task(run_booking_confirmation_side_effects, payment.booking_id)
    return {"ok": True, "booking_id": payment.booking_id}
