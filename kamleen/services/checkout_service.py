"""
Checkout orchestration: turn a pending booking into a provider redirect,
and route admin refunds to the provider that took the money.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from kamleen.core.exceptions import (
    BookingNotFoundError,
    BookingStateError,
    PaymentNotFoundError,
    ProviderError,
    UnsupportedOperationError,
    ValidationError,
)
from kamleen.core.hold_window import hold_deadline, hold_expired
from kamleen.database.models import Booking, BookingStatus, PaymentStatus
from kamleen.database.payment_models import Payment, Refund, RefundStatus
from kamleen.payments.gateway_config import get_gateway, resolve_gateway, select_gateway
from kamleen.payments.registry import provider_for
from kamleen.payments.types import CheckoutParams, RefundParams

logger = logging.getLogger(__name__)


@dataclass
class CheckoutOutcome:
    url: str
    payment_id: int
    provider: str
    provider_payment_id: Optional[str] = None


def to_minor_units(amount: float) -> int:
    return int(round(float(amount) * 100))


def load_booking(db: Session, booking_id: int) -> Booking:
    booking = (
        db.query(Booking)
        .options(joinedload(Booking.experience), joinedload(Booking.explorer), joinedload(Booking.session))
        .filter(Booking.id == booking_id)
        .first()
    )
    if booking is None:
        raise BookingNotFoundError(f"Booking {booking_id} not found")
    return booking


def ensure_hold(db: Session, booking: Booking) -> datetime:
    """Stamp the hold deadline on first checkout; later attempts keep it."""
    if booking.expires_at is None:
        booking.expires_at = hold_deadline(booking.created_at or datetime.utcnow())
        db.commit()
        logger.info("Booking %s hold set until %s", booking.id, booking.expires_at.isoformat())
    return booking.expires_at


async def create_checkout_for_booking(
    db: Session,
    booking_id: int,
    success_url: str,
    cancel_url: str,
    provider_id: Optional[str] = None,
) -> CheckoutOutcome:
    booking = load_booking(db, booking_id)

    if booking.status != BookingStatus.PENDING or booking.payment_status == PaymentStatus.SUCCEEDED:
        raise BookingStateError(f"Booking {booking.id} is {booking.status.value}; nothing to pay")

    ensure_hold(db, booking)
    if hold_expired(booking.expires_at):
        raise BookingStateError(f"Booking {booking.id} hold expired", code="hold_expired")

    gateway_row = select_gateway(db, provider_id)
    provider = provider_for(gateway_row.key)
    gateway = resolve_gateway(gateway_row)

    experience = booking.experience
    payment = Payment(
        booking_id=booking.id,
        provider=gateway_row.key,
        amount=to_minor_units(booking.total_price),
        currency=experience.currency,
        status=PaymentStatus.REQUIRES_PAYMENT_METHOD,
        meta={"guests": booking.guests, "session_id": booking.session_id},
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)

    params = CheckoutParams(
        booking_id=booking.id,
        amount=payment.amount,
        currency=payment.currency,
        success_url=success_url,
        cancel_url=cancel_url,
        description=f"{experience.title} x{booking.guests}",
        customer_email=booking.explorer.email if booking.explorer else None,
        metadata={"booking_id": str(booking.id), "payment_id": str(payment.id)},
    )

    try:
        result = await provider.create_checkout(gateway, params)
    except ProviderError:
        logger.warning("Checkout via %s failed for booking %s; payment %s left pending",
                       gateway_row.key, booking.id, payment.id)
        raise

    payment.provider_payment_id = result.provider_payment_id
    booking.payment_id = payment.id
    if provider.manual_settlement:
        payment.status = PaymentStatus.PROCESSING
        booking.payment_status = PaymentStatus.PROCESSING
    else:
        booking.payment_status = PaymentStatus.REQUIRES_PAYMENT_METHOD
    db.commit()

    logger.info("Checkout created: booking=%s payment=%s provider=%s", booking.id, payment.id, gateway_row.key)
    return CheckoutOutcome(
        url=result.url,
        payment_id=payment.id,
        provider=gateway_row.key,
        provider_payment_id=result.provider_payment_id,
    )


async def create_refund_for_payment(
    db: Session, payment_id: int, amount: Optional[int] = None, reason: Optional[str] = None
) -> Refund:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if payment is None:
        raise PaymentNotFoundError(f"Payment {payment_id} not found")

    provider = provider_for(payment.provider)
    if not provider.supports_refunds:
        raise UnsupportedOperationError(f"{payment.provider} refunds must be handled manually")

    if payment.status != PaymentStatus.SUCCEEDED:
        raise ValidationError(f"Payment {payment.id} is {payment.status.value}; only succeeded payments are refundable")
    if not payment.provider_payment_id:
        raise ValidationError(f"Payment {payment.id} has no provider reference")

    already = sum(r.amount for r in payment.refunds if r.status != RefundStatus.FAILED)
    amount = amount or payment.amount - already
    if amount <= 0 or already + amount > payment.amount:
        raise ValidationError("Refund amount exceeds the refundable balance")

    gateway = resolve_gateway(get_gateway(db, payment.provider))
    result = await provider.create_refund(gateway, RefundParams(payment.provider_payment_id, amount, reason))

    refund = Refund(
        payment_id=payment.id,
        amount=amount,
        reason=reason,
        status=RefundStatus.PENDING,
        provider_refund_id=result.provider_refund_id,
    )
    db.add(refund)
    db.commit()
    db.refresh(refund)
    logger.info("Refund %s requested on payment %s (%s %s)", refund.id, payment.id, amount, payment.currency)
    return refund
