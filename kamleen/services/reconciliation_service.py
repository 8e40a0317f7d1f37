"""
Apply provider outcomes to Payment and Booking.

Each transition is a conditional UPDATE on both rows committed together, so a
redelivered webhook finds nothing left to change and reports no transition.
Callers run the confirmation side effects only when a transition happened.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from kamleen.core.exceptions import BookingNotFoundError, PaymentNotFoundError
from kamleen.database.models import Booking, BookingStatus, PaymentStatus
from kamleen.database.payment_models import Payment

logger = logging.getLogger(__name__)


def find_payment(db: Session, payment_id: Optional[int] = None, provider_payment_id: Optional[str] = None) -> Payment:
    query = db.query(Payment)
    if payment_id is not None:
        payment = query.filter(Payment.id == payment_id).first()
    elif provider_payment_id:
        payment = query.filter(Payment.provider_payment_id == provider_payment_id).first()
    else:
        payment = None
    if payment is None:
        raise PaymentNotFoundError(f"Payment {payment_id or provider_payment_id} not found")
    return payment


def apply_payment_success(
    db: Session,
    payment: Payment,
    provider_payment_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> bool:
    """
    Mark the payment SUCCEEDED and confirm its booking.
    Returns True only for the call that actually confirmed the booking.
    """
    now = now or datetime.utcnow()
    booking = db.query(Booking).filter(Booking.id == payment.booking_id).first()
    if booking is None:
        raise BookingNotFoundError(f"Booking {payment.booking_id} not found")
    if booking.status == BookingStatus.CANCELLED:
        logger.warning("Payment %s succeeded after booking %s was cancelled; confirming anyway",
                       payment.id, booking.id)

    try:
        confirmed = (
            db.query(Booking)
            .filter(Booking.id == payment.booking_id, Booking.status != BookingStatus.CONFIRMED)
            .update(
                {
                    Booking.status: BookingStatus.CONFIRMED,
                    Booking.payment_status: PaymentStatus.SUCCEEDED,
                    Booking.payment_id: payment.id,
                    Booking.updated_at: now,
                },
                synchronize_session=False,
            )
        )

        values = {Payment.status: PaymentStatus.SUCCEEDED, Payment.updated_at: now}
        if payment.captured_at is None:
            values[Payment.captured_at] = now
        if provider_payment_id:
            values[Payment.provider_payment_id] = provider_payment_id
        db.query(Payment).filter(Payment.id == payment.id).update(values, synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.expire_all()
    if confirmed:
        logger.info("✅ Booking %s confirmed by payment %s (%s)", payment.booking_id, payment.id, payment.provider)
    else:
        logger.info("Booking %s already confirmed; payment %s success is a redelivery", payment.booking_id, payment.id)
    return bool(confirmed)


def apply_payment_failure(
    db: Session,
    payment: Payment,
    error_code: Optional[str] = None,
    error_message: Optional[str] = None,
) -> bool:
    """
    Cancel the payment attempt. The booking stays PENDING so the explorer can
    retry until the hold runs out. A succeeded payment is never downgraded.
    """
    try:
        cancelled = (
            db.query(Payment)
            .filter(Payment.id == payment.id, Payment.status != PaymentStatus.SUCCEEDED)
            .update(
                {
                    Payment.status: PaymentStatus.CANCELLED,
                    Payment.error_code: error_code,
                    Payment.error_message: error_message,
                    Payment.updated_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        if cancelled:
            # only the booking's current attempt drives its payment status
            db.query(Booking).filter(
                Booking.id == payment.booking_id,
                Booking.payment_status != PaymentStatus.SUCCEEDED,
                or_(Booking.payment_id == payment.id, Booking.payment_id.is_(None)),
            ).update({Booking.payment_status: PaymentStatus.CANCELLED}, synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.expire_all()
    if cancelled:
        logger.info("Payment %s cancelled (%s: %s)", payment.id, error_code, error_message)
    else:
        logger.warning("Ignoring failure for payment %s: already succeeded", payment.id)
    return bool(cancelled)


def mark_payment_processing(db: Session, payment: Payment, provider_payment_id: Optional[str] = None) -> bool:
    """The provider has the funds in flight (e.g. checkout completed, capture pending)."""
    values = {Payment.status: PaymentStatus.PROCESSING, Payment.updated_at: datetime.utcnow()}
    if provider_payment_id:
        values[Payment.provider_payment_id] = provider_payment_id
    try:
        updated = (
            db.query(Payment)
            .filter(
                Payment.id == payment.id,
                Payment.status.notin_([PaymentStatus.SUCCEEDED, PaymentStatus.CANCELLED]),
            )
            .update(values, synchronize_session=False)
        )
        if updated:
            db.query(Booking).filter(
                Booking.id == payment.booking_id,
                Booking.payment_status != PaymentStatus.SUCCEEDED,
                or_(Booking.payment_id == payment.id, Booking.payment_id.is_(None)),
            ).update({Booking.payment_status: PaymentStatus.PROCESSING}, synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()
    return bool(updated)


def mark_booking_paid(db: Session, booking_id: int) -> bool:
    """Manual settlement by an admin (cash desk, bank transfer)."""
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if booking is None:
        raise BookingNotFoundError(f"Booking {booking_id} not found")

    payment = None
    if booking.payment_id:
        payment = db.query(Payment).filter(Payment.id == booking.payment_id).first()
    if payment is not None:
        return apply_payment_success(db, payment)

    confirmed = (
        db.query(Booking)
        .filter(Booking.id == booking_id, Booking.status != BookingStatus.CONFIRMED)
        .update(
            {Booking.status: BookingStatus.CONFIRMED, Booking.payment_status: PaymentStatus.SUCCEEDED},
            synchronize_session=False,
        )
    )
    db.commit()
    db.expire_all()
    logger.info("Booking %s marked paid without a payment record", booking_id)
    return bool(confirmed)
