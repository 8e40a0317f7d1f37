"""
Explorer-side booking lifecycle: request a spot, cancel while pending.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from kamleen.core.exceptions import (
    BookingNotFoundError,
    BookingStateError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from kamleen.core.hold_window import BOOKING_HOLD
from kamleen.database.models import (
    Booking,
    BookingStatus,
    ExperienceSession,
    PaymentStatus,
    User,
)
from kamleen.services.notification_service import (
    BOOKING_CANCELLED,
    BOOKING_CREATED,
    EMAIL,
    TOAST,
    create_notification,
)

logger = logging.getLogger(__name__)

# only confirmed bookings consume capacity; pending holds do not
CAPACITY_STATUSES = (BookingStatus.CONFIRMED,)


def confirmed_guests(db: Session, session_id: int) -> int:
    total = (
        db.query(func.coalesce(func.sum(Booking.guests), 0))
        .filter(Booking.session_id == session_id, Booking.status.in_(CAPACITY_STATUSES))
        .scalar()
    )
    return int(total or 0)


def find_active_pending(db: Session, explorer_id: int, experience_id: int, now: datetime) -> Optional[Booking]:
    return (
        db.query(Booking)
        .filter(
            Booking.explorer_id == explorer_id,
            Booking.experience_id == experience_id,
            Booking.status == BookingStatus.PENDING,
            or_(
                Booking.expires_at > now,
                and_(Booking.expires_at.is_(None), Booking.created_at > now - BOOKING_HOLD),
            ),
        )
        .first()
    )


async def create_booking(
    db: Session,
    explorer: User,
    experience_id: int,
    session_id: int,
    guests: int,
    notes: Optional[str] = None,
) -> Booking:
    if guests <= 0:
        raise ValidationError("Guests must be a positive integer")

    session = db.query(ExperienceSession).filter(ExperienceSession.id == session_id).first()
    if session is None or session.experience_id != experience_id:
        raise NotFoundError("Session not found for this experience")
    if guests > session.capacity:
        raise ValidationError("Guest count exceeds session capacity")
    if confirmed_guests(db, session_id) + guests > session.capacity:
        raise ConflictError("Not enough spots left for this session")

    now = datetime.utcnow()
    pending = find_active_pending(db, explorer.id, experience_id, now)
    if pending is not None:
        raise ConflictError(f"You already have a pending reservation for this experience (booking {pending.id})")

    experience = session.experience
    price_per_guest = session.price_override if session.price_override is not None else experience.price
    booking = Booking(
        explorer_id=explorer.id,
        experience_id=experience_id,
        session_id=session_id,
        guests=guests,
        total_price=price_per_guest * guests,
        status=BookingStatus.PENDING,
        payment_status=PaymentStatus.REQUIRES_PAYMENT_METHOD,
        notes=(notes or "").strip() or None,
        created_at=now,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    logger.info("Booking %s requested by explorer %s (%d guests)", booking.id, explorer.id, guests)

    try:
        await create_notification(
            db,
            user_id=experience.organizer_id,
            title="New reservation request",
            message=f"You have a new booking request for {experience.title}",
            event_type=BOOKING_CREATED,
            channels=[TOAST, EMAIL],
            href="/dashboard/organizer/bookings",
            metadata={"booking_id": booking.id, "experience_id": experience_id},
        )
    except Exception:
        db.rollback()
        logger.exception("Failed to notify organizer about booking %s", booking.id)

    return booking


async def cancel_booking(db: Session, explorer: User, booking_id: int, message: Optional[str] = None) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if booking is None:
        raise BookingNotFoundError("Booking not found")
    if booking.explorer_id != explorer.id:
        raise ForbiddenError("You can only cancel your own bookings")
    if booking.status != BookingStatus.PENDING:
        raise BookingStateError(f"Only pending bookings can be cancelled (booking is {booking.status.value})")

    booking.status = BookingStatus.CANCELLED
    if message and message.strip():
        booking.notes = message.strip()
    db.commit()
    db.refresh(booking)
    logger.info("Booking %s cancelled by explorer %s", booking.id, explorer.id)

    try:
        experience = booking.experience
        await create_notification(
            db,
            user_id=experience.organizer_id,
            title="Reservation cancelled",
            message=f"A pending reservation for {experience.title} was cancelled by the guest",
            event_type=BOOKING_CANCELLED,
            channels=[TOAST, EMAIL],
            href="/dashboard/organizer/bookings",
            metadata={"booking_id": booking.id, "experience_id": booking.experience_id},
        )
    except Exception:
        db.rollback()
        logger.exception("Failed to notify organizer about cancelled booking %s", booking.id)

    return booking
