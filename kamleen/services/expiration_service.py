"""
Release bookings whose hold lapsed without a successful payment.
Triggered from outside (cron hitting /api/system/expire-bookings, or
`python -m kamleen.services.expiration_service`).
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from kamleen.database.database import SessionLocal
from kamleen.database.models import Booking, BookingStatus, PaymentStatus

logger = logging.getLogger(__name__)


def expire_stale_bookings(db: Optional[Session] = None, now: Optional[datetime] = None) -> int:
    """
    Cancel every PENDING, unpaid booking whose hold deadline has passed.

    Args:
        db: Database session (optional, will create one if not provided)
        now: Reference time, defaults to utcnow

    Returns:
        Number of bookings cancelled
    """
    close_db = False
    if db is None:
        db = SessionLocal()
        close_db = True

    now = now or datetime.utcnow()
    try:
        count = (
            db.query(Booking)
            .filter(
                Booking.expires_at.isnot(None),
                Booking.expires_at <= now,
                Booking.status == BookingStatus.PENDING,
                Booking.payment_status != PaymentStatus.SUCCEEDED,
            )
            .update(
                {Booking.status: BookingStatus.CANCELLED, Booking.updated_at: now},
                synchronize_session=False,
            )
        )
        db.commit()
    except Exception as e:
        logger.error(f"Error expiring bookings: {e}")
        db.rollback()
        raise
    finally:
        if close_db:
            db.close()

    if count:
        logger.info(f"Expired {count} pending bookings past their hold")
    else:
        logger.debug("No bookings to expire")
    return count


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Starting booking expiry sweep...")
    expired = expire_stale_bookings()
    logger.info(f"Sweep complete. Cancelled {expired} bookings.")
