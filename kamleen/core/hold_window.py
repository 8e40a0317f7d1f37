"""
Booking hold window.

A pending booking keeps its capacity for a fixed window measured from the
moment the booking was created. The deadline is written once, at the first
checkout attempt, and is never pushed back afterwards.
"""
from datetime import datetime, timedelta
from typing import Optional

BOOKING_HOLD_MS = 20 * 60 * 1000
BOOKING_HOLD = timedelta(milliseconds=BOOKING_HOLD_MS)


def hold_deadline(created_at: datetime) -> datetime:
    return created_at + BOOKING_HOLD


def hold_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True once the deadline has been reached (``expires_at <= now``)."""
    if expires_at is None:
        return False
    return expires_at <= (now or datetime.utcnow())
