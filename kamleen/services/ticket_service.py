import logging
import secrets
import string
import time
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from kamleen.core.exceptions import BookingNotFoundError
from kamleen.database.models import Booking, Experience, Ticket, TicketStatus
from kamleen.services.pdf_generator import TicketContext, TicketEntry, render_tickets_pdf

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_CODE_ATTEMPTS = 10


def _base36(n: int) -> str:
    digits = string.digits + string.ascii_uppercase
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = digits[r] + out
    return out or "0"


def generate_ticket_code() -> str:
    rand = "".join(secrets.choice(CODE_ALPHABET) for _ in range(8))
    return f"T-{_base36(int(time.time()))}-{rand}"


def generate_unique_ticket_code(db: Session) -> str:
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_ticket_code()
        if db.query(Ticket.id).filter(Ticket.code == code).first() is None:
            return code
    raise RuntimeError("Failed to generate unique ticket code")


def _load(db: Session, booking_id: int) -> Booking:
    booking = (
        db.query(Booking)
        .options(
            joinedload(Booking.experience).joinedload(Experience.organizer),
            joinedload(Booking.session),
            joinedload(Booking.explorer),
        )
        .filter(Booking.id == booking_id)
        .first()
    )
    if booking is None:
        raise BookingNotFoundError(f"Booking {booking_id} not found")
    return booking


def list_tickets(db: Session, booking_id: int) -> List[Ticket]:
    return db.query(Ticket).filter(Ticket.booking_id == booking_id).order_by(Ticket.seat_number.asc()).all()


def create_tickets_for_booking(db: Session, booking_id: int) -> List[Ticket]:
    """
    Top the booking up to one ticket per guest. Safe to call repeatedly:
    existing seats are kept and (booking_id, seat_number) is unique.
    """
    booking = _load(db, booking_id)
    existing = list_tickets(db, booking_id)
    if len(existing) >= booking.guests:
        return existing

    taken = {t.seat_number for t in existing}
    for seat_number in range(1, booking.guests + 1):
        if seat_number in taken:
            continue
        db.add(Ticket(
            code=generate_unique_ticket_code(db),
            seat_number=seat_number,
            status=TicketStatus.VALID,
            booking_id=booking.id,
            experience_id=booking.experience_id,
            session_id=booking.session_id,
            explorer_id=booking.explorer_id,
        ))
    try:
        db.commit()
    except IntegrityError:
        # a concurrent run issued the same seats first
        db.rollback()
        logger.info("Tickets for booking %s already issued concurrently", booking_id)
        return list_tickets(db, booking_id)
    tickets = list_tickets(db, booking_id)
    logger.info("🎟 Issued %d ticket(s) for booking %s", len(tickets) - len(existing), booking_id)
    return tickets


def build_tickets_pdf_for_booking(db: Session, booking_id: int) -> bytes:
    booking = _load(db, booking_id)
    tickets = list_tickets(db, booking_id)
    if not tickets:
        tickets = create_tickets_for_booking(db, booking_id)

    experience = booking.experience
    session = booking.session
    ctx = TicketContext(
        booking_id=booking.id,
        experience_title=experience.title,
        session_start=session.start_at,
        explorer_name=booking.explorer.name if booking.explorer else None,
        explorer_email=booking.explorer.email if booking.explorer else None,
        guests=booking.guests,
        total_price=booking.total_price,
        currency=experience.currency,
        location=session.location_label or experience.location,
        meeting_address=session.meeting_address or experience.meeting_address,
        organizer_name=experience.organizer.name if experience.organizer else None,
    )
    entries = [TicketEntry(code=t.code, seat_number=t.seat_number) for t in tickets]
    return render_tickets_pdf(entries, ctx)
