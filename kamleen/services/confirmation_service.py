"""
Best-effort work that follows a booking confirmation.

Runs after the Payment/Booking transition has been committed (as a FastAPI
background task). Nothing here may raise: the booking is already CONFIRMED
and a failed email only means the tickets need a manual resend.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from kamleen.core.config import settings
from kamleen.database import database
from kamleen.database.models import Booking
from kamleen.services.email_service import Attachment, render_template, send_email
from kamleen.services.notification_service import BOOKING_CONFIRMED, EMAIL, TOAST, create_notification
from kamleen.services.ticket_service import build_tickets_pdf_for_booking, create_tickets_for_booking

logger = logging.getLogger(__name__)

RESERVATIONS_PATH = "/dashboard/explorer/reservations"
TICKETS_TEMPLATE = "tickets_delivery"


async def run_booking_confirmation_side_effects(
    booking_id: int, origin: Optional[str] = None, db: Optional[Session] = None
) -> None:
    close_db = False
    if db is None:
        db = database.SessionLocal()
        close_db = True

    try:
        booking = (
            db.query(Booking)
            .options(joinedload(Booking.explorer), joinedload(Booking.experience), joinedload(Booking.session))
            .filter(Booking.id == booking_id)
            .first()
        )
        if booking is None:
            logger.warning("Confirmation side effects skipped: booking %s not found", booking_id)
            return

        explorer = booking.explorer
        experience = booking.experience

        try:
            await create_notification(
                db,
                user_id=explorer.id,
                title="Reservation confirmed",
                message=f"Your reservation for {experience.title} has been confirmed",
                event_type=BOOKING_CONFIRMED,
                channels=[TOAST, EMAIL],
                href=RESERVATIONS_PATH,
                metadata={"booking_id": booking.id, "experience_id": experience.id},
            )
        except Exception:
            db.rollback()
            logger.exception("Confirmation notification failed for booking %s", booking_id)

        try:
            create_tickets_for_booking(db, booking.id)
            pdf = build_tickets_pdf_for_booking(db, booking.id)
            if explorer.email:
                base = (settings.APP_URL or origin or "").rstrip("/")
                rendered = render_template(db, TICKETS_TEMPLATE, {
                    "name": explorer.name or "",
                    "experienceTitle": experience.title,
                    "sessionDate": booking.session.start_at.strftime("%d/%m/%Y %H:%M"),
                    "dashboardUrl": f"{base}{RESERVATIONS_PATH}",
                })
                if rendered is not None:
                    await send_email(
                        db,
                        explorer.email,
                        rendered.subject,
                        text=rendered.text,
                        html=rendered.html,
                        attachments=[Attachment(filename=f"tickets-{booking.id}.pdf", content=pdf)],
                    )
        except Exception:
            db.rollback()
            logger.exception("Ticket issuance or delivery failed for booking %s", booking_id)
    finally:
        if close_db:
            db.close()
