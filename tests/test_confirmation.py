"""
Confirmation side effects: ticket issuance, PDF delivery, notifications.
None of these may undo or block an already confirmed booking.
"""
from unittest.mock import AsyncMock

import pytest

from kamleen.core.crypto import seal
from kamleen.database.models import (
    BookingStatus,
    EmailSettings,
    EmailTemplate,
    Notification,
    NotificationPreference,
    PaymentStatus,
    Ticket,
)
from kamleen.services import confirmation_service, email_service
from kamleen.services.confirmation_service import run_booking_confirmation_side_effects
from kamleen.services.email_service import interpolate
from kamleen.services.ticket_service import (
    build_tickets_pdf_for_booking,
    create_tickets_for_booking,
    generate_ticket_code,
)


@pytest.fixture
def confirmed_booking(make_booking):
    return make_booking(guests=2, status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.SUCCEEDED)


@pytest.fixture
def smtp(db, monkeypatch):
    db.add(EmailSettings(
        smtp_host="smtp.kamleen.test",
        smtp_port=465,
        smtp_user="mailer",
        smtp_pass=seal("smtp-secret"),
        secure=True,
        from_name="Kamleen",
        from_email="no-reply@kamleen.test",
    ))
    db.add(EmailTemplate(
        key="tickets_delivery",
        subject="Tickets for {{ experienceTitle }}",
        text="Hi {{ name }}, see you on {{ sessionDate }}. {{ dashboardUrl }}",
        html="<p>Hi {{ name }}</p>",
    ))
    db.commit()
    send = AsyncMock(return_value=({}, "OK"))
    monkeypatch.setattr(email_service.aiosmtplib, "send", send)
    return send


@pytest.mark.unit
class TestTicketCodes:
    def test_code_shape(self):
        prefix, stamp, rand = generate_ticket_code().split("-")
        assert prefix == "T"
        assert stamp.isalnum()
        assert len(rand) == 8

    def test_interpolation_blanks_unknown_variables(self):
        assert interpolate("Hi {{ name }}{{missing}}!", {"name": "Amina"}) == "Hi Amina!"


class TestTicketIssuance:
    def test_one_ticket_per_guest_and_idempotent(self, db, confirmed_booking):
        first = create_tickets_for_booking(db, confirmed_booking.id)
        second = create_tickets_for_booking(db, confirmed_booking.id)

        assert [t.seat_number for t in first] == [1, 2]
        assert [t.code for t in second] == [t.code for t in first]
        assert db.query(Ticket).count() == 2

    def test_missing_seats_are_topped_up(self, db, confirmed_booking):
        create_tickets_for_booking(db, confirmed_booking.id)
        db.query(Ticket).filter(Ticket.seat_number == 2).delete()
        db.commit()

        tickets = create_tickets_for_booking(db, confirmed_booking.id)

        assert [t.seat_number for t in tickets] == [1, 2]

    def test_pdf_is_rendered(self, db, confirmed_booking):
        pdf = build_tickets_pdf_for_booking(db, confirmed_booking.id)
        assert pdf.startswith(b"%PDF")
        assert db.query(Ticket).count() == 2


class TestSideEffects:
    @pytest.mark.asyncio
    async def test_tickets_notification_and_email(self, db, explorer, confirmed_booking, smtp):
        await run_booking_confirmation_side_effects(confirmed_booking.id, db=db)

        assert db.query(Ticket).filter(Ticket.booking_id == confirmed_booking.id).count() == 2
        notification = db.query(Notification).filter(Notification.user_id == explorer.id).one()
        assert notification.title == "Reservation confirmed"
        assert notification.href == "/dashboard/explorer/reservations"

        messages = [call.args[0] for call in smtp.await_args_list]
        ticket_mail = next(m for m in messages if m["Subject"] == "Tickets for Desert sunset camel ride")
        filenames = [part.get_filename() for part in ticket_mail.iter_attachments()]
        assert filenames == [f"tickets-{confirmed_booking.id}.pdf"]
        assert smtp.await_args_list[0].kwargs["password"] == "smtp-secret"
        assert smtp.await_args_list[0].kwargs["use_tls"] is True

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_block_tickets(self, db, confirmed_booking, monkeypatch):
        monkeypatch.setattr(confirmation_service, "create_notification", AsyncMock(side_effect=RuntimeError("boom")))

        await run_booking_confirmation_side_effects(confirmed_booking.id, db=db)

        assert db.query(Ticket).count() == 2
        db.refresh(confirmed_booking)
        assert confirmed_booking.status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_smtp_failure_is_swallowed(self, db, confirmed_booking, smtp):
        smtp.side_effect = OSError("connection refused")

        await run_booking_confirmation_side_effects(confirmed_booking.id, db=db)

        assert db.query(Ticket).count() == 2
        db.refresh(confirmed_booking)
        assert confirmed_booking.status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_email_channel_respects_preferences(self, db, explorer, confirmed_booking, smtp):
        db.add(NotificationPreference(user_id=explorer.id, email_enabled=False))
        db.commit()

        await run_booking_confirmation_side_effects(confirmed_booking.id, db=db)

        notification = db.query(Notification).filter(Notification.user_id == explorer.id).one()
        assert notification.channels == ["TOAST"]

    @pytest.mark.asyncio
    async def test_unknown_booking_is_a_no_op(self, db):
        await run_booking_confirmation_side_effects(424242, db=db)
        assert db.query(Notification).count() == 0
