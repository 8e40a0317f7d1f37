"""
Direct reconciliation transitions plus the PayPal return leg and the admin
cash settlement path.
"""
from unittest.mock import AsyncMock

import pytest

from kamleen.database.models import Booking, BookingStatus, PaymentStatus, Ticket
from kamleen.database.payment_models import GatewayType, Payment
from kamleen.routers import payment_routes
from kamleen.services.reconciliation_service import (
    apply_payment_failure,
    apply_payment_success,
    mark_booking_paid,
    mark_payment_processing,
)
from tests.conftest import auth_headers


def _reload(db, booking, payment=None):
    db.expire_all()
    return db.get(Booking, booking.id), (db.get(Payment, payment.id) if payment else None)


class TestApplyPaymentSuccess:
    def test_only_the_first_call_reports_a_transition(self, db, make_booking, make_payment):
        booking = make_booking()
        payment = make_payment(booking)

        assert apply_payment_success(db, payment, provider_payment_id="TX-1") is True
        assert apply_payment_success(db, payment, provider_payment_id="TX-1") is False

        booking, payment = _reload(db, booking, payment)
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.payment_status == PaymentStatus.SUCCEEDED
        assert payment.status == PaymentStatus.SUCCEEDED

    def test_late_success_after_cancellation_confirms(self, db, make_booking, make_payment):
        booking = make_booking(status=BookingStatus.CANCELLED)
        payment = make_payment(booking)

        assert apply_payment_success(db, payment) is True
        booking, _ = _reload(db, booking)
        assert booking.status == BookingStatus.CONFIRMED

    def test_success_on_older_attempt_rebinds_booking(self, db, make_booking, make_payment):
        booking = make_booking()
        first = make_payment(booking)
        make_payment(booking)

        apply_payment_success(db, first)

        booking, _ = _reload(db, booking)
        assert booking.payment_id == first.id


class TestApplyPaymentFailure:
    def test_failure_never_downgrades_success(self, db, make_booking, make_payment):
        booking = make_booking()
        payment = make_payment(booking)
        apply_payment_success(db, payment)

        assert apply_payment_failure(db, payment, error_code="LATE") is False
        booking, payment = _reload(db, booking, payment)
        assert payment.status == PaymentStatus.SUCCEEDED
        assert payment.error_code is None
        assert booking.payment_status == PaymentStatus.SUCCEEDED

    def test_stale_attempt_failure_leaves_booking_status(self, db, make_booking, make_payment):
        booking = make_booking()
        stale = make_payment(booking)
        current = make_payment(booking, status=PaymentStatus.PROCESSING)
        booking.payment_status = PaymentStatus.PROCESSING
        db.commit()

        assert apply_payment_failure(db, stale, error_code="EXPIRED") is True
        booking, stale = _reload(db, booking, stale)
        assert stale.status == PaymentStatus.CANCELLED
        assert booking.payment_id == current.id
        assert booking.payment_status == PaymentStatus.PROCESSING


class TestMarkPaymentProcessing:
    def test_moves_current_attempt_to_processing(self, db, make_booking, make_payment):
        booking = make_booking()
        payment = make_payment(booking)

        assert mark_payment_processing(db, payment, provider_payment_id="cs_1") is True
        booking, payment = _reload(db, booking, payment)
        assert payment.status == PaymentStatus.PROCESSING
        assert payment.provider_payment_id == "cs_1"
        assert booking.payment_status == PaymentStatus.PROCESSING

    def test_cancelled_attempt_is_not_revived(self, db, make_booking, make_payment):
        booking = make_booking()
        payment = make_payment(booking)
        apply_payment_failure(db, payment, error_code="USER_CANCELLED")

        assert mark_payment_processing(db, payment) is False
        booking, payment = _reload(db, booking, payment)
        assert payment.status == PaymentStatus.CANCELLED
        assert booking.payment_status == PaymentStatus.CANCELLED

    def test_stale_attempt_leaves_booking_status(self, db, make_booking, make_payment):
        booking = make_booking()
        stale = make_payment(booking)
        current = make_payment(booking)

        assert mark_payment_processing(db, stale) is True
        booking, stale = _reload(db, booking, stale)
        assert stale.status == PaymentStatus.PROCESSING
        assert booking.payment_id == current.id
        assert booking.payment_status == PaymentStatus.REQUIRES_PAYMENT_METHOD


class TestMarkBookingPaid:
    @pytest.fixture
    def cash_booking(self, make_booking, make_payment):
        booking = make_booking(payment_status=PaymentStatus.PROCESSING)
        payment = make_payment(booking, provider="cash", status=PaymentStatus.PROCESSING, provider_payment_id="CASH-1")
        return booking, payment

    def test_cash_settlement_confirms_once(self, db, cash_booking):
        booking, payment = cash_booking

        assert mark_booking_paid(db, booking.id) is True
        assert mark_booking_paid(db, booking.id) is False
        booking, payment = _reload(db, booking, payment)
        assert booking.status == BookingStatus.CONFIRMED
        assert payment.status == PaymentStatus.SUCCEEDED

    def test_booking_without_payment_record(self, db, make_booking):
        booking = make_booking()
        assert mark_booking_paid(db, booking.id) is True
        booking, _ = _reload(db, booking)
        assert booking.payment_status == PaymentStatus.SUCCEEDED

    def test_admin_endpoint_issues_tickets_once(self, client, db, admin, cash_booking):
        booking, _ = cash_booking

        first = client.post(f"/api/admin/bookings/{booking.id}/mark-paid", headers=auth_headers(admin))
        second = client.post(f"/api/admin/bookings/{booking.id}/mark-paid", headers=auth_headers(admin))

        assert first.json() == {"ok": True, "confirmed": True}
        assert second.json() == {"ok": True, "confirmed": False}
        assert db.query(Ticket).filter(Ticket.booking_id == booking.id).count() == booking.guests

    def test_explorer_cannot_mark_paid(self, client, explorer, cash_booking):
        booking, _ = cash_booking
        resp = client.post(f"/api/admin/bookings/{booking.id}/mark-paid", headers=auth_headers(explorer))
        assert resp.status_code == 403


class TestPayPalReturn:
    @pytest.fixture
    def paypal_pending(self, make_booking, make_payment, make_gateway):
        make_gateway("paypal", gateway_type=GatewayType.PAYPAL)
        booking = make_booking(guests=1)
        payment = make_payment(booking, provider="paypal", provider_payment_id="ORDER-1")
        return booking, payment

    def test_approved_order_is_captured_and_confirmed(self, client, db, monkeypatch, paypal_pending):
        booking, payment = paypal_pending
        capture = {"id": "ORDER-1", "status": "COMPLETED", "purchase_units": [
            {"custom_id": f'{{"bookingId": {booking.id}, "paymentId": "{payment.id}"}}'},
        ]}
        monkeypatch.setattr(payment_routes, "capture_order", AsyncMock(return_value=capture))

        resp = client.get(
            "/api/payments/paypal/return",
            params={"token": "ORDER-1", "paymentId": str(payment.id), "success": "https://kamleen.test/ok"},
            follow_redirects=False,
        )

        assert resp.status_code == 303
        assert resp.headers["location"] == "https://kamleen.test/ok"
        booking, payment = _reload(db, booking, payment)
        assert booking.status == BookingStatus.CONFIRMED
        assert payment.status == PaymentStatus.SUCCEEDED

    def test_declined_capture_cancels_attempt(self, client, db, monkeypatch, paypal_pending):
        booking, payment = paypal_pending
        monkeypatch.setattr(payment_routes, "capture_order", AsyncMock(return_value=None))

        resp = client.get(
            "/api/payments/paypal/return",
            params={"token": "ORDER-1", "paymentId": str(payment.id), "cancel": "https://kamleen.test/ko"},
            follow_redirects=False,
        )

        assert resp.status_code == 303
        assert resp.headers["location"] == "https://kamleen.test/ko"
        booking, payment = _reload(db, booking, payment)
        assert payment.status == PaymentStatus.CANCELLED
        assert payment.error_code == "CAPTURE_DECLINED"
        assert booking.status == BookingStatus.PENDING

    def test_user_cancel_with_order_token(self, client, db, paypal_pending):
        booking, payment = paypal_pending

        resp = client.get(
            "/api/payments/paypal/return",
            params={"cancelled": "1", "paymentId": str(payment.id), "token": "ORDER-1"},
            follow_redirects=False,
        )

        assert resp.status_code == 303
        assert resp.headers["location"].endswith("/dashboard/explorer/reservations?cancelled=1")
        _, payment = _reload(db, booking, payment)
        assert payment.status == PaymentStatus.CANCELLED
        assert payment.error_code == "USER_CANCELLED"

    @pytest.mark.parametrize("token", [None, "ORDER-OTHER"])
    def test_cancel_without_matching_token_changes_nothing(self, client, db, paypal_pending, token):
        booking, payment = paypal_pending
        params = {"cancelled": "1", "paymentId": str(payment.id)}
        if token:
            params["token"] = token

        resp = client.get("/api/payments/paypal/return", params=params, follow_redirects=False)

        assert resp.status_code == 303
        booking, payment = _reload(db, booking, payment)
        assert payment.status == PaymentStatus.REQUIRES_PAYMENT_METHOD
        assert payment.error_code is None
        assert booking.payment_status == PaymentStatus.REQUIRES_PAYMENT_METHOD

    def test_sdk_capture_endpoint(self, client, db, explorer, monkeypatch, paypal_pending):
        booking, payment = paypal_pending
        monkeypatch.setattr(payment_routes, "capture_order", AsyncMock(return_value={"id": "ORDER-1", "purchase_units": []}))

        resp = client.post("/api/payments/paypal/capture", json={"order_id": "ORDER-1"}, headers=auth_headers(explorer))

        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "booking_id": booking.id}
        booking, _ = _reload(db, booking)
        assert booking.status == BookingStatus.CONFIRMED

    def test_sdk_capture_rejects_other_explorer(self, client, other_explorer, paypal_pending):
        resp = client.post("/api/payments/paypal/capture", json={"order_id": "ORDER-1"}, headers=auth_headers(other_explorer))
        assert resp.status_code == 403


class TestPaymentsHealth:
    def test_lists_providers_and_enabled_gateways(self, client, make_gateway):
        make_gateway("cash", gateway_type=GatewayType.CASH)
        make_gateway("stripe", is_enabled=False)

        body = client.get("/api/payments/health").json()

        assert body["status"] == "ok"
        assert "stripe" in body["providers"]
        assert body["enabled_gateways"] == ["cash"]
