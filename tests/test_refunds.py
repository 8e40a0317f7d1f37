from types import SimpleNamespace

import pytest
import stripe

from kamleen.core.exceptions import UnsupportedOperationError, ValidationError
from kamleen.database.models import PaymentStatus
from kamleen.database.payment_models import GatewayType, Payment, Refund, RefundStatus
from kamleen.services.checkout_service import create_refund_for_payment
from tests.conftest import auth_headers


class TestCashRefund:
    @pytest.fixture
    def cash_payment(self, make_booking, make_payment, make_gateway):
        make_gateway("cash", gateway_type=GatewayType.CASH)
        booking = make_booking()
        return make_payment(booking, provider="cash", status=PaymentStatus.SUCCEEDED, provider_payment_id="CASH-1")

    @pytest.mark.asyncio
    async def test_cash_refund_is_unsupported(self, db, cash_payment):
        with pytest.raises(UnsupportedOperationError):
            await create_refund_for_payment(db, cash_payment.id, amount=100)

        db.expire_all()
        assert db.get(Payment, cash_payment.id).status == PaymentStatus.SUCCEEDED
        assert db.query(Refund).count() == 0

    def test_endpoint_reports_unsupported_distinctly(self, client, db, admin, cash_payment):
        resp = client.post("/api/admin/payments/refund", json={"payment_id": cash_payment.id}, headers=auth_headers(admin))

        assert resp.status_code == 501
        assert resp.json()["code"] == "unsupported_operation"
        db.expire_all()
        assert db.get(Payment, cash_payment.id).status == PaymentStatus.SUCCEEDED


class TestStripeRefund:
    @pytest.fixture
    def stripe_payment(self, make_booking, make_payment, make_gateway):
        make_gateway("stripe")
        booking = make_booking(guests=2)
        return make_payment(booking, provider="stripe", status=PaymentStatus.SUCCEEDED, provider_payment_id="pi_paid")

    @pytest.fixture
    def refund_calls(self, monkeypatch):
        calls = []

        def fake_create(**kwargs):
            calls.append(kwargs)
            return SimpleNamespace(id=f"re_{len(calls)}")

        monkeypatch.setattr(stripe.Refund, "create", fake_create)
        return calls

    @pytest.mark.asyncio
    async def test_full_refund_by_default(self, db, stripe_payment, refund_calls):
        refund = await create_refund_for_payment(db, stripe_payment.id, reason="weather")

        assert refund.amount == 30000
        assert refund.status == RefundStatus.PENDING
        assert refund.provider_refund_id == "re_1"
        assert refund_calls[0]["payment_intent"] == "pi_paid"
        assert refund_calls[0]["api_key"] == "sk_test_kamleen"

    @pytest.mark.asyncio
    async def test_partial_refunds_respect_the_balance(self, db, stripe_payment, refund_calls):
        await create_refund_for_payment(db, stripe_payment.id, amount=20000)

        with pytest.raises(ValidationError):
            await create_refund_for_payment(db, stripe_payment.id, amount=20000)
        assert len(refund_calls) == 1

    @pytest.mark.asyncio
    async def test_session_id_is_swapped_for_intent(self, db, stripe_payment, refund_calls, monkeypatch):
        stripe_payment.provider_payment_id = "cs_test_123"
        db.commit()
        monkeypatch.setattr(
            stripe.checkout.Session, "retrieve", lambda session_id, **kw: SimpleNamespace(payment_intent="pi_from_session")
        )

        await create_refund_for_payment(db, stripe_payment.id)

        assert refund_calls[0]["payment_intent"] == "pi_from_session"

    @pytest.mark.asyncio
    async def test_unsettled_payment_is_not_refundable(self, db, stripe_payment, refund_calls):
        stripe_payment.status = PaymentStatus.PROCESSING
        db.commit()

        with pytest.raises(ValidationError):
            await create_refund_for_payment(db, stripe_payment.id)
        assert refund_calls == []

    def test_endpoint_requires_admin(self, client, explorer, stripe_payment):
        resp = client.post("/api/admin/payments/refund", json={"payment_id": stripe_payment.id}, headers=auth_headers(explorer))
        assert resp.status_code == 403

    def test_endpoint_creates_refund(self, client, admin, stripe_payment, refund_calls):
        resp = client.post(
            "/api/admin/payments/refund",
            json={"payment_id": stripe_payment.id, "amount": 5000, "reason": "one guest cancelled"},
            headers=auth_headers(admin),
        )

        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["amount"] == 5000
        assert body["status"] == "PENDING"
