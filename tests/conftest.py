"""
Shared fixtures.

The environment is pinned before any kamleen module is imported: settings are
read once at import time, and the engine binds to a throwaway SQLite file.
"""
import os
import tempfile
from datetime import datetime, timedelta

_TMP_DIR = tempfile.mkdtemp(prefix="kamleen-tests-")

os.environ.update({
    "DATABASE_URL": f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}",
    "REDIS_URL": "",
    "APP_URL": "http://testserver",
    "SECRET_KEY": "test-secret-key",
    "ENCRYPTION_KEY": "test-encryption-key",
    "CRON_SECRET": "cron-test-secret",
    "STRIPE_SECRET_KEY": "sk_test_kamleen",
    "STRIPE_WEBHOOK_SECRET": "whsec_kamleen",
    "PAYZONE_SECRET_KEY": "payzone-test-secret",
    "CMI_CLIENT_ID": "600000001",
    "CMI_SECRET_KEY": "cmi-store-key",
    "RAZORPAY_KEY_ID": "rzp_test_kamleen",
    "RAZORPAY_KEY_SECRET": "rzp-secret",
    "RAZORPAY_WEBHOOK_SECRET": "rzp-webhook-secret",
    "PAYPAL_CLIENT_ID": "paypal-client",
    "PAYPAL_CLIENT_SECRET": "paypal-secret",
})

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from kamleen.auth import create_access_token  # noqa: E402
from kamleen.database import database  # noqa: E402
from kamleen.database.models import (  # noqa: E402
    Booking,
    BookingStatus,
    Experience,
    ExperienceSession,
    PaymentStatus,
    User,
    UserRole,
)
from kamleen.database.payment_models import GatewayType, Payment, PaymentGateway  # noqa: E402
from kamleen.main import app  # noqa: E402


@pytest.fixture(autouse=True)
def reset_tables():
    database.Base.metadata.drop_all(bind=database.engine)
    database.Base.metadata.create_all(bind=database.engine)
    yield


@pytest.fixture
def db():
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


# ---------- users ----------
def _user(db, email: str, role: UserRole, name: str) -> User:
    user = User(email=email, role=role, name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def explorer(db) -> User:
    return _user(db, "explorer@kamleen.test", UserRole.EXPLORER, "Amina Explorer")


@pytest.fixture
def other_explorer(db) -> User:
    return _user(db, "other@kamleen.test", UserRole.EXPLORER, "Youssef Other")


@pytest.fixture
def organizer(db) -> User:
    return _user(db, "organizer@kamleen.test", UserRole.ORGANIZER, "Sahara Tours")


@pytest.fixture
def admin(db) -> User:
    return _user(db, "admin@kamleen.test", UserRole.ADMIN, "Ops Admin")


# ---------- catalogue ----------
@pytest.fixture
def experience(db, organizer) -> Experience:
    exp = Experience(
        title="Desert sunset camel ride",
        slug="desert-sunset",
        organizer_id=organizer.id,
        price=150.0,
        currency="MAD",
        location="Merzouga",
        meeting_address="Auberge du Sud, Merzouga",
    )
    db.add(exp)
    db.commit()
    db.refresh(exp)
    return exp


@pytest.fixture
def session_slot(db, experience) -> ExperienceSession:
    slot = ExperienceSession(
        experience_id=experience.id,
        start_at=datetime.utcnow() + timedelta(days=7),
        capacity=10,
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot


# ---------- bookings & payments ----------
@pytest.fixture
def make_booking(db, explorer, experience, session_slot):
    def _create(
        guests: int = 2,
        status: BookingStatus = BookingStatus.PENDING,
        payment_status: PaymentStatus = PaymentStatus.REQUIRES_PAYMENT_METHOD,
        created_at: datetime = None,
        expires_at: datetime = None,
        owner: User = None,
    ) -> Booking:
        booking = Booking(
            explorer_id=(owner or explorer).id,
            experience_id=experience.id,
            session_id=session_slot.id,
            guests=guests,
            total_price=experience.price * guests,
            status=status,
            payment_status=payment_status,
            created_at=created_at or datetime.utcnow(),
            expires_at=expires_at,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking
    return _create


@pytest.fixture
def make_payment(db):
    def _create(
        booking: Booking,
        provider: str = "payzone",
        status: PaymentStatus = PaymentStatus.REQUIRES_PAYMENT_METHOD,
        provider_payment_id: str = None,
        attach: bool = True,
    ) -> Payment:
        payment = Payment(
            booking_id=booking.id,
            provider=provider,
            amount=int(round(booking.total_price * 100)),
            currency="MAD",
            status=status,
            provider_payment_id=provider_payment_id,
        )
        db.add(payment)
        db.commit()
        db.refresh(payment)
        if attach:
            booking.payment_id = payment.id
            db.commit()
        return payment
    return _create


@pytest.fixture
def make_gateway(db):
    def _create(
        key: str,
        is_enabled: bool = True,
        sort_order: int = 0,
        config: dict = None,
        gateway_type: GatewayType = GatewayType.CARD,
    ) -> PaymentGateway:
        gateway = PaymentGateway(
            key=key,
            name=key.title(),
            type=gateway_type,
            config=config or {},
            test_mode=True,
            is_enabled=is_enabled,
            sort_order=sort_order,
        )
        db.add(gateway)
        db.commit()
        db.refresh(gateway)
        return gateway
    return _create
