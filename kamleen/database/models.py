# kamleen/database/models.py
import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from kamleen.database.database import Base


class UserRole(str, enum.Enum):
    EXPLORER = "explorer"
    ORGANIZER = "organizer"
    ADMIN = "admin"


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, enum.Enum):
    # REQUIRES_PAYMENT_METHOD is the "pending" state: nothing captured yet
    REQUIRES_PAYMENT_METHOD = "REQUIRES_PAYMENT_METHOD"
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    CANCELLED = "CANCELLED"


class TicketStatus(str, enum.Enum):
    VALID = "VALID"
    USED = "USED"
    CANCELLED = "CANCELLED"


# ==============================
# ✅ USER MODEL
# ==============================
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=True)
    email = Column(String(150), unique=True, nullable=False, index=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.EXPLORER)
    created_at = Column(DateTime, default=datetime.utcnow)

    bookings = relationship("Booking", back_populates="explorer")
    experiences = relationship("Experience", back_populates="organizer")


# ==============================
# ✅ EXPERIENCE MODEL
# ==============================
class Experience(Base):
    __tablename__ = "experiences"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    slug = Column(String(200), unique=True, nullable=True)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    price = Column(Float, nullable=False, default=0.0)  # major units
    currency = Column(String(10), nullable=False, default="MAD")
    location = Column(String(255), nullable=True)
    meeting_address = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    organizer = relationship("User", back_populates="experiences")
    sessions = relationship("ExperienceSession", back_populates="experience", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="experience")


# ==============================
# ✅ SESSION MODEL
# ==============================
class ExperienceSession(Base):
    __tablename__ = "experience_sessions"

    id = Column(Integer, primary_key=True, index=True)
    experience_id = Column(Integer, ForeignKey("experiences.id", ondelete="CASCADE"), nullable=False)
    start_at = Column(DateTime, nullable=False)
    capacity = Column(Integer, nullable=False)
    price_override = Column(Float, nullable=True)
    location_label = Column(String(255), nullable=True)
    meeting_address = Column(String(255), nullable=True)

    experience = relationship("Experience", back_populates="sessions")
    bookings = relationship("Booking", back_populates="session")


# ==============================
# ✅ BOOKING MODEL
# ==============================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    explorer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    experience_id = Column(Integer, ForeignKey("experiences.id"), nullable=False, index=True)
    session_id = Column(Integer, ForeignKey("experience_sessions.id"), nullable=False, index=True)
    guests = Column(Integer, nullable=False, default=1)
    total_price = Column(Float, nullable=False)  # major units
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.PENDING, index=True)
    payment_status = Column(
        Enum(PaymentStatus), nullable=False, default=PaymentStatus.REQUIRES_PAYMENT_METHOD
    )
    expires_at = Column(DateTime, nullable=True, index=True)
    payment_id = Column(Integer, nullable=True)  # latest Payment attempt
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    explorer = relationship("User", back_populates="bookings")
    experience = relationship("Experience", back_populates="bookings")
    session = relationship("ExperienceSession", back_populates="bookings")
    payment = relationship("Payment", primaryjoin="foreign(Booking.payment_id) == Payment.id", viewonly=True)
    payments = relationship("Payment", back_populates="booking")
    tickets = relationship("Ticket", back_populates="booking")


# ==============================
# ✅ TICKET MODEL
# ==============================
class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (UniqueConstraint("booking_id", "seat_number", name="uq_ticket_booking_seat"),)

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(64), unique=True, nullable=False, index=True)
    seat_number = Column(Integer, nullable=False)
    status = Column(Enum(TicketStatus), nullable=False, default=TicketStatus.VALID)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    experience_id = Column(Integer, ForeignKey("experiences.id"), nullable=False)
    session_id = Column(Integer, ForeignKey("experience_sessions.id"), nullable=False)
    explorer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    booking = relationship("Booking", back_populates="tickets")


# ==============================
# ✅ NOTIFICATION MODELS
# ==============================
class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    priority = Column(String(20), nullable=False, default="normal")
    event_type = Column(String(50), nullable=True)
    channels = Column(JSON, nullable=False, default=list)
    href = Column(String(255), nullable=True)
    meta = Column(JSON, nullable=True)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class NotificationPreference(Base):
    __tablename__ = "notification_preferences"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    toast_enabled = Column(Boolean, nullable=False, default=True)
    email_enabled = Column(Boolean, nullable=False, default=True)
    on_booking_created = Column(Boolean, nullable=False, default=True)
    on_booking_confirmed = Column(Boolean, nullable=False, default=True)
    on_booking_cancelled = Column(Boolean, nullable=False, default=True)


# ==============================
# ✅ EMAIL MODELS
# ==============================
class EmailSettings(Base):
    __tablename__ = "email_settings"

    id = Column(Integer, primary_key=True, index=True)
    smtp_host = Column(String(255), nullable=False)
    smtp_port = Column(Integer, nullable=False, default=587)
    smtp_user = Column(String(255), nullable=True)
    smtp_pass = Column(Text, nullable=True)  # sealed with kamleen.core.crypto
    secure = Column(Boolean, nullable=False, default=False)
    from_name = Column(String(150), nullable=True)
    from_email = Column(String(150), nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class EmailTemplate(Base):
    __tablename__ = "email_templates"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    subject = Column(String(255), nullable=False)
    html = Column(Text, nullable=True)
    text = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# Payment tables live in their own module; load them so relationships resolve
from kamleen.database import payment_models  # noqa: E402,F401
