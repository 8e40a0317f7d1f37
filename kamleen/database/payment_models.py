# kamleen/database/payment_models.py
"""
Payment-related database models
"""
import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from kamleen.database.database import Base
from kamleen.database.models import PaymentStatus


class GatewayType(str, enum.Enum):
    CARD = "CARD"
    CASH = "CASH"
    PAYPAL = "PAYPAL"


class RefundStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class Payment(Base):
    """One checkout attempt against one provider"""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    provider = Column(String(50), nullable=False)  # PaymentGateway.key
    amount = Column(Integer, nullable=False)  # minor units
    currency = Column(String(10), nullable=False)
    status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.REQUIRES_PAYMENT_METHOD)
    provider_payment_id = Column(String(255), nullable=True, index=True)
    captured_at = Column(DateTime, nullable=True)
    error_code = Column(String(100), nullable=True)
    error_message = Column(Text, nullable=True)
    meta = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    booking = relationship("Booking", back_populates="payments")
    refunds = relationship("Refund", back_populates="payment")


class Refund(Base):
    __tablename__ = "refunds"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # minor units
    reason = Column(String(255), nullable=True)
    status = Column(Enum(RefundStatus), nullable=False, default=RefundStatus.PENDING)
    provider_refund_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    payment = relationship("Payment", back_populates="refunds")


class PaymentGateway(Base):
    """Admin-managed gateway configuration (secrets inside `config` are sealed)"""
    __tablename__ = "payment_gateways"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    type = Column(Enum(GatewayType), nullable=False, default=GatewayType.CARD)
    config = Column(JSON, nullable=True)
    test_mode = Column(Boolean, nullable=False, default=True)
    is_enabled = Column(Boolean, nullable=False, default=False)
    logo_url = Column(String(500), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
