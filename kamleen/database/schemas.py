# kamleen/database/schemas.py
# =========================================================
# 🧩 Booking & Payment Schemas (Pydantic v2)
# =========================================================

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from kamleen.database.models import BookingStatus, PaymentStatus
from kamleen.database.payment_models import GatewayType, RefundStatus


# =========================================================
# ✅ Base Config for ORM Compatibility
# =========================================================
class ConfigModel(BaseModel):
    model_config = {"from_attributes": True}


# =========================================================
# 🎟 Booking Schemas
# =========================================================
class BookingCreate(BaseModel):
    experience_id: int
    session_id: int
    guests: int = Field(..., ge=1)
    notes: Optional[str] = Field(default=None, max_length=2000)


class BookingCancel(BaseModel):
    booking_id: int
    message: Optional[str] = Field(default=None, max_length=1000)


class BookingResponse(ConfigModel):
    id: int
    explorer_id: int
    experience_id: int
    session_id: int
    guests: int
    total_price: float
    status: BookingStatus
    payment_status: PaymentStatus
    expires_at: Optional[datetime] = None
    payment_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


# =========================================================
# 💳 Checkout / Refund Schemas
# =========================================================
class CheckoutRequest(BaseModel):
    booking_id: int
    provider: Optional[str] = Field(default=None, description="Gateway key; falls back to the default gateway")
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None

    model_config = {"json_schema_extra": {
        "example": {
            "booking_id": 42,
            "provider": "stripe",
            "success_url": "https://kamleen.ma/checkout/success",
            "cancel_url": "https://kamleen.ma/checkout/cancel",
        }
    }}


class CheckoutResponse(BaseModel):
    url: str
    payment_id: int
    provider: str
    provider_payment_id: Optional[str] = None


class RefundRequest(BaseModel):
    payment_id: int
    amount: Optional[int] = Field(default=None, gt=0, description="Minor units; defaults to the full amount")
    reason: Optional[str] = None


class RefundResponse(ConfigModel):
    id: int
    payment_id: int
    amount: int
    reason: Optional[str] = None
    status: RefundStatus
    provider_refund_id: Optional[str] = None


class PayPalCaptureRequest(BaseModel):
    order_id: str


# =========================================================
# ⚙️ Payment Gateway Schemas
# =========================================================
class GatewayBase(BaseModel):
    name: str
    type: GatewayType = GatewayType.CARD
    config: Dict[str, Any] = Field(default_factory=dict)
    test_mode: bool = True
    is_enabled: bool = False
    logo_url: Optional[str] = None
    sort_order: int = 0


class GatewayCreate(GatewayBase):
    key: str = Field(..., min_length=2, max_length=50)

    @field_validator("key")
    @classmethod
    def normalize_key(cls, v: str) -> str:
        return v.strip().lower()


class GatewayUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[GatewayType] = None
    config: Optional[Dict[str, Any]] = None
    test_mode: Optional[bool] = None
    is_enabled: Optional[bool] = None
    logo_url: Optional[str] = None
    sort_order: Optional[int] = None


class GatewayResponse(GatewayBase, ConfigModel):
    id: int
    key: str


class PublicGateway(BaseModel):
    key: str
    name: str
    type: GatewayType
    logo_url: Optional[str] = None
    test_mode: bool


class PublicPaymentSettings(BaseModel):
    gateways: List[PublicGateway]
    enabled: List[str]
    default_provider: Optional[str] = None


# =========================================================
# ✉️ Email Settings & Template Schemas
# =========================================================
class EmailSettingsUpdate(BaseModel):
    smtp_host: str = Field(..., min_length=1)
    smtp_port: int = 587
    smtp_user: str = Field(..., min_length=1)
    smtp_pass: Optional[str] = None  # omitted or masked keeps the stored password
    secure: bool = False
    from_name: str = Field(..., min_length=1)
    from_email: str = Field(..., min_length=3)


class EmailSettingsResponse(BaseModel):
    id: int
    smtp_host: str
    smtp_port: int
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    secure: bool
    from_name: Optional[str] = None
    from_email: str


class EmailTemplateUpdate(BaseModel):
    subject: str = Field(..., min_length=1)
    html: str = Field(..., min_length=1)
    text: Optional[str] = None


class EmailTemplateResponse(ConfigModel):
    id: int
    key: str
    subject: str
    html: Optional[str] = None
    text: Optional[str] = None
    updated_at: Optional[datetime] = None


class SendTestEmailRequest(BaseModel):
    to: str = Field(..., min_length=3)
