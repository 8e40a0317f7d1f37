# kamleen/routers/admin_routes.py
import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from kamleen.auth import require_role
from kamleen.core.crypto import MASKED
from kamleen.database.database import get_db
from kamleen.database.models import EmailTemplate, User, UserRole
from kamleen.database.payment_models import PaymentGateway
from kamleen.database.schemas import (
    EmailSettingsResponse,
    EmailSettingsUpdate,
    EmailTemplateResponse,
    EmailTemplateUpdate,
    GatewayCreate,
    GatewayResponse,
    GatewayUpdate,
    RefundRequest,
    RefundResponse,
    SendTestEmailRequest,
)
from kamleen.payments.gateway_config import get_gateway, mask_config, seal_config
from kamleen.payments.registry import registered_keys
from kamleen.services.checkout_service import create_refund_for_payment
from kamleen.services.confirmation_service import run_booking_confirmation_side_effects
from kamleen.services.email_service import (
    get_email_settings,
    mask_email_settings,
    save_email_settings,
    save_template,
    send_test_email,
)
from kamleen.services.reconciliation_service import mark_booking_paid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

admin_only = require_role(UserRole.ADMIN)


# ================= PAYMENTS =================
@router.post("/payments/refund", response_model=RefundResponse, status_code=201)
async def refund_payment(
    body: RefundRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    refund = await create_refund_for_payment(db, body.payment_id, amount=body.amount, reason=body.reason)
    logger.info("Admin %s refunded payment %s", current_user.id, body.payment_id)
    return refund


@router.post("/bookings/{booking_id}/mark-paid")
def mark_paid(
    booking_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    confirmed = mark_booking_paid(db, booking_id)
    if confirmed:
        background_tasks.add_task(run_booking_confirmation_side_effects, booking_id)
    logger.info("Admin %s marked booking %s paid (transition=%s)", current_user.id, booking_id, confirmed)
    return {"ok": True, "confirmed": confirmed}


# ================= GATEWAYS =================
def _masked(gateway: PaymentGateway) -> GatewayResponse:
    return GatewayResponse(
        id=gateway.id,
        key=gateway.key,
        name=gateway.name,
        type=gateway.type,
        config=mask_config(gateway.config),
        test_mode=gateway.test_mode,
        is_enabled=gateway.is_enabled,
        logo_url=gateway.logo_url,
        sort_order=gateway.sort_order,
    )


@router.get("/payment-gateways", response_model=List[GatewayResponse])
def list_gateways(db: Session = Depends(get_db), current_user: User = Depends(admin_only)):
    gateways = db.query(PaymentGateway).order_by(PaymentGateway.sort_order.asc(), PaymentGateway.id.asc()).all()
    return [_masked(g) for g in gateways]


@router.post("/payment-gateways", response_model=GatewayResponse, status_code=201)
def create_gateway(body: GatewayCreate, db: Session = Depends(get_db), current_user: User = Depends(admin_only)):
    if body.key not in registered_keys():
        raise HTTPException(status_code=400, detail=f"No payment provider implements '{body.key}'")
    if db.query(PaymentGateway).filter(PaymentGateway.key == body.key).first():
        raise HTTPException(status_code=409, detail="Gateway key already exists")

    gateway = PaymentGateway(
        key=body.key,
        name=body.name,
        type=body.type,
        config=seal_config(body.config),
        test_mode=body.test_mode,
        is_enabled=body.is_enabled,
        logo_url=body.logo_url,
        sort_order=body.sort_order,
    )
    db.add(gateway)
    db.commit()
    db.refresh(gateway)
    logger.info("Gateway %s created by admin %s", gateway.key, current_user.id)
    return _masked(gateway)


@router.put("/payment-gateways/{key}", response_model=GatewayResponse)
def update_gateway(
    key: str, body: GatewayUpdate, db: Session = Depends(get_db), current_user: User = Depends(admin_only)
):
    gateway = get_gateway(db, key)
    changes = body.model_dump(exclude_unset=True)
    if "config" in changes:
        # masked placeholders sent back by the admin UI keep the stored secret
        merged = dict(gateway.config or {})
        for field, value in (changes.pop("config") or {}).items():
            if value == MASKED:
                continue
            merged[field] = value
        gateway.config = seal_config(merged)
    for field, value in changes.items():
        setattr(gateway, field, value)
    db.commit()
    db.refresh(gateway)
    logger.info("Gateway %s updated by admin %s", gateway.key, current_user.id)
    return _masked(gateway)


@router.delete("/payment-gateways/{key}", status_code=204)
def delete_gateway(key: str, db: Session = Depends(get_db), current_user: User = Depends(admin_only)):
    gateway = get_gateway(db, key)
    db.delete(gateway)
    db.commit()
    logger.info("Gateway %s deleted by admin %s", key, current_user.id)


# ================= EMAIL SETTINGS =================
@router.get("/settings/email", response_model=Optional[EmailSettingsResponse])
def read_email_settings(db: Session = Depends(get_db), current_user: User = Depends(admin_only)):
    row = get_email_settings(db)
    return mask_email_settings(row) if row else None


@router.put("/settings/email", response_model=EmailSettingsResponse)
def update_email_settings(
    body: EmailSettingsUpdate, db: Session = Depends(get_db), current_user: User = Depends(admin_only)
):
    row = save_email_settings(db, body.model_dump())
    logger.info("SMTP settings updated by admin %s", current_user.id)
    return mask_email_settings(row)


@router.get("/settings/templates", response_model=List[EmailTemplateResponse])
def list_templates(db: Session = Depends(get_db), current_user: User = Depends(admin_only)):
    return db.query(EmailTemplate).order_by(EmailTemplate.key.asc()).all()


@router.put("/settings/templates/{key}", response_model=EmailTemplateResponse)
def update_template(
    key: str, body: EmailTemplateUpdate, db: Session = Depends(get_db), current_user: User = Depends(admin_only)
):
    template = save_template(db, key, subject=body.subject, html=body.html, text=body.text)
    logger.info("Email template %s saved by admin %s", key, current_user.id)
    return template


@router.post("/settings/templates/{key}/send-test")
async def send_template_test(
    key: str,
    body: SendTestEmailRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    await send_test_email(db, key, body.to.strip(), name=current_user.name or "Tester")
    return {"ok": True}
