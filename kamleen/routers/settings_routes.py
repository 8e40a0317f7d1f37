# kamleen/routers/settings_routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kamleen.database.database import get_db
from kamleen.database.schemas import PublicGateway, PublicPaymentSettings
from kamleen.payments.gateway_config import list_enabled_gateways

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("/payments", response_model=PublicPaymentSettings)
def public_payment_settings(db: Session = Depends(get_db)):
    """Enabled gateways for the checkout picker; never exposes config."""
    gateways = list_enabled_gateways(db)
    return PublicPaymentSettings(
        gateways=[
            PublicGateway(key=g.key, name=g.name, type=g.type, logo_url=g.logo_url, test_mode=g.test_mode)
            for g in gateways
        ],
        enabled=[g.key for g in gateways],
        default_provider=gateways[0].key if gateways else None,
    )
