"""
Gateway configuration resolution.

A gateway row's `config` JSON may hold:
  - plain values                      {"client_id": "abc"}
  - sealed secrets                    {"secret_key": "enc:..."}
  - environment indirections          {"secret_key": "env:STRIPE_SECRET_KEY"}
Anything missing falls back to the process environment defaults below.
"""
import logging
import os
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from kamleen.core.config import settings
from kamleen.core.crypto import MASKED, seal, unseal
from kamleen.core.exceptions import GatewayNotFoundError, NoEnabledGatewayError
from kamleen.database.payment_models import PaymentGateway
from kamleen.payments.types import GatewaySettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "env:"

SECRET_FIELDS = {
    "secret_key",
    "webhook_secret",
    "client_secret",
    "store_key",
    "key_secret",
}

# gateway key -> {config field: Settings attribute}
ENV_DEFAULTS: Dict[str, Dict[str, str]] = {
    "stripe": {
        "secret_key": "STRIPE_SECRET_KEY",
        "webhook_secret": "STRIPE_WEBHOOK_SECRET",
    },
    "payzone": {
        "secret_key": "PAYZONE_SECRET_KEY",
        "gateway_url": "PAYZONE_GATEWAY_URL",
    },
    "cmi": {
        "client_id": "CMI_CLIENT_ID",
        "store_key": "CMI_SECRET_KEY",
        "gateway_url": "CMI_GATEWAY_URL",
    },
    "paypal": {
        "client_id": "PAYPAL_CLIENT_ID",
        "client_secret": "PAYPAL_CLIENT_SECRET",
    },
    "razorpay": {
        "key_id": "RAZORPAY_KEY_ID",
        "key_secret": "RAZORPAY_KEY_SECRET",
        "webhook_secret": "RAZORPAY_WEBHOOK_SECRET",
    },
}


def _resolve_value(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    if value.startswith(ENV_PREFIX):
        return os.getenv(value[len(ENV_PREFIX):], "")
    return unseal(value)


def resolve_gateway(gateway: PaymentGateway) -> GatewaySettings:
    config: Dict[str, Any] = {}
    for field, attr in ENV_DEFAULTS.get(gateway.key, {}).items():
        config[field] = getattr(settings, attr, "")
    for field, value in (gateway.config or {}).items():
        resolved = _resolve_value(value)
        if resolved not in (None, ""):
            config[field] = resolved
    return GatewaySettings(
        key=gateway.key,
        name=gateway.name,
        test_mode=bool(gateway.test_mode),
        config=config,
    )


def list_enabled_gateways(db: Session) -> List[PaymentGateway]:
    return (
        db.query(PaymentGateway)
        .filter(PaymentGateway.is_enabled.is_(True))
        .order_by(PaymentGateway.sort_order.asc(), PaymentGateway.id.asc())
        .all()
    )


def get_gateway(db: Session, key: str) -> PaymentGateway:
    gateway = db.query(PaymentGateway).filter(PaymentGateway.key == (key or "").lower()).first()
    if gateway is None:
        raise GatewayNotFoundError(f"Payment gateway '{key}' not found")
    return gateway


def select_gateway(db: Session, requested: Optional[str] = None) -> PaymentGateway:
    """
    Pick the gateway for a checkout: the requested one when it exists and is
    enabled, otherwise the platform default (first enabled in configured order).
    """
    enabled = list_enabled_gateways(db)
    if not enabled:
        raise NoEnabledGatewayError("No payment gateway is enabled")
    if requested:
        for gateway in enabled:
            if gateway.key == requested.lower():
                return gateway
        logger.warning("Requested gateway '%s' is not enabled; using default '%s'", requested, enabled[0].key)
    return enabled[0]


def seal_config(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Encrypt secret fields before persistence (env: indirections are kept as-is)."""
    sealed: Dict[str, Any] = {}
    for field, value in (config or {}).items():
        if field in SECRET_FIELDS and isinstance(value, str) and value and not value.startswith(ENV_PREFIX):
            sealed[field] = seal(value)
        else:
            sealed[field] = value
    return sealed


def mask_config(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    masked: Dict[str, Any] = {}
    for field, value in (config or {}).items():
        if field in SECRET_FIELDS and isinstance(value, str) and value and not value.startswith(ENV_PREFIX):
            masked[field] = MASKED
        else:
            masked[field] = value
    return masked
