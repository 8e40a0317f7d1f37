"""
Provider registry: maps a gateway key to the adapter that serves it.
"""
import logging
from typing import Dict, Type

from kamleen.core.exceptions import UnknownProviderError
from kamleen.payments.types import PaymentProvider

logger = logging.getLogger(__name__)

PROVIDERS: Dict[str, PaymentProvider] = {}


def register_provider(cls: Type[PaymentProvider]) -> Type[PaymentProvider]:
    if not cls.provider_id:
        raise ValueError(f"{cls.__name__} has no provider_id")
    PROVIDERS[cls.provider_id] = cls()
    logger.debug("Registered payment provider %s", cls.provider_id)
    return cls


def provider_for(key: str) -> PaymentProvider:
    load_providers()
    try:
        return PROVIDERS[(key or "").lower()]
    except KeyError:
        raise UnknownProviderError(f"No payment provider registered for '{key}'")


def registered_keys():
    load_providers()
    return sorted(PROVIDERS)


def load_providers():
    # importing the package runs the @register_provider decorators
    import kamleen.payments.providers.cash  # noqa: F401
    import kamleen.payments.providers.cmi  # noqa: F401
    import kamleen.payments.providers.paypal  # noqa: F401
    import kamleen.payments.providers.payzone  # noqa: F401
    import kamleen.payments.providers.razorpay_provider  # noqa: F401
    import kamleen.payments.providers.stripe_provider  # noqa: F401
