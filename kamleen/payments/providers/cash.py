"""
Cash desk: no redirect, the explorer settles in person and an admin marks
the booking paid.
"""
import time

from kamleen.core.exceptions import UnsupportedOperationError
from kamleen.payments.registry import register_provider
from kamleen.payments.types import (
    CheckoutParams,
    CheckoutResult,
    GatewaySettings,
    PaymentProvider,
    RefundParams,
    RefundResult,
)


@register_provider
class CashProvider(PaymentProvider):
    provider_id = "cash"
    supports_refunds = False
    manual_settlement = True

    async def create_checkout(self, gateway: GatewaySettings, params: CheckoutParams) -> CheckoutResult:
        return CheckoutResult(url=params.success_url, provider_payment_id=f"CASH-{int(time.time() * 1000)}")

    async def create_refund(self, gateway: GatewaySettings, params: RefundParams) -> RefundResult:
        raise UnsupportedOperationError("Cash refunds must be handled manually")
