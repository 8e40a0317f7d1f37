"""
PayPal Orders v2 (wallet redirect).

The explorer approves on PayPal and comes back through
/api/payments/paypal/return, where the order is captured.
"""
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from kamleen.core.config import PAYPAL_LIVE_URL, PAYPAL_SANDBOX_URL, settings
from kamleen.core.exceptions import ProviderError
from kamleen.payments.registry import register_provider
from kamleen.payments.types import CheckoutParams, CheckoutResult, GatewaySettings, PaymentProvider

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 20.0


def api_base(gateway: GatewaySettings) -> str:
    return PAYPAL_SANDBOX_URL if gateway.test_mode else PAYPAL_LIVE_URL


async def get_access_token(client: httpx.AsyncClient, gateway: GatewaySettings) -> str:
    client_id = gateway.get("client_id")
    secret = gateway.get("client_secret")
    if not client_id or not secret:
        raise ProviderError("Missing PayPal credentials (gateway config or env)")
    resp = await client.post(
        f"{api_base(gateway)}/v1/oauth2/token",
        data={"grant_type": "client_credentials"},
        auth=(client_id, secret),
    )
    if resp.status_code != 200:
        raise ProviderError(f"PayPal auth failed: {resp.status_code}")
    token = resp.json().get("access_token")
    if not token:
        raise ProviderError("PayPal auth: missing token")
    return token


def _return_url(params: CheckoutParams, cancelled: bool = False) -> str:
    query: Dict[str, str] = {
        "cancel": params.cancel_url,
        "bookingId": str(params.booking_id),
        "paymentId": params.metadata.get("payment_id", ""),
    }
    if cancelled:
        query["cancelled"] = "1"
    else:
        query["success"] = params.success_url
    return f"{settings.APP_URL}/api/payments/paypal/return?{urlencode(query)}"


@register_provider
class PayPalProvider(PaymentProvider):
    provider_id = "paypal"

    async def create_checkout(self, gateway: GatewaySettings, params: CheckoutParams) -> CheckoutResult:
        body = {
            "intent": "CAPTURE",
            "purchase_units": [{
                "amount": {"currency_code": params.currency, "value": f"{params.amount / 100:.2f}"},
                "custom_id": json.dumps({
                    "bookingId": params.booking_id,
                    "paymentId": params.metadata.get("payment_id"),
                }),
                "description": params.description[:127],
            }],
            "application_context": {
                "return_url": _return_url(params),
                "cancel_url": _return_url(params, cancelled=True),
                "user_action": "PAY_NOW",
            },
        }
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                token = await get_access_token(client, gateway)
                resp = await client.post(
                    f"{api_base(gateway)}/v2/checkout/orders",
                    json=body,
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as e:
            raise ProviderError(f"PayPal unreachable: {e}") from e

        if resp.status_code not in (200, 201):
            raise ProviderError(f"PayPal order create failed {resp.status_code}: {resp.text}")
        data = resp.json()
        approve = next((link["href"] for link in data.get("links", []) if link.get("rel") == "approve"), None)
        if not data.get("id") or not approve:
            raise ProviderError("PayPal response missing order id or approve link")
        return CheckoutResult(url=approve, provider_payment_id=data["id"])


async def capture_order(gateway: GatewaySettings, order_id: str) -> Optional[Dict[str, Any]]:
    """
    Capture an approved order.
    Returns the capture payload, or None when PayPal declined the capture.
    """
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            token = await get_access_token(client, gateway)
            resp = await client.post(
                f"{api_base(gateway)}/v2/checkout/orders/{order_id}/capture",
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            )
    except httpx.HTTPError as e:
        raise ProviderError(f"PayPal unreachable: {e}") from e

    if resp.status_code not in (200, 201):
        logger.warning("PayPal capture declined for order %s: %s", order_id, resp.status_code)
        return None
    return resp.json()


def custom_ids(capture: Dict[str, Any]) -> Dict[str, Any]:
    """Decode the bookingId/paymentId we stashed in custom_id."""
    for unit in capture.get("purchase_units", []):
        custom = unit.get("custom_id")
        if not custom:
            for cap in unit.get("payments", {}).get("captures", []):
                custom = cap.get("custom_id") or custom
        if custom:
            try:
                return json.loads(custom)
            except ValueError:
                logger.warning("PayPal custom_id is not JSON: %s", custom)
    return {}
