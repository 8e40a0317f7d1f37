"""
Signing helpers shared by the form-redirect card gateways.
"""
import base64
import hashlib
import hmac
from typing import Any, Mapping

from kamleen.core.exceptions import WebhookVerificationError


def canonical_query(payload: Mapping[str, Any]) -> str:
    """`k=v` pairs joined with `&`, keys sorted."""
    return "&".join(f"{k}={payload[k]}" for k in sorted(payload))


def hmac_sha256_hex(payload: Mapping[str, Any], secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), canonical_query(payload).encode("utf-8"), hashlib.sha256).hexdigest()


def sha512_b64(payload: Mapping[str, Any], secret: str) -> str:
    digest = hashlib.sha512((canonical_query(payload) + secret).encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def require_match(expected: str, received: str) -> None:
    if not received or not hmac.compare_digest(expected, received):
        raise WebhookVerificationError("Signature mismatch")


def parse_payment_ref(value: Any) -> int:
    """Our orderId/oid/reference_id is the Payment primary key."""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise WebhookVerificationError(f"Unrecognised payment reference: {value!r}", code="payment_not_found")
