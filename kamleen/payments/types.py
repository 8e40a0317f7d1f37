"""
Provider-neutral payment types.

Every payment channel (card processor, alternate card gateway, cash desk,
wallet) implements :class:`PaymentProvider`; the checkout orchestrator only
ever talks to this interface.
"""
import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from kamleen.core.exceptions import UnsupportedOperationError


@dataclass
class GatewaySettings:
    """Resolved gateway configuration; secrets are already decrypted."""
    key: str
    name: str
    test_mode: bool = True
    config: Dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        value = self.config.get(name)
        return default if value in (None, "") else value


@dataclass
class CheckoutParams:
    booking_id: int
    amount: int  # minor units
    currency: str
    success_url: str
    cancel_url: str
    description: str
    customer_email: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class CheckoutResult:
    url: str
    provider_payment_id: Optional[str] = None


@dataclass
class RefundParams:
    provider_payment_id: str
    amount: int  # minor units
    reason: Optional[str] = None


@dataclass
class RefundResult:
    provider_refund_id: Optional[str] = None


class WebhookOutcome(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PROCESSING = "processing"
    IGNORED = "ignored"


@dataclass
class WebhookEvent:
    """A verified provider notification mapped onto our payment states."""
    outcome: WebhookOutcome
    payment_id: Optional[int] = None
    provider_payment_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    event_type: Optional[str] = None


class PaymentProvider(ABC):
    provider_id: str = ""
    supports_refunds: bool = False
    # True when the checkout step itself settles nothing and waits for a human
    manual_settlement: bool = False

    @abstractmethod
    async def create_checkout(self, gateway: GatewaySettings, params: CheckoutParams) -> CheckoutResult:
        ...

    async def create_refund(self, gateway: GatewaySettings, params: RefundParams) -> RefundResult:
        raise UnsupportedOperationError(f"{self.provider_id} refunds must be handled manually")

    def parse_webhook(
        self, gateway: GatewaySettings, headers: Mapping[str, str], body: bytes, form: Mapping[str, Any]
    ) -> WebhookEvent:
        """
        Verify and decode a webhook delivery.

        `form` holds the decoded payload (form fields or JSON object).
        Raises WebhookVerificationError when authenticity cannot be established.
        """
        raise UnsupportedOperationError(f"{self.provider_id} does not receive webhooks")
