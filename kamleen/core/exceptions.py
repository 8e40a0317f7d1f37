"""
Domain errors raised by the services layer.

Routers translate these to HTTP responses; services never raise HTTPException.
"""
from typing import Optional


class PaymentError(Exception):
    status_code = 400
    code = "payment_error"

    def __init__(self, message: str = "", code: Optional[str] = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        if code:
            self.code = code


class ValidationError(PaymentError):
    code = "invalid_request"


class ForbiddenError(PaymentError):
    status_code = 403
    code = "forbidden"


class NotFoundError(PaymentError):
    status_code = 404
    code = "not_found"


class BookingNotFoundError(NotFoundError):
    code = "booking_not_found"


class PaymentNotFoundError(NotFoundError):
    code = "payment_not_found"


class GatewayNotFoundError(NotFoundError):
    code = "gateway_not_found"


class UnknownProviderError(NotFoundError):
    code = "unknown_provider"


class BookingStateError(PaymentError):
    status_code = 409
    code = "booking_not_payable"


class ConflictError(PaymentError):
    status_code = 409
    code = "conflict"


class NoEnabledGatewayError(PaymentError):
    status_code = 409
    code = "no_enabled_gateway"


class ConfigurationError(PaymentError):
    status_code = 500
    code = "configuration_error"


class ProviderError(PaymentError):
    """The upstream payment processor rejected or failed the call."""
    status_code = 502
    code = "provider_error"


class UnsupportedOperationError(PaymentError):
    status_code = 501
    code = "unsupported_operation"


class WebhookVerificationError(PaymentError):
    code = "invalid_signature"


class EmailDeliveryError(PaymentError):
    status_code = 502
    code = "email_delivery_failed"
