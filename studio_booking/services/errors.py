"""
Booking error taxonomy

Every failure the booking flow can report to a caller is one of these
exceptions. Each carries the HTTP status and machine-readable code the API
layer renders, so the routes never have to guess from a message string.
"""

from typing import Dict, List, Optional


class BookingError(Exception):
    """Base exception for booking flow errors"""

    status_code = 400
    code = 'BAD_REQUEST'

    def __init__(self, message: str, detail: Optional[str] = None,
                 violations: Optional[List[Dict[str, str]]] = None):
        self.message = message
        self.detail = detail or message
        self.violations = violations or []
        super().__init__(self.message)

    def to_dict(self) -> Dict:
        payload = {
            'error': self.message,
            'detail': self.detail,
            'code': self.code
        }
        if self.violations:
            payload['violations'] = self.violations
        return payload


class BookingValidationError(BookingError):
    """Raised when a booking breaks a business rule"""
    status_code = 400
    code = 'VALIDATION_ERROR'


class CouponError(BookingError):
    """Raised when a coupon code cannot be applied"""
    status_code = 400
    code = 'INVALID_COUPON'


class ConfigurationError(BookingError):
    """Raised when the service is missing operator configuration"""
    status_code = 500
    code = 'CONFIGURATION_ERROR'


class HoldConflictError(BookingError):
    """Raised when a slot is already held or busy"""
    status_code = 409
    code = 'HOLD_CONFLICT'


class HoldNotFoundError(HoldConflictError):
    """Raised when a hold is unknown or has expired"""
    code = 'HOLD_NOT_FOUND'


class HoldMismatchError(HoldConflictError):
    """Raised when a checkout does not match the hold it presents"""
    code = 'HOLD_MISMATCH'


class IntegrationError(BookingError):
    """Raised when an external system fails"""
    status_code = 502
    code = 'INTEGRATION_ERROR'


class PaymentServiceError(IntegrationError):
    """Raised when Stripe rejects or fails a request"""
    code = 'PAYMENT_ERROR'


class FulfillmentRelayError(IntegrationError):
    """Raised when the fulfillment webhook cannot be delivered"""
    code = 'FULFILLMENT_ERROR'


class WebhookSignatureError(BookingError):
    """Raised when a webhook payload fails signature verification"""
    status_code = 400
    code = 'INVALID_SIGNATURE'
