from functools import wraps
import logging

from studio_booking.services.errors import BookingError
from studio_booking.utils.api_response import APIResponse

logger = logging.getLogger(__name__)


def handle_booking_error(f):
    """Decorator for consistent booking error handling"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except BookingError as e:
            logger.error(f"Booking error ({e.code}): {e.detail}")
            return APIResponse.from_error(e)
        except Exception:
            logger.exception("Unexpected error in booking endpoint")
            return APIResponse.error(
                'Internal error',
                detail='An unexpected error occurred. Please try again.',
                code='INTERNAL_ERROR',
                status_code=500
            )
    return decorated_function
