from flask import current_app

from studio_booking.services.booking import BookingService
from studio_booking.utils.api_response import APIResponse


def get_booking_service() -> BookingService:
    return BookingService.from_app(current_app)


def render_result(result, status_code=200):
    """Render an Ok value with ``to_dict`` or an Err with its own status"""
    if not result.ok:
        return APIResponse.from_error(result.error)
    return APIResponse.success(result.value.to_dict(), status_code)
