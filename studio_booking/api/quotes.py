import logging

from studio_booking.api import api_bp as bp
from studio_booking.api.utils import get_booking_service, render_result
from studio_booking.utils.api_response import APIResponse
from studio_booking.utils.decorators import handle_booking_error
from studio_booking.utils.request import get_json_object

logger = logging.getLogger(__name__)


@bp.route('/quote', methods=['POST'])
@handle_booking_error
def quote():
    """
    Price a booking

    Request Body:
        Booking payload; every field is optional and falls back to a default

    Returns:
        breakdown, total, totalCams, hours, mode and postProductionCams
    """
    data = get_json_object()
    return render_result(get_booking_service().quote(data))


@bp.route('/quote-debug', methods=['POST'])
@handle_booking_error
def quote_debug():
    """Echo the request next to the computed totals"""
    data = get_json_object()
    result = get_booking_service().quote(data)
    if not result.ok:
        return APIResponse.from_error(result.error)

    logger.debug(f"Quote debug for payload keys: {sorted(data)}")
    return APIResponse.success({
        'received': data,
        'totals': result.value.to_dict()
    })
