import logging

from studio_booking.api.public import public_bp as bp
from studio_booking.api.utils import get_booking_service, render_result
from studio_booking.utils.api_response import APIResponse
from studio_booking.utils.decorators import handle_booking_error
from studio_booking.utils.request import get_json_object

logger = logging.getLogger(__name__)


@bp.route('/hold', methods=['POST'])
@handle_booking_error
def create_hold():
    """
    Reserve a slot while the client completes checkout

    Request Body:
        room, date, startTime, hours and isFirstTime

    Returns:
        201 with holdId and expiresAt, 409 when the slot is taken
    """
    data = get_json_object()
    return render_result(get_booking_service().place_hold(data), status_code=201)


@bp.route('/hold/cancel', methods=['POST'])
@handle_booking_error
def cancel_hold():
    data = get_json_object()
    hold_id = str(data.get('holdId') or '').strip()
    if not hold_id:
        return APIResponse.validation_error(
            'holdId is required',
            violations=[{'field': 'holdId', 'message': 'holdId is required'}]
        )

    cancelled = get_booking_service().cancel_hold(hold_id)
    return APIResponse.success({'cancelled': cancelled})
