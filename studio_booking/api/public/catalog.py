from flask import current_app, request

from studio_booking.api.public import public_bp as bp
from studio_booking.api.utils import get_booking_service
from studio_booking.extensions import get_booking_state
from studio_booking.services.validation import parse_mapping
from studio_booking.utils.api_response import APIResponse
from studio_booking.utils.decorators import handle_booking_error


@bp.route('/services', methods=['GET'])
def list_services():
    """
    Public rate card

    Returns:
        pricing (modes, engineer rate, add-ons, cameras, post-production,
        hour bounds), rooms, engineers and the studio schedule
    """
    state = get_booking_state(current_app)
    rules = state['rules']
    config = current_app.config

    return APIResponse.success({
        'pricing': state['pricing'].to_dict(),
        'rooms': list(rules.rooms),
        'engineers': list(parse_mapping(config.get('ENGINEERS', ''))),
        'schedule': {
            'openingTime': rules.opening_time.strftime('%H:%M'),
            'closingTime': rules.closing_time.strftime('%H:%M'),
            'closedWeekdays': list(rules.closed_weekdays),
            'minLeadDays': rules.min_lead_days,
            'slotMinutes': int(config.get('SLOT_MINUTES', 30)),
            'holdTtlMinutes': int(config.get('HOLD_TTL_MINUTES', 10)),
            'timezone': rules.timezone
        }
    })


@bp.route('/availability', methods=['GET'])
@handle_booking_error
def availability():
    """
    Slot availability for a room on a date

    Query Parameters:
        room: Room name (defaults to the first configured room)
        date: Session date (YYYY-MM-DD, required)
        hours: Session length used to test each slot (default: minimum hours)
    """
    params = {
        'room': request.args.get('room', '').strip(),
        'date': request.args.get('date', '').strip(),
        'hours': request.args.get('hours', '').strip()
    }
    result = get_booking_service().availability(params)
    if not result.ok:
        return APIResponse.from_error(result.error)
    return APIResponse.success(result.value)
