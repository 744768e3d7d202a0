import logging

from studio_booking.api import api_bp as bp
from studio_booking.api.utils import get_booking_service
from studio_booking.utils.api_response import APIResponse
from studio_booking.utils.decorators import handle_booking_error
from studio_booking.utils.request import get_json_object

logger = logging.getLogger(__name__)


@bp.route('/checkout', methods=['POST'])
@handle_booking_error
def create_checkout():
    """
    Create a Stripe Checkout session for a booking

    Request Body:
        Booking payload with date, startTime, contact details, optional
        holdId and couponCode

    Returns:
        checkoutUrl, sessionId and the quote totals
    """
    data = get_json_object()
    result = get_booking_service().checkout(data)

    if not result.ok:
        return APIResponse.from_error(result.error)

    checkout = result.value
    logger.info(
        f"Checkout session {checkout.session_id} created for "
        f"{checkout.projection.total_cents} cents"
    )
    return APIResponse.success(checkout.to_dict())
