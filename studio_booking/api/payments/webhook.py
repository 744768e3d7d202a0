from flask import jsonify, request, current_app
import logging

from studio_booking.api.payments import payment_bp as bp
from studio_booking.services.errors import FulfillmentRelayError
from studio_booking.services.fulfillment import create_fulfillment_relay
from studio_booking.services.payment import PaymentService
from studio_booking.utils.api_response import APIResponse
from studio_booking.utils.decorators import handle_booking_error

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = 'checkout.session.completed'

# ==================== WEBHOOK ENDPOINT ====================

@bp.route('/webhook', methods=['POST'])
@handle_booking_error
def stripe_webhook():
    """
    Handle Stripe webhook events

    A completed Checkout session is forwarded to the fulfillment webhook.
    Relay failures are logged and the event is still acknowledged, so Stripe
    does not retry a payment that already succeeded.
    """
    payload = request.get_data()
    sig_header = request.headers.get('Stripe-Signature')

    if not sig_header:
        return APIResponse.error('Missing signature', code='INVALID_SIGNATURE', status_code=400)

    payment_service = PaymentService(current_app.config)
    event = payment_service.handle_webhook(payload, sig_header)

    event_type = event.get('type')
    if event_type == CHECKOUT_COMPLETED:
        checkout_session = (event.get('data') or {}).get('object') or {}
        relay = create_fulfillment_relay(current_app.config)
        try:
            relay.relay_checkout_session(checkout_session)
        except FulfillmentRelayError as e:
            logger.error(f"Webhook: fulfillment relay failed for {checkout_session.get('id')}: {e.detail}")
    else:
        logger.info(f"Webhook: ignoring event {event_type}")

    return jsonify({'received': True}), 200
