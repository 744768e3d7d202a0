from flask import current_app

from studio_booking.api import api_bp as bp
from studio_booking.services.payment import PaymentService
from studio_booking.utils.api_response import APIResponse

SERVICE_NAME = 'studio-booking-api'


@bp.route('/', methods=['GET'])
def health():
    return APIResponse.success({'ok': True, 'service': SERVICE_NAME})


@bp.route('/env-check', methods=['GET'])
def env_check():
    """
    Report payment configuration without exposing secrets

    Returns:
        hasKey, mode ('live', 'test' or 'none') and the configured port
    """
    payment_service = PaymentService(current_app.config)
    return APIResponse.success({
        'hasKey': payment_service.is_configured,
        'hasWebhookSecret': bool(payment_service.webhook_secret),
        'mode': payment_service.key_mode,
        'port': str(current_app.config.get('PORT', '5000'))
    })
