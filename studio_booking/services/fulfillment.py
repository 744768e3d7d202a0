"""
Fulfillment Webhook Relay

Forwards paid bookings to the downstream workflow system, which turns them
into calendar appointments and engineer notifications. The Stripe session
metadata is the only record of the booking between checkout and this point,
so everything here is rebuilt from it.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from studio_booking.services.errors import FulfillmentRelayError
from studio_booking.services.normalizer import parse_bool, parse_count, parse_number
from studio_booking.services.validation import parse_mapping
from studio_booking.utils.money import to_json_number

logger = logging.getLogger(__name__)

BOOLEAN_FIELDS = ('isFirstTime', 'remoteGuest', 'teleprompter', 'adClips5', 'mediaSdOrUsb')
COUNT_FIELDS = ('extraCameras', 'peopleOnCamera', 'totalCams', 'postProduction', 'postProductionCams')
MONEY_FIELDS = ('baseSubtotal', 'engineerSubtotal', 'extrasSession', 'postProd', 'total')
TEXT_FIELDS = ('date', 'startTime', 'room', 'mode', 'engineerChoice', 'engineerName', 'couponCode',
               'notes', 'pricingVersion')


@dataclass
class FulfillmentConfig:
    """Configuration for the fulfillment webhook"""
    url: Optional[str]
    timeout: int = 10
    max_retries: int = 3
    room_calendars: Dict[str, str] = field(default_factory=dict)
    engineers: Dict[str, str] = field(default_factory=dict)


def _number(value: Any) -> Optional[Any]:
    number = parse_number(value)
    return None if number is None else to_json_number(number)


def decode_booking_metadata(metadata: Mapping[str, str]) -> Dict[str, Any]:
    """
    Rebuild booking fields from Stripe session metadata

    Args:
        metadata: Flat string map written at checkout

    Returns:
        Booking dictionary with numbers and booleans restored
    """
    booking: Dict[str, Any] = {
        'customer': {
            'name': metadata.get('customerName', ''),
            'email': metadata.get('email', ''),
            'phone': metadata.get('phone', '')
        },
        'hours': _number(metadata.get('hours'))
    }

    for key in TEXT_FIELDS:
        booking[key] = metadata.get(key, '')

    for key in BOOLEAN_FIELDS:
        booking[key] = parse_bool(metadata.get(key))

    for key in COUNT_FIELDS:
        value = metadata.get(key, '')
        # An empty postProduction means the client never chose a count
        booking[key] = parse_count(value) if value != '' else None

    booking['quote'] = {key: _number(metadata.get(key)) for key in MONEY_FIELDS}
    return booking


class FulfillmentRelay:
    """HTTP client for the fulfillment workflow webhook"""

    def __init__(self, config: FulfillmentConfig):
        self.config = config
        self._session = self._create_session()

    @property
    def is_configured(self) -> bool:
        return bool(self.config.url)

    def _create_session(self) -> requests.Session:
        """
        Create a requests session with retry logic

        Only connection failures are retried. Once the request has reached
        the workflow, a timeout or 5xx may still have created the booking.

        Returns:
            Configured requests.Session object
        """
        session = requests.Session()

        retry_strategy = Retry(
            total=self.config.max_retries,
            connect=self.config.max_retries,
            read=0,
            status=0,
            backoff_factor=0.5,
            allowed_methods=Retry.DEFAULT_ALLOWED_METHODS  # excludes POST
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    def build_payload(self, checkout_session: Mapping[str, Any]) -> Dict[str, Any]:
        """Fulfillment payload for a completed Checkout session"""
        metadata = checkout_session.get('metadata') or {}
        booking = decode_booking_metadata(metadata)

        details = checkout_session.get('customer_details') or {}
        if not booking['customer']['email'] and details.get('email'):
            booking['customer']['email'] = details['email']
        if not booking['customer']['name'] and details.get('name'):
            booking['customer']['name'] = details['name']

        amount_total = checkout_session.get('amount_total')
        return {
            'event': 'booking.paid',
            'stripeSessionId': checkout_session.get('id'),
            'paymentIntentId': checkout_session.get('payment_intent'),
            'amountPaid': to_json_number(Decimal(amount_total) / 100) if amount_total is not None else None,
            'currency': (checkout_session.get('currency') or 'usd').lower(),
            'booking': booking,
            'calendarId': self.config.room_calendars.get(booking.get('room', '')),
            'engineerId': self.config.engineers.get(booking.get('engineerName', ''))
        }

    @staticmethod
    def _headers(payload: Dict[str, Any]) -> Dict[str, str]:
        # The Stripe session id is stable across webhook redeliveries
        session_id = payload.get('stripeSessionId')
        return {'Idempotency-Key': f"booking-{session_id}"} if session_id else {}

    def relay(self, payload: Dict[str, Any]) -> bool:
        """
        POST a payload to the fulfillment webhook

        Returns:
            True when delivered, False when no webhook is configured

        Raises:
            FulfillmentRelayError: If delivery fails
        """
        if not self.is_configured:
            logger.warning("Fulfillment webhook URL not configured; skipping relay")
            return False

        try:
            response = self._session.post(
                self.config.url,
                json=payload,
                headers=self._headers(payload),
                timeout=self.config.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Fulfillment relay request failed: {str(e)}")
            raise FulfillmentRelayError('Fulfillment relay failed', detail=str(e))

        if response.status_code >= 400:
            logger.error(f"Fulfillment relay returned status {response.status_code}")
            raise FulfillmentRelayError(
                'Fulfillment relay failed',
                detail=f"Webhook responded with status {response.status_code}"
            )

        logger.info(f"Relayed booking for session {payload.get('stripeSessionId')}")
        return True

    def relay_checkout_session(self, checkout_session: Mapping[str, Any]) -> bool:
        return self.relay(self.build_payload(checkout_session))


def create_fulfillment_relay(config: Mapping[str, Any]) -> FulfillmentRelay:
    """
    Factory function to create a FulfillmentRelay from Flask config

    Args:
        config: Flask app config object

    Returns:
        Configured FulfillmentRelay instance
    """
    return FulfillmentRelay(FulfillmentConfig(
        url=config.get('FULFILLMENT_WEBHOOK_URL'),
        timeout=int(config.get('FULFILLMENT_TIMEOUT', 10)),
        room_calendars=parse_mapping(config.get('ROOM_CALENDARS', '')),
        engineers=parse_mapping(config.get('ENGINEERS', ''))
    ))
