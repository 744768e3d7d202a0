import hashlib
import hmac
import time
from datetime import datetime, timedelta, timezone

import pytest
from studio_booking import create_app
from studio_booking.services.holds import StaticBusyCalendar
from config import Config

# Monday 2 June 2025, 11:00 in New York
FIXED_NOW = datetime(2025, 6, 2, 15, 0, tzinfo=timezone.utc)
BOOKING_DATE = '2025-06-05'  # Thursday, past the two-day lead time
SUNDAY_DATE = '2025-06-08'
TOO_SOON_DATE = '2025-06-03'

WEBHOOK_SECRET = 'whsec_test'


class FakeClock:
    """Callable clock that tests can move forward"""

    def __init__(self, now=FIXED_NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class TestConfig(Config):
    TESTING = True
    STRIPE_SECRET_KEY = "sk_test_123"
    STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
    SUCCESS_URL = "https://studio.example/success.html"
    CANCEL_URL = "https://studio.example/cancel.html"
    FULFILLMENT_WEBHOOK_URL = "https://hooks.example/booking"
    ROOMS = "Studio"
    ROOM_CALENDARS = "Studio=cal_studio"
    ENGINEERS = "Alex=eng_alex;Sam=eng_sam"
    POST_PRODUCTION_POLICY = "tiered"
    EXTRA_CAMERA_POLICY = "per_camera"
    HOLD_TTL_MINUTES = 10
    MIN_LEAD_DAYS = 2


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def busy_calendar():
    return StaticBusyCalendar()


@pytest.fixture
def app(clock, busy_calendar):
    app = create_app(TestConfig, busy_calendar=busy_calendar, clock=clock)

    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def booking_payload():
    return {
        'hours': 2,
        'mode': 'ONE_CAMERA',
        'engineerChoice': 'any',
        'extraCameras': 0,
        'postProduction': 0,
        'date': BOOKING_DATE,
        'startTime': '10:00',
        'room': 'Studio',
        'customer': {
            'name': 'Jordan Lee',
            'email': 'jordan@example.com',
            'phone': '+1 (555) 010-2030'
        }
    }


def sign_payload(payload, secret=WEBHOOK_SECRET, timestamp=None):
    """Build a Stripe-Signature header for a raw payload"""
    timestamp = timestamp or int(time.time())
    if isinstance(payload, bytes):
        payload = payload.decode('utf-8')
    signed = f"{timestamp}.{payload}".encode('utf-8')
    signature = hmac.new(secret.encode('utf-8'), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"
