import os
from dotenv import load_dotenv

load_dotenv()


def _stripe_key():
    # Whichever Stripe key has been provided
    return (
        os.getenv("STRIPE_SECRET_KEY")
        or os.getenv("STRIPE_SECRET_KEY_TEST")
        or os.getenv("STRIPE_SECRET_KEY_LIVE")
        or ''
    )


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-change-in-production'
    JSON_SORT_KEYS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # HTTP
    PORT = os.getenv("PORT", "5000")
    CORS_ORIGIN = os.getenv("CORS_ORIGIN", "*")

    # Stripe
    STRIPE_SECRET_KEY = _stripe_key()
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
    SUCCESS_URL = os.getenv("SUCCESS_URL", "https://example.com/success.html")
    CANCEL_URL = os.getenv("CANCEL_URL", "https://example.com/cancel.html")

    # Fulfillment workflow webhook
    FULFILLMENT_WEBHOOK_URL = os.getenv("FULFILLMENT_WEBHOOK_URL")
    FULFILLMENT_TIMEOUT = int(os.getenv("FULFILLMENT_TIMEOUT", 10))  # seconds

    # Rooms and engineers ("Name=identifier;Other=identifier")
    ROOMS = os.getenv("ROOMS", "Studio")
    ROOM_CALENDARS = os.getenv("ROOM_CALENDARS", "")
    ENGINEERS = os.getenv("ENGINEERS", "")

    # Scheduling rules
    HOLD_TTL_MINUTES = int(os.getenv("HOLD_TTL_MINUTES", 10))
    MIN_LEAD_DAYS = int(os.getenv("MIN_LEAD_DAYS", 2))
    SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", 30))
    OPENING_TIME = os.getenv("OPENING_TIME", "10:00")
    CLOSING_TIME = os.getenv("CLOSING_TIME", "19:00")
    CLOSED_WEEKDAYS = os.getenv("CLOSED_WEEKDAYS", "7")  # ISO weekdays, 7 = Sunday
    STUDIO_TIMEZONE = os.getenv("STUDIO_TIMEZONE", "America/New_York")

    # Pricing policies
    POST_PRODUCTION_POLICY = os.getenv("POST_PRODUCTION_POLICY", "tiered")  # tiered | linear
    EXTRA_CAMERA_POLICY = os.getenv("EXTRA_CAMERA_POLICY", "per_camera")  # per_camera | flat
