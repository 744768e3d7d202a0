"""
Process-wide booking state shared by every request

Pricing, rules and the hold manager are built once per app from its config
and kept under ``app.extensions['studio_booking']``.
"""

import logging
from datetime import timedelta

from studio_booking.services.holds import HoldManager
from studio_booking.services.pricing import PricingConfig
from studio_booking.services.validation import BookingRules
from studio_booking.utils.clock import utc_now

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'studio_booking'


def init_booking_state(app, hold_store=None, busy_calendar=None, clock=None):
    """
    Attach pricing, rules and the hold manager to an app

    Args:
        app: Flask application
        hold_store: Optional HoldStore; defaults to an in-memory store
        busy_calendar: Optional calendar of already-booked intervals
        clock: Optional callable returning the current UTC datetime

    Raises:
        ValueError: If a pricing policy in the config is unknown
    """
    config = app.config
    clock = clock or utc_now
    pricing = PricingConfig.from_mapping(config)
    rules = BookingRules.from_mapping(config)

    hold_manager = HoldManager(
        store=hold_store,
        ttl=timedelta(minutes=int(config.get('HOLD_TTL_MINUTES', 10))),
        busy_calendar=busy_calendar,
        clock=clock,
        slot_minutes=int(config.get('SLOT_MINUTES', 30)),
        opening_time=rules.opening_time,
        closing_time=rules.closing_time
    )

    app.extensions[EXTENSION_KEY] = {
        'pricing': pricing,
        'rules': rules,
        'hold_manager': hold_manager,
        'clock': clock
    }
    logger.info(
        f"Booking state ready: pricing {pricing.version}, rooms {', '.join(rules.rooms)}, "
        f"post-production {pricing.post_production_policy.value}"
    )
    return app.extensions[EXTENSION_KEY]


def get_booking_state(app):
    return app.extensions[EXTENSION_KEY]
