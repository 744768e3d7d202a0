"""
Booking normalizer

Turns an untrusted booking payload into canonical, typed values. It never
raises: missing or malformed fields fall back to documented defaults, and
rejecting a booking is left to the rule validator.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Mapping, Optional, Tuple

from studio_booking.services.pricing import DEFAULT_PRICING, PricingConfig, SessionMode

TRUTHY_STRINGS = {'true', '1', 'yes', 'on', 'y'}

ENGINEER_ANY = 'any'
ENGINEER_SPECIFIC = 'specific'
ENGINEER_NONE = 'none'


@dataclass(frozen=True)
class NormalizedBooking:
    """Canonical booking values"""
    hours: Decimal
    mode: SessionMode
    engineer_choice: str
    engineer_name: Optional[str]
    extra_cameras: int
    people_on_camera: Optional[int]
    addons: Tuple[str, ...]
    post_production: Optional[int]  # None when the client did not say
    is_first_time: bool
    requested_hours: Optional[Decimal] = None
    date: str = ''
    start_time: str = ''
    room: str = ''
    notes: str = ''
    name: str = ''
    email: str = ''
    phone: str = ''
    coupon_code: str = ''
    hold_id: str = ''

    @property
    def wants_engineer(self) -> bool:
        return self.engineer_choice != ENGINEER_NONE

    def has_addon(self, key: str) -> bool:
        return key in self.addons


def parse_number(value: Any) -> Optional[Decimal]:
    """Parse a finite number, or return None"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not number.is_finite():
        return None
    return number


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return False


def parse_count(value: Any, minimum: int = 0, maximum: int = 1000) -> Optional[int]:
    number = parse_number(value)
    if number is None:
        return None
    number = min(max(number, Decimal(minimum)), Decimal(maximum))
    return int(number.to_integral_value(rounding=ROUND_HALF_UP))


def is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def clean_text(value: Any, max_length: Optional[int] = None) -> str:
    if value is None:
        return ''
    text = str(value).strip()
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def parse_mode(value: Any, default: SessionMode = SessionMode.ONE_CAMERA) -> SessionMode:
    key = clean_text(value).upper().replace(' ', '_').replace('-', '_')
    try:
        return SessionMode(key)
    except ValueError:
        return default


def parse_engineer(value: Any) -> Tuple[str, Optional[str]]:
    """Return (choice, engineer name)"""
    text = clean_text(value)
    lowered = text.lower()
    if not text or lowered == ENGINEER_ANY:
        return ENGINEER_ANY, None
    if lowered in (ENGINEER_NONE, 'no', 'false'):
        return ENGINEER_NONE, None
    if lowered == ENGINEER_SPECIFIC:
        return ENGINEER_SPECIFIC, None
    return ENGINEER_SPECIFIC, text


def normalize_hours(value: Any, is_first_time: bool, pricing: PricingConfig) -> Decimal:
    floor = pricing.hours_floor(is_first_time)
    hours = parse_number(value)
    if hours is None:
        return floor
    hours = min(max(hours, floor), pricing.max_hours)
    step = pricing.hours_increment
    hours = (hours / step).to_integral_value(rounding=ROUND_HALF_UP) * step
    return min(max(hours, floor), pricing.max_hours)


def normalize_booking(raw: Mapping[str, Any], pricing: PricingConfig = DEFAULT_PRICING) -> NormalizedBooking:
    """
    Normalize a raw booking payload

    Args:
        raw: Request body (camelCase keys, optional nested ``customer``)
        pricing: Rate table supplying hour bounds and add-on keys

    Returns:
        NormalizedBooking
    """
    raw = raw if isinstance(raw, Mapping) else {}
    customer = raw.get('customer') if isinstance(raw.get('customer'), Mapping) else {}

    is_first_time = parse_bool(raw.get('isFirstTime'))
    engineer_choice, engineer_name = parse_engineer(raw.get('engineerChoice'))
    if raw.get('engineerName') and engineer_choice != ENGINEER_NONE:
        engineer_choice = ENGINEER_SPECIFIC
        engineer_name = clean_text(raw.get('engineerName'), 100)

    post_production = None
    if not is_absent(raw.get('postProduction')):
        # Explicit values that fail to parse count as "no editing"
        post_production = parse_count(raw.get('postProduction')) or 0

    people = None
    if not is_absent(raw.get('peopleOnCamera')):
        people = parse_count(raw.get('peopleOnCamera'), minimum=1)

    return NormalizedBooking(
        hours=normalize_hours(raw.get('hours'), is_first_time, pricing),
        mode=parse_mode(raw.get('mode'), pricing.default_mode),
        engineer_choice=engineer_choice,
        engineer_name=engineer_name,
        extra_cameras=parse_count(raw.get('extraCameras')) or 0,
        people_on_camera=people,
        addons=tuple(addon.key for addon in pricing.addons if parse_bool(raw.get(addon.key))),
        post_production=post_production,
        is_first_time=is_first_time,
        requested_hours=parse_number(raw.get('hours')),
        date=clean_text(raw.get('date'), 32),
        start_time=clean_text(raw.get('startTime'), 16),
        room=clean_text(raw.get('room'), 100),
        notes=clean_text(raw.get('notes'), 500),
        name=clean_text(customer.get('name') or raw.get('name'), 200),
        email=clean_text(customer.get('email') or raw.get('email'), 200).lower(),
        phone=clean_text(customer.get('phone') or raw.get('phone'), 50),
        coupon_code=clean_text(raw.get('couponCode'), 100),
        hold_id=clean_text(raw.get('holdId'), 100)
    )
