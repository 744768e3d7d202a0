"""
Booking rule validation
Checks scheduling and contact rules before a booking is quoted, held or charged
"""

import calendar
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo

from studio_booking.services.errors import BookingValidationError
from studio_booking.services.normalizer import NormalizedBooking
from studio_booking.services.pricing import DEFAULT_PRICING, PricingConfig
from studio_booking.utils.clock import utc_now
from studio_booking.utils.money import to_json_number

STAGE_QUOTE = 'quote'
STAGE_HOLD = 'hold'
STAGE_CHECKOUT = 'checkout'

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})$')
DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def parse_date(value: str) -> Optional[date]:
    if not value or not DATE_PATTERN.match(value):
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        return None


def parse_time(value: str) -> Optional[time]:
    match = TIME_PATTERN.match(value or '')
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def parse_mapping(value: str) -> Dict[str, str]:
    """Parse ``Name=identifier;Other=identifier`` configuration strings"""
    mapping = {}
    for chunk in (value or '').replace('\n', ';').split(';'):
        if '=' not in chunk:
            continue
        key, _, ident = chunk.partition('=')
        if key.strip() and ident.strip():
            mapping[key.strip()] = ident.strip()
    return mapping


def parse_list(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in (value or '').split(',') if item.strip())


@dataclass(frozen=True)
class BookingRules:
    """Scheduling rules applied to every booking"""
    min_lead_days: int = 2
    closed_weekdays: Tuple[int, ...] = (7,)  # ISO weekday numbers
    opening_time: time = time(10, 0)
    closing_time: time = time(19, 0)
    rooms: Tuple[str, ...] = ('Studio',)
    timezone: str = 'America/New_York'

    @property
    def default_room(self) -> str:
        return self.rooms[0] if self.rooms else ''

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> 'BookingRules':
        defaults = cls()
        rooms = parse_list(config.get('ROOMS', ''))
        # Rooms with a calendar are bookable even when ROOMS omits them
        for room in parse_mapping(config.get('ROOM_CALENDARS', '')):
            if room not in rooms:
                rooms += (room,)
        closed = tuple(
            int(day) for day in parse_list(str(config.get('CLOSED_WEEKDAYS', '')))
            if day.isdigit() and 1 <= int(day) <= 7
        )
        return cls(
            min_lead_days=int(config.get('MIN_LEAD_DAYS', defaults.min_lead_days)),
            closed_weekdays=closed,
            opening_time=parse_time(config.get('OPENING_TIME', '')) or defaults.opening_time,
            closing_time=parse_time(config.get('CLOSING_TIME', '')) or defaults.closing_time,
            rooms=rooms or defaults.rooms,
            timezone=config.get('STUDIO_TIMEZONE') or defaults.timezone
        )


@dataclass(frozen=True)
class Violation:
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {'field': self.field, 'message': self.message}


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    violations: Tuple[Violation, ...] = field(default_factory=tuple)

    def to_error(self) -> BookingValidationError:
        messages = [violation.message for violation in self.violations]
        return BookingValidationError(
            messages[0] if messages else 'Invalid booking',
            detail=' '.join(messages),
            violations=[violation.to_dict() for violation in self.violations]
        )


class BookingRuleValidator:
    """
    Validate a normalized booking against the studio's rules

    Pricing is never consulted beyond hour bounds; a booking that passes here
    can still be quoted at any rate table.
    """

    def __init__(
        self,
        rules: BookingRules = BookingRules(),
        pricing: PricingConfig = DEFAULT_PRICING,
        clock: Callable[[], datetime] = utc_now
    ):
        self.rules = rules
        self.pricing = pricing
        self.clock = clock

    def today(self) -> date:
        return self.clock().astimezone(ZoneInfo(self.rules.timezone)).date()

    def validate(self, booking: NormalizedBooking, stage: str = STAGE_QUOTE) -> ValidationResult:
        """
        Validate a booking for the given stage

        Args:
            booking: Normalized booking
            stage: 'quote', 'hold' or 'checkout'

        Returns:
            ValidationResult listing every violation found
        """
        violations: List[Violation] = []
        scheduling_required = stage in (STAGE_HOLD, STAGE_CHECKOUT)

        violations.extend(self._check_date(booking.date, scheduling_required))
        violations.extend(self._check_start_time(booking.start_time, scheduling_required))
        violations.extend(self._check_room(booking.room, stage))

        if scheduling_required:
            violations.extend(self._check_hours(booking))
        if stage == STAGE_CHECKOUT:
            violations.extend(self._check_contact(booking))

        return ValidationResult(ok=not violations, violations=tuple(violations))

    def _check_date(self, value: str, required: bool) -> List[Violation]:
        if not value:
            return [Violation('date', 'Please choose a date for your session.')] if required else []

        booking_date = parse_date(value)
        if booking_date is None:
            return [Violation('date', 'Date must be in YYYY-MM-DD format.')]

        earliest = self.today() + timedelta(days=self.rules.min_lead_days)
        if booking_date < earliest:
            return [Violation(
                'date',
                f"Bookings must be made at least {self.rules.min_lead_days} days in advance."
            )]

        if booking_date.isoweekday() in self.rules.closed_weekdays:
            day_name = calendar.day_name[booking_date.weekday()]
            return [Violation('date', f"The studio is closed on {day_name}s.")]

        return []

    def _check_start_time(self, value: str, required: bool) -> List[Violation]:
        if not value:
            return [Violation('startTime', 'Please choose a start time.')] if required else []

        start = parse_time(value)
        if start is None:
            return [Violation('startTime', 'Start time must be in HH:MM format.')]

        opening, closing = self.rules.opening_time, self.rules.closing_time
        if start < opening or start > closing:
            return [Violation(
                'startTime',
                f"Sessions must start between {opening.strftime('%H:%M')} and {closing.strftime('%H:%M')}."
            )]
        return []

    def _check_room(self, room: str, stage: str) -> List[Violation]:
        rooms = self.rules.rooms
        if room:
            if rooms and room not in rooms:
                return [Violation('room', f"Unknown room. Choose one of: {', '.join(rooms)}.")]
            return []
        if stage == STAGE_HOLD and len(rooms) > 1:
            return [Violation('room', 'Please choose a room.')]
        return []

    def _check_hours(self, booking: NormalizedBooking) -> List[Violation]:
        requested = booking.requested_hours
        pricing = self.pricing
        if requested is None:
            return [Violation('hours', 'Please choose how many hours you need.')]

        if booking.is_first_time and requested < pricing.first_time_min_hours:
            return [Violation(
                'hours',
                f"First-time bookings require at least {to_json_number(pricing.first_time_min_hours)} hours."
            )]

        if requested < pricing.min_hours or requested > pricing.max_hours:
            return [Violation(
                'hours',
                f"Sessions must be between {to_json_number(pricing.min_hours)} "
                f"and {to_json_number(pricing.max_hours)} hours."
            )]

        if requested % pricing.hours_increment != 0:
            return [Violation(
                'hours',
                f"Hours must be booked in steps of {to_json_number(pricing.hours_increment)} hours."
            )]
        return []

    def _check_contact(self, booking: NormalizedBooking) -> List[Violation]:
        violations = []
        if not booking.name:
            violations.append(Violation('name', 'Name is required.'))

        if not booking.email:
            violations.append(Violation('email', 'Email is required.'))
        elif not EMAIL_PATTERN.match(booking.email):
            violations.append(Violation('email', 'Invalid email format.'))

        if not booking.phone:
            violations.append(Violation('phone', 'Phone number is required.'))
        else:
            cleaned = re.sub(r'[\s\-\(\)\.\+]', '', booking.phone)
            if not cleaned.isdigit() or not 7 <= len(cleaned) <= 15:
                violations.append(Violation('phone', 'Invalid phone number format.'))
        return violations
