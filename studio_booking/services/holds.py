"""
Hold Manager
Short-lived slot reservations that stop two clients from checking out the same time
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from studio_booking.services.errors import (
    BookingValidationError,
    HoldConflictError,
    HoldMismatchError,
    HoldNotFoundError,
)
from studio_booking.services.validation import parse_time
from studio_booking.utils.clock import utc_now
from studio_booking.utils.money import to_json_number

logger = logging.getLogger(__name__)


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _duration_minutes(hours: Decimal) -> int:
    return int(Decimal(hours) * 60)


def _format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class Hold:
    """Reservation lock on a room/date/time slot"""
    id: str
    room: str
    date: str
    start_time: str
    hours: Decimal
    created_at: datetime
    expires_at: datetime

    @property
    def start_minutes(self) -> int:
        return _minutes(parse_time(self.start_time))

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + _duration_minutes(self.hours)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def overlaps(self, room: str, date: str, start: int, end: int) -> bool:
        return self.room == room and self.date == date and start < self.end_minutes and self.start_minutes < end

    def matches(self, room: str, date: str, start_time: str, hours: Decimal) -> bool:
        requested = parse_time(start_time)
        return (
            self.room == room
            and self.date == date
            and requested is not None
            and _minutes(requested) == self.start_minutes
            and Decimal(hours) == self.hours
        )

    def to_dict(self) -> Dict:
        return {
            'holdId': self.id,
            'room': self.room,
            'date': self.date,
            'startTime': self.start_time,
            'hours': to_json_number(self.hours),
            'expiresAt': self.expires_at.isoformat()
        }


class HoldStore(ABC):
    """Keyed store of holds with expiry"""

    @abstractmethod
    def get(self, hold_id: str) -> Optional[Hold]:
        ...

    @abstractmethod
    def put(self, hold: Hold) -> None:
        ...

    @abstractmethod
    def delete(self, hold_id: str) -> bool:
        ...

    @abstractmethod
    def list_for(self, room: str, date: str) -> List[Hold]:
        ...

    @abstractmethod
    def sweep(self, now: datetime) -> int:
        """Remove expired holds, returning how many were dropped"""
        ...


class InMemoryHoldStore(HoldStore):
    """
    Process-local hold store

    Only coordinates holds inside one process. A deployment with several
    workers needs a shared store (e.g. Redis keys with a TTL) behind the same
    interface.
    """

    def __init__(self):
        self._holds: Dict[str, Hold] = {}
        self._lock = threading.Lock()

    def get(self, hold_id: str) -> Optional[Hold]:
        with self._lock:
            return self._holds.get(hold_id)

    def put(self, hold: Hold) -> None:
        with self._lock:
            self._holds[hold.id] = hold

    def delete(self, hold_id: str) -> bool:
        with self._lock:
            return self._holds.pop(hold_id, None) is not None

    def list_for(self, room: str, date: str) -> List[Hold]:
        with self._lock:
            return [hold for hold in self._holds.values() if hold.room == room and hold.date == date]

    def sweep(self, now: datetime) -> int:
        with self._lock:
            expired = [hold_id for hold_id, hold in self._holds.items() if hold.is_expired(now)]
            for hold_id in expired:
                del self._holds[hold_id]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._holds)


class StaticBusyCalendar:
    """
    Busy intervals reported by an external calendar

    Keys are ``(room, date)``; values are ``(start, end)`` pairs of HH:MM
    strings. An empty calendar reports nothing busy.
    """

    def __init__(self, intervals: Optional[Mapping[Tuple[str, str], Iterable[Tuple[str, str]]]] = None):
        self._intervals = {key: list(value) for key, value in (intervals or {}).items()}

    def busy_intervals(self, room: str, date: str) -> List[Tuple[int, int]]:
        busy = []
        for start, end in self._intervals.get((room, date), []):
            start_time, end_time = parse_time(start), parse_time(end)
            if start_time and end_time:
                busy.append((_minutes(start_time), _minutes(end_time)))
        return busy

    def add(self, room: str, date: str, start: str, end: str) -> None:
        self._intervals.setdefault((room, date), []).append((start, end))


class HoldManager:
    """Create, verify and consume slot holds"""

    def __init__(
        self,
        store: Optional[HoldStore] = None,
        ttl: timedelta = timedelta(minutes=10),
        busy_calendar: Optional[StaticBusyCalendar] = None,
        clock: Callable[[], datetime] = utc_now,
        slot_minutes: int = 30,
        opening_time: time = time(10, 0),
        closing_time: time = time(19, 0)
    ):
        self.store = store if store is not None else InMemoryHoldStore()
        self.ttl = ttl
        self.busy_calendar = busy_calendar or StaticBusyCalendar()
        self.clock = clock
        self.slot_minutes = max(5, slot_minutes)
        self.opening_time = opening_time
        self.closing_time = closing_time
        # Serializes the conflict check and insert of new holds
        self._create_lock = threading.Lock()

    def _window(self, start_time: str, hours: Decimal) -> Tuple[int, int]:
        start = parse_time(start_time)
        if start is None:
            raise BookingValidationError('Start time must be in HH:MM format.')
        start_minutes = _minutes(start)
        return start_minutes, start_minutes + _duration_minutes(hours)

    def _find_conflict(self, room: str, date: str, start: int, end: int,
                       ignore_hold_id: Optional[str] = None) -> Optional[str]:
        for hold in self.store.list_for(room, date):
            if hold.id != ignore_hold_id and hold.overlaps(room, date, start, end):
                return f"That time overlaps another booking in progress ({hold.start_time}, {to_json_number(hold.hours)}h)."
        for busy_start, busy_end in self.busy_calendar.busy_intervals(room, date):
            if start < busy_end and busy_start < end:
                return (
                    f"{room} is already booked from {_format_minutes(busy_start)} "
                    f"to {_format_minutes(busy_end)}."
                )
        return None

    def ensure_slot_free(self, room: str, date: str, start_time: str, hours: Decimal,
                         ignore_hold_id: Optional[str] = None) -> None:
        """
        Raise if the slot collides with an active hold or a busy interval

        Raises:
            HoldConflictError: If the slot is taken
        """
        start, end = self._window(start_time, hours)
        self.store.sweep(self.clock())
        conflict = self._find_conflict(room, date, start, end, ignore_hold_id)
        if conflict:
            raise HoldConflictError('Time slot unavailable', detail=conflict)

    def create_hold(self, room: str, date: str, start_time: str, hours: Decimal) -> Hold:
        """
        Reserve a slot for the hold TTL

        Raises:
            HoldConflictError: If the slot overlaps an active hold or busy interval
        """
        start, end = self._window(start_time, hours)
        with self._create_lock:
            now = self.clock()
            self.store.sweep(now)
            conflict = self._find_conflict(room, date, start, end)
            if conflict:
                logger.info(f"Hold rejected for {room} {date} {start_time}: {conflict}")
                raise HoldConflictError('Time slot unavailable', detail=conflict)

            hold = Hold(
                id=f"hold_{uuid.uuid4().hex}",
                room=room,
                date=date,
                start_time=_format_minutes(start),
                hours=Decimal(hours),
                created_at=now,
                expires_at=now + self.ttl
            )
            self.store.put(hold)

        logger.info(f"Created hold {hold.id} for {room} {date} {hold.start_time} ({hours}h)")
        return hold

    def get_hold(self, hold_id: str) -> Optional[Hold]:
        self.store.sweep(self.clock())
        return self.store.get(hold_id)

    def cancel_hold(self, hold_id: str) -> bool:
        cancelled = self.store.delete(hold_id)
        if cancelled:
            logger.info(f"Cancelled hold {hold_id}")
        return cancelled

    def verify_hold(self, hold_id: str, room: str, date: str, start_time: str, hours: Decimal) -> Hold:
        """
        Check a hold exists and covers exactly the requested slot

        Raises:
            HoldNotFoundError: If the hold is unknown or expired
            HoldMismatchError: If room, date, start time or hours differ
        """
        hold = self.get_hold(hold_id)
        if hold is None:
            raise HoldNotFoundError(
                'Hold expired',
                detail='Your reservation hold has expired. Please choose the time slot again.'
            )
        if not hold.matches(room, date, start_time, hours):
            logger.warning(f"Hold {hold_id} does not match checkout request")
            raise HoldMismatchError(
                'Hold mismatch',
                detail='The booking details do not match the reserved time slot.'
            )
        return hold

    def consume_hold(self, hold_id: str) -> bool:
        consumed = self.store.delete(hold_id)
        if consumed:
            logger.info(f"Consumed hold {hold_id}")
        return consumed

    def availability(self, room: str, date: str, hours: Decimal) -> List[Dict]:
        """Slot grid between opening and closing with availability flags"""
        self.store.sweep(self.clock())
        duration = _duration_minutes(hours)
        slots = []
        minute = _minutes(self.opening_time)
        while minute <= _minutes(self.closing_time):
            conflict = self._find_conflict(room, date, minute, minute + duration)
            slots.append({'startTime': _format_minutes(minute), 'available': conflict is None})
            minute += self.slot_minutes
        return slots
