import pytest
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal
from studio_booking.services.errors import (
    BookingValidationError,
    HoldConflictError,
    HoldMismatchError,
    HoldNotFoundError,
)
from studio_booking.services.holds import HoldManager, InMemoryHoldStore, StaticBusyCalendar

from studio_booking import create_app

from conftest import FakeClock, TestConfig


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def calendar():
    return StaticBusyCalendar()


@pytest.fixture
def manager(clock, calendar):
    return HoldManager(ttl=timedelta(minutes=10), busy_calendar=calendar, clock=clock)


def test_overlapping_hold_is_rejected(manager):
    first = manager.create_hold('Studio', '2025-06-10', '10:00', Decimal('2'))

    with pytest.raises(HoldConflictError) as excinfo:
        manager.create_hold('Studio', '2025-06-10', '11:00', Decimal('2'))

    assert excinfo.value.status_code == 409
    assert excinfo.value.message == 'Time slot unavailable'
    assert manager.get_hold(first.id) == first


def test_adjacent_and_other_room_holds_are_allowed(manager):
    manager.create_hold('Studio', '2025-06-10', '10:00', Decimal('2'))

    assert manager.create_hold('Studio', '2025-06-10', '12:00', Decimal('1'))
    assert manager.create_hold('Booth', '2025-06-10', '10:00', Decimal('2'))
    assert manager.create_hold('Studio', '2025-06-11', '10:00', Decimal('2'))


def test_hold_fields(manager, clock):
    hold = manager.create_hold('Studio', '2025-06-10', '9:30', Decimal('1.5'))

    assert hold.id.startswith('hold_')
    assert hold.start_time == '09:30'
    assert hold.expires_at == clock.now + timedelta(minutes=10)
    assert hold.to_dict() == {
        'holdId': hold.id,
        'room': 'Studio',
        'date': '2025-06-10',
        'startTime': '09:30',
        'hours': 1.5,
        'expiresAt': hold.expires_at.isoformat()
    }


def test_expired_hold_frees_the_slot(manager, clock):
    first = manager.create_hold('Studio', '2025-06-10', '10:00', Decimal('2'))
    clock.advance(minutes=10)

    second = manager.create_hold('Studio', '2025-06-10', '10:00', Decimal('2'))

    assert manager.get_hold(first.id) is None
    assert manager.get_hold(second.id) == second


def test_busy_calendar_blocks_holds(manager, calendar):
    calendar.add('Studio', '2025-06-10', '14:00', '16:00')

    with pytest.raises(HoldConflictError) as excinfo:
        manager.create_hold('Studio', '2025-06-10', '13:00', Decimal('2'))

    assert excinfo.value.detail == 'Studio is already booked from 14:00 to 16:00.'
    assert manager.create_hold('Studio', '2025-06-10', '16:00', Decimal('2'))


def test_malformed_start_time(manager):
    with pytest.raises(BookingValidationError):
        manager.create_hold('Studio', '2025-06-10', 'ten', Decimal('2'))


def test_verify_hold(manager):
    hold = manager.create_hold('Studio', '2025-06-10', '10:00', Decimal('2'))

    assert manager.verify_hold(hold.id, 'Studio', '2025-06-10', '10:00', Decimal('2')) == hold

    with pytest.raises(HoldMismatchError):
        manager.verify_hold(hold.id, 'Studio', '2025-06-10', '10:30', Decimal('2'))
    with pytest.raises(HoldMismatchError):
        manager.verify_hold(hold.id, 'Studio', '2025-06-10', '10:00', Decimal('3'))
    with pytest.raises(HoldNotFoundError):
        manager.verify_hold('hold_missing', 'Studio', '2025-06-10', '10:00', Decimal('2'))


def test_verify_expired_hold(manager, clock):
    hold = manager.create_hold('Studio', '2025-06-10', '10:00', Decimal('2'))
    clock.advance(minutes=11)

    with pytest.raises(HoldNotFoundError) as excinfo:
        manager.verify_hold(hold.id, 'Studio', '2025-06-10', '10:00', Decimal('2'))

    assert excinfo.value.message == 'Hold expired'


def test_ensure_slot_free_ignores_own_hold(manager):
    hold = manager.create_hold('Studio', '2025-06-10', '10:00', Decimal('2'))

    manager.ensure_slot_free('Studio', '2025-06-10', '10:00', Decimal('2'), ignore_hold_id=hold.id)
    with pytest.raises(HoldConflictError):
        manager.ensure_slot_free('Studio', '2025-06-10', '11:30', Decimal('1'))


def test_cancel_and_consume(manager):
    first = manager.create_hold('Studio', '2025-06-10', '10:00', Decimal('2'))
    second = manager.create_hold('Studio', '2025-06-10', '14:00', Decimal('2'))

    assert manager.cancel_hold(first.id) is True
    assert manager.cancel_hold(first.id) is False
    assert manager.consume_hold(second.id) is True
    assert manager.consume_hold(second.id) is False
    assert len(manager.store) == 0


def test_availability_grid(manager, calendar):
    manager.create_hold('Studio', '2025-06-10', '10:00', Decimal('2'))
    calendar.add('Studio', '2025-06-10', '15:00', '16:00')

    slots = {slot['startTime']: slot['available'] for slot in manager.availability('Studio', '2025-06-10', Decimal('1'))}

    assert len(slots) == 19
    assert slots['10:00'] is False
    assert slots['11:30'] is False
    assert slots['12:00'] is True
    assert slots['14:30'] is False
    assert slots['16:00'] is True
    assert slots['19:00'] is True


def test_store_sweep(clock):
    store = InMemoryHoldStore()
    manager = HoldManager(store=store, ttl=timedelta(minutes=5), clock=clock)
    manager.create_hold('Studio', '2025-06-10', '10:00', Decimal('1'))
    manager.create_hold('Studio', '2025-06-10', '12:00', Decimal('1'))

    clock.advance(minutes=6)

    assert store.sweep(clock()) == 2
    assert len(store) == 0


def test_concurrent_holds_for_same_slot(manager):
    def attempt(_):
        try:
            return manager.create_hold('Studio', '2025-06-10', '10:00', Decimal('2'))
        except HoldConflictError:
            return None

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(attempt, range(16)))

    assert len([hold for hold in results if hold is not None]) == 1


def test_injected_empty_store_is_used(clock):
    store = InMemoryHoldStore()
    manager = HoldManager(store=store, clock=clock)

    assert manager.store is store
    hold = manager.create_hold('Studio', '2025-06-10', '10:00', Decimal('1'))
    assert store.get(hold.id) == hold


def test_create_app_uses_injected_store(clock):
    store = InMemoryHoldStore()
    app = create_app(TestConfig, hold_store=store, clock=clock)

    assert app.extensions['studio_booking']['hold_manager'].store is store


def test_concurrent_holds_across_dates(manager):
    dates = [f"2025-06-{day:02d}" for day in range(10, 20)]

    def attempt(date):
        try:
            return manager.create_hold('Studio', date, '10:00', Decimal('2'))
        except HoldConflictError:
            return None

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(attempt, dates * 3))

    held = [hold for hold in results if hold is not None]
    assert sorted(hold.date for hold in held) == dates
    assert len(manager.store) == len(dates)
