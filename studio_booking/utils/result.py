from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from studio_booking.services.errors import BookingError

T = TypeVar('T')


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome of a booking operation"""
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying a typed booking error"""
    error: BookingError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
