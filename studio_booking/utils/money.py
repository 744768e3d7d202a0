from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal('0.01')


def to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_cents(amount: Union[Decimal, int, float, str]) -> int:
    """Convert a dollar amount to integer cents, rounding half up"""
    cents = (to_decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return int(cents)


def to_json_number(amount: Decimal) -> Union[int, float]:
    """Render a Decimal as an int when whole, else as a 2dp float"""
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount.quantize(CENT, rounding=ROUND_HALF_UP))


def format_hours(hours: Decimal) -> str:
    value = to_json_number(hours)
    return f"{value} hour{'' if hours == 1 else 's'}"
