"""
Display formatting helpers.

Currency uses Indian digit grouping (1,23,45,678.00) and the rupee symbol by
default; dates use the "28 Jan 2026" style.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

DEFAULT_CURRENCY_SYMBOL = "₹"

_COMPACT_UNITS = (
    (Decimal("10000000"), "Cr"),
    (Decimal("100000"), "L"),
    (Decimal("1000"), "K"),
)


def group_indian(digits: str) -> str:
    """Insert separators in a string of integer digits: last three, then pairs."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def _to_decimal(amount: Decimal | float | int) -> Decimal:
    return amount if isinstance(amount, Decimal) else Decimal(str(amount))


def format_number(number: Decimal | float | int) -> str:
    """1500000 -> 15,00,000"""
    value = _to_decimal(number).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}{group_indian(str(abs(value)))}"


def format_currency(
    amount: Decimal | float | int,
    symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> str:
    """1500.5 -> ₹1,500.50"""
    value = _to_decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, _, fraction = f"{abs(value):.2f}".partition(".")
    return f"{sign}{symbol}{group_indian(whole)}.{fraction}"


def format_compact_currency(
    amount: Decimal | float | int,
    symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> str:
    """150000 -> ₹1.5L, 25000000 -> ₹2.5Cr"""
    value = _to_decimal(amount)
    sign = "-" if value < 0 else ""
    value = abs(value)
    for threshold, unit in _COMPACT_UNITS:
        if value >= threshold:
            scaled = (value / threshold).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
            return f"{sign}{symbol}{scaled.normalize():f}{unit}"
    return f"{sign}{symbol}{value.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP).normalize():f}"


def format_date(value: date | datetime) -> str:
    """2026-01-28 -> 28 Jan 2026"""
    return value.strftime("%d %b %Y")


def format_datetime(value: datetime) -> str:
    """2026-01-28 14:30 -> 28 Jan 2026, 02:30 PM"""
    return value.strftime("%d %b %Y, %I:%M %p")


def format_short_date(value: date | datetime) -> str:
    """2026-01-28 -> 28/01/2026"""
    return value.strftime("%d/%m/%Y")
