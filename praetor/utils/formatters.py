"""
Formatting helpers for JSON payloads and PDF output.
"""
from decimal import Decimal, InvalidOperation
from datetime import date, datetime, timezone
from typing import Union, Optional


def to_number(value: Union[int, float, Decimal, str, None]) -> Optional[float]:
    """
    Convert a stored numeric value to a JSON number.

    Examples:
        to_number(Decimal('12.50')) -> 12.5
        to_number(None) -> None
    """
    if value is None:
        return None
    try:
        return float(Decimal(str(value)))
    except (InvalidOperation, ValueError, TypeError):
        return None


def epoch_ms(value: Optional[datetime]) -> Optional[int]:
    """
    Milliseconds since the epoch, the timestamp format of the public API.
    Naive datetimes (SQLite) are read as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def iso_date(value: Union[date, datetime, None]) -> Optional[str]:
    """YYYY-MM-DD or None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def money(value: Union[int, float, Decimal, None], decimals: int = 2) -> str:
    """
    Money with thousands separator and fixed decimals.

    Examples:
        money(Decimal('1500')) -> "1,500.00"
        money(None) -> "-"
    """
    if value is None:
        return "-"
    try:
        num = Decimal(str(value)).quantize(Decimal(10) ** -decimals)
    except (InvalidOperation, ValueError, TypeError):
        return "-"
    return f"{num:,.{decimals}f}"


def percent(value: Union[int, float, Decimal, None]) -> str:
    """Percentage without trailing zeros: 10.00 -> '10%'."""
    if value is None:
        return "-"
    num = Decimal(str(value)).normalize()
    text = format(num, 'f')
    return f"{text}%"
