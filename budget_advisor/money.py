from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import ROUND_CEILING, ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")
CENT = Decimal("0.01")

AmountLike = Union[Decimal, float, int, str]


def coerce_amount(amount: AmountLike) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    try:
        return Decimal(str(amount))
    except (InvalidOperation, ValueError):
        logger.error("Unparsable amount %r, treating as NaN", amount)
        return Decimal("NaN")


def round2(amount: AmountLike) -> Decimal:
    """Round half-up to cents."""
    return coerce_amount(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def ceil2(amount: AmountLike) -> Decimal:
    return coerce_amount(amount).quantize(CENT, rounding=ROUND_CEILING)


def floor2(amount: AmountLike) -> Decimal:
    return coerce_amount(amount).quantize(CENT, rounding=ROUND_DOWN)


def month_start(value: date) -> date:
    return value.replace(day=1)


def shift_month(value: date, months: int) -> date:
    month_index = (value.year * 12 + value.month - 1) + months
    year = month_index // 12
    month = month_index % 12 + 1
    return date(year, month, 1)


def months_between(start: date, end: date) -> int:
    """Calendar-month difference, ignoring the day of month."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def iter_months(start_value: date, end_value: date) -> list[date]:
    months: list[date] = []
    cursor = month_start(start_value)
    end_month = month_start(end_value)
    while cursor <= end_month:
        months.append(cursor)
        cursor = shift_month(cursor, 1)
    return months


def parse_date(value: Union[date, str, None], fallback: Optional[date] = None) -> date:
    """Parse YYYY-MM-DD (or a date/datetime); unparsable input falls back to today."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        for fmt in ("%Y-%m-%d", "%Y-%m"):
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        # Unpadded dates such as 2025-3-7.
        parts = text.split("-")
        if len(parts) == 3 and all(part.isdigit() for part in parts):
            try:
                return date(int(parts[0]), int(parts[1]), int(parts[2]))
            except ValueError:
                pass
    resolved = fallback or date.today()
    logger.error("Invalid date %r, falling back to %s", value, resolved.isoformat())
    return resolved
