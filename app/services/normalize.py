"""Defensive coercion of raw record fields.

Every aggregation boundary funnels numbers through ``safe_number`` so that
NaN/Infinity produced by dirty input never reaches a result object.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, Overflow
from typing import Any, Optional

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")
# Amounts of 10**16 or more are treated as malformed input.
MAX_EXPONENT = 15


def safe_number(value: Any) -> Any:
    """Return ``value`` unchanged when it is a finite number, else 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else 0.0
    return 0


def to_decimal(value: Any) -> Decimal:
    """Convert a raw amount (str/int/float/Decimal) into a finite Decimal."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, float) and not math.isfinite(value):
        return ZERO
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        logger.debug(f"Unparseable amount {value!r}, using 0")
        return ZERO
    if not result.is_finite() or (result and result.adjusted() > MAX_EXPONENT):
        return ZERO
    return result


def to_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def money(value: Any) -> Decimal:
    """Finite Decimal rounded to cents."""
    try:
        return safe_number(to_decimal(value)).quantize(CENT)
    except (InvalidOperation, Overflow):
        logger.debug(f"Amount {value!r} out of range, using 0")
        return ZERO.quantize(CENT)


def ratio(numerator: Any, denominator: Any, scale: int = 1) -> Decimal:
    """``numerator / denominator * scale`` rounded to cents, 0 on a zero denominator."""
    num = to_decimal(numerator)
    den = to_decimal(denominator)
    if den == 0:
        return ZERO.quantize(CENT)
    try:
        return safe_number(num / den * scale).quantize(CENT)
    except (InvalidOperation, Overflow):
        logger.debug(f"Ratio {numerator!r}/{denominator!r} out of range, using 0")
        return ZERO.quantize(CENT)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a timestamp; naive values are treated as UTC, garbage gives None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            logger.debug(f"Unparseable timestamp {value!r}")
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    dt = parse_datetime(value)
    return dt.date() if dt else None
