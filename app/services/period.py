"""Date-window and status filtering shared by every aggregator."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from app.models import DateWindow, Expense, Order
from app.services.normalize import ratio, to_decimal

MAX_WINDOW_DAYS = 365


def in_window(ts: Optional[datetime | date], window: DateWindow) -> bool:
    """True when ``ts`` falls between start-of-day(start) and end-of-day(end)."""
    if ts is None:
        return False
    day = ts.date() if isinstance(ts, datetime) else ts
    return window.contains(day)


def period_orders(orders: Iterable[Order], window: DateWindow) -> list[Order]:
    """Orders of any status created inside the window."""
    return [o for o in orders if in_window(o.created_at, window)]


def qualifying(orders: Iterable[Order]) -> list[Order]:
    return [o for o in orders if o.is_qualifying]


def qualifying_orders(orders: Iterable[Order], window: DateWindow) -> list[Order]:
    return [o for o in orders if o.is_qualifying and in_window(o.created_at, window)]


def expenses_in_window(expenses: Iterable[Expense], window: DateWindow) -> list[Expense]:
    return [e for e in expenses if in_window(e.date, window)]


def orders_by_status(orders: Iterable[Order]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for o in orders:
        counts[o.status.value] = counts.get(o.status.value, 0) + 1
    return counts


def _years_back(day: date, years: int = 1) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:  # Feb 29
        return day.replace(year=day.year - years, day=28)


def comparison_window(window: DateWindow, mode: str = "previous") -> DateWindow:
    """Window to compare against: the preceding period or the same dates last year."""
    if mode == "previous":
        end = window.start - timedelta(days=1)
        return DateWindow(start=end - timedelta(days=window.days - 1), end=end)
    if mode == "year":
        return DateWindow(start=_years_back(window.start), end=_years_back(window.end))
    raise ValueError(f"Invalid compare mode: {mode!r} (expected 'previous' or 'year')")


def last_n_days(days: int, today: Optional[date] = None) -> DateWindow:
    """Dashboard window ending today and spanning ``days`` days."""
    if days < 1 or days > MAX_WINDOW_DAYS:
        raise ValueError(f"days must be between 1 and {MAX_WINDOW_DAYS}, got {days}")
    end = today or date.today()
    return DateWindow(start=end - timedelta(days=days - 1), end=end)


def calculate_growth(current, previous) -> Decimal:
    """Percent change from ``previous`` to ``current``."""
    current = to_decimal(current)
    previous = to_decimal(previous)
    if previous == 0:
        return Decimal("100.00") if current > 0 else Decimal("0.00")
    return ratio(current - previous, previous, 100)


def sort_by_date(orders: Sequence[Order]) -> list[Order]:
    """Oldest first; orders without a timestamp are dropped."""
    return sorted((o for o in orders if o.created_at is not None), key=lambda o: o.created_at)
