"""Short-horizon revenue forecast.

Fits an ordinary-least-squares slope to the daily revenue series and
projects ``mean + slope * (n + i - 1)`` for each future day, with a
+/- 1.96 sigma band (population standard deviation of the history).
This is a linear point estimate, not a time-series model.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Sequence, Union

from app.services.normalize import parse_date, safe_number, to_decimal
from app.services.sales import DailySales

MIN_HISTORY_POINTS = 7
DEFAULT_FORECAST_DAYS = 7
Z_95 = 1.96


@dataclass(frozen=True)
class RevenueForecastPoint:
    date: date
    projected: Decimal
    lower: Decimal
    upper: Decimal


HistoryPoint = Union[DailySales, tuple]


def _as_pair(point: HistoryPoint) -> tuple[date, float]:
    if isinstance(point, DailySales):
        day, revenue = point.date, point.net
    else:
        day, revenue = point
    return parse_date(day), float(safe_number(to_decimal(revenue)))


def _slope(values: Sequence[float]) -> float:
    n = len(values)
    x_mean = (n - 1) / 2
    y_mean = statistics.fmean(values)
    numerator = sum((i - x_mean) * (v - y_mean) for i, v in enumerate(values))
    denominator = sum((i - x_mean) ** 2 for i in range(n))
    return numerator / denominator if denominator > 0 else 0.0


def _cents(value: float) -> Decimal:
    return Decimal(str(round(safe_number(value), 2)))


class RevenueForecaster:
    def forecast(
        self,
        history: Sequence[HistoryPoint],
        forecast_days: int = DEFAULT_FORECAST_DAYS,
    ) -> list[RevenueForecastPoint]:
        """Project ``forecast_days`` days past the last history date.

        ``history`` is ordered oldest first, as ``(date, revenue)`` pairs or
        ``DailySales`` rows. Returns ``[]`` for fewer than 7 points.
        """
        if forecast_days < 0:
            raise ValueError(f"forecast_days must be >= 0, got {forecast_days}")
        pairs = [p for p in (_as_pair(h) for h in history) if p[0] is not None]
        if len(pairs) < MIN_HISTORY_POINTS:
            return []

        values = [v for _, v in pairs]
        n = len(values)
        mean = statistics.fmean(values)
        std = statistics.pstdev(values)
        slope = _slope(values)
        last = pairs[-1][0]

        points = []
        for i in range(1, forecast_days + 1):
            projected = max(0.0, mean + slope * (n + i - 1))
            lower = max(0.0, projected - Z_95 * std)
            upper = projected + Z_95 * std
            points.append(RevenueForecastPoint(
                date=last + timedelta(days=i),
                projected=_cents(projected),
                lower=_cents(lower),
                upper=_cents(upper),
            ))
        return points
