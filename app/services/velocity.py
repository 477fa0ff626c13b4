"""Sales velocity per product: daily series, trend and stock-out projection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence

from app.models import Order, Product
from app.services.normalize import parse_datetime, ratio
from app.services.period import qualifying

DEFAULT_PERIOD_DAYS = 30
TREND_THRESHOLD_PCT = 10


class Trend(str, Enum):
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


@dataclass(frozen=True)
class ProductVelocity:
    product_id: int
    name: str
    total_sales: int
    avg_daily_sales: Decimal
    trend: Trend
    change_pct: Decimal
    days_to_sell_out: Optional[int]
    stock_quantity: Optional[int]
    daily_sales: tuple[int, ...]  # index 0 = today


def _mean(values: Sequence[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def detect_trend(daily: Sequence[int]) -> tuple[Trend, Decimal]:
    """Compare the recent half of ``daily`` with the older half."""
    mid = len(daily) // 2
    recent = _mean(daily[:mid])
    older = _mean(daily[mid:])
    if older <= 0:
        return Trend.STABLE, Decimal("0.00")
    change = (recent - older) / older * 100
    if change > TREND_THRESHOLD_PCT:
        trend = Trend.INCREASING
    elif change < -TREND_THRESHOLD_PCT:
        trend = Trend.DECREASING
    else:
        trend = Trend.STABLE
    return trend, Decimal(str(round(change, 2)))


def days_to_sell_out(stock: Optional[int], total_sales: int, period_days: int) -> Optional[int]:
    """ceil(stock / avg_daily_sales) with avg = total_sales / period_days."""
    if stock is None or total_sales <= 0:
        return None
    if stock <= 0:
        return 0
    return -(-stock * period_days // total_sales)


class VelocityAnalyzer:
    """Builds a fixed-length daily sales series per product."""

    def analyze(
        self,
        orders: Sequence[Order],
        products: Sequence[Product],
        period_days: int = DEFAULT_PERIOD_DAYS,
        now: Optional[datetime] = None,
    ) -> list[ProductVelocity]:
        if period_days < 1:
            raise ValueError(f"period_days must be >= 1, got {period_days}")
        now = parse_datetime(now) if now else datetime.now(timezone.utc)

        catalog = {p.id: p for p in products}
        series = {pid: [0] * period_days for pid in catalog}

        for o in qualifying(orders):
            if o.created_at is None:
                continue
            days_ago = (now - o.created_at).days
            if not 0 <= days_ago < period_days:
                continue
            for item in o.line_items:
                daily = series.get(item.product_id)
                if daily is not None:
                    daily[days_ago] += item.quantity

        results = []
        for pid, daily in series.items():
            product = catalog[pid]
            total = sum(daily)
            trend, change = detect_trend(daily)
            results.append(ProductVelocity(
                product_id=pid,
                name=product.name,
                total_sales=total,
                avg_daily_sales=ratio(total, period_days),
                trend=trend,
                change_pct=change,
                days_to_sell_out=days_to_sell_out(product.stock_quantity, total, period_days),
                stock_quantity=product.stock_quantity,
                daily_sales=tuple(daily),
            ))

        results.sort(key=lambda v: v.total_sales, reverse=True)
        return results


def low_stock(velocities: Sequence[ProductVelocity], within_days: int = 14) -> list[ProductVelocity]:
    """Products projected to sell out within ``within_days``, soonest first."""
    at_risk = [
        v for v in velocities
        if v.days_to_sell_out is not None and v.days_to_sell_out <= within_days
    ]
    return sorted(at_risk, key=lambda v: v.days_to_sell_out)
