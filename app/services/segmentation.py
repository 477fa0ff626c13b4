"""RFM-style customer segmentation.

Each purchasing customer (guests excluded) lands in exactly one segment;
rules are checked in order and the first match wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional, Sequence

from app.models import Order
from app.services.normalize import ZERO, money, parse_datetime, ratio
from app.services.period import qualifying


@dataclass(frozen=True)
class CustomerStats:
    customer_id: int
    last_order: datetime
    order_count: int
    total_spent: Decimal

    def days_since_last_order(self, now: datetime) -> int:
        return (now - self.last_order).days


@dataclass(frozen=True)
class SegmentRule:
    key: str
    label: str
    description: str
    matches: Callable[[int, int, Decimal], bool]  # (days, order_count, total_spent)


SEGMENT_RULES: tuple[SegmentRule, ...] = (
    SegmentRule(
        "champions", "Champions", "Recent, frequent, high spenders",
        lambda days, n, spent: days <= 30 and n >= 3 and spent >= 200,
    ),
    SegmentRule(
        "loyal", "Loyal Customers", "Regular buyers",
        lambda days, n, spent: n >= 3 and days <= 90,
    ),
    SegmentRule(
        "potential", "Potential Loyalists", "Recent customers with potential",
        lambda days, n, spent: days <= 60 and n >= 1,
    ),
    SegmentRule(
        "at_risk", "At Risk", "Haven't purchased recently",
        lambda days, n, spent: days <= 180,
    ),
    SegmentRule(
        "lost", "Lost", "No activity in long time",
        lambda days, n, spent: True,
    ),
)


@dataclass(frozen=True)
class CustomerSegment:
    key: str
    segment: str
    description: str
    count: int
    revenue: Decimal
    avg_order_value: Decimal


def customer_stats(orders: Sequence[Order]) -> dict[int, CustomerStats]:
    """Recency, frequency and monetary totals per registered customer."""
    acc: dict[int, dict] = {}
    for o in qualifying(orders):
        if o.is_guest or o.created_at is None:
            continue
        s = acc.setdefault(o.customer_id, {"last": o.created_at, "count": 0, "spent": ZERO})
        if o.created_at > s["last"]:
            s["last"] = o.created_at
        s["count"] += 1
        s["spent"] += o.totals.grand_total
    return {
        cid: CustomerStats(cid, s["last"], s["count"], s["spent"])
        for cid, s in acc.items()
    }


def classify(stats: CustomerStats, now: datetime,
             rules: Sequence[SegmentRule] = SEGMENT_RULES) -> SegmentRule:
    days = stats.days_since_last_order(now)
    for rule in rules:
        if rule.matches(days, stats.order_count, stats.total_spent):
            return rule
    return rules[-1]


class CustomerSegmenter:
    """Buckets customers into Champions / Loyal / Potential / At Risk / Lost."""

    def __init__(self, rules: Sequence[SegmentRule] = SEGMENT_RULES):
        self.rules = rules

    def segment(
        self,
        orders: Sequence[Order],
        now: Optional[datetime] = None,
    ) -> list[CustomerSegment]:
        now = parse_datetime(now) if now else datetime.now(timezone.utc)
        totals = {r.key: {"count": 0, "revenue": ZERO} for r in self.rules}

        for stats in customer_stats(orders).values():
            rule = classify(stats, now, self.rules)
            totals[rule.key]["count"] += 1
            totals[rule.key]["revenue"] += stats.total_spent

        return [
            CustomerSegment(
                key=r.key,
                segment=r.label,
                description=r.description,
                count=totals[r.key]["count"],
                revenue=money(totals[r.key]["revenue"]),
                avg_order_value=ratio(totals[r.key]["revenue"], totals[r.key]["count"]),
            )
            for r in self.rules
            if totals[r.key]["count"] > 0
        ]
