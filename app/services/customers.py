"""Customer analytics: new vs returning, attribution, retention and LTV."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Sequence

from app.models import Customer, DateWindow, Order
from app.services.attribution import DEFAULT_RULES, DEFAULT_SOURCE, AttributionRule, match_rule
from app.services.normalize import ZERO, money, ratio
from app.services.period import in_window, qualifying, qualifying_orders, sort_by_date

TOP_CUSTOMERS_LIMIT = 10
NEW_CUSTOMERS = "New Customers"
RETURNING_CUSTOMERS = "Returning Customers"


@dataclass(frozen=True)
class SourceAttribution:
    source: str
    count: int
    revenue: Decimal
    paid: bool = False


@dataclass(frozen=True)
class CustomerGroup:
    type: str
    count: int
    revenue: Decimal


@dataclass(frozen=True)
class TopCustomer:
    id: int
    name: str
    total_spent: Decimal
    orders_count: int


@dataclass(frozen=True)
class CustomerSummary:
    total_customers: int = 0
    new_customers: int = 0
    returning_customers: int = 0
    guest_orders: int = 0
    new_customers_from_ads: int = 0
    customer_retention: Decimal = Decimal("0.00")
    avg_orders_per_customer: Decimal = Decimal("0.00")
    avg_customer_lifetime_value: Decimal = Decimal("0.00")
    new_vs_returning: list[CustomerGroup] = field(default_factory=list)
    new_customers_by_date: list[tuple[str, int]] = field(default_factory=list)
    attribution: list[SourceAttribution] = field(default_factory=list)
    customers_by_country: list[tuple[str, int]] = field(default_factory=list)
    top_customers: list[TopCustomer] = field(default_factory=list)


def first_qualifying_order_dates(orders: Iterable[Order]) -> dict[int, datetime]:
    """Earliest qualifying order timestamp per registered customer, over full history."""
    firsts: dict[int, datetime] = {}
    for o in sort_by_date(qualifying(orders)):
        if not o.is_guest and o.customer_id not in firsts:
            firsts[o.customer_id] = o.created_at
    return firsts


class CustomerAggregator:
    """Customer metrics for a window.

    ``orders`` must be the full order history: whether a customer is new
    depends on their first qualifying order ever, not the first one inside
    the window.
    """

    def __init__(self, rules: Sequence[AttributionRule] = DEFAULT_RULES):
        self.rules = rules

    def summarize(
        self,
        customers: Sequence[Customer],
        orders: Sequence[Order],
        window: DateWindow,
    ) -> CustomerSummary:
        period = qualifying_orders(orders, window)
        firsts = first_qualifying_order_dates(orders)

        new_ids: set[int] = set()
        returning_ids: set[int] = set()
        for o in period:
            first = firsts.get(o.customer_id)
            if o.is_guest or first is None:
                continue
            if in_window(first, window):
                new_ids.add(o.customer_id)
            else:
                returning_ids.add(o.customer_id)

        new_revenue = returning_revenue = ZERO
        for o in period:
            if o.customer_id in new_ids:
                new_revenue += o.net_total
            elif o.customer_id in returning_ids:
                returning_revenue += o.net_total

        sources = self.source_attribution(period)
        active = len(new_ids) + len(returning_ids)
        lifetime_total = sum((c.total_spent for c in customers), ZERO)

        return CustomerSummary(
            total_customers=len(customers),
            new_customers=len(new_ids),
            returning_customers=len(returning_ids),
            guest_orders=sum(1 for o in period if o.is_guest),
            new_customers_from_ads=sum(s.count for s in sources if s.paid),
            customer_retention=ratio(
                sum(1 for c in customers if c.orders_count > 1), len(customers), 100,
            ),
            avg_orders_per_customer=ratio(len(period), active),
            avg_customer_lifetime_value=ratio(lifetime_total, len(customers)),
            new_vs_returning=[
                CustomerGroup(NEW_CUSTOMERS, len(new_ids), money(new_revenue)),
                CustomerGroup(RETURNING_CUSTOMERS, len(returning_ids), money(returning_revenue)),
            ],
            new_customers_by_date=self._new_by_date(new_ids, firsts),
            attribution=sources,
            customers_by_country=self._by_country(customers),
            top_customers=self._top_customers(customers),
        )

    def source_attribution(self, orders: Sequence[Order]) -> list[SourceAttribution]:
        """Order count and net revenue per resolved source label."""
        sources: dict[str, dict] = defaultdict(lambda: {"count": 0, "revenue": ZERO, "paid": False})
        for o in orders:
            rule = match_rule(o, self.rules)
            s = sources[rule.label if rule else DEFAULT_SOURCE]
            s["count"] += 1
            s["revenue"] += o.net_total
            s["paid"] = s["paid"] or bool(rule and rule.paid)
        ranked = sorted(sources.items(), key=lambda x: x[1]["revenue"], reverse=True)
        return [
            SourceAttribution(
                source=label,
                count=data["count"],
                revenue=money(data["revenue"]),
                paid=data["paid"],
            )
            for label, data in ranked
        ]

    @staticmethod
    def _new_by_date(new_ids: set[int], firsts: dict[int, datetime]) -> list[tuple[str, int]]:
        counts: dict[str, int] = defaultdict(int)
        for cid in new_ids:
            counts[firsts[cid].date().isoformat()] += 1
        return sorted(counts.items())

    @staticmethod
    def _by_country(customers: Sequence[Customer]) -> list[tuple[str, int]]:
        counts: dict[str, int] = defaultdict(int)
        for c in customers:
            counts[c.country or "Unknown"] += 1
        return sorted(counts.items(), key=lambda x: x[1], reverse=True)

    @staticmethod
    def _top_customers(customers: Sequence[Customer]) -> list[TopCustomer]:
        ranked = sorted(
            (c for c in customers if c.orders_count > 0),
            key=lambda c: c.total_spent,
            reverse=True,
        )
        return [
            TopCustomer(
                id=c.id,
                name=c.name or c.email,
                total_spent=money(c.total_spent),
                orders_count=c.orders_count,
            )
            for c in ranked[:TOP_CUSTOMERS_LIMIT]
        ]
