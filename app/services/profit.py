"""Profit, margin and expense analytics for storefront orders.

Joins order line items against a per-product unit cost lookup to derive
cost of goods sold (COGS), then blends in manually recorded expenses:

    gross_profit = net_sales - COGS
    net_profit   = gross_profit - expenses
    roi          = net_profit / (COGS + expenses) * 100
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from app.models import DateWindow, Expense, Order, Product
from app.services.normalize import ZERO, money, ratio, to_decimal
from app.services.period import expenses_in_window, qualifying_orders

UNSPECIFIED = "Unspecified"


@dataclass(frozen=True)
class ProfitByDate:
    date: str
    revenue: Decimal
    cogs: Decimal
    expenses: Decimal
    gross_profit: Decimal
    net_profit: Decimal


@dataclass(frozen=True)
class ProductProfitability:
    product_id: int
    name: str
    revenue: Decimal
    cogs: Decimal
    units: int
    gross_profit: Decimal
    margin: Decimal


@dataclass(frozen=True)
class ExpenseBreakdown:
    """Expense total for one grouping key (category, month, source or interval)."""
    key: str
    total: Decimal
    count: int
    percentage: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class ProfitSummary:
    revenue: Decimal = Decimal("0.00")
    cogs: Decimal = Decimal("0.00")
    gross_profit: Decimal = Decimal("0.00")
    gross_margin: Decimal = Decimal("0.00")
    expenses: Decimal = Decimal("0.00")
    net_profit: Decimal = Decimal("0.00")
    net_margin: Decimal = Decimal("0.00")
    roi: Decimal = Decimal("0.00")
    by_date: list[ProfitByDate] = field(default_factory=list)
    by_product: list[ProductProfitability] = field(default_factory=list)
    expenses_by_category: list[ExpenseBreakdown] = field(default_factory=list)

    @property
    def is_profitable(self) -> bool:
        return self.net_profit > 0


@dataclass(frozen=True)
class ExpenseSummary:
    total: Decimal = Decimal("0.00")
    count: int = 0
    average: Decimal = Decimal("0.00")
    by_category: list[ExpenseBreakdown] = field(default_factory=list)
    by_month: list[ExpenseBreakdown] = field(default_factory=list)
    by_source: list[ExpenseBreakdown] = field(default_factory=list)
    recurring_total: Decimal = Decimal("0.00")
    recurring_count: int = 0
    recurring_by_interval: list[ExpenseBreakdown] = field(default_factory=list)


def cost_lookup_from_products(products: Iterable[Product]) -> dict[int, Decimal]:
    """Build the ``product_id -> unit_cost`` mapping from product records."""
    return {p.id: p.unit_cost for p in products}


def unit_cost(cost_lookup: Mapping, product_id: int) -> Decimal:
    return max(ZERO, to_decimal(cost_lookup.get(product_id)))


def order_cogs(order: Order, cost_lookup: Mapping) -> Decimal:
    """Sum of quantity x unit cost over the order's line items (missing cost = 0)."""
    return sum(
        (item.quantity * unit_cost(cost_lookup, item.product_id) for item in order.line_items),
        ZERO,
    )


def group_expenses(expenses: Sequence[Expense], key_func) -> list[ExpenseBreakdown]:
    """Group expenses by ``key_func``; sorted by total descending, with share of the grand total."""
    groups: dict[str, dict] = defaultdict(lambda: {"total": ZERO, "count": 0})
    grand_total = ZERO
    for e in expenses:
        g = groups[key_func(e)]
        g["total"] += e.amount
        g["count"] += 1
        grand_total += e.amount
    ranked = sorted(groups.items(), key=lambda x: x[1]["total"], reverse=True)
    return [
        ExpenseBreakdown(
            key=key,
            total=money(data["total"]),
            count=data["count"],
            percentage=ratio(data["total"], grand_total, 100),
        )
        for key, data in ranked
    ]


class ProfitAggregator:
    """Profit and loss over the qualifying orders and expenses of a window."""

    def summarize(
        self,
        orders: Sequence[Order],
        cost_lookup: Mapping,
        expenses: Sequence[Expense],
        window: DateWindow,
    ) -> ProfitSummary:
        valid = qualifying_orders(orders, window)
        window_expenses = expenses_in_window(expenses, window)

        revenue = sum((o.net_total for o in valid), ZERO)
        cogs = sum((order_cogs(o, cost_lookup) for o in valid), ZERO)
        total_expenses = sum((e.amount for e in window_expenses), ZERO)

        gross_profit = revenue - cogs
        net_profit = gross_profit - total_expenses

        return ProfitSummary(
            revenue=money(revenue),
            cogs=money(cogs),
            gross_profit=money(gross_profit),
            gross_margin=ratio(gross_profit, revenue, 100),
            expenses=money(total_expenses),
            net_profit=money(net_profit),
            net_margin=ratio(net_profit, revenue, 100),
            roi=ratio(net_profit, cogs + total_expenses, 100),
            by_date=self.by_date(valid, cost_lookup, window_expenses),
            by_product=self.by_product(valid, cost_lookup),
            expenses_by_category=group_expenses(window_expenses, lambda e: e.category.value),
        )

    @staticmethod
    def by_date(
        orders: Sequence[Order],
        cost_lookup: Mapping,
        expenses: Sequence[Expense],
    ) -> list[ProfitByDate]:
        """Per-day P&L; a day with expenses but no orders still gets a row."""
        days: dict[str, dict] = defaultdict(lambda: {
            "revenue": ZERO, "cogs": ZERO, "expenses": ZERO,
        })
        for o in orders:
            if o.created_at is None:
                continue
            d = days[o.created_at.date().isoformat()]
            d["revenue"] += o.net_total
            d["cogs"] += order_cogs(o, cost_lookup)
        for e in expenses:
            if e.date is None:
                continue
            days[e.date.isoformat()]["expenses"] += e.amount

        rows = []
        for key, d in sorted(days.items()):
            gross = d["revenue"] - d["cogs"]
            rows.append(ProfitByDate(
                date=key,
                revenue=money(d["revenue"]),
                cogs=money(d["cogs"]),
                expenses=money(d["expenses"]),
                gross_profit=money(gross),
                net_profit=money(gross - d["expenses"]),
            ))
        return rows

    @staticmethod
    def by_product(orders: Sequence[Order], cost_lookup: Mapping) -> list[ProductProfitability]:
        products: dict[int, dict] = defaultdict(lambda: {
            "name": "", "revenue": ZERO, "cogs": ZERO, "units": 0,
        })
        for o in orders:
            for item in o.line_items:
                p = products[item.product_id]
                p["name"] = item.name or p["name"]
                p["revenue"] += item.line_total
                p["cogs"] += item.quantity * unit_cost(cost_lookup, item.product_id)
                p["units"] += item.quantity

        rows = [
            ProductProfitability(
                product_id=pid,
                name=data["name"],
                revenue=money(data["revenue"]),
                cogs=money(data["cogs"]),
                units=data["units"],
                gross_profit=money(data["revenue"] - data["cogs"]),
                margin=ratio(data["revenue"] - data["cogs"], data["revenue"], 100),
            )
            for pid, data in products.items()
        ]
        rows.sort(key=lambda r: r.gross_profit, reverse=True)
        return rows


class ExpenseAnalyzer:
    """Breakdowns of manually recorded expenses."""

    def summarize(
        self,
        expenses: Sequence[Expense],
        window: Optional[DateWindow] = None,
    ) -> ExpenseSummary:
        selected = expenses_in_window(expenses, window) if window else list(expenses)
        total = sum((e.amount for e in selected), ZERO)
        recurring = [e for e in selected if e.recurring]

        return ExpenseSummary(
            total=money(total),
            count=len(selected),
            average=ratio(total, len(selected)),
            by_category=group_expenses(selected, lambda e: e.category.value),
            by_month=sorted(
                group_expenses(
                    [e for e in selected if e.date is not None],
                    lambda e: e.date.strftime("%Y-%m"),
                ),
                key=lambda b: b.key,
            ),
            by_source=group_expenses(selected, lambda e: e.source or UNSPECIFIED),
            recurring_total=money(sum((e.amount for e in recurring), ZERO)),
            recurring_count=len(recurring),
            recurring_by_interval=group_expenses(
                recurring, lambda e: e.recurring_interval or UNSPECIFIED,
            ),
        )
