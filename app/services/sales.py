"""Sales aggregation: scalar totals and dimensional breakdowns for a window."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Sequence

from app.models import DateWindow, Order
from app.services.normalize import ZERO, money, ratio
from app.services.period import orders_by_status, period_orders, qualifying

TOP_PRODUCTS_LIMIT = 10
UNKNOWN = "Unknown"


@dataclass(frozen=True)
class DailySales:
    date: str
    gross: Decimal
    net: Decimal
    orders: int
    items: int


@dataclass(frozen=True)
class HourlySales:
    hour: int
    orders: int
    revenue: Decimal


@dataclass(frozen=True)
class CountrySales:
    country: str
    total: Decimal
    orders: int


@dataclass(frozen=True)
class PaymentMethodSales:
    method: str
    total: Decimal
    count: int


@dataclass(frozen=True)
class CategorySales:
    category: str
    total: Decimal
    quantity: int


@dataclass(frozen=True)
class ProductSales:
    product_id: int
    name: str
    total: Decimal
    quantity: int


@dataclass(frozen=True)
class SalesSummary:
    """Sales figures for one date window."""
    gross_sales: Decimal = Decimal("0.00")
    net_sales: Decimal = Decimal("0.00")
    total_refunds: Decimal = Decimal("0.00")
    total_shipping: Decimal = Decimal("0.00")
    total_tax: Decimal = Decimal("0.00")
    total_discount: Decimal = Decimal("0.00")
    items_sold: int = 0
    total_orders: int = 0
    average_order_value: Decimal = Decimal("0.00")
    avg_items_per_order: Decimal = Decimal("0.00")
    orders_by_status: dict[str, int] = field(default_factory=dict)
    by_day: list[DailySales] = field(default_factory=list)
    by_hour: list[HourlySales] = field(default_factory=list)
    by_country: list[CountrySales] = field(default_factory=list)
    by_payment_method: list[PaymentMethodSales] = field(default_factory=list)
    by_category: list[CategorySales] = field(default_factory=list)
    by_product: list[ProductSales] = field(default_factory=list)

    @property
    def top_products(self) -> list[ProductSales]:
        return self.by_product[:TOP_PRODUCTS_LIMIT]

    def daily_net_revenue(self) -> list[tuple[str, Decimal]]:
        """``(date, net)`` series used by the forecaster."""
        return [(d.date, d.net) for d in self.by_day]


class SalesAggregator:
    """Computes sales totals over the qualifying orders of a window."""

    def summarize(self, orders: Sequence[Order], window: DateWindow) -> SalesSummary:
        in_period = period_orders(orders, window)
        valid = qualifying(in_period)

        gross = net = refunds = shipping = tax = discount = ZERO
        items_sold = 0
        for o in valid:
            gross += o.totals.grand_total
            net += o.net_total
            refunds += o.refund_total
            shipping += o.totals.shipping
            tax += o.totals.tax
            discount += o.totals.discount
            items_sold += o.item_count

        total_orders = len(valid)
        return SalesSummary(
            gross_sales=money(gross),
            net_sales=money(net),
            total_refunds=money(refunds),
            total_shipping=money(shipping),
            total_tax=money(tax),
            total_discount=money(discount),
            items_sold=items_sold,
            total_orders=total_orders,
            average_order_value=ratio(net, total_orders),
            avg_items_per_order=ratio(items_sold, total_orders),
            orders_by_status=orders_by_status(in_period),
            by_day=self.by_day(valid),
            by_hour=self.by_hour(valid),
            by_country=self.by_country(valid),
            by_payment_method=self.by_payment_method(valid),
            by_category=self.by_category(valid),
            by_product=self.by_product(valid),
        )

    # ── Breakdowns ──────────────────────────────────────

    @staticmethod
    def by_day(orders: Sequence[Order]) -> list[DailySales]:
        days: dict[str, dict] = defaultdict(lambda: {
            "gross": ZERO, "net": ZERO, "orders": 0, "items": 0,
        })
        for o in orders:
            if o.created_at is None:
                continue
            d = days[o.created_at.date().isoformat()]
            d["gross"] += o.totals.grand_total
            d["net"] += o.net_total
            d["orders"] += 1
            d["items"] += o.item_count
        return [
            DailySales(
                date=key,
                gross=money(d["gross"]),
                net=money(d["net"]),
                orders=d["orders"],
                items=d["items"],
            )
            for key, d in sorted(days.items())
        ]

    @staticmethod
    def by_hour(orders: Sequence[Order]) -> list[HourlySales]:
        hours = {h: {"orders": 0, "revenue": ZERO} for h in range(24)}
        for o in orders:
            if o.created_at is None:
                continue
            h = hours[o.created_at.hour]
            h["orders"] += 1
            h["revenue"] += o.net_total
        return [
            HourlySales(hour=h, orders=data["orders"], revenue=money(data["revenue"]))
            for h, data in sorted(hours.items())
        ]

    @staticmethod
    def by_country(orders: Sequence[Order]) -> list[CountrySales]:
        countries: dict[str, dict] = defaultdict(lambda: {"total": ZERO, "orders": 0})
        for o in orders:
            c = countries[o.billing.country or UNKNOWN]
            c["total"] += o.net_total
            c["orders"] += 1
        ranked = sorted(countries.items(), key=lambda x: x[1]["total"], reverse=True)
        return [
            CountrySales(country=country, total=money(data["total"]), orders=data["orders"])
            for country, data in ranked
        ]

    @staticmethod
    def by_payment_method(orders: Sequence[Order]) -> list[PaymentMethodSales]:
        methods: dict[str, dict] = defaultdict(lambda: {"total": ZERO, "count": 0})
        for o in orders:
            m = methods[o.payment_method_label or UNKNOWN]
            m["total"] += o.net_total
            m["count"] += 1
        ranked = sorted(methods.items(), key=lambda x: x[1]["total"], reverse=True)
        return [
            PaymentMethodSales(method=method, total=money(data["total"]), count=data["count"])
            for method, data in ranked
        ]

    @staticmethod
    def by_category(orders: Sequence[Order]) -> list[CategorySales]:
        categories: dict[str, dict] = defaultdict(lambda: {"total": ZERO, "quantity": 0})
        for o in orders:
            for item in o.line_items:
                c = categories[item.category]
                c["total"] += item.line_total
                c["quantity"] += item.quantity
        ranked = sorted(categories.items(), key=lambda x: x[1]["total"], reverse=True)
        return [
            CategorySales(category=cat, total=money(data["total"]), quantity=data["quantity"])
            for cat, data in ranked
        ]

    @staticmethod
    def by_product(orders: Sequence[Order]) -> list[ProductSales]:
        products: dict[int, dict] = defaultdict(lambda: {"name": "", "total": ZERO, "quantity": 0})
        for o in orders:
            for item in o.line_items:
                p = products[item.product_id]
                p["name"] = item.name or p["name"]
                p["total"] += item.line_total
                p["quantity"] += item.quantity
        ranked = sorted(products.items(), key=lambda x: x[1]["total"], reverse=True)
        return [
            ProductSales(
                product_id=pid,
                name=data["name"],
                total=money(data["total"]),
                quantity=data["quantity"],
            )
            for pid, data in ranked
        ]
