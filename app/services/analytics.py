"""Storefront analytics engine.

Ties the individual aggregators together into the dashboard report:
sales, profit and customer summaries for a window and its comparison
window, plus frequently-bought-together pairs, customer segments, product
velocity and a short revenue forecast.

Works with plain record collections (no store or DB dependency) so it can
be used as a pure calculation layer.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Sequence

from app.models import Customer, DateWindow, Expense, Order, Product
from app.services.basket import DEFAULT_MIN_SUPPORT, MarketBasketAnalyzer, ProductPair
from app.services.customers import CustomerAggregator, CustomerSummary
from app.services.export import ExportService
from app.services.forecast import DEFAULT_FORECAST_DAYS, RevenueForecaster, RevenueForecastPoint
from app.services.normalize import ratio
from app.services.period import calculate_growth, comparison_window, period_orders, sort_by_date
from app.services.profit import (
    ExpenseAnalyzer, ExpenseSummary, ProfitAggregator, ProfitSummary, cost_lookup_from_products,
)
from app.services.sales import SalesAggregator, SalesSummary
from app.services.segmentation import CustomerSegment, CustomerSegmenter
from app.services.velocity import DEFAULT_PERIOD_DAYS, ProductVelocity, VelocityAnalyzer

logger = logging.getLogger(__name__)

TOP_PAIRS_LIMIT = 10


@dataclass(frozen=True)
class Dataset:
    """Already-fetched store records."""
    orders: tuple[Order, ...] = ()
    customers: tuple[Customer, ...] = ()
    products: tuple[Product, ...] = ()
    expenses: tuple[Expense, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "Dataset":
        """Normalize raw record dicts; non-dict entries are skipped."""
        def load(key: str, record_type):
            return tuple(
                record_type.from_dict(r) for r in data.get(key) or [] if isinstance(r, dict)
            )

        return cls(
            orders=load("orders", Order),
            customers=load("customers", Customer),
            products=load("products", Product),
            expenses=load("expenses", Expense),
        )


@dataclass(frozen=True)
class DashboardMetrics:
    """Headline numbers with growth against the comparison window."""
    total_revenue: Decimal
    total_orders: int
    total_customers: int
    average_order_value: Decimal
    conversion_rate: Decimal
    revenue_growth: Decimal
    orders_growth: Decimal
    customers_growth: Decimal


@dataclass
class DashboardReport:
    """Complete analytics report."""
    window: DateWindow
    compare_window: DateWindow
    compare_mode: str
    currency: str
    metrics: DashboardMetrics
    sales: SalesSummary
    compare_sales: SalesSummary
    profit: ProfitSummary
    expenses: ExpenseSummary
    customers: CustomerSummary
    compare_customers: CustomerSummary
    frequently_bought_together: list[ProductPair] = field(default_factory=list)
    segments: list[CustomerSegment] = field(default_factory=list)
    velocity: list[ProductVelocity] = field(default_factory=list)
    forecast: list[RevenueForecastPoint] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AnalyticsEngine:
    """Storefront analytics engine."""

    def __init__(self):
        self.sales = SalesAggregator()
        self.profit = ProfitAggregator()
        self.expense_analyzer = ExpenseAnalyzer()
        self.customers = CustomerAggregator()
        self.basket = MarketBasketAnalyzer()
        self.segmenter = CustomerSegmenter()
        self.velocity = VelocityAnalyzer()
        self.forecaster = RevenueForecaster()

    # ── Full Report ─────────────────────────────────────

    def generate_report(
        self,
        orders: Sequence[Order],
        customers: Sequence[Customer],
        products: Sequence[Product],
        expenses: Sequence[Expense],
        window: DateWindow,
        compare: str = "previous",
        now: Optional[datetime] = None,
        min_support: int = DEFAULT_MIN_SUPPORT,
        top_pairs: int = TOP_PAIRS_LIMIT,
        period_days: int = DEFAULT_PERIOD_DAYS,
        forecast_days: int = DEFAULT_FORECAST_DAYS,
    ) -> DashboardReport:
        """Generate the dashboard report for ``window``."""
        previous = comparison_window(window, compare)

        sales = self.sales.summarize(orders, window)
        compare_sales = self.sales.summarize(orders, previous)
        customer_summary = self.customers.summarize(customers, orders, window)
        compare_customers = self.customers.summarize(customers, orders, previous)
        profit = self.profit.summarize(
            orders, cost_lookup_from_products(products), expenses, window,
        )

        report = DashboardReport(
            window=window,
            compare_window=previous,
            compare_mode=compare,
            currency=orders[0].currency if orders else "",
            metrics=self.dashboard_metrics(
                sales, compare_sales, customer_summary, compare_customers,
            ),
            sales=sales,
            compare_sales=compare_sales,
            profit=profit,
            expenses=self.expense_analyzer.summarize(expenses, window),
            customers=customer_summary,
            compare_customers=compare_customers,
            frequently_bought_together=self.basket.analyze(orders, min_support, limit=top_pairs),
            segments=self.segmenter.segment(orders, now=now),
            velocity=self.velocity.analyze(orders, products, period_days, now=now),
            forecast=self.forecaster.forecast(sales.by_day, forecast_days),
        )
        logger.info(
            f"Report generated for {window.start.isoformat()}..{window.end.isoformat()}: "
            f"{sales.total_orders} orders, net {sales.net_sales}"
        )
        return report

    @staticmethod
    def dashboard_metrics(
        sales: SalesSummary,
        compare_sales: SalesSummary,
        customers: CustomerSummary,
        compare_customers: CustomerSummary,
    ) -> DashboardMetrics:
        return DashboardMetrics(
            total_revenue=sales.net_sales,
            total_orders=sales.total_orders,
            total_customers=customers.total_customers,
            average_order_value=sales.average_order_value,
            conversion_rate=ratio(sales.total_orders, customers.total_customers, 100),
            revenue_growth=calculate_growth(sales.net_sales, compare_sales.net_sales),
            orders_growth=calculate_growth(sales.total_orders, compare_sales.total_orders),
            customers_growth=calculate_growth(
                customers.new_customers, compare_customers.new_customers,
            ),
        )

    # ── Export ──────────────────────────────────────────

    def export_rows(
        self,
        kind: str,
        orders: Sequence[Order],
        customers: Sequence[Customer],
        products: Sequence[Product],
        window: DateWindow,
        period_days: int = DEFAULT_PERIOD_DAYS,
        now: Optional[datetime] = None,
    ) -> list[dict]:
        """Row dicts for one export type: sales, orders, customers or products."""
        if kind == "sales":
            return ExportService.sales_summary_rows(self.sales.summarize(orders, window))
        if kind == "orders":
            return ExportService.orders_rows(sort_by_date(period_orders(orders, window)))
        if kind == "customers":
            return ExportService.customers_rows(customers)
        if kind == "products":
            velocities = self.velocity.analyze(orders, products, period_days, now=now)
            return ExportService.products_rows(products, velocities)
        raise ValueError(f"Invalid export type: {kind!r}")

    def report_to_dict(self, report: DashboardReport) -> dict:
        """Convert report to JSON-serializable dict."""
        result = to_primitive(report)
        result["sales"]["top_products"] = to_primitive(report.sales.top_products)
        return result


def to_primitive(value: Any) -> Any:
    """Recursively turn result objects into JSON-ready primitives."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_primitive(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_primitive(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_primitive(v) for v in value]
    return value


def records_to_dicts(items: Sequence[Any]) -> list[dict]:
    return [to_primitive(i) for i in items]
