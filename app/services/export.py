"""Data export service — CSV, JSON, TSV."""

import csv
import io
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence

from app.models import Customer, Order, Product
from app.services.sales import SalesSummary
from app.services.velocity import ProductVelocity


class DecimalEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


def _cell(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class ExportService:
    """Export report rows in various formats."""

    @staticmethod
    def to_csv(rows: list[dict], columns: list[str] | None = None) -> str:
        if not rows:
            return ""
        cols = columns or list(rows[0].keys())
        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow({k: _cell(v) for k, v in row.items()})
        return buf.getvalue()

    @staticmethod
    def to_json(rows: list[dict], pretty: bool = False) -> str:
        indent = 2 if pretty else None
        return json.dumps(rows, cls=DecimalEncoder, ensure_ascii=False, indent=indent)

    @staticmethod
    def to_tsv(rows: list[dict], columns: list[str] | None = None) -> str:
        """TSV format — Excel compatible when saved as .tsv."""
        if not rows:
            return ""
        cols = columns or list(rows[0].keys())
        lines = ["\t".join(cols)]
        for row in rows:
            lines.append("\t".join(str(_cell(row.get(c, ""))) for c in cols))
        return "\n".join(lines)

    # ── Row builders ────────────────────────────────────

    @staticmethod
    def sales_summary_rows(summary: SalesSummary) -> list[dict]:
        """One row per day of the window."""
        return [
            {
                "Date": d.date,
                "Orders": d.orders,
                "Items": d.items,
                "Gross Sales": d.gross,
                "Net Sales": d.net,
            }
            for d in summary.by_day
        ]

    @staticmethod
    def orders_rows(orders: Sequence[Order]) -> list[dict]:
        return [
            {
                "Order #": o.id,
                "Date": o.created_at.isoformat() if o.created_at else "",
                "Status": o.status.value,
                "Customer": o.billing.name or ("Guest" if o.is_guest else o.customer_id),
                "Email": o.billing.email,
                "Country": o.billing.country,
                "Items": o.item_count,
                "Shipping": o.totals.shipping,
                "Tax": o.totals.tax,
                "Discount": o.totals.discount,
                "Total": o.totals.grand_total,
                "Refunded": o.refund_total,
                "Net Total": o.net_total,
                "Payment Method": o.payment_method_label,
            }
            for o in orders
        ]

    @staticmethod
    def customers_rows(customers: Sequence[Customer]) -> list[dict]:
        return [
            {
                "ID": c.id,
                "Name": c.name,
                "Email": c.email,
                "Country": c.country,
                "Orders": c.orders_count,
                "Total Spent": c.total_spent,
                "Joined": c.created_at.date().isoformat() if c.created_at else "",
            }
            for c in customers
        ]

    @staticmethod
    def products_rows(
        products: Sequence[Product],
        velocities: Optional[Sequence[ProductVelocity]] = None,
    ) -> list[dict]:
        by_id = {v.product_id: v for v in velocities or []}
        rows = []
        for p in products:
            v = by_id.get(p.id)
            rows.append({
                "ID": p.id,
                "Name": p.name,
                "Categories": ", ".join(p.categories),
                "Price": p.unit_price,
                "Unit Cost": p.unit_cost,
                "Margin %": (
                    round(float((p.unit_price - p.unit_cost) / p.unit_price * 100), 1)
                    if p.unit_price > 0 else 0
                ),
                "Stock": "" if p.stock_quantity is None else p.stock_quantity,
                "Avg Daily Sales": v.avg_daily_sales if v else "",
                "Days To Sell Out": (
                    v.days_to_sell_out if v and v.days_to_sell_out is not None else ""
                ),
            })
        return rows
