"""Storefront record types consumed by the analytics engine.

Records are read-only snapshots of store data. Each ``from_dict`` accepts the
documented field names as well as the raw store (WooCommerce) key names, and
coerces every field defensively: a malformed value becomes its default
instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from app.services.normalize import (
    ZERO, parse_date, parse_datetime, to_decimal, to_int,
)

UNCATEGORIZED = "Uncategorized"
CATEGORY_META_KEY = "_category"
COST_META_KEYS = ("_cost", "_wc_cog_cost")


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    ON_HOLD = "on-hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "OrderStatus":
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN


# Statuses that count toward net sales, profit and customer activity.
QUALIFYING_STATUSES = frozenset({
    OrderStatus.COMPLETED, OrderStatus.PROCESSING, OrderStatus.ON_HOLD,
})


class ExpenseCategory(str, Enum):
    MARKETING = "Marketing"
    ADVERTISING = "Advertising"
    SHIPPING = "Shipping"
    SOFTWARE = "Software"
    OPERATIONS = "Operations"
    SALARIES = "Salaries"
    RENT = "Rent"
    UTILITIES = "Utilities"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Any) -> "ExpenseCategory":
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.OTHER


def _meta_pairs(raw: Any) -> tuple[tuple[str, Any], ...]:
    """Flatten ``[{key, value}]`` lists or plain mappings into key/value pairs."""
    if isinstance(raw, dict):
        return tuple((str(k), v) for k, v in raw.items())
    pairs = []
    for entry in raw or []:
        if isinstance(entry, dict) and "key" in entry:
            pairs.append((str(entry["key"]), entry.get("value")))
    return tuple(pairs)


def _meta_value(pairs: tuple[tuple[str, Any], ...], key: str) -> Any:
    for k, v in pairs:
        if k == key:
            return v
    return None


@dataclass(frozen=True)
class LineItem:
    product_id: int
    name: str = ""
    quantity: int = 0
    line_total: Decimal = ZERO
    category: str = UNCATEGORIZED

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        meta = _meta_pairs(data.get("meta_data"))
        category = data.get("category") or _meta_value(meta, CATEGORY_META_KEY)
        return cls(
            product_id=to_int(data.get("product_id")),
            name=str(data.get("name") or ""),
            quantity=max(0, to_int(data.get("quantity"))),
            line_total=to_decimal(data.get("line_total", data.get("total"))),
            category=str(category) if category else UNCATEGORIZED,
        )


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    shipping: Decimal = ZERO
    discount: Decimal = ZERO
    grand_total: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: dict, fallback: Optional[dict] = None) -> "OrderTotals":
        """Read nested ``totals`` or, failing that, flat store keys from ``fallback``."""
        fb = fallback or {}

        def pick(name: str, alias: str) -> Decimal:
            if name in data:
                return to_decimal(data[name])
            return to_decimal(fb.get(alias))

        return cls(
            subtotal=pick("subtotal", "subtotal"),
            tax=pick("tax", "total_tax"),
            shipping=pick("shipping", "shipping_total"),
            discount=pick("discount", "discount_total"),
            grand_total=pick("grand_total", "total"),
        )


@dataclass(frozen=True)
class Refund:
    amount: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: dict) -> "Refund":
        return cls(amount=to_decimal(data.get("amount", data.get("total"))))


@dataclass(frozen=True)
class Billing:
    country: str = ""
    email: str = ""
    name: str = ""

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Billing":
        data = data if isinstance(data, dict) else {}
        name = data.get("name")
        if name is None:
            name = f"{data.get('first_name', '')} {data.get('last_name', '')}".strip()
        return cls(
            country=str(data.get("country") or ""),
            email=str(data.get("email") or ""),
            name=str(name or ""),
        )


@dataclass(frozen=True)
class Order:
    id: int
    created_at: Optional[datetime]
    status: OrderStatus
    customer_id: int = 0
    line_items: tuple[LineItem, ...] = ()
    totals: OrderTotals = field(default_factory=OrderTotals)
    refunds: tuple[Refund, ...] = ()
    billing: Billing = field(default_factory=Billing)
    payment_method_label: str = ""
    attribution_meta: tuple[tuple[str, Any], ...] = ()
    currency: str = ""

    @property
    def is_guest(self) -> bool:
        return self.customer_id <= 0

    @property
    def is_qualifying(self) -> bool:
        return self.status in QUALIFYING_STATUSES

    @property
    def refund_total(self) -> Decimal:
        return sum((abs(r.amount) for r in self.refunds), ZERO)

    @property
    def net_total(self) -> Decimal:
        """Grand total minus every refund amount, finalized or not."""
        return self.totals.grand_total - self.refund_total

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.line_items)

    def meta(self, key: str) -> Any:
        return _meta_value(self.attribution_meta, key)

    @classmethod
    def from_dict(cls, data: dict) -> "Order":
        totals_raw = data.get("totals")
        totals = OrderTotals.from_dict(totals_raw if isinstance(totals_raw, dict) else {}, data)
        meta_raw = data.get("attribution_meta", data.get("meta_data"))
        return cls(
            id=to_int(data.get("id")),
            created_at=parse_datetime(data.get("created_at", data.get("date_created"))),
            status=OrderStatus.parse(data.get("status")),
            customer_id=to_int(data.get("customer_id")),
            line_items=tuple(
                LineItem.from_dict(i) for i in data.get("line_items") or [] if isinstance(i, dict)
            ),
            totals=totals,
            refunds=tuple(
                Refund.from_dict(r) for r in data.get("refunds") or [] if isinstance(r, dict)
            ),
            billing=Billing.from_dict(data.get("billing")),
            payment_method_label=str(
                data.get("payment_method_label") or data.get("payment_method_title") or ""
            ),
            attribution_meta=_meta_pairs(meta_raw),
            currency=str(data.get("currency") or ""),
        )


@dataclass(frozen=True)
class Customer:
    id: int
    created_at: Optional[datetime] = None
    orders_count: int = 0
    total_spent: Decimal = ZERO
    country: str = ""
    name: str = ""
    email: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Customer":
        billing = Billing.from_dict(data.get("billing"))
        name = data.get("name")
        if name is None:
            name = f"{data.get('first_name', '')} {data.get('last_name', '')}".strip()
        return cls(
            id=to_int(data.get("id")),
            created_at=parse_datetime(data.get("created_at", data.get("date_created"))),
            orders_count=max(0, to_int(data.get("orders_count"))),
            total_spent=max(ZERO, to_decimal(data.get("total_spent"))),
            country=str(data.get("country") or billing.country),
            name=str(name or ""),
            email=str(data.get("email") or billing.email),
        )


@dataclass(frozen=True)
class Product:
    id: int
    name: str = ""
    unit_price: Decimal = ZERO
    unit_cost: Decimal = ZERO
    stock_quantity: Optional[int] = None
    categories: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        meta = _meta_pairs(data.get("meta_data"))
        cost = data.get("unit_cost", data.get("cost"))
        if cost is None:
            for key in COST_META_KEYS:
                cost = _meta_value(meta, key)
                if cost is not None:
                    break
        stock = data.get("stock_quantity")
        raw_categories = data.get("categories")
        if not isinstance(raw_categories, (list, tuple)):
            raw_categories = [raw_categories]
        categories = []
        for c in raw_categories:
            label = c.get("name") if isinstance(c, dict) else c
            if label:
                categories.append(str(label))
        return cls(
            id=to_int(data.get("id")),
            name=str(data.get("name") or ""),
            unit_price=to_decimal(data.get("unit_price", data.get("price"))),
            unit_cost=max(ZERO, to_decimal(cost)),
            stock_quantity=None if stock is None else to_int(stock, default=None),
            categories=tuple(categories),
        )


@dataclass(frozen=True)
class Expense:
    id: str
    date: Optional[date]
    amount: Decimal
    category: ExpenseCategory = ExpenseCategory.OTHER
    description: str = ""
    source: str = ""
    vendor: str = ""
    payment_method: str = ""
    recurring: bool = False
    recurring_interval: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Expense":
        return cls(
            id=str(data.get("id") or ""),
            date=parse_date(data.get("date")),
            amount=to_decimal(data.get("amount")),
            category=ExpenseCategory.parse(data.get("category")),
            description=str(data.get("description") or ""),
            source=str(data.get("source") or ""),
            vendor=str(data.get("vendor") or ""),
            payment_method=str(data.get("payment_method", data.get("paymentMethod")) or ""),
            recurring=bool(data.get("recurring", False)),
            recurring_interval=str(
                data.get("recurring_interval", data.get("recurringInterval")) or ""
            ),
        )


@dataclass(frozen=True)
class DateWindow:
    """Closed date range; both ends inclusive to the day."""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(
                f"Invalid date window: start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end
