"""Record normalization tests."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from app.models import (
    Customer, DateWindow, Expense, ExpenseCategory, LineItem, Order, OrderStatus, Product,
)
from app.services.normalize import (
    money, parse_date, parse_datetime, ratio, safe_number, to_decimal, to_int,
)


class TestSafeNumber:
    def test_finite_passthrough(self):
        assert safe_number(5) == 5
        assert safe_number(2.5) == 2.5
        assert safe_number(Decimal("1.10")) == Decimal("1.10")

    def test_non_finite_becomes_zero(self):
        assert safe_number(float("nan")) == 0
        assert safe_number(float("inf")) == 0
        assert safe_number(Decimal("NaN")) == 0
        assert safe_number(Decimal("-Infinity")) == 0

    def test_non_number_becomes_zero(self):
        assert safe_number("abc") == 0
        assert safe_number(None) == 0


class TestToDecimal:
    @pytest.mark.parametrize("raw,expected", [
        ("19.99", Decimal("19.99")),
        (" 5 ", Decimal("5")),
        (3, Decimal("3")),
        (None, Decimal("0")),
        ("", Decimal("0")),
        ("n/a", Decimal("0")),
        ("NaN", Decimal("0")),
        (float("inf"), Decimal("0")),
        (True, Decimal("0")),
        ("1e30", Decimal("0")),
        ("99999999999999999999999999999", Decimal("0")),
        ("1e999999999", Decimal("0")),
        (1e30, Decimal("0")),
        ("9999999999999999", Decimal("9999999999999999")),
    ])
    def test_coercion(self, raw, expected):
        assert to_decimal(raw) == expected

    def test_to_int(self):
        assert to_int("7") == 7
        assert to_int("seven") == 0
        assert to_int(None, default=None) is None
        assert to_int(3.9) == 3

    def test_money_rounds_to_cents(self):
        assert money("10.006") == Decimal("10.01")
        assert money("abc") == Decimal("0.00")

    def test_ratio_zero_denominator(self):
        assert ratio(10, 0) == Decimal("0.00")
        assert ratio(1, 3, 100) == Decimal("33.33")

    def test_out_of_range_is_zero(self):
        assert money(Decimal("1e30")) == Decimal("0.00")
        assert ratio(Decimal("1e27"), Decimal("0.001")) == Decimal("0.00")


class TestParseDatetime:
    def test_zulu(self):
        dt = parse_datetime("2026-01-05T10:00:00Z")
        assert dt == datetime(2026, 1, 5, 10, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_datetime("2026-01-05T10:00:00").tzinfo == timezone.utc

    def test_garbage(self):
        assert parse_datetime("not a date") is None
        assert parse_datetime("") is None
        assert parse_datetime(12345) is None

    def test_parse_date(self):
        assert parse_date("2026-02-03") == date(2026, 2, 3)
        assert parse_date(date(2026, 2, 3)) == date(2026, 2, 3)
        assert parse_date("garbage") is None


class TestOrderFromDict:
    def test_store_aliases(self):
        order = Order.from_dict({
            "id": "12",
            "date_created": "2026-01-05T10:00:00",
            "status": "Completed",
            "customer_id": 4,
            "total": "50.00",
            "total_tax": "5.00",
            "shipping_total": "4.95",
            "discount_total": "2.00",
            "payment_method_title": "PayPal",
            "meta_data": [{"key": "_wc_order_attribution_source_type", "value": "utm"}],
            "line_items": [{"product_id": 9, "quantity": 2, "total": "40.00"}],
            "refunds": [{"total": "-10.00"}],
        })
        assert order.id == 12
        assert order.status is OrderStatus.COMPLETED
        assert order.totals.grand_total == Decimal("50.00")
        assert order.totals.tax == Decimal("5.00")
        assert order.totals.shipping == Decimal("4.95")
        assert order.totals.discount == Decimal("2.00")
        assert order.payment_method_label == "PayPal"
        assert order.meta("_wc_order_attribution_source_type") == "utm"
        assert order.line_items[0].line_total == Decimal("40.00")
        assert order.refund_total == Decimal("10.00")
        assert order.net_total == Decimal("40.00")

    def test_malformed_fields_default(self):
        order = Order.from_dict({
            "id": 1,
            "created_at": "yesterday",
            "status": "weird",
            "totals": {"grand_total": "NaN"},
            "line_items": ["junk", {"product_id": 2, "quantity": "x"}],
        })
        assert order.created_at is None
        assert order.status is OrderStatus.UNKNOWN
        assert order.totals.grand_total == 0
        assert len(order.line_items) == 1
        assert order.line_items[0].quantity == 0
        assert order.is_guest

    def test_malformed_nested_fields(self):
        order = Order.from_dict({"id": 1, "billing": "DE", "customer_id": -4})
        assert order.billing.country == ""
        assert order.is_guest
        assert Order.from_dict({"id": 2, "billing": ["DE"]}).billing.name == ""
        assert Customer.from_dict({"id": 3, "billing": "DE"}).country == ""
        assert Product.from_dict({"id": 4, "categories": "Kitchen"}).categories == ("Kitchen",)
        assert Product.from_dict({"id": 5, "categories": 7}).categories == ("7",)

    def test_line_item_category_from_meta(self):
        item = LineItem.from_dict({
            "product_id": 1,
            "meta_data": [{"key": "_category", "value": "Kitchen"}],
        })
        assert item.category == "Kitchen"
        assert LineItem.from_dict({"product_id": 2}).category == "Uncategorized"


class TestOtherRecords:
    def test_customer_name_from_parts(self):
        c = Customer.from_dict({
            "id": 3, "first_name": "Ada", "last_name": "Lovelace",
            "orders_count": "2", "total_spent": "-5", "billing": {"country": "GB"},
        })
        assert c.name == "Ada Lovelace"
        assert c.orders_count == 2
        assert c.total_spent == 0
        assert c.country == "GB"

    def test_product_cost_from_meta(self):
        p = Product.from_dict({
            "id": 1, "price": "20",
            "meta_data": [{"key": "_wc_cog_cost", "value": "7.5"}],
            "categories": [{"name": "Kitchen"}, "Gifts"],
        })
        assert p.unit_cost == Decimal("7.5")
        assert p.stock_quantity is None
        assert p.categories == ("Kitchen", "Gifts")

    def test_expense_category(self):
        e = Expense.from_dict({"id": 1, "date": "2026-01-02", "amount": "9", "category": "ADVERTISING"})
        assert e.category is ExpenseCategory.ADVERTISING
        assert Expense.from_dict({"amount": 1, "category": "??"}).category is ExpenseCategory.OTHER


class TestDateWindow:
    def test_inclusive_days(self):
        w = DateWindow(date(2026, 1, 1), date(2026, 1, 31))
        assert w.days == 31
        assert w.contains(date(2026, 1, 31))
        assert not w.contains(date(2026, 2, 1))

    def test_start_after_end_rejected(self):
        with pytest.raises(ValueError, match="start"):
            DateWindow(date(2026, 2, 1), date(2026, 1, 1))
