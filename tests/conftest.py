"""Test fixtures."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.main import app


def build_order(
    id,
    created_at,
    status="completed",
    total="0",
    customer_id=0,
    items=(),
    refunds=(),
    country="",
    payment="",
    meta=None,
    shipping="0",
    tax="0",
    discount="0",
):
    """Raw store-shaped order dict."""
    return {
        "id": id,
        "created_at": created_at,
        "status": status,
        "customer_id": customer_id,
        "totals": {
            "subtotal": total,
            "tax": tax,
            "shipping": shipping,
            "discount": discount,
            "grand_total": total,
        },
        "line_items": list(items),
        "refunds": [{"amount": r} for r in refunds],
        "billing": {"country": country, "email": f"c{customer_id}@test.com"},
        "payment_method_label": payment,
        "attribution_meta": meta or {},
        "currency": "EUR",
    }


def build_item(product_id, quantity=1, total="0", name=None, category=None):
    item = {
        "product_id": product_id,
        "name": name or f"Product {product_id}",
        "quantity": quantity,
        "line_total": total,
    }
    if category:
        item["category"] = category
    return item


@pytest.fixture
def make_order():
    return build_order


@pytest.fixture
def make_item():
    return build_item


@pytest.fixture
def store_data():
    """Small store: three customers, four products, January 2026 activity."""
    return {
        "orders": [
            build_order(
                1, "2025-12-20T09:00:00Z", total="40.00", customer_id=1,
                items=[build_item(1, 2, "40.00", name="Mug", category="Kitchen")],
                country="DE", payment="PayPal",
            ),
            build_order(
                2, "2026-01-05T10:00:00Z", total="100.00", customer_id=1,
                items=[
                    build_item(1, 2, "40.00", name="Mug", category="Kitchen"),
                    build_item(2, 1, "60.00", name="Teapot", category="Kitchen"),
                ],
                country="DE", payment="PayPal",
                meta={"_wc_order_attribution_source_type": "organic"},
            ),
            build_order(
                3, "2026-01-06T14:30:00Z", total="80.00", customer_id=2,
                items=[
                    build_item(1, 1, "20.00", name="Mug", category="Kitchen"),
                    build_item(2, 1, "60.00", name="Teapot", category="Kitchen"),
                ],
                refunds=["-20.00"],
                country="FR", payment="Card",
                meta={"gclid": "abc"},
            ),
            build_order(
                4, "2026-01-07T08:15:00Z", status="cancelled", total="55.00", customer_id=3,
                items=[build_item(3, 1, "55.00", name="Kettle")],
                country="NL", payment="Card",
            ),
            build_order(
                5, "2026-01-08T20:00:00Z", total="30.00",
                items=[build_item(4, 3, "30.00", name="Spoon")],
                country="", payment="",
            ),
        ],
        "customers": [
            {"id": 1, "first_name": "Ada", "last_name": "L", "orders_count": 2,
             "total_spent": "140.00", "billing": {"country": "DE"}},
            {"id": 2, "name": "Bo", "orders_count": 1, "total_spent": "60.00",
             "billing": {"country": "FR"}},
            {"id": 3, "name": "Cy", "orders_count": 0, "total_spent": "0",
             "billing": {"country": "NL"}},
        ],
        "products": [
            {"id": 1, "name": "Mug", "price": "20.00", "unit_cost": "8.00", "stock_quantity": 12},
            {"id": 2, "name": "Teapot", "price": "60.00", "cost": "25.00", "stock_quantity": 3},
            {"id": 3, "name": "Kettle", "price": "55.00",
             "meta_data": [{"key": "_wc_cog_cost", "value": "30"}]},
            {"id": 4, "name": "Spoon", "price": "10.00"},
        ],
        "expenses": [
            {"id": "e1", "date": "2026-01-05", "amount": "15.00", "category": "Marketing",
             "source": "Google"},
            {"id": "e2", "date": "2026-01-09", "amount": "5.00", "category": "software",
             "recurring": True, "recurring_interval": "monthly"},
            {"id": "e3", "date": "2025-12-01", "amount": "99.00", "category": "Rent"},
        ],
    }


@pytest.fixture(autouse=True)
def clear_cache():
    app.state.cache.invalidate()
    yield


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
