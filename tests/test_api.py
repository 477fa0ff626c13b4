"""Analytics API tests."""

import pytest
from httpx import AsyncClient

from app.config import Settings, get_settings
from app.main import app

WINDOW = {"start": "2026-01-01", "end": "2026-01-31", "now": "2026-01-10T00:00:00Z"}


@pytest.fixture
def payload(store_data):
    return {**store_data, **WINDOW}


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["version"] == "1.0.0"


@pytest.mark.asyncio
async def test_report(client: AsyncClient, payload):
    resp = await client.post("/api/v1/analytics/report", json=payload)
    assert resp.status_code == 200
    data = resp.json()
    assert data["metrics"]["total_revenue"] == 190.0
    assert data["metrics"]["revenue_growth"] == 375.0
    assert data["compare_window"] == {"start": "2025-12-01", "end": "2025-12-31"}
    assert data["frequently_bought_together"][0]["frequency"] == 2


@pytest.mark.asyncio
async def test_report_cached(client: AsyncClient, payload):
    first = await client.post("/api/v1/analytics/report", json=payload)
    assert app.state.cache.stats()["size"] == 1
    second = await client.post("/api/v1/analytics/report", json=payload)
    assert second.json()["generated_at"] == first.json()["generated_at"]

    changed = {**payload, "compare": "year"}
    await client.post("/api/v1/analytics/report", json=changed)
    assert app.state.cache.stats()["size"] == 2


@pytest.mark.asyncio
async def test_start_after_end_rejected(client: AsyncClient):
    resp = await client.post(
        "/api/v1/analytics/sales", json={"start": "2026-02-01", "end": "2026-01-01"},
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_bad_compare_mode(client: AsyncClient, payload):
    resp = await client.post("/api/v1/analytics/report", json={**payload, "compare": "decade"})
    assert resp.status_code == 400
    assert "compare mode" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_compare_defaults_to_settings(client: AsyncClient, payload):
    app.dependency_overrides[get_settings] = lambda: Settings(compare_mode="year")
    try:
        resp = await client.post("/api/v1/analytics/report", json=payload)
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 200
    assert resp.json()["compare_window"] == {"start": "2025-01-01", "end": "2025-01-31"}


@pytest.mark.asyncio
async def test_default_window(client: AsyncClient):
    resp = await client.post("/api/v1/analytics/sales", json={"end": "2026-01-31"})
    assert resp.status_code == 200
    assert resp.json()["total_orders"] == 0


@pytest.mark.asyncio
async def test_sales(client: AsyncClient, payload):
    resp = await client.post("/api/v1/analytics/sales", json=payload)
    assert resp.status_code == 200
    data = resp.json()
    assert data["net_sales"] == 190.0
    assert len(data["by_hour"]) == 24
    assert data["top_products"][0]["name"] == "Teapot"


@pytest.mark.asyncio
async def test_profit(client: AsyncClient, payload):
    resp = await client.post("/api/v1/analytics/profit", json=payload)
    assert resp.status_code == 200
    data = resp.json()
    assert data["cogs"] == 74.0
    assert data["is_profitable"] is True
    assert data["expense_summary"]["recurring_total"] == 5.0


@pytest.mark.asyncio
async def test_customers(client: AsyncClient, payload):
    resp = await client.post("/api/v1/analytics/customers", json=payload)
    assert resp.status_code == 200
    data = resp.json()
    assert data["new_customers"] == 1
    assert data["returning_customers"] == 1
    assert data["guest_orders"] == 1


@pytest.mark.asyncio
async def test_frequently_bought_together(client: AsyncClient, payload):
    resp = await client.post("/api/v1/analytics/frequently-bought-together", json=payload)
    assert resp.status_code == 200
    pairs = resp.json()
    assert pairs[0]["product1"]["id"] == 1
    assert pairs[0]["product2"]["id"] == 2
    assert pairs[0]["confidence"] == 66.67


@pytest.mark.asyncio
async def test_negative_min_support(client: AsyncClient, payload):
    resp = await client.post(
        "/api/v1/analytics/frequently-bought-together", json={**payload, "min_support": -1},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_segments(client: AsyncClient, payload):
    resp = await client.post("/api/v1/analytics/segments", json=payload)
    assert resp.status_code == 200
    assert resp.json()[0]["segment"] == "Potential Loyalists"


@pytest.mark.asyncio
async def test_velocity(client: AsyncClient, payload):
    resp = await client.post(
        "/api/v1/analytics/velocity?low_stock_days=60", json=payload,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["products"][0]["name"] == "Mug"
    assert [p["name"] for p in data["low_stock"]] == ["Teapot"]


@pytest.mark.asyncio
async def test_velocity_bad_period(client: AsyncClient, payload):
    resp = await client.post("/api/v1/analytics/velocity", json={**payload, "period_days": 0})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_forecast(client: AsyncClient, payload):
    resp = await client.post("/api/v1/analytics/forecast", json=payload)
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["history"]) == 3
    assert data["forecast"] == []


@pytest.mark.asyncio
async def test_export_csv(client: AsyncClient, payload):
    resp = await client.post(
        "/api/v1/analytics/export", json={**payload, "type": "orders", "format": "csv"},
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "orders-2026-01-01-2026-01-31.csv" in resp.headers["content-disposition"]
    lines = resp.text.strip().splitlines()
    assert lines[0].startswith("Order #,Date,Status")
    assert len(lines) == 5


@pytest.mark.asyncio
async def test_export_json(client: AsyncClient, payload):
    resp = await client.post(
        "/api/v1/analytics/export", json={**payload, "type": "customers", "format": "json"},
    )
    assert resp.status_code == 200
    assert [c["Name"] for c in resp.json()] == ["Ada L", "Bo", "Cy"]


@pytest.mark.asyncio
async def test_export_unknown_type(client: AsyncClient, payload):
    resp = await client.post("/api/v1/analytics/export", json={**payload, "type": "invoices"})
    assert resp.status_code == 422
