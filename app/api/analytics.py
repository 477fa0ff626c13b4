"""Analytics API endpoints.

Records are POSTed with the request; the store fetch layer lives outside
this service.
"""

import hashlib
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response

from app.config import Settings, get_settings
from app.models import DateWindow
from app.schemas import AnalyticsRequest, ExportRequest
from app.services.analytics import AnalyticsEngine, records_to_dicts, to_primitive
from app.services.cache import MemoryCache, cache_key, cached
from app.services.export import ExportService
from app.services.profit import cost_lookup_from_products
from app.services.velocity import low_stock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])
engine = AnalyticsEngine()

MEDIA_TYPES = {
    "csv": "text/csv",
    "tsv": "text/tab-separated-values",
    "json": "application/json",
}


def get_cache(request: Request) -> MemoryCache:
    return request.app.state.cache


def _window(req: AnalyticsRequest, settings: Settings) -> DateWindow:
    try:
        return req.window(settings.default_window_days)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _or(value, default):
    return default if value is None else value


@router.post("/report")
async def generate_report(
    req: AnalyticsRequest,
    settings: Settings = Depends(get_settings),
    cache: MemoryCache = Depends(get_cache),
):
    """Full dashboard report for the window and its comparison window."""
    window = _window(req, settings)
    compare = _or(req.compare, settings.compare_mode)
    digest = hashlib.sha256(req.model_dump_json().encode()).hexdigest()
    key = cache_key(
        "report", {"body": digest, "compare": compare, "window": f"{window.start}:{window.end}"},
    )

    def build() -> dict:
        data = req.dataset()
        report = engine.generate_report(
            data.orders, data.customers, data.products, data.expenses,
            window,
            compare=compare,
            now=req.now,
            min_support=_or(req.min_support, settings.basket_min_support),
            top_pairs=_or(req.top_n, settings.basket_top_n),
            period_days=_or(req.period_days, settings.velocity_period_days),
            forecast_days=_or(req.forecast_days, settings.forecast_days),
        )
        return engine.report_to_dict(report)

    try:
        return cached(cache, key, build, settings.cache_ttl_seconds)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/sales")
async def sales(req: AnalyticsRequest, settings: Settings = Depends(get_settings)):
    """Sales totals with day/hour/country/payment/category/product breakdowns."""
    window = _window(req, settings)
    summary = engine.sales.summarize(req.dataset().orders, window)
    result = to_primitive(summary)
    result["top_products"] = records_to_dicts(summary.top_products)
    return result


@router.post("/profit")
async def profit(req: AnalyticsRequest, settings: Settings = Depends(get_settings)):
    """Profit and loss plus the expense breakdown for the window."""
    window = _window(req, settings)
    data = req.dataset()
    summary = engine.profit.summarize(
        data.orders,
        cost_lookup_from_products(data.products),
        data.expenses,
        window,
    )
    result = to_primitive(summary)
    result["is_profitable"] = summary.is_profitable
    result["expense_summary"] = to_primitive(
        engine.expense_analyzer.summarize(data.expenses, window)
    )
    return result


@router.post("/customers")
async def customers(req: AnalyticsRequest, settings: Settings = Depends(get_settings)):
    """New vs returning customers, attribution, retention and LTV."""
    window = _window(req, settings)
    data = req.dataset()
    return to_primitive(engine.customers.summarize(data.customers, data.orders, window))


@router.post("/frequently-bought-together")
async def frequently_bought_together(
    req: AnalyticsRequest,
    limit: int = Query(10, ge=1, le=100),
    settings: Settings = Depends(get_settings),
):
    """Product pairs ranked by co-purchase frequency."""
    try:
        pairs = engine.basket.analyze(
            req.dataset().orders,
            _or(req.min_support, settings.basket_min_support),
            limit=limit,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return records_to_dicts(pairs)


@router.post("/segments")
async def segments(req: AnalyticsRequest):
    """RFM customer segments over the full order history."""
    return records_to_dicts(engine.segmenter.segment(req.dataset().orders, now=req.now))


@router.post("/velocity")
async def velocity(
    req: AnalyticsRequest,
    low_stock_days: int = Query(14, ge=0, le=365),
    settings: Settings = Depends(get_settings),
):
    """Per-product daily sales series, trend and stock-out projection."""
    data = req.dataset()
    try:
        results = engine.velocity.analyze(
            data.orders,
            data.products,
            _or(req.period_days, settings.velocity_period_days),
            now=req.now,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "products": records_to_dicts(results),
        "low_stock": records_to_dicts(low_stock(results, low_stock_days)),
    }


@router.post("/forecast")
async def forecast(req: AnalyticsRequest, settings: Settings = Depends(get_settings)):
    """Daily net revenue history and the projected days after it."""
    window = _window(req, settings)
    summary = engine.sales.summarize(req.dataset().orders, window)
    try:
        points = engine.forecaster.forecast(
            summary.by_day, _or(req.forecast_days, settings.forecast_days),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "history": records_to_dicts(summary.by_day),
        "forecast": records_to_dicts(points),
    }


@router.post("/export")
async def export(req: ExportRequest, settings: Settings = Depends(get_settings)):
    """Export sales, orders, customers or products as CSV, TSV or JSON."""
    window = _window(req, settings)
    data = req.dataset()
    try:
        rows = engine.export_rows(
            req.type, data.orders, data.customers, data.products, window,
            period_days=_or(req.period_days, settings.velocity_period_days),
            now=req.now,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if req.format == "csv":
        content = ExportService.to_csv(rows)
    elif req.format == "tsv":
        content = ExportService.to_tsv(rows)
    else:
        content = ExportService.to_json(rows)

    filename = f"{req.type}-{window.start.isoformat()}-{window.end.isoformat()}.{req.format}"
    logger.info(f"Exported {len(rows)} {req.type} rows as {req.format}")
    return Response(
        content=content,
        media_type=MEDIA_TYPES[req.format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
