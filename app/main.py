"""Storefront-Analytics — FastAPI application entry point."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import analytics
from app.config import get_settings
from app.schemas import HealthOut
from app.services.cache import MemoryCache

VERSION = "1.0.0"

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    version=VERSION,
    description="Storefront analytics — sales, profit, customers, "
                "frequently bought together, RFM segments, velocity & forecast",
)
app.state.cache = MemoryCache(ttl_seconds=settings.cache_ttl_seconds)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(analytics.router, prefix="/api/v1")


@app.get("/health", response_model=HealthOut)
async def health():
    return {"status": "ok", "service": settings.app_name, "version": VERSION}
