"""Pydantic schemas for the analytics API."""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from app.models import DateWindow
from app.services.analytics import Dataset
from app.services.period import last_n_days


# ── Requests ─────────────────────────────────────────────
class AnalyticsRequest(BaseModel):
    """Store records plus the reporting window.

    Records are passed through as raw dicts and normalized by the record
    types, so malformed fields degrade to defaults instead of failing
    validation. When ``start`` is omitted the window is the last
    ``default_window_days`` days ending at ``end`` (or today).
    """
    orders: list[dict] = Field(default_factory=list)
    customers: list[dict] = Field(default_factory=list)
    products: list[dict] = Field(default_factory=list)
    expenses: list[dict] = Field(default_factory=list)

    start: Optional[date] = None
    end: Optional[date] = None
    compare: Optional[str] = None
    now: Optional[datetime] = None

    min_support: Optional[int] = None
    top_n: Optional[int] = Field(None, ge=1, le=100)
    period_days: Optional[int] = None
    forecast_days: Optional[int] = None

    @model_validator(mode="after")
    def check_window(self):
        if self.start and self.end and self.start > self.end:
            raise ValueError(
                f"start ({self.start.isoformat()}) must not be after end ({self.end.isoformat()})"
            )
        return self

    def window(self, default_days: int) -> DateWindow:
        if self.start is None:
            return last_n_days(default_days, self.end)
        return DateWindow(start=self.start, end=self.end or date.today())

    def dataset(self) -> Dataset:
        return Dataset.from_dict({
            "orders": self.orders,
            "customers": self.customers,
            "products": self.products,
            "expenses": self.expenses,
        })


class ExportRequest(AnalyticsRequest):
    type: Literal["sales", "orders", "customers", "products"] = "sales"
    format: Literal["csv", "json", "tsv"] = "csv"


# ── Responses ────────────────────────────────────────────
class HealthOut(BaseModel):
    status: str
    service: str
    version: str
