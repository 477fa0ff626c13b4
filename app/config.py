"""Configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Storefront-Analytics"
    debug: bool = False
    log_level: str = "INFO"

    # Report defaults
    default_window_days: int = 30
    compare_mode: str = "previous"  # previous | year

    # Analyzer knobs
    basket_min_support: int = 2
    basket_top_n: int = 10
    velocity_period_days: int = 30
    forecast_days: int = 7

    cache_ttl_seconds: int = 300

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
