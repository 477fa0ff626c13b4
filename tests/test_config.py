"""Config tests."""

import pytest

from app.config import Settings, get_settings


class TestSettings:
    def test_default_values(self):
        s = Settings()
        assert s.app_name == "Storefront-Analytics"
        assert s.debug is False
        assert s.log_level == "INFO"
        assert s.compare_mode == "previous"

    def test_get_settings_cached(self):
        s1 = get_settings()
        s2 = get_settings()
        assert s1 is s2  # lru_cache

    def test_analyzer_defaults(self):
        s = Settings()
        assert s.default_window_days == 30
        assert s.basket_min_support == 2
        assert s.basket_top_n == 10
        assert s.velocity_period_days == 30
        assert s.forecast_days == 7
        assert s.cache_ttl_seconds == 300

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("BASKET_MIN_SUPPORT", "5")
        monkeypatch.setenv("COMPARE_MODE", "year")
        s = Settings()
        assert s.basket_min_support == 5
        assert s.compare_mode == "year"
