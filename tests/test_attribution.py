"""Order source attribution tests."""

import pytest

from app.models import Order
from app.services.attribution import (
    DEFAULT_RULES, DEFAULT_SOURCE, AttributionContext, AttributionRule, classify, match_rule,
)


def _order(meta):
    return Order.from_dict({
        "id": 1, "created_at": "2026-01-05T10:00:00Z", "status": "completed",
        "attribution_meta": meta,
    })


def _utm(source, medium):
    return {
        "_wc_order_attribution_source_type": "utm",
        "_wc_order_attribution_utm_source": source,
        "_wc_order_attribution_utm_medium": medium,
    }


class TestClassify:
    @pytest.mark.parametrize("meta,expected", [
        (_utm("google", "cpc"), "Google Ads"),
        (_utm("facebook", "paid_social"), "Facebook Ads"),
        (_utm("fb", "ppc"), "Facebook Ads"),
        (_utm("instagram", "paid"), "Instagram Ads"),
        (_utm("bing", "cpc"), "Bing Ads"),
        (_utm("tiktok", "cpc"), "Paid Ads"),
        (_utm("facebook", "social"), "Social Media"),
        (_utm("newsletter", "email"), "Email Marketing"),
        (_utm("partner", "referral"), "Referral"),
        (_utm("spring", "banner"), "UTM Campaign"),
        ({"_wc_order_attribution_source_type": "organic"}, "Organic Search"),
        ({"_wc_order_attribution_source_type": "referral"}, "Referral"),
        ({"_wc_order_attribution_source_type": "direct"}, "Direct"),
        ({}, DEFAULT_SOURCE),
    ])
    def test_rules(self, meta, expected):
        assert classify(_order(meta)) == expected

    def test_click_id_beats_utm(self):
        meta = {**_utm("newsletter", "email"), "_gclid": "xyz"}
        assert classify(_order(meta)) == "Google Ads"
        meta = {**_utm("google", "cpc"), "fbclid": "xyz"}
        assert classify(_order(meta)) == "Facebook Ads"

    def test_case_insensitive(self):
        assert classify(_order(_utm("Google", "CPC"))) == "Google Ads"

    def test_meta_list_shape(self):
        order = Order.from_dict({
            "id": 1, "status": "completed",
            "meta_data": [{"key": "_wc_order_attribution_source_type", "value": "direct"}],
        })
        assert classify(order) == "Direct"

    def test_custom_rules(self):
        rules = (AttributionRule("Everything", lambda c: True),)
        assert classify(_order({}), rules) == "Everything"

    def test_default_rules_are_paid_for_ads(self):
        assert all(r.paid for r in DEFAULT_RULES if "Ads" in r.label)

    def test_match_rule(self):
        assert match_rule(_order(_utm("google", "cpc"))).paid
        assert not match_rule(_order(_utm("news", "email"))).paid
        assert match_rule(_order({})) is None


class TestContext:
    def test_from_order(self):
        ctx = AttributionContext.from_order(_order(_utm("Google", "CPC")))
        assert ctx.is_utm
        assert ctx.is_paid_utm
        assert ctx.utm_source == "google"
        assert not ctx.has_gclid
