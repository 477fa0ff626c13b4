"""Order source attribution.

The policy is an ordered list of ``AttributionRule``s evaluated first match
wins against the attribution metadata the store records on each order.
Add or reorder rules here rather than branching in the aggregator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from app.models import Order

SOURCE_TYPE_KEY = "_wc_order_attribution_source_type"
UTM_SOURCE_KEY = "_wc_order_attribution_utm_source"
UTM_MEDIUM_KEY = "_wc_order_attribution_utm_medium"

DEFAULT_SOURCE = "Direct / Organic"
PAID_MEDIUMS = ("cpc", "paid", "ppc")


@dataclass(frozen=True)
class AttributionContext:
    """Normalized (lower-cased) attribution fields of one order."""
    source_type: str = ""
    utm_source: str = ""
    utm_medium: str = ""
    has_gclid: bool = False
    has_fbclid: bool = False

    @property
    def is_utm(self) -> bool:
        return self.source_type == "utm"

    @property
    def is_paid_utm(self) -> bool:
        return self.is_utm and any(m in self.utm_medium for m in PAID_MEDIUMS)

    @classmethod
    def from_order(cls, order: Order) -> "AttributionContext":
        def text(key: str) -> str:
            value = order.meta(key)
            return str(value).strip().lower() if value is not None else ""

        keys = [k.lower() for k, _ in order.attribution_meta]
        return cls(
            source_type=text(SOURCE_TYPE_KEY),
            utm_source=text(UTM_SOURCE_KEY),
            utm_medium=text(UTM_MEDIUM_KEY),
            has_gclid=any("gclid" in k for k in keys),
            has_fbclid=any("fbclid" in k for k in keys),
        )


@dataclass(frozen=True)
class AttributionRule:
    label: str
    predicate: Callable[[AttributionContext], bool]
    paid: bool = False


def _paid_from(*needles: str) -> Callable[[AttributionContext], bool]:
    return lambda c: c.is_paid_utm and any(n in c.utm_source for n in needles)


def _utm_medium(needle: str) -> Callable[[AttributionContext], bool]:
    return lambda c: c.is_utm and needle in c.utm_medium


def _source_type(value: str) -> Callable[[AttributionContext], bool]:
    return lambda c: c.source_type == value


DEFAULT_RULES: tuple[AttributionRule, ...] = (
    # Click ids beat any UTM tagging.
    AttributionRule("Google Ads", lambda c: c.has_gclid, paid=True),
    AttributionRule("Facebook Ads", lambda c: c.has_fbclid, paid=True),
    AttributionRule("Google Ads", _paid_from("google"), paid=True),
    AttributionRule("Facebook Ads", _paid_from("facebook", "fb"), paid=True),
    AttributionRule("Instagram Ads", _paid_from("instagram"), paid=True),
    AttributionRule("Bing Ads", _paid_from("bing"), paid=True),
    AttributionRule("Paid Ads", lambda c: c.is_paid_utm, paid=True),
    AttributionRule("Social Media", _utm_medium("social")),
    AttributionRule("Email Marketing", _utm_medium("email")),
    AttributionRule("Referral", _utm_medium("referral")),
    AttributionRule("UTM Campaign", lambda c: c.is_utm),
    AttributionRule("Organic Search", _source_type("organic")),
    AttributionRule("Referral", _source_type("referral")),
    AttributionRule("Direct", _source_type("direct")),
)


def match_rule(
    order: Order, rules: Sequence[AttributionRule] = DEFAULT_RULES,
) -> Optional[AttributionRule]:
    """First rule matching the order, or None when it falls through to the default."""
    ctx = AttributionContext.from_order(order)
    for rule in rules:
        if rule.predicate(ctx):
            return rule
    return None


def classify(order: Order, rules: Sequence[AttributionRule] = DEFAULT_RULES) -> str:
    """Resolve the source label for an order."""
    rule = match_rule(order, rules)
    return rule.label if rule else DEFAULT_SOURCE
