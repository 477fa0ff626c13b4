"""Market-basket ("frequently bought together") analysis.

For every unordered product pair seen together in at least ``min_support``
qualifying orders:

    confidence = co_occurrence / occurrence(product1) * 100
    lift       = co_occurrence / (P(product1) * P(product2) * N)

where N is the number of qualifying orders and P(x) = occurrence(x) / N.
Pairs are keyed with the smaller product id first.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from itertools import combinations
from typing import Optional, Sequence

from app.models import Order
from app.services.normalize import ratio
from app.services.period import qualifying

logger = logging.getLogger(__name__)

DEFAULT_MIN_SUPPORT = 2


@dataclass(frozen=True)
class ProductRef:
    id: int
    name: str


@dataclass(frozen=True)
class ProductPair:
    product1: ProductRef
    product2: ProductRef
    frequency: int
    confidence: Decimal  # % of orders with product1 that also contain product2
    lift: Decimal

    @property
    def key(self) -> tuple[int, int]:
        return (self.product1.id, self.product2.id)


class MarketBasketAnalyzer:
    """Pairwise co-purchase counts over qualifying orders."""

    def analyze(
        self,
        orders: Sequence[Order],
        min_support: int = DEFAULT_MIN_SUPPORT,
        limit: Optional[int] = None,
    ) -> list[ProductPair]:
        if min_support < 0:
            raise ValueError(f"min_support must be >= 0, got {min_support}")

        valid = qualifying(orders)
        names: dict[int, str] = {}
        occurrences: dict[int, int] = defaultdict(int)
        pairs: dict[tuple[int, int], int] = defaultdict(int)

        for o in valid:
            basket: dict[int, str] = {}
            for item in o.line_items:
                basket.setdefault(item.product_id, item.name)
            for pid, name in basket.items():
                names.setdefault(pid, name)
                occurrences[pid] += 1
            for p1, p2 in combinations(sorted(basket), 2):
                pairs[(p1, p2)] += 1

        total_orders = len(valid)
        results = []
        for (p1, p2), count in pairs.items():
            if count < min_support:
                continue
            expected_denominator = occurrences[p1] * occurrences[p2]
            if expected_denominator == 0 or total_orders == 0:
                continue
            results.append(ProductPair(
                product1=ProductRef(p1, names.get(p1, "")),
                product2=ProductRef(p2, names.get(p2, "")),
                frequency=count,
                confidence=ratio(count, occurrences[p1], 100),
                lift=ratio(count * total_orders, expected_denominator),
            ))

        results.sort(key=lambda p: (-p.frequency, p.key))
        logger.debug(f"Basket analysis: {len(results)} pairs from {total_orders} orders")
        return results[:limit] if limit is not None else results
