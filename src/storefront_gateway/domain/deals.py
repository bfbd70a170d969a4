from dataclasses import asdict
from typing import Iterable, List

from .models import AggregatedProduct, DealScoredProduct


def score_deals(products: Iterable[AggregatedProduct]) -> List[DealScoredProduct]:
    """Annotate products with a relative deal score in [0, 1].

    score = 1 - (price - min) / (max - min) over the whole set; when every
    price is equal (including all zero) each product scores 1.0. Input order
    is preserved.
    """
    items = list(products)
    if not items:
        return []
    prices = [p.numeric_price for p in items]
    low, high = min(prices), max(prices)
    spread = high - low

    scored: List[DealScoredProduct] = []
    for product, price in zip(items, prices):
        if spread == 0:
            score = 1.0
        else:
            score = round(float(1 - (price - low) / spread), 4)
        fields = asdict(product)
        fields.pop("deal_score", None)
        scored.append(DealScoredProduct(**fields, deal_score=score))
    return scored


def rank_deals(products: Iterable[AggregatedProduct], limit: int = 10) -> List[DealScoredProduct]:
    """Score and return the best `limit` deals (highest score, then cheapest)."""
    scored = score_deals(products)
    indexed = sorted(
        enumerate(scored),
        key=lambda pair: (-pair[1].deal_score, pair[1].numeric_price, pair[0]),
    )
    return [p for _, p in indexed[: max(0, int(limit))]]
