"""Store-independent building blocks: product models, query expansion, deal scoring."""

from .classify import classify_store_name
from .deals import rank_deals, score_deals
from .expand import TERM_TRANSLATIONS, expand_query
from .models import (
    AggregatedProduct,
    DealScoredProduct,
    OrderRecord,
    OrderStatus,
    StoreHandle,
    parse_price,
)

__all__ = [
    "AggregatedProduct",
    "DealScoredProduct",
    "OrderRecord",
    "OrderStatus",
    "StoreHandle",
    "TERM_TRANSLATIONS",
    "classify_store_name",
    "expand_query",
    "parse_price",
    "rank_deals",
    "score_deals",
]
