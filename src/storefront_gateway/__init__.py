"""
Storefront Gateway – multi-store product search and shopping assistant.

Registers Shopify stores, searches them together (query expansion, per-store
dedup, price-sorted merge, deal scoring), answers with a pluggable AI
provider or a deterministic demo reply, and creates tracked orders.
"""

__version__ = "1.0.0"

__all__ = [
    "config",
    "errors",
    "logging",
]
