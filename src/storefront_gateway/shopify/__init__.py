from .client import ShopifyClient, normalize_store_url

__all__ = ["ShopifyClient", "normalize_store_url"]
