import os
import sys
import time

import pytest

# Ensure the repository's src/ is importable
sys.path.insert(0, os.path.abspath("src"))

from storefront_gateway.errors import NotFound, UpstreamFailure
from storefront_gateway.gateway.registry import StoreRegistry


def product(pid, price, title="Item", product_type="", vendor="Acme"):
    return {
        "id": pid,
        "title": title,
        "product_type": product_type,
        "vendor": vendor,
        "variants": [{"id": pid * 100, "price": price}],
        "images": [{"src": f"https://cdn.example/{pid}.jpg"}],
    }


class FakeStoreClient:
    """Stands in for ShopifyClient; records every search call."""

    def __init__(self, products=None, *, fail=False, delay=0.0, on_search=None, order=None):
        self.products = list(products or [])
        self.fail = fail
        self.delay = delay
        self.on_search = on_search
        self.order = order or {"id": 9001, "order_number": 1001, "total_price": "20.00", "currency": "ILS"}
        self.search_calls = []
        self.created_orders = []

    def _maybe_fail(self):
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise UpstreamFailure("store is down")

    def search_products(self, query, limit=10):
        self.search_calls.append(query)
        if self.on_search and query:
            self.on_search()
        self._maybe_fail()
        return list(self.products[:limit])

    def get_product(self, product_id):
        self._maybe_fail()
        for p in self.products:
            if str(p.get("id")) == str(product_id):
                return dict(p)
        raise NotFound("Product not found")

    def list_products(self, limit=10):
        self._maybe_fail()
        return list(self.products[:limit])

    def search_by_vendor(self, vendor, limit=20):
        self._maybe_fail()
        return [p for p in self.products if vendor.lower() in (p.get("vendor") or "").lower()][:limit]

    def compare_products(self, search_term):
        self._maybe_fail()
        return {"Laptops": {"count": len(self.products)}}

    def list_orders(self, limit=10, status=None):
        self._maybe_fail()
        return [{"id": 1, "order_number": 1001, "email": "a@b.c", "line_items": [{}, {}]}]

    def create_order(self, line_items, customer, shipping_address):
        self._maybe_fail()
        self.created_orders.append((line_items, customer, shipping_address))
        return dict(self.order)


@pytest.fixture
def fake_clients():
    """URL -> FakeStoreClient; connecting a URL hands out the matching fake."""
    return {}


@pytest.fixture
def registry(fake_clients):
    return StoreRegistry(lambda url, credential: fake_clients[url])
