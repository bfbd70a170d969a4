import pytest
import requests

from storefront_gateway.errors import NotFound, UpstreamFailure
from storefront_gateway.shopify import ShopifyClient, normalize_store_url


class _Response:
    def __init__(self, body, status=200):
        self._body = body
        self.status_code = status
        self.ok = 200 <= status < 300
        self.text = str(body)

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


def _client(monkeypatch, body=None, status=200, error=None):
    client = ShopifyClient("demo.myshopify.com/", "shpat_token")
    calls = []

    def fake_request(method, url, **kwargs):
        calls.append((method, url, kwargs))
        if error:
            raise error
        return _Response(body, status)

    monkeypatch.setattr(client.s, "request", fake_request)
    return client, calls


CATALOG = {
    "products": [
        {"id": 1, "title": "Gaming Laptop", "product_type": "Laptops", "vendor": "Acme",
         "variants": [{"id": 11, "price": "3500.00"}]},
        {"id": 2, "title": "Office Laptop", "product_type": "Laptops", "vendor": "Acme",
         "variants": [{"id": 21, "price": "1999.90"}]},
        {"id": 3, "title": "USB Cable", "product_type": "", "vendor": "Cables Inc", "tags": "laptop accessory",
         "variants": [{"id": 31, "price": "15"}]},
        {"id": 4, "title": "Garden Hose", "product_type": "Garden", "vendor": "Green",
         "variants": [{"id": 41, "price": "80"}]},
    ]
}


def test_normalize_store_url():
    assert normalize_store_url("demo.myshopify.com/") == "https://demo.myshopify.com"
    assert normalize_store_url("http://local:8080") == "http://local:8080"
    with pytest.raises(ValueError):
        ShopifyClient("", "t")


def test_requests_carry_token_and_api_version(monkeypatch):
    client, calls = _client(monkeypatch, CATALOG)
    client.list_products(5)
    method, url, kwargs = calls[0]
    assert method == "GET"
    assert url == "https://demo.myshopify.com/admin/api/2024-01/products.json"
    assert kwargs["params"] == {"limit": 5}
    assert client.s.headers["X-Shopify-Access-Token"] == "shpat_token"


def test_search_matches_title_type_vendor_and_tags(monkeypatch):
    client, _ = _client(monkeypatch, CATALOG)
    assert [p["id"] for p in client.search_products("laptop")] == [1, 2, 3]
    assert [p["id"] for p in client.search_products("laptop", limit=1)] == [1]
    assert [p["id"] for p in client.search_products("garden")] == [4]


def test_compare_groups_by_type(monkeypatch):
    client, _ = _client(monkeypatch, CATALOG)
    comparison = client.compare_products("laptop")
    laptops = comparison["Laptops"]
    assert laptops["count"] == 2
    assert (laptops["min_price"], laptops["max_price"], laptops["avg_price"]) == ("1999.90", "3500.00", "2749.95")
    assert [p["id"] for p in laptops["products"]] == [2, 1]
    assert comparison["Uncategorized"]["count"] == 1


def test_create_order_payload(monkeypatch):
    client, calls = _client(monkeypatch, {"order": {"id": 5, "order_number": 1005}})
    order = client.create_order(
        [{"variant_id": 11, "quantity": "2"}],
        {"email": "a@b.c", "first_name": "A", "last_name": "B"},
        {"city": "Tel Aviv"},
    )
    assert order["order_number"] == 1005
    payload = calls[0][2]["json"]["order"]
    assert payload["line_items"] == [{"variant_id": 11, "quantity": 2}]
    assert payload["financial_status"] == "pending"
    assert payload["shipping_address"]["city"] == "Tel Aviv"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"error": requests.ConnectionError("refused")},
        {"body": {"errors": "Unauthorized"}, "status": 401},
        {"body": ValueError("not json")},
        {"body": ["not", "a", "dict"]},
    ],
)
def test_failures_surface_as_upstream_failure(monkeypatch, kwargs):
    client, _ = _client(monkeypatch, **kwargs)
    with pytest.raises(UpstreamFailure):
        client.list_products()


def test_get_product_and_missing_product(monkeypatch):
    client, calls = _client(monkeypatch, {"product": {"id": 7, "title": "Lamp"}})
    assert client.get_product("7")["title"] == "Lamp"
    assert calls[0][1].endswith("/products/7.json")

    client, _ = _client(monkeypatch, {"errors": "Not Found"}, status=404)
    with pytest.raises(NotFound):
        client.get_product("404")
    # a 404 on a listing is a broken store, not a missing product
    with pytest.raises(UpstreamFailure):
        client.list_products()


def test_compare_tolerates_malformed_variants(monkeypatch):
    catalog = {"products": [
        {"id": 1, "title": "Laptop A", "product_type": "Laptops", "variants": ["oops"]},
        {"id": 2, "title": "Laptop B", "product_type": "Laptops", "variants": [{"price": "10"}]},
    ]}
    client, _ = _client(monkeypatch, catalog)
    laptops = client.compare_products("laptop")["Laptops"]
    assert laptops["count"] == 2
    assert laptops["min_price"] == "0.00"
    assert [p["id"] for p in laptops["products"]] == [1, 2]
