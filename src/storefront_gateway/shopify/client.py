from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests

from ..domain.models import parse_price
from ..errors import NotFound, UpstreamFailure
from ..logging import get_logger

API_VERSION = "2024-01"
MAX_PAGE_SIZE = 250


def normalize_store_url(url: str) -> str:
    """Return an https base URL without trailing slash (adds the scheme if missing)."""
    u = (url or "").strip().rstrip("/")
    if u and not u.startswith(("http://", "https://")):
        u = "https://" + u
    return u


class ShopifyClient:
    """Thin client for the Shopify Admin REST API with session, timeouts, and logging.

    Only implements the subset the gateway uses: product listing/search,
    single product lookup, order listing and order creation. Every failure
    (network, non-2xx, undecodable body) surfaces as UpstreamFailure.
    """

    def __init__(
        self,
        store_url: str,
        access_token: str,
        *,
        timeout: float = 15,
        verify_tls: bool = True,
        api_version: str = API_VERSION,
    ) -> None:
        self.base = normalize_store_url(store_url)
        if not self.base:
            raise ValueError("store_url is required")
        self.api_version = api_version
        self.timeout = float(timeout)
        self.verify = bool(verify_tls)
        self.log = get_logger("shopify-client")
        self.s = requests.Session()
        self.s.headers.update({
            "X-Shopify-Access-Token": access_token,
            "Accept": "application/json",
            "Content-Type": "application/json",
        })

    # ---------- helpers ----------
    def _url(self, path: str) -> str:
        return f"{self.base}/admin/api/{self.api_version}{path}"

    def _request(self, method: str, path: str, *, missing: Optional[str] = None, **kwargs: Any) -> Dict[str, Any]:
        """Send one request. With `missing`, an HTTP 404 raises NotFound(missing) instead of UpstreamFailure."""
        url = self._url(path)
        try:
            r = self.s.request(method, url, timeout=self.timeout, verify=self.verify, **kwargs)
        except requests.RequestException as e:
            self.log.warning(f"{method} {path} failed: {e}")
            raise UpstreamFailure(f"{method} {path} failed: {e}") from e
        if missing and r.status_code == 404:
            raise NotFound(missing)
        if not r.ok:
            preview = (r.text or "")[:300]
            self.log.warning(f"{method} {path} returned {r.status_code}: {preview!r}")
            raise UpstreamFailure(f"{method} {path} returned HTTP {r.status_code}")
        try:
            body = r.json()
        except ValueError as e:
            raise UpstreamFailure(f"{method} {path} returned a non-JSON body") from e
        if not isinstance(body, dict):
            raise UpstreamFailure(f"{method} {path} returned an unexpected body")
        return body

    # ---------- products ----------
    def list_products(self, limit: int = 10) -> List[Dict[str, Any]]:
        limit = max(1, min(int(limit), MAX_PAGE_SIZE))
        body = self._request("GET", "/products.json", params={"limit": limit})
        products = body.get("products")
        return products if isinstance(products, list) else []

    def get_product(self, product_id: str) -> Dict[str, Any]:
        body = self._request("GET", f"/products/{product_id}.json", missing="Product not found")
        product = body.get("product")
        if not isinstance(product, dict):
            raise UpstreamFailure(f"Product {product_id} missing from response")
        return product

    def search_products(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Match products whose title, type, vendor, tags or description contain a query word.

        The REST API has no full-text search, so a page of products is
        fetched and filtered locally. An empty query returns the first
        `limit` products.
        """
        words = [w for w in (query or "").lower().split() if w]
        if not words:
            return self.list_products(limit)
        matches: List[Dict[str, Any]] = []
        for p in self.list_products(MAX_PAGE_SIZE):
            haystack = " ".join(
                str(p.get(k) or "") for k in ("title", "product_type", "vendor", "tags", "body_html")
            ).lower()
            if any(w in haystack for w in words):
                matches.append(p)
                if len(matches) >= limit:
                    break
        self.log.debug(f"search_products({query!r}) matched {len(matches)} product(s)")
        return matches

    def search_by_vendor(self, vendor: str, limit: int = 20) -> List[Dict[str, Any]]:
        needle = (vendor or "").strip().lower()
        found = [
            p for p in self.list_products(MAX_PAGE_SIZE)
            if needle and needle in str(p.get("vendor") or "").lower()
        ]
        return found[: max(0, int(limit))]

    def compare_products(self, search_term: str) -> Dict[str, Dict[str, Any]]:
        """Group matching products by product type with price statistics."""
        groups: Dict[str, List[Dict[str, Any]]] = {}
        for p in self.search_products(search_term, MAX_PAGE_SIZE):
            groups.setdefault(p.get("product_type") or "Uncategorized", []).append(p)

        comparison: Dict[str, Dict[str, Any]] = {}
        for category, items in groups.items():
            rows = []
            for p in items:
                variants = p.get("variants") or []
                price = variants[0].get("price") if variants and isinstance(variants[0], dict) else None
                rows.append({"id": p.get("id"), "title": p.get("title"), "price": price, "vendor": p.get("vendor")})
            prices = [parse_price(r["price"]) for r in rows]
            avg = sum(prices, Decimal(0)) / len(prices)
            comparison[category] = {
                "count": len(rows),
                "min_price": f"{min(prices):.2f}",
                "max_price": f"{max(prices):.2f}",
                "avg_price": f"{avg:.2f}",
                "products": sorted(rows, key=lambda r: parse_price(r["price"])),
            }
        return comparison

    # ---------- orders ----------
    def list_orders(self, limit: int = 10, status: Optional[str] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"limit": max(1, min(int(limit), MAX_PAGE_SIZE))}
        if status:
            params["status"] = status
        body = self._request("GET", "/orders.json", params=params)
        orders = body.get("orders")
        return orders if isinstance(orders, list) else []

    def create_order(
        self,
        line_items: List[Dict[str, Any]],
        customer: Dict[str, Any],
        shipping_address: Dict[str, Any],
    ) -> Dict[str, Any]:
        payload = {
            "order": {
                "line_items": [
                    {"variant_id": li["variant_id"], "quantity": int(li["quantity"])} for li in line_items
                ],
                "customer": {
                    "email": customer.get("email"),
                    "first_name": customer.get("first_name"),
                    "last_name": customer.get("last_name"),
                },
                "email": customer.get("email"),
                "shipping_address": {
                    "first_name": customer.get("first_name"),
                    "last_name": customer.get("last_name"),
                    **shipping_address,
                },
                "financial_status": "pending",
            }
        }
        self.log.info(f"POST order: {len(line_items)} line item(s) for {customer.get('email')}")
        body = self._request("POST", "/orders.json", json=payload)
        order = body.get("order")
        if not isinstance(order, dict):
            raise UpstreamFailure("Order missing from create response")
        return order
