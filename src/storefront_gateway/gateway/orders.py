from __future__ import annotations

import threading
import uuid
from typing import Any, Dict, List, Mapping, Optional

from ..domain.models import OrderRecord, OrderStatus, utcnow
from ..errors import NotFound, UpstreamFailure, ValidationFailure
from ..logging import get_logger
from .registry import StoreRegistry

LOG = get_logger("order-facade")

PRODUCT_LOOKUP_LIMIT = 100
DEFAULT_CURRENCY = "ILS"
DEFAULT_PAYMENT_METHOD = "paypal_demo"

# Placeholders used when the caller does not supply customer data. Customer
# data collection and shipping address entry are not implemented.
PLACEHOLDER_CUSTOMER = {
    "email": "customer@example.com",
    "first_name": "לקוח",
    "last_name": "חדש",
}
PLACEHOLDER_ADDRESS = {
    "address1": "רחוב ראשי 1",
    "city": "תל אביב",
    "province": "מרכז",
    "country": "IL",
    "zip": "12345",
}


def _fill_customer(customer_info: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    info = dict(customer_info or {})
    # Accept the camelCase keys older clients send.
    aliases = {"first_name": "firstName", "last_name": "lastName"}
    customer = {}
    for key, default in PLACEHOLDER_CUSTOMER.items():
        value = info.get(key) or info.get(aliases.get(key, key))
        customer[key] = str(value).strip() if value else default
    return customer


def _parse_quantity(quantity: Any) -> int:
    try:
        qty = int(quantity)
    except (TypeError, ValueError) as exc:
        raise ValidationFailure(f"Invalid quantity: {quantity!r}") from exc
    if qty < 1:
        raise ValidationFailure("Quantity must be at least 1")
    return qty


class OrderTracker:
    """Tracking id -> OrderRecord, kept for the process lifetime."""

    def __init__(self) -> None:
        self._orders: Dict[str, OrderRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._orders)

    def add(self, record: OrderRecord) -> None:
        with self._lock:
            self._orders[record.tracking_id] = record

    def get(self, tracking_id: str) -> OrderRecord:
        with self._lock:
            record = self._orders.get(tracking_id)
        if record is None:
            raise NotFound("Order not found")
        return record

    def mark_paid(self, tracking_id: str, method: str) -> OrderRecord:
        with self._lock:
            record = self._orders.get(tracking_id)
            if record is None:
                raise NotFound("Order not found")
            record.status = OrderStatus.PAID
            record.paid_at = utcnow()
            record.payment_method = method
            return record


class OrderFacade:
    """Creates upstream orders for a single product and tracks their local payment status.

    There is no rollback: if the upstream create fails nothing is recorded
    and the caller retries the whole operation.
    """

    def __init__(self, registry: StoreRegistry, tracker: Optional[OrderTracker] = None) -> None:
        self.registry = registry
        self.tracker = tracker or OrderTracker()

    def create_order(
        self,
        store_id: str,
        product_id: Any,
        quantity: Any = 1,
        customer_info: Optional[Mapping[str, Any]] = None,
    ) -> OrderRecord:
        if not store_id or product_id in (None, ""):
            raise ValidationFailure("store_id and product_id are required")
        qty = _parse_quantity(quantity)
        store = self.registry.get(store_id)

        try:
            products = store.client.list_products(PRODUCT_LOOKUP_LIMIT)
        except UpstreamFailure:
            raise
        except Exception as exc:
            raise UpstreamFailure(f"Product lookup failed: {exc}") from exc
        product = next((p for p in products if str(p.get("id")) == str(product_id)), None)
        if product is None:
            raise NotFound("Product not found")

        # Only the first variant is orderable; variant selection is not supported.
        variants: List[Dict[str, Any]] = product.get("variants") or []
        variant_id = variants[0].get("id") if variants else None
        if not variant_id:
            raise ValidationFailure("No variants available")

        customer = _fill_customer(customer_info)
        line_items = [{"variant_id": variant_id, "quantity": qty}]
        LOG.info(f"Creating order in store '{store.display_name}': product={product_id} qty={qty}")
        try:
            order = store.client.create_order(line_items, customer, dict(PLACEHOLDER_ADDRESS))
        except UpstreamFailure:
            raise
        except Exception as exc:
            raise UpstreamFailure(f"Order creation failed: {exc}") from exc

        record = OrderRecord(
            tracking_id=str(uuid.uuid4()),
            upstream_order_id=order.get("id"),
            upstream_order_number=order.get("order_number") or order.get("name"),
            store_id=store.id,
            store_name=store.display_name,
            product_id=str(product_id),
            product_title=str(product.get("title") or ""),
            quantity=qty,
            customer=customer,
            total=order.get("total_price"),
            currency=order.get("currency") or DEFAULT_CURRENCY,
        )
        self.tracker.add(record)
        LOG.info(f"Order {record.upstream_order_number} created; tracking id {record.tracking_id}")
        return record

    def get(self, tracking_id: str) -> OrderRecord:
        return self.tracker.get(tracking_id)

    def mark_paid(self, tracking_id: str, method: Optional[str] = None) -> OrderRecord:
        """Simulated payment. Paying twice is allowed and re-stamps `paid_at`."""
        record = self.tracker.mark_paid(tracking_id, method or DEFAULT_PAYMENT_METHOD)
        LOG.info(f"Order {tracking_id} marked paid via {record.payment_method}")
        return record

    def list_store_orders(self, store_id: str, limit: int = 10, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """Upstream orders of one store, trimmed to the fields the API shows."""
        store = self.registry.get(store_id)
        orders = store.client.list_orders(limit, status)
        return [
            {
                "id": o.get("id"),
                "order_number": o.get("order_number"),
                "total_price": o.get("total_price"),
                "currency": o.get("currency"),
                "financial_status": o.get("financial_status"),
                "fulfillment_status": o.get("fulfillment_status"),
                "created_at": o.get("created_at"),
                "customer_email": o.get("email"),
                "line_items_count": len(o.get("line_items") or []),
            }
            for o in orders
        ]
