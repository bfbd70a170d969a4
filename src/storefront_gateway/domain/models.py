from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional

from .classify import classify_store_name


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_price(value: Any) -> Decimal:
    """Parse a price string; missing, non-numeric, NaN or infinite -> 0."""
    if value is None:
        return Decimal(0)
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal(0)
    if not parsed.is_finite():
        return Decimal(0)
    return parsed


@dataclass
class StoreHandle:
    id: str
    display_name: str
    base_url: str
    credential: str
    client: Any
    created_at: datetime = field(default_factory=utcnow)
    owner: Optional[str] = None

    def summary(self) -> Dict[str, Any]:
        """Public view of the handle; the credential is never included."""
        return {
            "id": self.id,
            "display_name": self.display_name,
            "url": self.base_url,
            "owner": self.owner,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class AggregatedProduct:
    id: str
    title: str
    price: Optional[str]
    vendor: Optional[str]
    product_type: Optional[str]
    image_url: Optional[str]
    store_id: str
    store_name: str

    @classmethod
    def from_store_product(cls, raw: Dict[str, Any], store_id: str) -> "AggregatedProduct":
        """Build from a raw store product (first variant price, first image)."""
        variants = raw.get("variants") or []
        images = raw.get("images") or []
        price = variants[0].get("price") if variants and isinstance(variants[0], dict) else None
        image = images[0].get("src") if images and isinstance(images[0], dict) else None
        title = str(raw.get("title") or "")
        return cls(
            id=str(raw.get("id")),
            title=title,
            price=None if price is None else str(price),
            vendor=raw.get("vendor"),
            product_type=raw.get("product_type"),
            image_url=image,
            store_id=store_id,
            store_name=classify_store_name(title, raw.get("product_type"), raw.get("vendor")),
        )

    @property
    def numeric_price(self) -> Decimal:
        return parse_price(self.price)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "price": self.price,
            "vendor": self.vendor,
            "product_type": self.product_type,
            "image_url": self.image_url,
            "store_id": self.store_id,
            "store_name": self.store_name,
        }


@dataclass
class DealScoredProduct(AggregatedProduct):
    deal_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["deal_score"] = self.deal_score
        return data


class OrderStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"


@dataclass
class OrderRecord:
    tracking_id: str
    upstream_order_id: Any
    upstream_order_number: Any
    store_id: str
    store_name: str
    product_id: str
    product_title: str
    quantity: int
    customer: Dict[str, Any]
    total: Optional[str]
    currency: str
    status: OrderStatus = OrderStatus.PENDING_PAYMENT
    created_at: datetime = field(default_factory=utcnow)
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tracking_id": self.tracking_id,
            "order_id": self.upstream_order_id,
            "order_number": self.upstream_order_number,
            "store_id": self.store_id,
            "store_name": self.store_name,
            "product_id": self.product_id,
            "product_title": self.product_title,
            "quantity": self.quantity,
            "customer": dict(self.customer),
            "total": self.total,
            "currency": self.currency,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "payment_method": self.payment_method,
        }
