from __future__ import annotations

import threading
import uuid
from typing import Any, Callable, Dict, List, Optional

from ..domain.models import StoreHandle
from ..errors import NotConfigured, NotFound, ValidationFailure
from ..logging import get_logger
from ..shopify.client import ShopifyClient

LOG = get_logger("store-registry")

ClientFactory = Callable[[str, str], Any]


def default_client_factory(timeout: float = 15) -> ClientFactory:
    def _factory(url: str, credential: str) -> ShopifyClient:
        return ShopifyClient(url, credential, timeout=timeout)

    return _factory


class StoreRegistry:
    """In-memory map of store id -> StoreHandle for the process lifetime.

    The same store URL may be registered more than once; each registration
    gets its own id.
    """

    def __init__(self, client_factory: Optional[ClientFactory] = None) -> None:
        self._client_factory = client_factory or default_client_factory()
        self._stores: Dict[str, StoreHandle] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._stores)

    def connect(
        self,
        display_name: Optional[str],
        url: Optional[str],
        credential: Optional[str],
        *,
        owner: Optional[str] = None,
    ) -> str:
        """Register a store and return its id.

        One lightweight validation call is made; its failure is logged but
        does not block registration.
        """
        if not url or not credential:
            raise ValidationFailure("Store URL and access token are required")
        try:
            client = self._client_factory(url, credential)
        except ValueError as exc:
            raise ValidationFailure(f"Invalid store settings: {exc}") from exc

        name = display_name or url
        try:
            client.search_products("", 1)
            LOG.info(f"Validated connection to store '{name}'")
        except Exception as exc:
            LOG.warning(f"Connection test failed for store '{name}': {exc} (registering anyway)")

        handle = StoreHandle(
            id=str(uuid.uuid4()),
            display_name=name,
            base_url=url,
            credential=credential,
            client=client,
            owner=owner,
        )
        with self._lock:
            self._stores[handle.id] = handle
        LOG.info(f"Registered store '{name}' as {handle.id}")
        return handle.id

    def list(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [h.summary() for h in self._stores.values()]

    def handles(self) -> List[StoreHandle]:
        """Snapshot of the registered handles in registration order."""
        with self._lock:
            return list(self._stores.values())

    def get(self, store_id: str) -> StoreHandle:
        with self._lock:
            handle = self._stores.get(store_id)
        if handle is None:
            raise NotFound("Store not found")
        return handle

    def contains(self, store_id: str) -> bool:
        with self._lock:
            return store_id in self._stores

    def remove(self, store_id: str) -> None:
        with self._lock:
            handle = self._stores.pop(store_id, None)
        if handle is None:
            raise NotFound("Store not found")
        LOG.info(f"Removed store '{handle.display_name}' ({store_id})")

    def disconnect_all(self) -> int:
        with self._lock:
            count = len(self._stores)
            self._stores.clear()
        LOG.info(f"Disconnected {count} store(s)")
        return count

    def rotate_credential(self, store_id: str, credential: str) -> StoreHandle:
        """Replace the handle with one carrying the new credential and a new client."""
        if not credential:
            raise ValidationFailure("Access token is required")
        old = self.get(store_id)
        handle = StoreHandle(
            id=old.id,
            display_name=old.display_name,
            base_url=old.base_url,
            credential=credential,
            client=self._client_factory(old.base_url, credential),
            created_at=old.created_at,
            owner=old.owner,
        )
        with self._lock:
            if store_id not in self._stores:
                raise NotFound("Store not found")
            self._stores[store_id] = handle
        LOG.info(f"Rotated credential for store '{old.display_name}'")
        return handle

    def require_any(self) -> None:
        if len(self) == 0:
            raise NotConfigured("No stores connected. Connect a store first.")

    def test_first(self) -> int:
        """Probe the first registered store; returns the number of products seen."""
        self.require_any()
        first = self.handles()[0]
        products = first.client.search_products("", 1)
        return len(products)
