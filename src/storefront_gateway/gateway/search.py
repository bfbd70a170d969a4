"""Cross-store product search, comparison and deal ranking.

Every store call runs as its own task (``asyncio.to_thread`` under
``asyncio.wait_for``) and the tasks are joined with
``asyncio.gather(return_exceptions=True)``. A failed or timed-out task only
removes its own contribution; sibling tasks keep running and the merged
result is built from whatever succeeded.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

from ..domain.deals import rank_deals
from ..domain.expand import expand_query
from ..domain.models import AggregatedProduct, DealScoredProduct, StoreHandle
from ..errors import UpstreamFailure
from ..logging import get_logger
from .registry import StoreRegistry

LOG = get_logger("aggregate-search")

DEFAULT_PER_STORE_LIMIT = 10
DEFAULT_SUB_REQUEST_TIMEOUT = 15.0


def sort_by_price(products: Sequence[AggregatedProduct]) -> List[AggregatedProduct]:
    """Stable ascending sort by numeric price (missing/non-numeric price = 0)."""
    return sorted(products, key=lambda p: p.numeric_price)


class AggregateSearchEngine:
    def __init__(
        self,
        registry: StoreRegistry,
        *,
        per_store_limit: int = DEFAULT_PER_STORE_LIMIT,
        sub_request_timeout: float = DEFAULT_SUB_REQUEST_TIMEOUT,
        expander: Callable[[str], List[str]] = expand_query,
    ) -> None:
        self.registry = registry
        self.per_store_limit = int(per_store_limit)
        self.sub_request_timeout = float(sub_request_timeout)
        self.expander = expander

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _call(self, handle: StoreHandle, label: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self.sub_request_timeout)
        except asyncio.TimeoutError:
            LOG.warning(f"{label} timed out after {self.sub_request_timeout}s for store '{handle.display_name}'")
            raise

    async def _fan_out(
        self,
        calls: List[Tuple[StoreHandle, str, Callable[..., Any], Tuple[Any, ...]]],
    ) -> List[Any]:
        """Run all calls concurrently; failed entries come back as exceptions."""
        results = await asyncio.gather(
            *(self._call(handle, label, fn, *args) for handle, label, fn, args in calls),
            return_exceptions=True,
        )
        for (handle, label, _, _), result in zip(calls, results):
            if isinstance(result, BaseException) and not isinstance(result, asyncio.TimeoutError):
                LOG.warning(f"{label} failed for store '{handle.display_name}': {result}")
        return list(results)

    def _collect(self, handle: StoreHandle, batches: Sequence[Any], seen: Set[str]) -> List[AggregatedProduct]:
        out: List[AggregatedProduct] = []
        for batch in batches:
            if isinstance(batch, BaseException) or not isinstance(batch, list):
                continue
            for raw in batch:
                if not isinstance(raw, dict) or raw.get("id") in (None, ""):
                    continue
                product = AggregatedProduct.from_store_product(raw, handle.id)
                if product.id in seen:
                    continue
                seen.add(product.id)
                out.append(product)
        return out

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def search(self, query: str, store_id: Optional[str] = None) -> List[AggregatedProduct]:
        """Return price-sorted products for `query`.

        With `store_id`, only that store is queried, with the raw query and
        no term expansion. Raises NotFound for an unknown store id; upstream
        failures never propagate.
        """
        if store_id:
            handle = self.registry.get(store_id)
            results = await self._fan_out(
                [(handle, f"search {query!r}", handle.client.search_products, (query, self.per_store_limit))]
            )
            products = self._collect(handle, results, set())
            if not self.registry.contains(handle.id):
                return []
            return sort_by_price(products)

        handles = self.registry.handles()
        if not handles:
            return []
        terms = self.expander(query)
        LOG.info(f"Searching for {query!r} across {len(handles)} store(s); terms: {terms}")

        calls = [
            (handle, f"search term {term!r}", handle.client.search_products, (term, self.per_store_limit))
            for handle in handles
            for term in terms
        ]
        results = await self._fan_out(calls)

        merged: List[AggregatedProduct] = []
        for i, handle in enumerate(handles):
            store_batches = results[i * len(terms):(i + 1) * len(terms)]
            products = self._collect(handle, store_batches, set())
            # A store removed while its requests were in flight contributes nothing.
            if not self.registry.contains(handle.id):
                LOG.info(f"Store '{handle.display_name}' was removed during search; dropping its results")
                continue
            merged.extend(products)

        ordered = sort_by_price(merged)
        LOG.info(f"Aggregated {len(ordered)} product(s) for {query!r}")
        return ordered

    async def search_by_vendor(self, vendor: str, limit: int = 20) -> List[AggregatedProduct]:
        handles = self.registry.handles()
        calls = [(h, f"vendor {vendor!r}", h.client.search_by_vendor, (vendor, limit)) for h in handles]
        results = await self._fan_out(calls)
        merged: List[AggregatedProduct] = []
        for handle, batch in zip(handles, results):
            if self.registry.contains(handle.id):
                merged.extend(self._collect(handle, [batch], set()))
        return sort_by_price(merged)

    async def best_deals(self, limit: int = 10, *, sample_size: int = 100) -> List[DealScoredProduct]:
        """Score every store's catalog sample together and return the top `limit`."""
        handles = self.registry.handles()
        calls = [(h, "list products", h.client.list_products, (sample_size,)) for h in handles]
        results = await self._fan_out(calls)
        pool: List[AggregatedProduct] = []
        for handle, batch in zip(handles, results):
            if self.registry.contains(handle.id):
                pool.extend(self._collect(handle, [batch], set()))
        return rank_deals(pool, limit)

    async def compare(self, search_term: str) -> Dict[str, Dict[str, Any]]:
        """Per-store category comparison keyed by store display name.

        A failing store is reported with an ``error`` entry instead of
        categories.
        """
        handles = self.registry.handles()
        calls = [(h, f"compare {search_term!r}", h.client.compare_products, (search_term,)) for h in handles]
        results = await self._fan_out(calls)
        comparison: Dict[str, Dict[str, Any]] = {}
        for handle, result in zip(handles, results):
            if isinstance(result, asyncio.TimeoutError):
                comparison[handle.display_name] = {"store_id": handle.id, "error": "Request timed out"}
            elif isinstance(result, BaseException):
                comparison[handle.display_name] = {"store_id": handle.id, "error": str(result)}
            else:
                comparison[handle.display_name] = {"store_id": handle.id, "categories": result}
        return comparison

    async def product_details(self, store_id: str, product_id: str) -> Dict[str, Any]:
        """Full upstream record of one product plus its aggregated view.

        Unlike search, failures propagate: NotFound for an unknown store or
        product, UpstreamFailure for network errors and timeouts.
        """
        handle = self.registry.get(store_id)
        try:
            raw = await self._call(handle, f"product {product_id}", handle.client.get_product, product_id)
        except asyncio.TimeoutError as exc:
            raise UpstreamFailure("Request timed out") from exc
        return {
            "store_id": handle.id,
            "store": handle.display_name,
            "product": AggregatedProduct.from_store_product(raw, handle.id).to_dict(),
            "details": raw,
        }

    def store_stats(self, products: Sequence[AggregatedProduct]) -> Dict[str, int]:
        return {"total_stores": len(self.registry), "total_products": len(products)}


__all__ = ["AggregateSearchEngine", "sort_by_price"]
