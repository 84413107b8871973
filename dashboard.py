"""
Admin dashboard summary.

One count per physical collection, all issued concurrently. Product counts
go through each schema adapter's ``count()``; users and orders are read from
the store directly. Any single count that fails is reported as 0 instead of
failing the summary.

Folding rules are fixed business logic:
  - sarees are shown under women, shoes under accessories, and the new watch
    schema under watches, in both ``inventory`` and ``categoryCounts``
  - ``inventory["saree"]`` keeps the raw saree count for reference
  - ``totalProducts`` is the unfolded sum over every product collection
"""

import asyncio
import logging
from typing import Mapping

from models import CatalogSummary
from normalize import to_number
from registry import CategoryRegistry
from store import DocumentCollection, settle

logger = logging.getLogger(__name__)

PRODUCT_COLLECTIONS = (
    "women",
    "watches",
    "watches_new",
    "lens",
    "accessories",
    "shoes",
    "sarees",
    "skincare",
)


class AggregateCountEngine:
    def __init__(self, store: Mapping[str, DocumentCollection], registry: CategoryRegistry):
        self.store = store
        self.registry = registry

    async def _count(self, name: str, filter: dict | None = None) -> int:
        collection = self.store.get(name)
        if collection is None:
            logger.warning("Collection %s is not configured, counting 0", name)
            return 0
        settled = await settle(collection.count_documents(filter or {}), 0, name)
        return settled.value

    async def _revenue(self) -> float:
        orders = self.store.get("orders")
        if orders is None:
            return 0.0
        settled = await settle(orders.find({}), [], "orders")
        return round(sum(to_number(o.get("totalAmount")) for o in settled.value), 2)

    async def _product_counts(self) -> dict[str, int]:
        adapters = [a for s in self.registry.categories() for a in s]
        results = await asyncio.gather(*[a.count() for a in adapters])
        by_source = {a.source: n for a, n in zip(adapters, results)}
        return {name: by_source.get(name, 0) for name in PRODUCT_COLLECTIONS}

    async def summarize(self) -> CatalogSummary:
        (
            total_users,
            total_orders,
            pending_orders,
            total_revenue,
            counts,
        ) = await asyncio.gather(
            self._count("users"),
            self._count("orders"),
            self._count("orders", {"status": "pending"}),
            self._revenue(),
            self._product_counts(),
        )

        category_counts = {
            "women": counts["women"] + counts["sarees"],
            "watches": counts["watches"] + counts["watches_new"],
            "lens": counts["lens"],
            "accessories": counts["accessories"] + counts["shoes"],
            "skincare": counts["skincare"],
        }
        inventory = {**category_counts, "saree": counts["sarees"]}

        return CatalogSummary(
            total_users=total_users,
            total_orders=total_orders,
            pending_orders=pending_orders,
            total_revenue=total_revenue,
            total_products=sum(counts.values()),
            inventory=inventory,
            category_counts=category_counts,
        )
