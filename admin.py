"""
Admin product management routed through the category registry.

Listing is read-only and absorbs failing collections like the storefront
does. Writes are correctness-first: a collection that cannot be reached
surfaces as SourceUnavailable instead of being guessed around.
"""

import asyncio
import logging
from typing import Any, Awaitable, TypeVar

from adapters import SAREE_TOKENS, SareeAdapter, SchemaAdapter
from errors import InvalidId, InvalidInput, NotFound, SourceUnavailable
from models import CanonicalProduct, CatalogFilters
from normalize import as_dict, first_text, parse_timestamp
from registry import AdapterSet, CategoryRegistry
from store import is_valid_object_id

logger = logging.getLogger(__name__)

T = TypeVar("T")

CATEGORY_LIST_LIMIT = 200
OVERVIEW_LIMIT_PER_COLLECTION = 50


async def _write(adapter: SchemaAdapter, awaitable: Awaitable[T]) -> T:
    try:
        return await awaitable
    except Exception as e:
        logger.error("Write to %s failed", adapter.source, exc_info=True)
        raise SourceUnavailable(adapter.source, e) from e


def _recency(record: dict) -> float:
    return parse_timestamp(record.get("updatedAt") or record.get("createdAt"))


def _is_saree_request(adapter_set: AdapterSet, payload: dict) -> bool:
    sub_category = first_text(payload.get("subCategory")).lower()
    return adapter_set.category == "women" and sub_category in SAREE_TOKENS


def _saree_adapter(adapter_set: AdapterSet) -> SareeAdapter | None:
    return next((a for a in adapter_set if isinstance(a, SareeAdapter)), None)


class AdminProductService:
    def __init__(self, registry: CategoryRegistry):
        self.registry = registry

    # -- listing ------------------------------------------------------------

    async def list_products(self, category: str | None = None) -> list[CanonicalProduct]:
        if category:
            adapter_set = self.registry.resolve(category)
            adapters = list(adapter_set)
            limit = CATEGORY_LIST_LIMIT
        else:
            adapters = [a for s in self.registry.categories() for a in s]
            limit = OVERVIEW_LIMIT_PER_COLLECTION

        batches = await asyncio.gather(*[a.query(CatalogFilters()) for a in adapters])

        if not category:
            return [a.normalize(r) for a, records in zip(adapters, batches) for r in records[:limit]]

        pairs = [(r, a) for a, records in zip(adapters, batches) for r in records]
        pairs.sort(key=lambda pair: _recency(pair[0]), reverse=True)
        return [a.normalize(r) for r, a in pairs[:limit]]

    # -- writes -------------------------------------------------------------

    async def create_product(self, payload: dict) -> CanonicalProduct:
        if not first_text(payload.get("name"), payload.get("title")):
            raise InvalidInput("Product name is required")

        adapter_set = self.registry.resolve(payload.get("category"))
        target = adapter_set.primary
        if _is_saree_request(adapter_set, payload):
            target = _saree_adapter(adapter_set) or target

        stored = await _write(target, target.collection.create(target.to_document(payload)))
        logger.info("Created %s product %s", target.key, stored.get("_id"))
        return target.normalize(stored)

    async def update_product(self, product_id: str, payload: dict) -> CanonicalProduct:
        adapter, current = await self._locate(product_id, payload.get("category"))
        if isinstance(adapter, SareeAdapter):
            changes = _saree_update(adapter, payload, current)
        else:
            changes = adapter.to_document(payload)

        updated = await _write(adapter, adapter.collection.find_by_id_and_update(product_id, changes))
        if updated is None:
            raise NotFound("Product not found")
        logger.info("Updated %s product %s", adapter.key, product_id)
        return adapter.normalize(updated)

    async def delete_product(self, product_id: str, category: str | None = None) -> None:
        adapter, _ = await self._locate(product_id, category)
        deleted = await _write(adapter, adapter.collection.find_by_id_and_delete(product_id))
        if deleted is None:
            raise NotFound("Product not found")
        logger.info("Deleted %s product %s", adapter.key, product_id)

    async def _locate(self, product_id: str, category: str | None) -> tuple[SchemaAdapter, dict]:
        """Find the adapter whose collection holds ``product_id``."""
        if not is_valid_object_id(product_id):
            raise InvalidId(product_id)

        if category:
            adapters = list(self.registry.resolve(category))
        else:
            adapters = [a for s in self.registry.categories() for a in s]

        records = await asyncio.gather(*[_write(a, a.collection.find_by_id(product_id)) for a in adapters])
        for adapter, record in zip(adapters, records):
            if record is not None:
                return adapter, record
        raise NotFound("Product not found")


def _saree_update(adapter: SareeAdapter, payload: dict, current: dict) -> dict:
    """Merge a flat admin payload over the stored saree document."""
    info = as_dict(current.get("product_info"))
    flat: dict[str, Any] = {
        "title": current.get("title"),
        "mrp": current.get("mrp"),
        "discountPercent": current.get("discountPercent"),
        "description": current.get("description"),
        "categoryId": current.get("categoryId"),
        "stock": current.get("stock"),
        "sizes": current.get("sizes"),
        "isNewArrival": current.get("isNewArrival"),
        "onSale": current.get("onSale"),
        "isFeatured": current.get("isFeatured"),
        "rating": current.get("rating"),
        **{k: info.get(k) for k in ("brand", "manufacturer", "SareeLength", "SareeMaterial", "SareeColor", "IncludedComponents")},
    }
    merged = {**flat, **{k: v for k, v in payload.items() if v is not None}}
    changes = adapter.to_document(merged)
    if not (isinstance(payload.get("images"), list) and payload["images"]):
        changes.pop("images")
    return changes
