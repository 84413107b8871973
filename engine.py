"""
Catalog read engine.

List requests run the same pipeline for every category:

    resolve category -> build per-adapter filters -> fetch concurrently
    -> normalize -> merge -> sort -> paginate

Single-item requests fan out to every adapter of the category and keep the
first hit in registry order.

Reads are availability-first: a failing collection contributes nothing, and
an unexpected error anywhere after category resolution yields an empty page
rather than an error response.
"""

import asyncio
import functools
import locale
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable

from config import settings
from errors import CatalogError, InvalidId, NotFound
from models import CanonicalProduct, CatalogFilters, Pagination, ProductPage
from normalize import parse_timestamp
from registry import AdapterSet, CategoryRegistry
from store import is_valid_object_id

logger = logging.getLogger(__name__)

DEFAULT_SORT = "createdAt"
SORT_FIELDS = frozenset({"createdAt", "price", "mrp", "discountPercent", "title", "name", "rating"})


# ---------------------------------------------------------------------------
# Request parameters
# ---------------------------------------------------------------------------


def _parse_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int
    sort: str
    ascending: bool

    @classmethod
    def from_params(cls, page: Any = None, limit: Any = None, sort: Any = None, order: Any = None) -> "PageRequest":
        """Clamp raw query parameters instead of rejecting them."""
        page_num = _parse_int(page)
        if page_num is None or page_num < 1:
            page_num = 1
        page_num = min(page_num, settings.max_page)

        limit_num = _parse_int(limit)
        if limit_num is None:
            limit_num = settings.default_limit
        limit_num = min(max(limit_num, 1), settings.max_limit)

        sort_field = sort if sort in SORT_FIELDS else DEFAULT_SORT
        return cls(page=page_num, limit=limit_num, sort=sort_field, ascending=order == "asc")


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def use_collation(name: str = "") -> bool:
    """Set the process collation used for title/name ordering.

    An empty name takes the locale from the environment (LC_ALL, LC_COLLATE,
    LANG). An unknown locale is logged and leaves the current one in place.
    """
    try:
        active = locale.setlocale(locale.LC_COLLATE, name)
    except locale.Error:
        logger.warning("Collation locale %r is not available, keeping the current one", name)
        return False
    logger.info("Sorting text with collation %s", active)
    return True


def _price_key(product: CanonicalProduct) -> float:
    return product.mrp or product.price or 0


def _sort_value(product: CanonicalProduct, field: str) -> Any:
    if field in ("price", "mrp"):
        return _price_key(product)
    if field == "discountPercent":
        return product.discount_percent or 0
    if field == "rating":
        return product.rating or 0
    if field in ("title", "name"):
        return (product.title or product.name or "").casefold()
    return parse_timestamp(product.created_at)


def _compare_values(a: Any, b: Any) -> int:
    if isinstance(a, str) or isinstance(b, str):
        return locale.strcoll(a, b)
    return (a > b) - (a < b)


def make_comparator(field: str, ascending: bool) -> Callable[[CanonicalProduct, CanonicalProduct], int]:
    direction = 1 if ascending else -1

    def compare(a: CanonicalProduct, b: CanonicalProduct) -> int:
        try:
            result = _compare_values(_sort_value(a, field), _sort_value(b, field))
        except Exception:
            # One bad pair must not abort the sort; treat it as a tie
            logger.debug("Comparator failed for %s vs %s on %s", a.id, b.id, field, exc_info=True)
            return 0
        return result * direction

    return compare


def sort_products(products: list[CanonicalProduct], field: str, ascending: bool) -> list[CanonicalProduct]:
    """Stable sort; ties keep their merge order in both directions."""
    return sorted(products, key=functools.cmp_to_key(make_comparator(field, ascending)))


def paginate(products: list[CanonicalProduct], page: int, limit: int) -> ProductPage:
    total = len(products)
    skip = (page - 1) * limit
    return ProductPage(
        products=products[skip : skip + limit],
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class CatalogEngine:
    def __init__(self, registry: CategoryRegistry):
        self.registry = registry

    async def list_products(
        self,
        category: str | None,
        filters: CatalogFilters,
        request: PageRequest,
    ) -> ProductPage:
        """Merged, sorted, paginated listing for one category route.

        Category errors propagate; everything after resolution degrades to
        an empty page.
        """
        adapter_set = self.registry.resolve(category)
        try:
            return await self._list(adapter_set, filters, request)
        except CatalogError:
            raise
        except Exception:
            logger.error("Listing %s failed, returning empty page", category, exc_info=True)
            return ProductPage.empty()

    async def _list(self, adapter_set: AdapterSet, filters: CatalogFilters, request: PageRequest) -> ProductPage:
        # Fan out to every schema generation; each query() absorbs its own failure
        results = await asyncio.gather(*[adapter.query(filters) for adapter in adapter_set])

        merged: list[CanonicalProduct] = []
        for adapter, records in zip(adapter_set, results):
            normalized = [adapter.normalize(r) for r in records]
            merged.extend(p for p in normalized if p is not None)
            logger.debug("%s: %d records", adapter.key, len(records))

        ordered = sort_products(merged, request.sort, request.ascending)
        return paginate(ordered, request.page, request.limit)

    async def get_product(self, category: str | None, product_id: str) -> CanonicalProduct:
        """First match across the category's adapters, in registry order."""
        adapter_set = self.registry.resolve(category)
        if not is_valid_object_id(product_id):
            raise InvalidId(product_id)

        product = await self._first_match(adapter_set, product_id)
        if product is None:
            raise NotFound(f"{adapter_set.category.capitalize()} product not found")
        return product

    async def find_anywhere(self, product_id: str) -> tuple[CanonicalProduct, str]:
        """Look an id up across every category; returns (product, category).

        Records an adapter hides from cross-category lookup are skipped, so
        a legacy men's accessory is a 404 here even though it is stored.
        """
        if not is_valid_object_id(product_id):
            raise InvalidId(product_id)

        category_sets = self.registry.categories()
        hits = await asyncio.gather(*[self._first_match(s, product_id, visible_only=True) for s in category_sets])
        for adapter_set, product in zip(category_sets, hits):
            if product is not None:
                return product, adapter_set.category
        raise NotFound("Product not found")

    async def _first_match(
        self,
        adapter_set: AdapterSet,
        product_id: str,
        visible_only: bool = False,
    ) -> CanonicalProduct | None:
        records = await asyncio.gather(*[adapter.find_by_id(product_id) for adapter in adapter_set])
        for adapter, record in zip(adapter_set, records):
            if record is None:
                continue
            if visible_only and adapter.hidden_from_lookup(record):
                logger.debug("%s record %s is hidden from lookup", adapter.key, product_id)
                continue
            return adapter.normalize(record)
        return None
