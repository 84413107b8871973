"""
Schema adapters: one per stored schema generation per category.

An adapter binds one physical collection to the canonical product shape. It
owns three things:
  - build_query(): translate the shared request filter bag into a filter for
    its own collection (or a match-nothing filter when the request can never
    match what the collection stores)
  - query() / find_by_id() / count(): read-only fetches that never raise
  - normalize(): a total mapping from any stored document to CanonicalProduct

Adapters are stateless; they are constructed once at startup with their
collection handle and shared by every request.
"""

import logging
import re
from typing import Any

from models import CanonicalProduct, CatalogFilters
from normalize import (
    as_dict,
    first_positive,
    first_text,
    is_true,
    normalize_images,
    placeholder_name,
    resolve_prices,
    text,
    text_list,
    timestamp_text,
    to_int,
    to_number,
    to_rating,
)
from store import DocumentCollection, settle

logger = logging.getLogger(__name__)

# A filter no stored document can satisfy (every document has an _id)
MATCH_NONE: dict = {"_id": None}

FLAG_FIELDS = (
    ("is_new_arrival", "isNewArrival"),
    ("on_sale", "onSale"),
    ("is_featured", "isFeatured"),
)

SAREE_TOKENS = frozenset({"saree", "sari", "sarees", "saris"})
SHOE_TOKENS = frozenset({"shoe", "shoes", "footwear"})
WOMEN_TOKENS = frozenset({"women", "woman", "womens", "women's", "female", "ladies"})
MEN_TOKENS = frozenset({"men", "male", "m"})

# Request keys that only route a write and are never stored
_ROUTING_KEYS = ("category", "_id", "id")


# ---------------------------------------------------------------------------
# Query-building helpers
# ---------------------------------------------------------------------------


def clean(value: Any) -> str | None:
    """Trimmed, case-folded filter value, or None when the filter is absent."""
    if not isinstance(value, str):
        return None
    value = value.strip().casefold()
    return value or None


def exact_ci(value: str) -> dict:
    return {"$regex": f"^{re.escape(value)}$", "$options": "i"}


def contains_ci(value: str) -> dict:
    return {"$regex": re.escape(value), "$options": "i"}


def apply_flags(query: dict, filters: CatalogFilters, flags=FLAG_FIELDS) -> None:
    # Only the literal "true" turns a flag on; anything else leaves it out
    for attr, field in flags:
        if getattr(filters, attr) == "true":
            query[field] = True


def apply_text_search(query: dict, filters: CatalogFilters) -> None:
    if filters.search and filters.search.strip():
        query["$text"] = {"$search": filters.search.strip()}


def _without_hyphens(value: str) -> str:
    return value.replace("-", "")


class SchemaAdapter:
    """Base adapter. Subclasses set the class attributes and override
    ``build_query`` and ``_normalize``."""

    key: str = ""
    category: str = ""
    schema_type: str = ""
    # Category tokens that mean "this whole collection" when passed as ?category=
    family_tokens: frozenset[str] = frozenset()

    def __init__(self, collection: DocumentCollection):
        self.collection = collection

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.collection.name!r})"

    @property
    def source(self) -> str:
        return self.collection.name

    # -- reads --------------------------------------------------------------

    def build_query(self, filters: CatalogFilters) -> dict:
        raise NotImplementedError

    async def _find(self, filters: CatalogFilters) -> list[dict]:
        return await self.collection.find(self.build_query(filters))

    async def query(self, filters: CatalogFilters) -> list[dict]:
        settled = await settle(self._find(filters), [], self.key)
        return settled.value

    async def find_by_id(self, doc_id: str) -> dict | None:
        settled = await settle(self.collection.find_by_id(doc_id), None, self.key)
        return settled.value

    async def count(self) -> int:
        settled = await settle(self.collection.count_documents({}), 0, self.key)
        return settled.value

    def hidden_from_lookup(self, record: dict) -> bool:
        """True for stored records the cross-category id lookup must not serve."""
        return False

    # -- normalization ------------------------------------------------------

    def normalize(self, record: Any) -> CanonicalProduct:
        """Map a stored document to a CanonicalProduct. Never raises."""
        product = self.try_normalize(record)
        return product if product is not None else self.degraded(record)

    def try_normalize(self, record: Any) -> CanonicalProduct | None:
        """Strict normalization; None when the record cannot be mapped."""
        try:
            if not isinstance(record, dict):
                raise TypeError(f"expected a document, got {type(record).__name__}")
            return self._normalize(record)
        except Exception:
            logger.warning("Degraded %s record %s", self.key, _record_id(record), exc_info=True)
            return None

    def _normalize(self, record: dict) -> CanonicalProduct:
        raise NotImplementedError

    def degraded(self, record: Any) -> CanonicalProduct:
        doc_id = _record_id(record)
        title = placeholder_name(doc_id)
        return CanonicalProduct(
            id=doc_id,
            title=title,
            name=title,
            category=self.category,
            schema_type=self.schema_type,
        )

    def _product(self, record: dict, **fields: Any) -> CanonicalProduct:
        """Assemble a CanonicalProduct from the fields every schema shares.

        ``fields`` carries the schema-specific values and overrides the
        shared defaults.
        """
        doc_id = _record_id(record)
        title = fields.pop("title", "") or placeholder_name(doc_id)
        base: dict[str, Any] = {
            "id": doc_id,
            "title": title,
            "name": title,
            "category": self.category,
            "schema_type": self.schema_type,
            "created_at": timestamp_text(record.get("createdAt")),
            "description": text(record.get("description")),
            "gender": text(record.get("gender")),
            "stock": to_int(record.get("stock")),
            "rating": to_rating(record.get("rating")),
            "is_new_arrival": is_true(record.get("isNewArrival")),
            "on_sale": is_true(record.get("onSale")),
            "is_featured": is_true(record.get("isFeatured")),
            "sub_category": text(record.get("subCategory")),
        }
        base.update(fields)
        return CanonicalProduct(**base)

    # -- writes (admin) -----------------------------------------------------

    def to_document(self, payload: dict) -> dict:
        """Shape an admin payload for this collection."""
        return {k: v for k, v in payload.items() if k not in _ROUTING_KEYS}

    def _category_clause(self, value: str | None, field: str = "subCategory") -> dict | None:
        """Clause for ?category= on collections where it names a sub-category.

        None means the token names the whole collection, so no clause.
        """
        if value is None or value in self.family_tokens:
            return None
        return {field: exact_ci(value)}


def _record_id(record: Any) -> str:
    if not isinstance(record, dict):
        return ""
    return first_text(record.get("_id"), record.get("id"))


def _merge_clause(query: dict, clause: dict | None) -> bool:
    """Add ``clause`` to ``query``. False when it contradicts an existing key."""
    if clause is None:
        return True
    for key, condition in clause.items():
        if key in query and query[key] != condition:
            return False
        query[key] = condition
    return True


# ---------------------------------------------------------------------------
# Watches
# ---------------------------------------------------------------------------


class LegacyWatchAdapter(SchemaAdapter):
    key = "watches-legacy"
    category = "watches"
    schema_type = "old"
    family_tokens = frozenset({"watch", "watches"})

    def build_query(self, filters: CatalogFilters) -> dict:
        query: dict = {}
        if gender := clean(filters.gender):
            query["gender"] = exact_ci(gender)
        if sub_category := clean(filters.sub_category):
            query["subCategory"] = exact_ci(sub_category)
        if not _merge_clause(query, self._category_clause(clean(filters.category))):
            return dict(MATCH_NONE)
        if brand := clean(filters.brand):
            query["brand"] = exact_ci(brand)
        apply_flags(query, filters)
        apply_text_search(query, filters)
        return query

    def _normalize(self, record: dict) -> CanonicalProduct:
        info = as_dict(record.get("product_info"))
        details = as_dict(record.get("productDetails"))
        prices = resolve_prices(
            mrp=first_positive(record.get("price"), record.get("mrp"), record.get("originalPrice")),
            discount_percent=record.get("discountPercent"),
            final_price=record.get("finalPrice"),
            original_price=record.get("originalPrice"),
        )
        brand = first_text(record.get("brand"), info.get("brand"))
        if not info:
            info = {
                "brand": brand,
                "manufacturer": text(details.get("manufacturer")),
                "IncludedComponents": text(details.get("IncludedComponents")),
            }
        return self._product(
            record,
            title=first_text(record.get("name"), record.get("title")),
            images=normalize_images(record.get("images"), record.get("thumbnail"), record.get("image")),
            brand=brand,
            product_info=info,
            **prices,
        )


class NewWatchAdapter(SchemaAdapter):
    key = "watches-new"
    category = "watches"
    schema_type = "new"
    family_tokens = frozenset({"watch", "watches"})

    def build_query(self, filters: CatalogFilters) -> dict:
        query: dict = {}
        if gender := clean(filters.gender):
            query["product_info.gender"] = exact_ci(gender)
        if sub_category := clean(filters.sub_category):
            query["subCategory"] = exact_ci(sub_category)
        if not _merge_clause(query, self._category_clause(clean(filters.category))):
            return dict(MATCH_NONE)
        if filters.category_id and filters.category_id.strip():
            query["categoryId"] = filters.category_id.strip()
        if brand := clean(filters.brand):
            query["product_info.brand"] = exact_ci(brand)
        apply_flags(query, filters)
        apply_text_search(query, filters)
        return query

    def _normalize(self, record: dict) -> CanonicalProduct:
        info = as_dict(record.get("product_info"))
        prices = resolve_prices(
            mrp=first_positive(record.get("mrp"), record.get("price")),
            discount_percent=record.get("discountPercent"),
            final_price=record.get("finalPrice"),
        )
        return self._product(
            record,
            title=first_text(record.get("title"), record.get("name")),
            images=normalize_images(record.get("images"), record.get("thumbnail"), record.get("image")),
            brand=first_text(info.get("brand"), record.get("brand")),
            gender=first_text(info.get("gender"), record.get("gender")),
            product_info=info,
            **prices,
        )


# ---------------------------------------------------------------------------
# Accessories and shoes
# ---------------------------------------------------------------------------


class LegacyAccessoryAdapter(SchemaAdapter):
    key = "accessories-legacy"
    category = "accessories"
    schema_type = "old"
    family_tokens = frozenset({"accessory", "accessories"})

    def build_query(self, filters: CatalogFilters) -> dict:
        query: dict = {}
        if gender := clean(filters.gender):
            query["gender"] = exact_ci(gender)
        if sub_category := clean(filters.sub_category):
            query["subCategory"] = exact_ci(sub_category)
        # ?category=belt means the garment category, stored as subCategory here
        if not _merge_clause(query, self._category_clause(clean(filters.category))):
            return dict(MATCH_NONE)
        if brand := clean(filters.brand):
            query["brand"] = exact_ci(brand)
        apply_flags(query, filters)
        apply_text_search(query, filters)
        return query

    def hidden_from_lookup(self, record: dict) -> bool:
        # Men's items and shoes that predate the shoe collection
        record = as_dict(record)
        gender = text(record.get("gender")).lower()
        return gender in MEN_TOKENS or text(record.get("subCategory")).lower() == "shoes"

    def _normalize(self, record: dict) -> CanonicalProduct:
        info = as_dict(record.get("product_info"))
        specs = as_dict(record.get("specifications"))
        prices = resolve_prices(
            mrp=first_positive(record.get("price"), record.get("mrp"), record.get("originalPrice")),
            discount_percent=record.get("discountPercent"),
            final_price=record.get("finalPrice"),
            original_price=record.get("originalPrice"),
        )
        brand = first_text(record.get("brand"), info.get("brand"))
        return self._product(
            record,
            title=first_text(record.get("name"), record.get("title")),
            images=normalize_images(record.get("images"), record.get("thumbnail"), record.get("image")),
            brand=brand,
            product_info=info or {"brand": brand, "manufacturer": text(specs.get("manufacturer"))},
            **prices,
        )


class ShoeAdapter(SchemaAdapter):
    key = "accessories-shoes"
    category = "accessories"
    schema_type = "shoe"
    family_tokens = frozenset({"accessory", "accessories"})

    def build_query(self, filters: CatalogFilters) -> dict:
        query: dict = {}

        sub_category = clean(filters.sub_category)
        if sub_category is not None and sub_category not in SHOE_TOKENS:
            return dict(MATCH_NONE)

        category = clean(filters.category)
        if category is not None and category not in self.family_tokens:
            if "shoe" not in category:
                return dict(MATCH_NONE)
            query["category"] = contains_ci("shoe")

        if gender := clean(filters.gender):
            query["product_info.gender"] = exact_ci(gender)
        if style := clean(filters.sub_sub_category):
            # The shoe schema stores the style as subCategory ("Sneakers")
            # and the finer style as subSubCategory ("Trainer")
            query["$or"] = [
                {"subCategory": exact_ci(style)},
                {"subSubCategory": exact_ci(style)},
            ]
        if brand := clean(filters.brand):
            query["product_info.brand"] = exact_ci(brand)
        apply_flags(query, filters)
        apply_text_search(query, filters)
        return query

    def _normalize(self, record: dict) -> CanonicalProduct:
        info = as_dict(record.get("product_info"))
        legacy_images = as_dict(record.get("Images"))
        prices = resolve_prices(
            mrp=first_positive(record.get("price"), record.get("originalPrice")),
            discount_percent=record.get("discountPercent"),
            final_price=record.get("finalPrice"),
            original_price=record.get("originalPrice"),
        )
        sizes = []
        inventory = record.get("sizes_inventory")
        if isinstance(inventory, list):
            sizes = [s for s in (text(as_dict(item).get("size")) for item in inventory) if s]
        return self._product(
            record,
            title=first_text(record.get("title"), record.get("name")),
            images=normalize_images(record.get("images"), record.get("thumbnail"), legacy_images.get("image1")),
            brand=first_text(info.get("brand"), record.get("brand")),
            gender=first_text(info.get("gender"), record.get("gender")),
            sub_category="shoes",
            sizes=sizes,
            product_info=info or {"brand": text(record.get("brand"))},
            **prices,
        )


# ---------------------------------------------------------------------------
# Women's apparel and sarees
# ---------------------------------------------------------------------------


def _women_gender_mismatch(filters: CatalogFilters) -> bool:
    gender = clean(filters.gender)
    return gender is not None and gender not in WOMEN_TOKENS


class LegacyWomenAdapter(SchemaAdapter):
    key = "women-legacy"
    category = "women"
    schema_type = "old"
    family_tokens = WOMEN_TOKENS

    def build_query(self, filters: CatalogFilters) -> dict:
        if _women_gender_mismatch(filters):
            return dict(MATCH_NONE)

        query: dict = {}
        for value in (clean(filters.sub_category), clean(filters.category)):
            if value is None or value in self.family_tokens:
                continue
            garment = _without_hyphens(value)
            # Sarees moved to their own collection
            if garment in SAREE_TOKENS:
                return dict(MATCH_NONE)
            if not _merge_clause(query, {"subCategory": exact_ci(garment)}):
                return dict(MATCH_NONE)

        if brand := clean(filters.brand):
            query["brand"] = exact_ci(brand)
        apply_flags(query, filters)
        apply_text_search(query, filters)
        return query

    def _normalize(self, record: dict) -> CanonicalProduct:
        prices = resolve_prices(
            mrp=first_positive(record.get("originalPrice"), record.get("price"), record.get("mrp")),
            discount_percent=record.get("discountPercent"),
            final_price=first_positive(record.get("finalPrice"), record.get("price")),
            original_price=record.get("originalPrice"),
        )
        return self._product(
            record,
            title=first_text(record.get("name"), record.get("title")),
            images=normalize_images(record.get("images"), record.get("thumbnail")),
            brand=first_text(record.get("brand"), as_dict(record.get("product_info")).get("brand")),
            product_info=as_dict(record.get("product_info")),
            **prices,
        )


class SareeAdapter(SchemaAdapter):
    key = "women-saree"
    category = "women"
    schema_type = "saree"
    family_tokens = WOMEN_TOKENS

    def build_query(self, filters: CatalogFilters) -> dict:
        if _women_gender_mismatch(filters):
            return dict(MATCH_NONE)
        for value in (clean(filters.sub_category), clean(filters.category)):
            if value is None or value in self.family_tokens:
                continue
            if _without_hyphens(value) not in SAREE_TOKENS:
                return dict(MATCH_NONE)

        # Every document in this collection is a saree; no category clause
        query: dict = {}
        if filters.category_id and filters.category_id.strip():
            query["categoryId"] = filters.category_id.strip()
        if brand := clean(filters.brand):
            query["product_info.brand"] = exact_ci(brand)
        apply_flags(query, filters)
        apply_text_search(query, filters)
        return query

    def _normalize(self, record: dict) -> CanonicalProduct:
        info = as_dict(record.get("product_info"))
        prices = resolve_prices(
            mrp=record.get("mrp"),
            discount_percent=record.get("discountPercent"),
            final_price=record.get("finalPrice"),
        )
        return self._product(
            record,
            title=first_text(record.get("title"), record.get("name")),
            images=normalize_images(record.get("images"), record.get("thumbnail")),
            brand=first_text(info.get("brand"), record.get("brand")),
            gender="women",
            sub_category="saree",
            sizes=text_list(record.get("sizes")),
            product_info=info,
            **prices,
        )

    def to_document(self, payload: dict) -> dict:
        """Convert a flat admin payload into the saree document shape."""
        images = payload.get("images")
        image_slots = {"image1": ""}
        if isinstance(images, list) and images:
            image_slots = {f"image{i + 1}": text(images[i]) if i < len(images) else "" for i in range(4)}
        stock = to_int(payload.get("stock"))
        return {
            "title": first_text(payload.get("name"), payload.get("title")),
            "mrp": first_positive(payload.get("originalPrice"), payload.get("price"), payload.get("mrp")),
            "discountPercent": to_number(payload.get("discountPercent")),
            "description": text(payload.get("description")),
            "category": "Saree",
            "categoryId": first_text(payload.get("categoryId")) or "women-saree",
            "product_info": {
                "brand": text(payload.get("brand")),
                "manufacturer": text(payload.get("manufacturer")),
                "SareeLength": text(payload.get("SareeLength")),
                "SareeMaterial": text(payload.get("SareeMaterial")),
                "SareeColor": text(payload.get("SareeColor")),
                "IncludedComponents": text(payload.get("IncludedComponents")),
            },
            "images": image_slots,
            "stock": stock,
            "sizes": text_list(payload.get("sizes")),
            "isNewArrival": is_true(payload.get("isNewArrival")),
            "onSale": is_true(payload.get("onSale")),
            "isFeatured": is_true(payload.get("isFeatured")),
            "inStock": stock > 0,
            "rating": to_rating(payload.get("rating")),
        }


# ---------------------------------------------------------------------------
# Skincare and lens
# ---------------------------------------------------------------------------


class SkincareAdapter(SchemaAdapter):
    key = "skincare"
    category = "skincare"
    schema_type = "skincare"
    family_tokens = frozenset({"skincare", "skin-care", "skin care"})

    def build_query(self, filters: CatalogFilters) -> dict:
        query: dict = {}
        # Skincare stores the product type (serum, facewash, ...) as "category"
        kind = clean(filters.sub_category) or clean(filters.category)
        if kind is not None and kind not in self.family_tokens:
            query["category"] = exact_ci(kind)
        if skin_type := clean(filters.skin_type):
            query["skinType"] = skin_type
        if filters.skin_concern and filters.skin_concern.strip():
            query["skinConcern"] = {"$in": [filters.skin_concern.strip()]}
        if brand := clean(filters.brand):
            query["brand"] = contains_ci(brand)

        bounds = {}
        if filters.min_price and to_number(filters.min_price) > 0:
            bounds["$gte"] = to_number(filters.min_price)
        if filters.max_price and to_number(filters.max_price) > 0:
            bounds["$lte"] = to_number(filters.max_price)
        if bounds:
            query["price"] = bounds

        apply_flags(query, filters)
        if filters.search and filters.search.strip():
            term = contains_ci(filters.search.strip())
            query["$or"] = [{"productName": term}, {"brand": term}, {"description": term}]
        return query

    def _normalize(self, record: dict) -> CanonicalProduct:
        prices = resolve_prices(
            mrp=record.get("price"),
            discount_percent=record.get("discountPercent"),
            final_price=record.get("finalPrice"),
        )
        info = {
            "skinType": text(record.get("skinType")) or "all",
            "skinConcern": text_list(record.get("skinConcern")),
            "ingredients": text_list(record.get("ingredients")),
        }
        return self._product(
            record,
            id=first_text(record.get("_id"), record.get("productId")),
            title=first_text(record.get("productName"), record.get("name")),
            images=normalize_images(record.get("images"), record.get("imageUrl"), record.get("image")),
            brand=text(record.get("brand")),
            sub_category=text(record.get("category")),
            product_info=info,
            **prices,
        )


class LensAdapter(SchemaAdapter):
    key = "lens"
    category = "lens"
    schema_type = "old"
    family_tokens = frozenset({"lens", "lenses", "eyewear"})

    def build_query(self, filters: CatalogFilters) -> dict:
        query: dict = {}
        if gender := clean(filters.gender):
            query["gender"] = exact_ci(gender)
        if sub_category := clean(filters.sub_category):
            query["subCategory"] = exact_ci(sub_category)
        if not _merge_clause(query, self._category_clause(clean(filters.category))):
            return dict(MATCH_NONE)
        if brand := clean(filters.brand):
            query["brand"] = exact_ci(brand)
        apply_flags(query, filters)
        apply_text_search(query, filters)
        return query

    def _normalize(self, record: dict) -> CanonicalProduct:
        prices = resolve_prices(
            mrp=first_positive(record.get("mrp"), record.get("price")),
            discount_percent=record.get("discountPercent"),
            final_price=first_positive(record.get("finalPrice"), record.get("price")),
        )
        return self._product(
            record,
            title=first_text(record.get("name"), record.get("title")),
            images=normalize_images(record.get("images"), record.get("thumbnail")),
            brand=text(record.get("brand")),
            product_info={
                k: text(record.get(k))
                for k in ("frameColor", "frameMaterial", "frameShape", "rimDetails", "warranty")
                if text(record.get(k))
            },
            **prices,
        )
