from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# This is the single product shape every schema generation normalizes into.
class CanonicalProduct(CamelModel):
    id: str = ""
    title: str
    name: str
    mrp: float = Field(default=0, ge=0)
    final_price: float = Field(default=0, ge=0)
    discount_percent: float = Field(default=0, ge=0, le=100)
    original_price: float = Field(default=0, ge=0)
    price: float = Field(default=0, ge=0)  # mirrors final_price
    images: list[str] = []
    brand: str = ""
    category: str
    sub_category: str = ""
    schema_type: str  # provenance tag, e.g. "old", "new", "shoe"
    created_at: str | None = None

    # Pass-through fields that every storefront card uses
    description: str = ""
    gender: str = ""
    sizes: list[str] = []
    stock: int = 0
    rating: float = 0
    is_new_arrival: bool = False
    on_sale: bool = False
    is_featured: bool = False
    product_info: dict[str, Any] = {}


class Pagination(CamelModel):
    page: int = 0
    limit: int = 0
    total: int = 0
    pages: int = 0


class ProductPage(CamelModel):
    products: list[CanonicalProduct] = []
    pagination: Pagination = Field(default_factory=Pagination)

    @classmethod
    def empty(cls) -> "ProductPage":
        return cls(products=[], pagination=Pagination())


class CatalogSummary(CamelModel):
    total_users: int = 0
    total_orders: int = 0
    pending_orders: int = 0
    total_revenue: float = 0
    total_products: int = 0
    inventory: dict[str, int] = {}
    category_counts: dict[str, int] = {}


# ---------------------------------------------------------------------------
# Response envelopes
# ---------------------------------------------------------------------------


class ProductListResponse(CamelModel):
    success: bool = True
    data: ProductPage


class ProductData(CamelModel):
    product: CanonicalProduct
    category: str | None = None


class ProductResponse(CamelModel):
    success: bool = True
    message: str | None = None
    data: ProductData


class SummaryResponse(CamelModel):
    success: bool = True
    data: CatalogSummary


class AdminProductsData(CamelModel):
    products: list[CanonicalProduct]


class AdminProductsResponse(CamelModel):
    success: bool = True
    data: AdminProductsData


class MessageResponse(CamelModel):
    success: bool = True
    message: str


# ---------------------------------------------------------------------------
# Request-side filters
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CatalogFilters:
    """Raw filter bag shared by every adapter of a category.

    Values are kept exactly as the client sent them; each adapter decides how
    to interpret them for its own collection.
    """

    gender: str | None = None
    sub_category: str | None = None
    sub_sub_category: str | None = None
    category: str | None = None
    category_id: str | None = None
    brand: str | None = None
    is_new_arrival: str | None = None
    on_sale: str | None = None
    is_featured: str | None = None
    search: str | None = None
    skin_type: str | None = None
    skin_concern: str | None = None
    min_price: str | None = None
    max_price: str | None = None
