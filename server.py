"""
FastAPI server for the retail catalog.

Loads every collection into memory at startup, wires the schema adapters
behind the category registry, and serves:
- GET    /api/products/{category}        → merged, sorted, paginated listing
- GET    /api/products/{category}/{id}   → single product in a category
- GET    /api/product/{id}               → single product, any category
- GET    /api/admin/summary              → dashboard counts
- GET    /api/admin/products             → admin listing
- POST   /api/admin/products             → create
- PUT    /api/admin/products/{id}        → update
- DELETE /api/admin/products/{id}        → delete
- GET    /api/health
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Mapping

from fastapi import Body, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse

from admin import AdminProductService
from config import Settings, settings as default_settings
from dashboard import AggregateCountEngine
from engine import CatalogEngine, PageRequest, use_collation
from errors import CatalogError
from models import (
    AdminProductsData,
    AdminProductsResponse,
    CatalogFilters,
    MessageResponse,
    ProductData,
    ProductListResponse,
    ProductResponse,
    SummaryResponse,
)
from registry import build_registry
from store import DocumentCollection, load_store

logger = logging.getLogger(__name__)


def create_app(
    store: Mapping[str, DocumentCollection] | None = None,
    settings: Settings = default_settings,
) -> FastAPI:
    """Build the app. ``store`` replaces the JSON-seeded collections when given."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        use_collation(settings.collation)
        collections = store if store is not None else load_store(settings.data_dir)
        registry = build_registry(collections)
        app.state.engine = CatalogEngine(registry)
        app.state.admin = AdminProductService(registry)
        app.state.counts = AggregateCountEngine(collections, registry)
        logger.info("Catalog ready: %d aliases over %d collections", len(registry.aliases()), len(collections))
        yield

    app = FastAPI(
        title="Retail Catalog API",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
        max_age=86400,
    )

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError) -> ORJSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return ORJSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})

    # -----------------------------------------------------------------------
    # Storefront
    # -----------------------------------------------------------------------

    @app.get("/api/products/{category}", response_model=ProductListResponse)
    async def list_products(
        request: Request,
        category: str,
        gender: str | None = None,
        sub_category: str | None = Query(None, alias="subCategory"),
        sub_sub_category: str | None = Query(None, alias="subSubCategory"),
        category_filter: str | None = Query(None, alias="category"),
        category_id: str | None = Query(None, alias="categoryId"),
        brand: str | None = None,
        is_new_arrival: str | None = Query(None, alias="isNewArrival"),
        on_sale: str | None = Query(None, alias="onSale"),
        is_featured: str | None = Query(None, alias="isFeatured"),
        search: str | None = None,
        skin_type: str | None = Query(None, alias="skinType"),
        skin_concern: str | None = Query(None, alias="skinConcern"),
        min_price: str | None = Query(None, alias="minPrice"),
        max_price: str | None = Query(None, alias="maxPrice"),
        page: str | None = None,
        limit: str | None = None,
        sort: str | None = None,
        order: str | None = None,
    ):
        """Merged listing across every schema generation of ``category``."""
        filters = CatalogFilters(
            gender=gender,
            sub_category=sub_category,
            sub_sub_category=sub_sub_category,
            category=category_filter,
            category_id=category_id,
            brand=brand,
            is_new_arrival=is_new_arrival,
            on_sale=on_sale,
            is_featured=is_featured,
            search=search,
            skin_type=skin_type,
            skin_concern=skin_concern,
            min_price=min_price,
            max_price=max_price,
        )
        page_request = PageRequest.from_params(page, limit, sort, order)
        result = await request.app.state.engine.list_products(category, filters, page_request)
        return ProductListResponse(data=result)

    @app.get("/api/products/{category}/{product_id}", response_model=ProductResponse)
    async def get_product(request: Request, category: str, product_id: str):
        product = await request.app.state.engine.get_product(category, product_id)
        return ProductResponse(data=ProductData(product=product))

    @app.get("/api/product/{product_id}", response_model=ProductResponse)
    async def find_product(request: Request, product_id: str):
        product, category = await request.app.state.engine.find_anywhere(product_id)
        return ProductResponse(data=ProductData(product=product, category=category))

    # -----------------------------------------------------------------------
    # Admin
    # -----------------------------------------------------------------------

    @app.get("/api/admin/summary", response_model=SummaryResponse)
    async def admin_summary(request: Request):
        summary = await request.app.state.counts.summarize()
        return SummaryResponse(data=summary)

    @app.get("/api/admin/products", response_model=AdminProductsResponse)
    async def admin_list_products(request: Request, category: str | None = None):
        products = await request.app.state.admin.list_products(category)
        return AdminProductsResponse(data=AdminProductsData(products=products))

    @app.post("/api/admin/products", response_model=ProductResponse, status_code=201)
    async def admin_create_product(request: Request, payload: dict[str, Any] = Body(...)):
        product = await request.app.state.admin.create_product(payload)
        return ProductResponse(message="Product created successfully", data=ProductData(product=product))

    @app.put("/api/admin/products/{product_id}", response_model=ProductResponse)
    async def admin_update_product(request: Request, product_id: str, payload: dict[str, Any] = Body(...)):
        product = await request.app.state.admin.update_product(product_id, payload)
        return ProductResponse(message="Product updated successfully", data=ProductData(product=product))

    @app.delete("/api/admin/products/{product_id}", response_model=MessageResponse)
    async def admin_delete_product(request: Request, product_id: str, category: str | None = None):
        await request.app.state.admin.delete_product(product_id, category)
        return MessageResponse(message="Product deleted successfully")

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
