"""Tests for admin product management."""

import pytest

from admin import AdminProductService
from conftest import (
    BELT_ID,
    LEGACY_WATCH_ID,
    LENS_ID,
    NEW_WATCH_ID,
    SAREE_ID,
    FailingCollection,
    catalog_documents,
    make_store,
    oid,
)
from errors import InvalidId, InvalidInput, MissingCategory, NotFound, SourceUnavailable, UnsupportedCategory
from registry import build_registry


@pytest.fixture
def admin(registry):
    return AdminProductService(registry)


class TestListing:
    @pytest.mark.asyncio
    async def test_category_listing_is_newest_first(self, admin):
        products = await admin.list_products("watches")
        assert [p.id for p in products] == [NEW_WATCH_ID, LEGACY_WATCH_ID]

    @pytest.mark.asyncio
    async def test_recent_update_moves_to_front(self, admin):
        await admin.update_product(LEGACY_WATCH_ID, {"stock": 4})
        products = await admin.list_products("watches")
        assert products[0].id == LEGACY_WATCH_ID

    @pytest.mark.asyncio
    async def test_unparsable_timestamps_sort_oldest(self):
        documents = catalog_documents()
        documents["watches"][0]["updatedAt"] = "²"
        documents["watches"].append({"_id": oid("64b1", 2), "name": "Odd", "createdAt": "١٢٣"})
        admin = AdminProductService(build_registry(make_store(**documents)))
        products = await admin.list_products("watches")
        assert [p.id for p in products] == [NEW_WATCH_ID, LEGACY_WATCH_ID, oid("64b1", 2)]

    @pytest.mark.asyncio
    async def test_overview_covers_every_collection(self, admin):
        products = await admin.list_products()
        assert len(products) == 8
        assert {p.category for p in products} == {"women", "watches", "lens", "accessories", "skincare"}

    @pytest.mark.asyncio
    async def test_listing_absorbs_failing_source(self):
        documents = catalog_documents()
        documents["watches"] = FailingCollection("watches")
        admin = AdminProductService(build_registry(make_store(**documents)))
        assert [p.id for p in await admin.list_products("watches")] == [NEW_WATCH_ID]


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_in_primary_collection(self, admin, store):
        product = await admin.create_product({"category": "WATCH", "name": "Diver", "price": 4500, "brand": "Seiko"})
        assert product.title == "Diver"
        assert product.category == "watches"
        stored = await store["watches"].find_by_id(product.id)
        assert stored["brand"] == "Seiko"
        assert "category" not in stored

    @pytest.mark.asyncio
    async def test_women_saree_goes_to_saree_collection(self, admin, store):
        product = await admin.create_product(
            {
                "category": "women",
                "subCategory": "Saree",
                "name": "Kanjeevaram",
                "price": "2,000",
                "discountPercent": 10,
                "images": ["i1"],
            }
        )
        assert product.schema_type == "saree"
        assert product.sub_category == "saree"
        assert product.images == ["i1"]
        assert product.final_price == 1800
        assert await store["sarees"].count_documents() == 2
        assert await store["women"].count_documents() == 1

    @pytest.mark.asyncio
    async def test_saree_alias_routes_to_saree_collection(self, admin, store):
        await admin.create_product({"category": "sari", "title": "Tussar"})
        assert await store["sarees"].count_documents({"title": "Tussar"}) == 1

    @pytest.mark.asyncio
    async def test_women_apparel_stays_in_legacy_collection(self, admin, store):
        await admin.create_product({"category": "women", "subCategory": "Kurti", "name": "Block Print"})
        assert await store["women"].count_documents({"subCategory": "Kurti"}) == 1

    @pytest.mark.asyncio
    async def test_name_required(self, admin):
        with pytest.raises(InvalidInput):
            await admin.create_product({"category": "lens", "price": 100})

    @pytest.mark.asyncio
    async def test_category_errors(self, admin):
        with pytest.raises(MissingCategory):
            await admin.create_product({"name": "Orphan"})
        with pytest.raises(UnsupportedCategory):
            await admin.create_product({"category": "men", "name": "Shirt"})

    @pytest.mark.asyncio
    async def test_store_failure_surfaces(self):
        admin = AdminProductService(build_registry(make_store(lens=FailingCollection("lens"))))
        with pytest.raises(SourceUnavailable) as exc_info:
            await admin.create_product({"category": "lens", "name": "Aviator"})
        assert exc_info.value.status_code == 503
        assert exc_info.value.source == "lens"


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_locates_owning_collection(self, admin):
        product = await admin.update_product(BELT_ID, {"price": 1200, "category": "accessories"})
        assert product.id == BELT_ID
        assert product.mrp == 1200

    @pytest.mark.asyncio
    async def test_update_without_category_searches_everything(self, admin):
        product = await admin.update_product(LENS_ID, {"name": "Oval Frame"})
        assert product.title == "Oval Frame"

    @pytest.mark.asyncio
    async def test_partial_saree_update_keeps_stored_fields(self, admin, store):
        product = await admin.update_product(SAREE_ID, {"discountPercent": 50})
        assert product.mrp == 5000
        assert product.final_price == 2500
        assert product.images == ["a", "c"]
        assert product.brand == "Kalini"
        stored = await store["sarees"].find_by_id(SAREE_ID)
        assert stored["title"] == "Silk Saree"

    @pytest.mark.asyncio
    async def test_saree_price_change(self, admin):
        product = await admin.update_product(SAREE_ID, {"price": 6000, "images": ["x"]})
        assert product.mrp == 6000
        assert product.images == ["x"]

    @pytest.mark.asyncio
    async def test_category_scopes_the_update(self, admin):
        with pytest.raises(NotFound):
            await admin.update_product(SAREE_ID, {"category": "watches", "name": "Moved"})

    @pytest.mark.asyncio
    async def test_unknown_and_invalid_ids(self, admin):
        with pytest.raises(NotFound):
            await admin.update_product(oid("64b9", 1), {"name": "Ghost"})
        with pytest.raises(InvalidId):
            await admin.update_product("42", {"name": "Ghost"})


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete(self, admin, store):
        await admin.delete_product(LENS_ID, "lens")
        assert await store["lens"].find_by_id(LENS_ID) is None
        with pytest.raises(NotFound):
            await admin.delete_product(LENS_ID, "lens")

    @pytest.mark.asyncio
    async def test_delete_through_alias(self, admin, store):
        await admin.delete_product(SAREE_ID, "Sari")
        assert await store["sarees"].count_documents() == 0

    @pytest.mark.asyncio
    async def test_lookup_failure_surfaces(self):
        admin = AdminProductService(build_registry(make_store(lens=FailingCollection("lens"))))
        with pytest.raises(SourceUnavailable):
            await admin.delete_product(LENS_ID, "lens")
