"""Tests for the in-memory document store and the settle combinator."""

import orjson
import pytest

from conftest import FailingCollection, oid
from store import (
    COLLECTION_NAMES,
    JsonCollection,
    StoreError,
    is_valid_object_id,
    load_store,
    matches,
    settle,
)

DOCS = [
    {"_id": oid("0001", 1), "name": "Classic", "gender": "Men", "price": 1000, "product_info": {"brand": "Titan"}},
    {"_id": oid("0001", 2), "name": "Rose", "gender": "Women", "price": 2500, "tags": ["gift", "sale"]},
    {"_id": oid("0001", 3), "name": "Digital", "gender": "men", "price": "cheap"},
]


def collection() -> JsonCollection:
    return JsonCollection("watches", DOCS, ("name",))


class TestObjectIds:
    def test_valid(self):
        assert is_valid_object_id("64b1000000000000000000ff")

    @pytest.mark.parametrize("value", ["", "123", "zz" * 12, "64b1000000000000000000ff0", None, 42])
    def test_invalid(self, value):
        assert not is_valid_object_id(value)


class TestMatches:
    def test_equality_and_dotted_paths(self):
        assert matches(DOCS[0], {"product_info.brand": "Titan"})
        assert not matches(DOCS[1], {"product_info.brand": "Titan"})

    def test_array_membership(self):
        assert matches(DOCS[1], {"tags": "sale"})

    def test_case_insensitive_regex(self):
        condition = {"gender": {"$regex": "^men$", "$options": "i"}}
        assert [d["name"] for d in DOCS if matches(d, condition)] == ["Classic", "Digital"]

    def test_range_ignores_non_numeric_values(self):
        condition = {"price": {"$gte": 500, "$lte": 2000}}
        assert [d["name"] for d in DOCS if matches(d, condition)] == ["Classic"]

    def test_or(self):
        condition = {"$or": [{"name": "Rose"}, {"name": "Digital"}]}
        assert [d["name"] for d in DOCS if matches(d, condition)] == ["Rose", "Digital"]

    def test_null_id_matches_nothing(self):
        assert not any(matches(d, {"_id": None}) for d in DOCS)

    def test_text_requires_index(self):
        with pytest.raises(StoreError):
            matches(DOCS[0], {"$text": {"$search": "classic"}})

    @pytest.mark.parametrize("op", ["$where", "$ne", "$gt", "$lt"])
    def test_unknown_operator(self, op):
        with pytest.raises(StoreError):
            matches(DOCS[0], {"price": {op: 1}})


class TestJsonCollection:
    @pytest.mark.asyncio
    async def test_find_returns_copies(self):
        coll = collection()
        found = await coll.find({"name": "Classic"})
        found[0]["name"] = "Changed"
        again = await coll.find_by_id(oid("0001", 1))
        assert again["name"] == "Classic"

    @pytest.mark.asyncio
    async def test_text_search(self):
        found = await collection().find({"$text": {"$search": "rose gold"}})
        assert [d["name"] for d in found] == ["Rose"]

    @pytest.mark.asyncio
    async def test_count(self):
        coll = collection()
        assert await coll.count_documents() == 3
        assert await coll.count_documents({"gender": "Women"}) == 1

    @pytest.mark.asyncio
    async def test_create_update_delete(self):
        coll = collection()
        created = await coll.create({"name": "New"})
        assert is_valid_object_id(created["_id"])
        assert created["createdAt"] == created["updatedAt"]

        updated = await coll.find_by_id_and_update(created["_id"], {"name": "Renamed", "_id": "ignored"})
        assert updated["name"] == "Renamed"
        assert updated["_id"] == created["_id"]

        deleted = await coll.find_by_id_and_delete(created["_id"])
        assert deleted["name"] == "Renamed"
        assert await coll.find_by_id(created["_id"]) is None
        assert await coll.find_by_id_and_delete(created["_id"]) is None

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self):
        with pytest.raises(StoreError):
            await collection().create({"_id": oid("0001", 1)})


class TestLoadStore:
    def test_missing_and_malformed_files_load_empty(self, tmp_path):
        (tmp_path / "watches.json").write_bytes(orjson.dumps(DOCS))
        (tmp_path / "lens.json").write_text("{not json")
        store = load_store(tmp_path)
        assert set(store) == set(COLLECTION_NAMES)
        assert len(store["watches"]) == 3
        assert len(store["lens"]) == 0
        assert len(store["skincare"]) == 0

    def test_seed_data_loads(self):
        from config import DEFAULT_DATA_DIR

        store = load_store(DEFAULT_DATA_DIR)
        assert all(len(store[name]) > 0 for name in COLLECTION_NAMES)


class TestSettle:
    @pytest.mark.asyncio
    async def test_success(self):
        settled = await settle(collection().count_documents(), 0, "watches")
        assert settled.ok
        assert settled.value == 3

    @pytest.mark.asyncio
    async def test_failure_uses_default(self):
        failing = FailingCollection("watches")
        settled = await settle(failing.find({}), [], "watches")
        assert not settled.ok
        assert settled.value == []
        assert isinstance(settled.error, StoreError)
