"""Pytest configuration for catalog tests."""

import pytest

from registry import build_registry
from store import COLLECTION_NAMES, TEXT_INDEXES, JsonCollection, StoreError


def oid(prefix: str, n: int) -> str:
    """24-hex id: a 4-char collection prefix plus a counter."""
    return f"{prefix}{n:020x}"


class FailingCollection:
    """Collection whose every call raises, standing in for an unreachable source."""

    def __init__(self, name: str):
        self.name = name
        self.calls = 0

    async def _fail(self, *args, **kwargs):
        self.calls += 1
        raise StoreError(f"{self.name} is unreachable")

    find = _fail
    find_by_id = _fail
    count_documents = _fail
    create = _fail
    find_by_id_and_update = _fail
    find_by_id_and_delete = _fail


def make_store(**collections) -> dict:
    """Every known collection, empty unless given as a list of documents
    (or a ready collection object)."""
    store = {}
    for name in COLLECTION_NAMES:
        value = collections.get(name, [])
        if isinstance(value, list):
            value = JsonCollection(name, value, TEXT_INDEXES.get(name, ()))
        store[name] = value
    return store


# ---------------------------------------------------------------------------
# A small catalog covering every schema generation
# ---------------------------------------------------------------------------

LEGACY_WATCH_ID = oid("64b1", 1)
NEW_WATCH_ID = oid("64b2", 1)
SAREE_ID = oid("64d2", 1)
WOMEN_ID = oid("64d1", 1)
SHOE_ID = oid("64c2", 1)
BELT_ID = oid("64c1", 1)
SKINCARE_ID = oid("64e1", 1)
LENS_ID = oid("64f1", 1)


def catalog_documents() -> dict[str, list[dict]]:
    return {
        "watches": [
            {
                "_id": LEGACY_WATCH_ID,
                "name": "Classic",
                "brand": "Titan",
                "gender": "Men",
                "price": 1000,
                "discountPercent": 0,
                "createdAt": "2024-01-01T00:00:00Z",
            },
        ],
        "watches_new": [
            {
                "_id": NEW_WATCH_ID,
                "title": "Smart",
                "mrp": 2000,
                "discountPercent": 10,
                "categoryId": "watch-smart",
                "product_info": {"brand": "Noise", "gender": "Men"},
                "createdAt": "2024-02-01T00:00:00Z",
            },
        ],
        "accessories": [
            {
                "_id": BELT_ID,
                "name": "Leather Belt",
                "brand": "Hidesign",
                "gender": "Men",
                "subCategory": "Belt",
                "price": 1500,
                "createdAt": "2024-01-10T00:00:00Z",
            },
        ],
        "shoes": [
            {
                "_id": SHOE_ID,
                "title": "Runner",
                "category": "Shoes",
                "subCategory": "Sneakers",
                "subSubCategory": "Trainer",
                "price": 3000,
                "product_info": {"brand": "Puma", "gender": "Men"},
                "sizes_inventory": [{"size": "8"}, {"size": "9"}],
                "createdAt": "2024-03-01T00:00:00Z",
            },
        ],
        "women": [
            {
                "_id": WOMEN_ID,
                "name": "Wrap Dress",
                "brand": "W",
                "gender": "Women",
                "subCategory": "Dress",
                "originalPrice": 2000,
                "price": 1500,
                "createdAt": "2024-01-05T00:00:00Z",
            },
        ],
        "sarees": [
            {
                "_id": SAREE_ID,
                "title": "Silk Saree",
                "mrp": 5000,
                "discountPercent": 20,
                "categoryId": "women-saree",
                "product_info": {"brand": "Kalini"},
                "images": {"image1": "a", "image3": "c", "image2": ""},
                "createdAt": "2024-04-01T00:00:00Z",
            },
        ],
        "skincare": [
            {
                "_id": SKINCARE_ID,
                "productId": "SKN-1",
                "productName": "Vitamin C Serum",
                "brand": "Minimalist",
                "category": "serum",
                "skinType": "oily",
                "skinConcern": ["dullness"],
                "price": 700,
                "imageUrl": "https://cdn.example.com/vitc.jpg",
                "createdAt": "2024-02-15T00:00:00Z",
            },
        ],
        "lens": [
            {
                "_id": LENS_ID,
                "name": "Round Frame",
                "brand": "Lenskart",
                "mrp": 1999,
                "discountPercent": 50,
                "frameShape": "Round",
                "createdAt": "2024-01-20T00:00:00Z",
            },
        ],
        "users": [{"_id": oid("64a1", 1)}, {"_id": oid("64a1", 2)}],
        "orders": [
            {"_id": oid("64a2", 1), "status": "pending", "totalAmount": 500},
            {"_id": oid("64a2", 2), "status": "delivered", "totalAmount": "1,250.50"},
        ],
    }


@pytest.fixture
def store():
    return make_store(**catalog_documents())


@pytest.fixture
def registry(store):
    return build_registry(store)
