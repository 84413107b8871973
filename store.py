"""
Document store used by the catalog.

The catalog only depends on the ``DocumentCollection`` capability interface
(find / find_by_id / count_documents / create / find_by_id_and_update /
find_by_id_and_delete). ``JsonCollection`` is the in-memory implementation
that the server loads from ``data/<collection>.json`` at startup.

Filters use a small Mongo-style vocabulary:
  - ``{"field": value}`` equality (dotted paths, array membership)
  - ``{"field": {"$regex": "...", "$options": "i"}}``
  - ``{"field": {"$in": [...]}}``, ``{"field": {"$gte": n, "$lte": n}}``
  - ``{"$or": [filter, ...]}``
  - ``{"$text": {"$search": "..."}}`` over the collection's text index

Every document returned is a deep copy, so callers always work on plain
dicts that cannot mutate stored state.
"""

import copy
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Generic, Protocol, TypeVar

import orjson

logger = logging.getLogger(__name__)

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")

# Fields covered by each collection's text index
TEXT_INDEXES: dict[str, tuple[str, ...]] = {
    "watches": ("name", "brand", "description"),
    "watches_new": ("title", "product_info.brand", "description"),
    "accessories": ("name", "brand", "description"),
    "shoes": ("title", "product_info.brand", "description"),
    "women": ("name", "title", "brand", "description"),
    "sarees": ("title", "product_info.brand", "description"),
    "skincare": ("productName", "brand", "description"),
    "lens": ("name", "brand", "description"),
}


class StoreError(Exception):
    """Raised by a collection when a query cannot be executed."""


def is_valid_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_OBJECT_ID_RE.match(value))


def new_object_id() -> str:
    return uuid.uuid4().hex[:24]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentCollection(Protocol):
    name: str

    async def find(self, filter: dict | None = None) -> list[dict]: ...

    async def find_by_id(self, doc_id: str) -> dict | None: ...

    async def count_documents(self, filter: dict | None = None) -> int: ...

    async def create(self, doc: dict) -> dict: ...

    async def find_by_id_and_update(self, doc_id: str, update: dict) -> dict | None: ...

    async def find_by_id_and_delete(self, doc_id: str) -> dict | None: ...


# ---------------------------------------------------------------------------
# Filter evaluation
# ---------------------------------------------------------------------------

_MISSING = object()


def _get_path(doc: Any, path: str) -> Any:
    current = doc
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return _MISSING
    return current


def _values_equal(actual: Any, expected: Any) -> bool:
    if actual is _MISSING:
        return expected is None
    if isinstance(actual, list) and not isinstance(expected, list):
        return expected in actual
    return actual == expected


def _regex_matches(actual: Any, pattern: str, options: str) -> bool:
    flags = re.IGNORECASE if "i" in options else 0
    candidates = actual if isinstance(actual, list) else [actual]
    try:
        compiled = re.compile(pattern, flags)
    except re.error as e:
        raise StoreError(f"Invalid regex {pattern!r}: {e}") from e
    return any(isinstance(c, str) and compiled.search(c) for c in candidates)


def _compare(actual: Any, op: str, bound: Any) -> bool:
    if actual is _MISSING or actual is None or isinstance(actual, bool):
        return False
    try:
        if op == "$gte":
            return actual >= bound
        return actual <= bound
    except TypeError:
        return False


def _match_condition(actual: Any, condition: Any) -> bool:
    if not isinstance(condition, dict) or not any(k.startswith("$") for k in condition):
        return _values_equal(actual, condition)

    for op, operand in condition.items():
        if op == "$options":
            continue
        if op == "$regex":
            if not _regex_matches(actual, operand, condition.get("$options", "")):
                return False
        elif op == "$in":
            pool = actual if isinstance(actual, list) else [actual]
            if not any(v in operand for v in pool):
                return False
        elif op in ("$gte", "$lte"):
            if not _compare(actual, op, operand):
                return False
        else:
            raise StoreError(f"Unsupported operator {op}")
    return True


def _text_matches(doc: dict, search: str, fields: tuple[str, ...]) -> bool:
    terms = [t for t in re.findall(r"\w+", search.casefold()) if t]
    if not terms:
        return False
    haystack = " ".join(
        str(v) for v in (_get_path(doc, f) for f in fields) if v is not _MISSING and v is not None
    ).casefold()
    return any(term in haystack for term in terms)


def matches(doc: dict, filter: dict, text_fields: tuple[str, ...] = ()) -> bool:
    """Return True if ``doc`` satisfies ``filter``."""
    for key, condition in filter.items():
        if key == "$or":
            if not any(matches(doc, sub, text_fields) for sub in condition):
                return False
        elif key == "$text":
            if not text_fields:
                raise StoreError("text index required for $text query")
            if not _text_matches(doc, condition.get("$search", ""), text_fields):
                return False
        elif not _match_condition(_get_path(doc, key), condition):
            return False
    return True


# ---------------------------------------------------------------------------
# In-memory collection
# ---------------------------------------------------------------------------


class JsonCollection:
    """A named in-memory collection of JSON documents."""

    def __init__(self, name: str, documents: list[dict] | None = None, text_fields: tuple[str, ...] = ()):
        self.name = name
        self.text_fields = text_fields
        self._docs: dict[str, dict] = {}
        for doc in documents or []:
            doc = dict(doc)
            doc_id = str(doc.get("_id") or new_object_id())
            doc["_id"] = doc_id
            self._docs[doc_id] = doc

    def __len__(self) -> int:
        return len(self._docs)

    def __repr__(self) -> str:
        return f"JsonCollection({self.name!r}, docs={len(self._docs)})"

    async def find(self, filter: dict | None = None) -> list[dict]:
        filter = filter or {}
        return [copy.deepcopy(d) for d in self._docs.values() if matches(d, filter, self.text_fields)]

    async def find_by_id(self, doc_id: str) -> dict | None:
        doc = self._docs.get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def count_documents(self, filter: dict | None = None) -> int:
        if not filter:
            return len(self._docs)
        return sum(1 for d in self._docs.values() if matches(d, filter, self.text_fields))

    async def create(self, doc: dict) -> dict:
        stored = copy.deepcopy(doc)
        stored["_id"] = str(stored.get("_id") or new_object_id())
        if stored["_id"] in self._docs:
            raise StoreError(f"duplicate key {stored['_id']} in {self.name}")
        now = _now()
        stored.setdefault("createdAt", now)
        stored["updatedAt"] = now
        self._docs[stored["_id"]] = stored
        return copy.deepcopy(stored)

    async def find_by_id_and_update(self, doc_id: str, update: dict) -> dict | None:
        doc = self._docs.get(doc_id)
        if doc is None:
            return None
        changes = {k: v for k, v in update.items() if k != "_id"}
        doc.update(copy.deepcopy(changes))
        doc["updatedAt"] = _now()
        return copy.deepcopy(doc)

    async def find_by_id_and_delete(self, doc_id: str) -> dict | None:
        doc = self._docs.pop(doc_id, None)
        return copy.deepcopy(doc) if doc is not None else None


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

COLLECTION_NAMES = (
    "users",
    "orders",
    "watches",
    "watches_new",
    "accessories",
    "shoes",
    "women",
    "sarees",
    "skincare",
    "lens",
)


def load_store(data_dir: Path) -> dict[str, JsonCollection]:
    """Load every known collection from ``data_dir/<name>.json``.

    A missing file yields an empty collection; a malformed file is logged and
    also yields an empty collection so one bad export does not take the
    whole catalog down.
    """
    store: dict[str, JsonCollection] = {}
    for name in COLLECTION_NAMES:
        path = data_dir / f"{name}.json"
        documents: list[dict] = []
        if path.exists():
            try:
                loaded = orjson.loads(path.read_bytes())
                documents = [d for d in loaded if isinstance(d, dict)] if isinstance(loaded, list) else []
            except orjson.JSONDecodeError:
                logger.warning("Could not parse %s, starting %s empty", path, name, exc_info=True)
        store[name] = JsonCollection(name, documents, TEXT_INDEXES.get(name, ()))
        logger.info("Loaded collection %s: %d documents", name, len(store[name]))
    return store


# ---------------------------------------------------------------------------
# Failure absorption
# ---------------------------------------------------------------------------

T = TypeVar("T")


@dataclass(frozen=True)
class Settled(Generic[T]):
    """Outcome of one source call: its value, or the default plus the error."""

    value: T
    source: str
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle(awaitable: Awaitable[T], default: T, source: str) -> Settled[T]:
    """Await ``awaitable``; on failure log it and settle with ``default``.

    This is the one place where read paths absorb a source failure, so a
    slow or broken collection never aborts its sibling fetches.
    """
    try:
        return Settled(await awaitable, source)
    except Exception as e:
        logger.warning("Source %s failed (%s), using %r", source, type(e).__name__, default, exc_info=True)
        return Settled(default, source, e)
