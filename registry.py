"""
Category registry: user-facing category tokens -> adapter sets.

Resolution is two passes over one alias table:
  1. exact string match (keeps deliberately cased historical aliases such
     as "WATCH" or "SARI" distinct from anything added later in lowercase)
  2. lowercase match as the fallback

Storefront URLs and admin payloads have used many spellings over the years;
every one of them stays in the table rather than being rewritten.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, Mapping

from adapters import (
    LegacyAccessoryAdapter,
    LegacyWatchAdapter,
    LegacyWomenAdapter,
    LensAdapter,
    NewWatchAdapter,
    SareeAdapter,
    SchemaAdapter,
    ShoeAdapter,
    SkincareAdapter,
)
from errors import MissingCategory, UnsupportedCategory
from store import DocumentCollection


@dataclass(frozen=True)
class AdapterSet:
    """Ordered adapters serving one category route.

    Order matters: lookups by id take the first adapter that has the
    document, and legacy adapters come before newer schema generations.
    """

    category: str
    adapters: tuple[SchemaAdapter, ...]

    def __iter__(self) -> Iterator[SchemaAdapter]:
        return iter(self.adapters)

    def __len__(self) -> int:
        return len(self.adapters)

    @property
    def primary(self) -> SchemaAdapter:
        """Adapter whose collection receives admin creates for this route."""
        return self.adapters[0]


class CategoryRegistry:
    def __init__(self, aliases: Mapping[str, AdapterSet], categories: tuple[AdapterSet, ...]):
        self._aliases = MappingProxyType(dict(aliases))
        self._categories = categories

    def resolve(self, token: str | None) -> AdapterSet:
        if token is None or not str(token).strip():
            raise MissingCategory()
        token = str(token).strip()

        exact = self._aliases.get(token)
        if exact is not None:
            return exact

        folded = self._aliases.get(token.lower())
        if folded is None:
            raise UnsupportedCategory(token)
        return folded

    def aliases(self) -> list[str]:
        return list(self._aliases)

    def categories(self) -> tuple[AdapterSet, ...]:
        """Full category sets in lookup order; each collection appears once."""
        return self._categories


def build_registry(store: Mapping[str, DocumentCollection]) -> CategoryRegistry:
    """Construct every adapter once and wire the alias table."""
    legacy_watch = LegacyWatchAdapter(store["watches"])
    new_watch = NewWatchAdapter(store["watches_new"])
    accessory = LegacyAccessoryAdapter(store["accessories"])
    shoe = ShoeAdapter(store["shoes"])
    women = LegacyWomenAdapter(store["women"])
    saree = SareeAdapter(store["sarees"])
    skincare = SkincareAdapter(store["skincare"])
    lens = LensAdapter(store["lens"])

    watches_set = AdapterSet("watches", (legacy_watch, new_watch))
    new_watches_set = AdapterSet("watches", (new_watch,))
    accessories_set = AdapterSet("accessories", (accessory, shoe))
    shoes_set = AdapterSet("accessories", (shoe,))
    women_set = AdapterSet("women", (women, saree))
    saree_set = AdapterSet("women", (saree,))
    skincare_set = AdapterSet("skincare", (skincare,))
    lens_set = AdapterSet("lens", (lens,))

    aliases = {
        "women": women_set,
        "watch": watches_set,
        "watches": watches_set,
        "WATCH": watches_set,
        "WATCHES": watches_set,
        "watch-new": new_watches_set,
        "lens": lens_set,
        "lenses": lens_set,
        "accessory": accessories_set,
        "accessories": accessories_set,
        "shoe": shoes_set,
        "shoes": shoes_set,
        "Shoe": shoes_set,
        "Shoes": shoes_set,
        "saree": saree_set,
        "Saree": saree_set,
        "sari": saree_set,
        "Sari": saree_set,
        "SARI": saree_set,
        "skincare": skincare_set,
        "Skincare": skincare_set,
    }
    categories = (women_set, watches_set, lens_set, accessories_set, skincare_set)
    return CategoryRegistry(aliases, categories)
