"""Tests for category alias resolution."""

import pytest

from adapters import LegacyWatchAdapter, NewWatchAdapter, SareeAdapter, ShoeAdapter
from errors import MissingCategory, UnsupportedCategory


def adapter_types(adapter_set):
    return [type(a) for a in adapter_set]


class TestResolve:
    @pytest.mark.parametrize("token", ["WATCH", "watch", "watches", "WATCHES", "Watches"])
    def test_watch_aliases(self, registry, token):
        adapter_set = registry.resolve(token)
        assert adapter_set.category == "watches"
        assert adapter_types(adapter_set) == [LegacyWatchAdapter, NewWatchAdapter]

    @pytest.mark.parametrize("token", ["sari", "Saree", "SARI", "Sari", "SAREE"])
    def test_saree_aliases(self, registry, token):
        adapter_set = registry.resolve(token)
        assert adapter_set.category == "women"
        assert adapter_types(adapter_set) == [SareeAdapter]

    @pytest.mark.parametrize("token", ["shoe", "Shoe", "Shoes", "SHOES"])
    def test_shoe_aliases(self, registry, token):
        adapter_set = registry.resolve(token)
        assert adapter_set.category == "accessories"
        assert adapter_types(adapter_set) == [ShoeAdapter]

    def test_new_watch_only(self, registry):
        assert adapter_types(registry.resolve("watch-new")) == [NewWatchAdapter]

    def test_surrounding_whitespace(self, registry):
        assert registry.resolve("  lens ").category == "lens"

    def test_same_set_object_for_aliases(self, registry):
        assert registry.resolve("watch") is registry.resolve("WATCHES")

    def test_women_set_order(self, registry):
        adapter_set = registry.resolve("women")
        assert len(adapter_set) == 2
        assert adapter_set.primary.key == "women-legacy"

    @pytest.mark.parametrize("token", [None, "", "   "])
    def test_missing(self, registry, token):
        with pytest.raises(MissingCategory):
            registry.resolve(token)

    @pytest.mark.parametrize("token", ["men", "shirts", "watchez"])
    def test_unsupported(self, registry, token):
        with pytest.raises(UnsupportedCategory) as exc_info:
            registry.resolve(token)
        assert exc_info.value.status_code == 400
        assert token in exc_info.value.message


class TestCategories:
    def test_each_collection_listed_once(self, registry):
        sources = [a.source for s in registry.categories() for a in s]
        assert len(sources) == len(set(sources)) == 8

    def test_lookup_order(self, registry):
        assert [s.category for s in registry.categories()] == ["women", "watches", "lens", "accessories", "skincare"]

    def test_aliases_are_listed(self, registry):
        assert {"WATCH", "SARI", "Shoe", "watch-new"} <= set(registry.aliases())
