"""Tests for the set registry and set authoring helpers."""

from datetime import datetime, timedelta

import pytest

from shopping_sync.categories import CategoryRegistry
from shopping_sync.item_store import ItemStore
from shopping_sync.models import SENTINEL_CATEGORY_NAME, SetCandidate, SetItem
from shopping_sync.sets import (
    SetNotFoundError,
    SetRegistry,
    items_from_candidates,
    items_from_history,
    items_from_text,
)

NOW = datetime(2026, 3, 14, 12, 0)


@pytest.fixture
def registry(state):
    return SetRegistry(state)


@pytest.fixture
def items(state):
    return ItemStore(state)


@pytest.fixture
def categories(state):
    return CategoryRegistry(state)


FLOUR = SetItem(name="Flour", category_name="Baking", emoji="🌾")
EGGS = SetItem(name="Eggs", category_name="Dairy & Eggs", emoji="🥚")


class TestSetRegistry:
    """Tests for saving and looking up sets."""

    def test_save_new_set(self, registry):
        saved = registry.save(" Pancakes ", [FLOUR, EGGS], "🥞")
        assert saved.name == "Pancakes"
        assert saved.usage_count == 0
        assert registry.sets[0] is saved

    def test_save_requires_name_and_items(self, registry):
        assert registry.save("", [FLOUR]) is None
        assert registry.save("Empty", []) is None
        assert registry.sets == []

    def test_edit_keeps_id_and_usage(self, registry):
        saved = registry.save("Pancakes", [FLOUR, EGGS])
        registry.record_usage(saved.id, NOW)

        edited = registry.save("Crepes", [EGGS], set_id=saved.id)

        assert edited.id == saved.id
        assert edited.usage_count == 1
        assert [i.name for i in edited.items] == ["Eggs"]
        assert len(registry.sets) == 1

    def test_edit_unknown_raises(self, registry):
        with pytest.raises(SetNotFoundError):
            registry.save("X", [FLOUR], set_id="missing")

    def test_find_by_name(self, registry):
        saved = registry.save("Pancakes", [FLOUR])
        assert registry.find_by_name("pancakes") is saved

    def test_sorted_by_usage(self, registry):
        rare = registry.save("Rare", [FLOUR])
        common = registry.save("Common", [EGGS])
        registry.record_usage(common.id, NOW)
        registry.record_usage(common.id, NOW)
        assert registry.sorted_by_usage() == [common, rare]

    def test_delete(self, registry):
        saved = registry.save("Pancakes", [FLOUR])
        registry.delete(saved.id)
        assert registry.get(saved.id) is None
        with pytest.raises(SetNotFoundError):
            registry.delete(saved.id)


class TestRecentlyAdded:
    """Tests for the recently-added window."""

    def test_window_expires_after_five_seconds(self, registry):
        saved = registry.save("Pancakes", [FLOUR])
        registry.record_usage(saved.id, NOW)

        assert registry.is_recently_added(saved.id, NOW + timedelta(seconds=4))
        assert not registry.is_recently_added(saved.id, NOW + timedelta(seconds=5))

    def test_unused_set_is_not_recent(self, registry):
        saved = registry.save("Pancakes", [FLOUR])
        assert not registry.is_recently_added(saved.id, NOW)


class TestAuthoringHelpers:
    """Tests for the three set authoring modes."""

    def test_items_from_text_infers_category_from_history(self, items, categories):
        items.finalize_add("Milk", "dairy")

        result = items_from_text("milk\n\n  sugar \n", items, categories)

        assert [(i.name, i.category_name) for i in result] == [
            ("Milk", "Dairy & Eggs"),
            ("Sugar", SENTINEL_CATEGORY_NAME),
        ]

    def test_items_from_history_skips_unknown_ids(self, items, categories):
        milk, _ = items.finalize_add("Milk", "dairy")
        result = items_from_history([milk.id, "gone"], items, categories)
        assert [(i.name, i.category_name, i.emoji) for i in result] == [("Milk", "Dairy & Eggs", "🥛")]

    def test_items_from_candidates_keeps_included(self):
        candidates = [
            SetCandidate(name="flour", category_name="Baking"),
            SetCandidate(name="Sugar", included=False),
            SetCandidate(name="  ", category_name="Baking"),
        ]
        result = items_from_candidates(candidates)
        assert [i.name for i in result] == ["Flour"]
