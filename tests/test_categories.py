"""Tests for the category registry."""

import pytest

from shopping_sync.categories import (
    CategoryNotFoundError,
    CategoryRegistry,
    ProtectedCategoryError,
)
from shopping_sync.models import (
    DEFAULT_EMOJI,
    SENTINEL_CATEGORY_ID,
    AppState,
    CategoryDef,
    sentinel_category,
)


@pytest.fixture
def registry(state):
    return CategoryRegistry(state)


def last_id(registry):
    return registry.categories[-1].id


class TestOrdering:
    """The sentinel stays last through every operation."""

    def test_sentinel_moved_last_on_init(self):
        state = AppState(categories=[sentinel_category(), CategoryDef(id="a", name="A")])
        registry = CategoryRegistry(state)
        assert [c.id for c in registry.categories] == ["a", SENTINEL_CATEGORY_ID]

    def test_missing_sentinel_is_recreated(self):
        state = AppState(categories=[CategoryDef(id="a", name="A")])
        registry = CategoryRegistry(state)
        assert last_id(registry) == SENTINEL_CATEGORY_ID

    def test_sentinel_last_after_mixed_operations(self, registry):
        spices = registry.create("Spices")
        registry.create("Tea", "🍵")
        registry.edit(spices.id, "Herbs & Spices")
        registry.remove("produce")
        registry.ensure("Baking", "🌾")
        assert last_id(registry) == SENTINEL_CATEGORY_ID
        assert sum(1 for c in registry.categories if c.is_sentinel) == 1


class TestCreateEdit:
    """Tests for create and edit."""

    def test_create_inserts_before_sentinel(self, registry):
        created = registry.create("  Spices  ", "🧂")
        assert created.name == "Spices"
        assert registry.categories[-2] is created

    def test_create_empty_name_is_noop(self, registry):
        before = len(registry.categories)
        assert registry.create("   ") is None
        assert len(registry.categories) == before

    def test_create_without_emoji_uses_default(self, registry):
        assert registry.create("Spices", "").emoji == DEFAULT_EMOJI

    def test_edit_keeps_id_and_position(self, registry):
        index = [c.id for c in registry.categories].index("dairy")
        edited = registry.edit("dairy", "Milk Products")
        assert edited.id == "dairy"
        assert registry.categories[index].name == "Milk Products"

    def test_edit_without_emoji_keeps_emoji(self, registry):
        before = registry.get("dairy").emoji
        assert registry.edit("dairy", "Milk").emoji == before

    def test_edit_empty_name_is_noop(self, registry):
        assert registry.edit("dairy", " ") is None
        assert registry.get("dairy").name == "Dairy & Eggs"

    def test_edit_sentinel_is_refused(self, registry):
        with pytest.raises(ProtectedCategoryError):
            registry.edit(SENTINEL_CATEGORY_ID, "Misc")

    def test_edit_unknown_raises(self, registry):
        with pytest.raises(CategoryNotFoundError):
            registry.edit("nope", "Name")


class TestRemove:
    """Tests for remove."""

    def test_remove_category(self, registry):
        removed = registry.remove("snacks")
        assert removed.name == "Snacks"
        assert registry.get("snacks") is None

    def test_remove_sentinel_is_refused(self, registry):
        with pytest.raises(ProtectedCategoryError):
            registry.remove(SENTINEL_CATEGORY_ID)

    def test_remove_unknown_raises(self, registry):
        with pytest.raises(CategoryNotFoundError):
            registry.remove("nope")


class TestLookup:
    """Tests for lookups and implicit creation."""

    def test_find_by_name_is_case_insensitive(self, registry):
        assert registry.find_by_name("dairy & EGGS").id == "dairy"

    def test_resolve_dangling_reference_to_sentinel(self, registry):
        assert registry.resolve("deleted-long-ago").id == SENTINEL_CATEGORY_ID

    def test_ensure_matches_existing(self, registry):
        before = len(registry.categories)
        assert registry.ensure("bakery").id == "bakery"
        assert len(registry.categories) == before

    def test_ensure_creates_missing(self, registry):
        baking = registry.ensure("Baking", "🌾")
        assert baking.emoji == "🌾"
        assert registry.categories[-2] is baking

    def test_ensure_empty_name_is_sentinel(self, registry):
        assert registry.ensure("").id == SENTINEL_CATEGORY_ID
