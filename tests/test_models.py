"""Tests for data models."""

from datetime import date

import pytest
from pydantic import ValidationError

from shopping_sync.models import (
    DEFAULT_EMOJI,
    SENTINEL_CATEGORY_ID,
    SENTINEL_CATEGORY_NAME,
    AppState,
    CategoryDef,
    Preferences,
    ProductItem,
    PurchaseLog,
    RemoteItem,
    ShoppingSet,
    Theme,
    default_categories,
    new_id,
)


class TestCategoryDef:
    """Tests for CategoryDef."""

    def test_defaults(self):
        """New categories get an id and the default emoji."""
        category = CategoryDef(name="Spices")
        assert category.id
        assert category.emoji == DEFAULT_EMOJI
        assert not category.is_sentinel

    def test_default_catalogue_ends_with_sentinel(self):
        """The starting catalogue lists the sentinel last."""
        categories = default_categories()
        assert len(categories) == 11
        assert categories[-1].id == SENTINEL_CATEGORY_ID
        assert categories[-1].name == SENTINEL_CATEGORY_NAME
        assert categories[-1].is_sentinel
        assert categories[0].name == "Produce"

    def test_default_catalogue_ids_are_stable(self):
        """Default category ids are the same across installs."""
        assert [c.id for c in default_categories()] == [c.id for c in default_categories()]


class TestProductItem:
    """Tests for ProductItem."""

    def test_defaults(self):
        """A bare item is on the list, uncategorized and never bought."""
        item = ProductItem(name="Milk")
        assert item.on_list is True
        assert item.completed is False
        assert item.completed_at is None
        assert item.purchase_count == 0
        assert item.category_id == SENTINEL_CATEGORY_ID

    def test_unique_ids(self):
        assert ProductItem(name="A").id != ProductItem(name="B").id

    def test_negative_purchase_count_rejected(self):
        with pytest.raises(ValidationError):
            ProductItem(name="Milk", purchase_count=-1)


class TestOtherModels:
    """Tests for sets, logs, preferences and remote rows."""

    def test_new_id_is_unique(self):
        assert len({new_id() for _ in range(50)}) == 50

    def test_shopping_set_defaults(self):
        shopping_set = ShoppingSet(name="Pancakes")
        assert shopping_set.items == []
        assert shopping_set.usage_count == 0

    def test_purchase_log_round_trip_date(self):
        log = PurchaseLog(date="2026-03-14")
        assert log.date == date(2026, 3, 14)
        assert log.items == []

    def test_preferences_defaults(self):
        """Confirmations are on and AI is off until enabled."""
        prefs = Preferences()
        assert prefs.theme == Theme.LIGHT
        assert prefs.ai_enabled is False
        assert prefs.confirm_item_delete
        assert prefs.confirm_category_delete
        assert prefs.confirm_set_delete

    def test_app_state_starts_with_default_categories(self):
        state = AppState()
        assert state.categories[-1].id == SENTINEL_CATEGORY_ID
        assert state.items == []

    def test_remote_item_requires_family(self):
        with pytest.raises(ValidationError):
            RemoteItem(id="x", text="Milk")
