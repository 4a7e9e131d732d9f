"""Tests for derived history and ranking views."""

from datetime import date, datetime, timedelta

import pytest

from shopping_sync.categories import CategoryRegistry
from shopping_sync.history import (
    ALL_CATEGORIES,
    CategoryFilter,
    buy_list,
    buy_list_groups,
    category_rankings,
    collation_key,
    grouped_by_category,
    sorted_active_categories,
    unique_by_name,
)
from shopping_sync.models import SENTINEL_CATEGORY_ID, ProductItem

NOW = datetime(2026, 3, 14, 12, 0)


def item(name, category_id="none", count=0, on_list=True, completed=False, completed_at=None):
    return ProductItem(
        name=name,
        category_id=category_id,
        purchase_count=count,
        on_list=on_list,
        completed=completed,
        completed_at=completed_at,
    )


@pytest.fixture
def categories(state):
    return CategoryRegistry(state)


class TestUniqueByName:
    """Tests for the unique-by-name history list."""

    def test_sorted_by_count_then_name(self):
        items = [item("banana", count=2), item("Apple", count=2), item("Cherry", count=5)]
        assert [i.name for i in unique_by_name(items)] == ["Cherry", "Apple", "banana"]

    def test_first_occurrence_wins(self):
        first = item("Milk", count=1)
        items = [first, item("milk", count=9)]
        assert unique_by_name(items) == [first]

    def test_does_not_mutate_input(self):
        items = [item("B", count=1), item("A", count=3)]
        unique_by_name(items)
        assert [i.name for i in items] == ["B", "A"]

    def test_accented_names_tie_break_alphabetically(self):
        items = [item("Zucchini", count=1), item("Éclair", count=1)]
        assert [i.name for i in unique_by_name(items)] == ["Éclair", "Zucchini"]

    def test_collation_ignores_case_and_accents_first(self):
        assert collation_key("Crème")[0] == collation_key("creme")[0]
        assert collation_key("Crème") != collation_key("creme")


class TestGroupedByCategory:
    """Tests for the grouped history view."""

    def test_groups_sorted_by_total(self, categories):
        items = [
            item("Milk", "dairy", 3),
            item("Cheese", "dairy", 4),
            item("Bread", "bakery", 10),
            item("Eggs", "dairy", 1),
        ]
        groups = grouped_by_category(items, categories)

        assert [g.category.id for g in groups] == ["bakery", "dairy"]
        assert groups[1].total_count == 8
        assert [i.name for i in groups[1].items] == ["Cheese", "Milk", "Eggs"]

    def test_dangling_category_goes_to_sentinel(self, categories):
        groups = grouped_by_category([item("Odd", "deleted")], categories)
        assert groups[0].category.id == SENTINEL_CATEGORY_ID

    def test_includes_history_items(self, categories):
        groups = grouped_by_category([item("Saffron", "pantry", on_list=False)], categories)
        assert groups[0].items[0].name == "Saffron"


class TestBuyList:
    """Tests for the buy list and its category chips."""

    def test_category_rankings(self):
        items = [item("A", "x", 2), item("B", "x", 3), item("C", "y", 1)]
        assert category_rankings(items) == {"x": 5, "y": 1}

    def test_buy_list_filter(self):
        items = [item("A", "x"), item("B", "y"), item("C", "x", on_list=False)]
        assert [i.name for i in buy_list(items)] == ["A", "B"]
        assert [i.name for i in buy_list(items, "x")] == ["A"]

    def test_chips_ranked_by_history_and_only_active(self, categories):
        items = [
            item("Chips", "snacks", 1),
            item("Old snack", "snacks", 1, on_list=False),
            item("Milk", "dairy", 9, on_list=False),
            item("Yogurt", "dairy", 0),
            item("Bread", "bakery", 5, completed=True, completed_at=NOW),
        ]
        chips = sorted_active_categories(items, categories)
        assert [c.id for c in chips] == ["dairy", "snacks"]

    def test_groups_and_completed_today(self, categories):
        yesterday = NOW - timedelta(days=1)
        items = [
            item("Chips", "snacks", 1),
            item("Milk", "dairy", 2),
            item("Cream", "dairy", 6),
            item("Bread", "bakery", 3, completed=True, completed_at=NOW),
            item("Jam", "pantry", 1, completed=True, completed_at=yesterday),
        ]
        groups, completed = buy_list_groups(items, categories, date(2026, 3, 14))

        assert [g.category.id for g in groups] == ["dairy", "snacks"]
        assert [i.name for i in groups[0].items] == ["Cream", "Milk"]
        assert [i.name for i in completed] == ["Bread"]


class TestCategoryFilter:
    """Tests for the debounced category filter."""

    def test_all_by_default(self):
        assert CategoryFilter().refresh([], NOW) == ALL_CATEGORIES

    def test_keeps_selection_while_active(self):
        category_filter = CategoryFilter()
        category_filter.select("dairy")
        assert category_filter.refresh([item("Milk", "dairy")], NOW) == "dairy"

    def test_falls_back_after_debounce(self):
        category_filter = CategoryFilter()
        category_filter.select("dairy")
        emptied = [item("Milk", "dairy", completed=True, completed_at=NOW)]

        assert category_filter.refresh(emptied, NOW) == "dairy"
        assert category_filter.refresh(emptied, NOW + timedelta(milliseconds=100)) == "dairy"
        assert category_filter.refresh(emptied, NOW + timedelta(milliseconds=300)) == ALL_CATEGORIES

    def test_refill_cancels_fallback(self):
        category_filter = CategoryFilter()
        category_filter.select("dairy")
        category_filter.refresh([], NOW)
        category_filter.refresh([item("Milk", "dairy")], NOW + timedelta(milliseconds=200))
        assert category_filter.refresh([], NOW + timedelta(milliseconds=400)) == "dairy"

    def test_select_empty_means_all(self):
        category_filter = CategoryFilter()
        category_filter.select("")
        assert category_filter.selected == ALL_CATEGORIES
