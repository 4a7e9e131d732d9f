"""Derived history and ranking views over the item store.

All functions here are pure: they never mutate the items they are given.
"""

import locale
import unicodedata
from datetime import date, datetime, timedelta

from .categories import CategoryRegistry
from .models import CategoryDef, CategoryGroup, ProductItem

ALL_CATEGORIES = "All"
FILTER_DEBOUNCE = timedelta(milliseconds=300)


def collation_key(name: str) -> tuple[str, str]:
    """Locale-aware name sort key.

    Accents are folded first, so "Éclair" sorts before "Zucchini" even
    under the C locale.
    """
    casefolded = name.casefold()
    decomposed = unicodedata.normalize("NFKD", casefolded)
    folded = "".join(c for c in decomposed if not unicodedata.combining(c))
    return locale.strxfrm(folded), locale.strxfrm(casefolded)


def _popularity_key(item: ProductItem) -> tuple[int, tuple[str, str]]:
    return (-item.purchase_count, collation_key(item.name))


def unique_by_name(items: list[ProductItem]) -> list[ProductItem]:
    """One item per case-insensitive name, most purchased first."""
    unique: dict[str, ProductItem] = {}
    for item in items:
        unique.setdefault(item.name.lower(), item)
    return sorted(unique.values(), key=_popularity_key)


def grouped_by_category(
    items: list[ProductItem], categories: CategoryRegistry
) -> list[CategoryGroup]:
    """Every item grouped by resolved category.

    Items inside a group are ordered by purchase count; groups by the sum
    of their members' purchase counts.
    """
    groups: dict[str, CategoryGroup] = {}
    for item in sorted(items, key=_popularity_key):
        category = categories.resolve(item.category_id)
        group = groups.setdefault(category.id, CategoryGroup(category=category))
        group.items.append(item)
        group.total_count += item.purchase_count

    for group in groups.values():
        group.items.sort(key=lambda i: i.purchase_count, reverse=True)
    return sorted(groups.values(), key=lambda g: g.total_count, reverse=True)


def category_rankings(items: list[ProductItem]) -> dict[str, int]:
    """Total historical purchase count per category id."""
    rankings: dict[str, int] = {}
    for item in items:
        rankings[item.category_id] = rankings.get(item.category_id, 0) + item.purchase_count
    return rankings


def active_category_ids(items: list[ProductItem]) -> set[str]:
    """Categories that still have on-list, uncompleted items."""
    return {item.category_id for item in items if item.on_list and not item.completed}


def sorted_active_categories(
    items: list[ProductItem], categories: CategoryRegistry
) -> list[CategoryDef]:
    """Category chips for the buy list, most habitually purchased first."""
    active = active_category_ids(items)
    rankings = category_rankings(items)
    chips = [c for c in categories.categories if c.id in active]
    return sorted(chips, key=lambda c: rankings.get(c.id, 0), reverse=True)


def buy_list(items: list[ProductItem], category_filter: str = ALL_CATEGORIES) -> list[ProductItem]:
    on_list = [item for item in items if item.on_list]
    if category_filter != ALL_CATEGORIES:
        on_list = [item for item in on_list if item.category_id == category_filter]
    return on_list


def buy_list_groups(
    items: list[ProductItem],
    categories: CategoryRegistry,
    today: date,
    category_filter: str = ALL_CATEGORIES,
) -> tuple[list[CategoryGroup], list[ProductItem]]:
    """Active buy-list groups plus the items checked off today.

    Returns:
        (groups ordered by category ranking, completed-today items)
    """
    visible = buy_list(items, category_filter)
    rankings = category_rankings(items)

    groups: dict[str, CategoryGroup] = {}
    for item in visible:
        if item.completed:
            continue
        category = categories.resolve(item.category_id)
        group = groups.setdefault(category.id, CategoryGroup(category=category))
        group.items.append(item)
        group.total_count += item.purchase_count

    for group in groups.values():
        group.items.sort(key=lambda i: i.purchase_count, reverse=True)

    completed_today = [
        item
        for item in visible
        if item.completed and item.completed_at and item.completed_at.date() == today
    ]
    ordered = sorted(groups.values(), key=lambda g: rankings.get(g.category.id, 0), reverse=True)
    return ordered, completed_today


class CategoryFilter:
    """Selected buy-list category that falls back to "All" once emptied.

    The fallback is debounced so checking off the last item of a category
    does not yank the view away mid-interaction.
    """

    def __init__(self, debounce: timedelta = FILTER_DEBOUNCE):
        self.debounce = debounce
        self.selected = ALL_CATEGORIES
        self._empty_since: datetime | None = None

    def select(self, category_id: str) -> None:
        self.selected = category_id or ALL_CATEGORIES
        self._empty_since = None

    def refresh(self, items: list[ProductItem], now: datetime) -> str:
        """Re-evaluate the selection against current items.

        Returns:
            The effective filter
        """
        if self.selected == ALL_CATEGORIES:
            return self.selected

        if self.selected in active_category_ids(items):
            self._empty_since = None
            return self.selected

        if self._empty_since is None:
            self._empty_since = now
        elif now - self._empty_since >= self.debounce:
            self.select(ALL_CATEGORIES)
        return self.selected
