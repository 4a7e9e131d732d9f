"""Shopping set registry and set authoring helpers."""

from datetime import datetime, timedelta

from .categories import CategoryRegistry
from .item_store import ItemStore, normalize_name
from .models import (
    DEFAULT_EMOJI,
    AppState,
    SetCandidate,
    SetItem,
    ShoppingSet,
    new_id,
)

RECENTLY_ADDED_WINDOW = timedelta(seconds=5)


class SetNotFoundError(Exception):
    """Raised when a set is not found."""

    def __init__(self, set_id: str):
        self.set_id = set_id
        super().__init__(f"Set with ID '{set_id}' not found")


class SetRegistry:
    """Named bundles of (name, category name, emoji) tuples."""

    def __init__(self, state: AppState):
        self.state = state
        self._recently_added: dict[str, datetime] = {}

    @property
    def sets(self) -> list[ShoppingSet]:
        return self.state.sets

    def get(self, set_id: str) -> ShoppingSet | None:
        for shopping_set in self.sets:
            if shopping_set.id == set_id:
                return shopping_set
        return None

    def require(self, set_id: str) -> ShoppingSet:
        shopping_set = self.get(set_id)
        if shopping_set is None:
            raise SetNotFoundError(set_id)
        return shopping_set

    def find_by_name(self, name: str) -> ShoppingSet | None:
        wanted = name.strip().lower()
        for shopping_set in self.sets:
            if shopping_set.name.lower() == wanted:
                return shopping_set
        return None

    def sorted_by_usage(self) -> list[ShoppingSet]:
        return sorted(self.sets, key=lambda s: s.usage_count, reverse=True)

    def save(
        self,
        name: str,
        items: list[SetItem],
        emoji: str = DEFAULT_EMOJI,
        set_id: str | None = None,
    ) -> ShoppingSet | None:
        """Create a set, or replace an existing set's contents.

        Editing keeps the set's id and usage count.

        Returns:
            The saved set, or None if the name or item list is empty

        Raises:
            SetNotFoundError: If set_id is given but unknown
        """
        name = name.strip()
        if not name or not items:
            return None

        if set_id is not None:
            shopping_set = self.require(set_id)
            shopping_set.name = name
            shopping_set.emoji = emoji or shopping_set.emoji
            shopping_set.items = list(items)
            return shopping_set

        shopping_set = ShoppingSet(id=new_id(), name=name, emoji=emoji or DEFAULT_EMOJI, items=list(items))
        self.state.sets.insert(0, shopping_set)
        return shopping_set

    def delete(self, set_id: str) -> ShoppingSet:
        shopping_set = self.require(set_id)
        self.state.sets.remove(shopping_set)
        self._recently_added.pop(set_id, None)
        return shopping_set

    def record_usage(self, set_id: str, now: datetime) -> ShoppingSet:
        """Count one expansion of the set and mark it recently added."""
        shopping_set = self.require(set_id)
        shopping_set.usage_count += 1
        self._recently_added[set_id] = now + RECENTLY_ADDED_WINDOW
        return shopping_set

    def is_recently_added(self, set_id: str, now: datetime) -> bool:
        expires = self._recently_added.get(set_id)
        if expires is None:
            return False
        if now >= expires:
            del self._recently_added[set_id]
            return False
        return True


def items_from_text(
    text: str, items: ItemStore, categories: CategoryRegistry
) -> list[SetItem]:
    """Build set items from newline-separated names.

    Categories are inferred from history by name; unknown names go to the sentinel.
    """
    result = []
    for line in text.splitlines():
        name = normalize_name(line)
        if not name:
            continue
        history = items.find_by_name(name)
        category = categories.resolve(history.category_id) if history else categories.sentinel
        result.append(SetItem(name=name, category_name=category.name, emoji=category.emoji or DEFAULT_EMOJI))
    return result


def items_from_history(
    item_ids: list[str], items: ItemStore, categories: CategoryRegistry
) -> list[SetItem]:
    """Capture the current name and category of selected items; unknown ids are skipped."""
    result = []
    for item_id in item_ids:
        item = items.get(item_id)
        if item is None:
            continue
        category = categories.resolve(item.category_id)
        result.append(SetItem(name=item.name, category_name=category.name, emoji=category.emoji or DEFAULT_EMOJI))
    return result


def items_from_candidates(candidates: list[SetCandidate]) -> list[SetItem]:
    """Keep only the generated candidates the user left included."""
    return [
        SetItem(name=normalize_name(c.name), category_name=c.category_name, emoji=c.emoji)
        for c in candidates
        if c.included and c.name.strip()
    ]
