"""Category registry: ordered, emoji-tagged buckets with a sentinel kept last."""

from .log_config import get_logger
from .models import (
    DEFAULT_EMOJI,
    SENTINEL_CATEGORY_ID,
    AppState,
    CategoryDef,
    new_id,
    sentinel_category,
)

logger = get_logger(__name__)


class CategoryNotFoundError(Exception):
    """Raised when a category is not found."""

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__(f"Category with ID '{category_id}' not found")


class ProtectedCategoryError(Exception):
    """Raised when trying to rename or delete the sentinel category."""

    def __init__(self):
        super().__init__("The uncategorized bucket cannot be renamed or deleted")


class CategoryRegistry:
    """Maintains the ordered category collection inside an AppState."""

    def __init__(self, state: AppState):
        self.state = state
        self.reorder()

    @property
    def categories(self) -> list[CategoryDef]:
        return self.state.categories

    @property
    def sentinel(self) -> CategoryDef:
        for category in self.categories:
            if category.id == SENTINEL_CATEGORY_ID:
                return category
        # state.categories was replaced wholesale
        self.reorder()
        return self.categories[-1]

    def get(self, category_id: str) -> CategoryDef | None:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def require(self, category_id: str) -> CategoryDef:
        category = self.get(category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)
        return category

    def resolve(self, category_id: str) -> CategoryDef:
        """Category for display; dangling references fall back to the sentinel."""
        return self.get(category_id) or self.sentinel

    def find_by_name(self, name: str) -> CategoryDef | None:
        wanted = name.strip().lower()
        if not wanted:
            return None
        for category in self.categories:
            if category.name.lower() == wanted:
                return category
        return None

    def reorder(self) -> None:
        """Move the sentinel to the end, creating it if missing."""
        others = [c for c in self.categories if c.id != SENTINEL_CATEGORY_ID]
        sentinel = next(
            (c for c in self.categories if c.id == SENTINEL_CATEGORY_ID), None
        ) or sentinel_category()
        self.state.categories[:] = [*others, sentinel]

    def create(self, name: str, emoji: str = DEFAULT_EMOJI) -> CategoryDef | None:
        """Append a new category before the sentinel.

        Returns:
            The new category, or None when the name is empty
        """
        name = name.strip()
        if not name:
            return None

        category = CategoryDef(id=new_id(), name=name, emoji=emoji or DEFAULT_EMOJI)
        self.state.categories.insert(len(self.categories) - 1, category)
        self.reorder()
        logger.debug("Created category %s (%s)", category.name, category.id)
        return category

    def edit(self, category_id: str, name: str, emoji: str | None = None) -> CategoryDef | None:
        """Rename a category in place, keeping its id and position.

        Raises:
            ProtectedCategoryError: If category_id is the sentinel
            CategoryNotFoundError: If no such category exists
        """
        if category_id == SENTINEL_CATEGORY_ID:
            raise ProtectedCategoryError()
        category = self.require(category_id)

        name = name.strip()
        if not name:
            return None

        category.name = name
        if emoji:
            category.emoji = emoji
        self.reorder()
        return category

    def remove(self, category_id: str) -> CategoryDef:
        """Remove a category. Member items must be reassigned by the caller.

        Raises:
            ProtectedCategoryError: If category_id is the sentinel
            CategoryNotFoundError: If no such category exists
        """
        if category_id == SENTINEL_CATEGORY_ID:
            raise ProtectedCategoryError()
        category = self.require(category_id)
        self.state.categories.remove(category)
        self.reorder()
        logger.debug("Removed category %s", category.name)
        return category

    def ensure(self, name: str, emoji: str | None = None) -> CategoryDef:
        """Find a category by name or synthesize it before the sentinel.

        Empty names resolve to the sentinel.
        """
        existing = self.find_by_name(name)
        if existing is not None:
            return existing
        return self.create(name, emoji or DEFAULT_EMOJI) or self.sentinel
