"""Item store: the in-memory mirror of every product the household knows."""

from datetime import date, datetime

from .log_config import get_logger
from .models import SENTINEL_CATEGORY_ID, AppState, ProductItem, RemoteItem

logger = get_logger(__name__)


class ItemNotFoundError(Exception):
    """Raised when an item is not found."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item with ID '{item_id}' not found")


def normalize_name(name: str) -> str:
    """Trim a product name and capitalize its first letter."""
    stripped = name.strip()
    return stripped[:1].upper() + stripped[1:]


class ItemStore:
    """Owns all ProductItem instances of an AppState.

    Items are the same product when their names match case-insensitively;
    that identity, not the id, governs merge-on-add.
    """

    def __init__(self, state: AppState):
        self.state = state

    @property
    def items(self) -> list[ProductItem]:
        return self.state.items

    def get(self, item_id: str) -> ProductItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def require(self, item_id: str) -> ProductItem:
        """Get an item by id.

        Raises:
            ItemNotFoundError: If item not found
        """
        item = self.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def find_by_name(self, name: str) -> ProductItem | None:
        wanted = name.strip().lower()
        if not wanted:
            return None
        for item in self.items:
            if item.name.lower() == wanted:
                return item
        return None

    def finalize_add(
        self,
        name: str,
        category_id: str | None = None,
        on_list: bool = True,
    ) -> tuple[ProductItem, bool] | None:
        """Merge a named product into the store or create it.

        Args:
            name: Product name as typed
            category_id: Target category; None or the sentinel keeps an
                         existing item's category
            on_list: Whether the product should be on the buy list

        Returns:
            (item, push) where push tells whether the row must be written
            remotely, or None if the name is empty
        """
        name = normalize_name(name)
        if not name:
            return None

        category_id = category_id or SENTINEL_CATEGORY_ID
        existing = self.find_by_name(name)

        if existing is not None:
            existing.on_list = on_list or existing.on_list
            if on_list:
                existing.completed = False
                existing.completed_at = None
            if category_id != SENTINEL_CATEGORY_ID:
                existing.category_id = category_id
            return existing, existing.on_list

        item = ProductItem(
            name=name,
            category_id=category_id,
            completed=False,
            on_list=on_list,
            purchase_count=0,
        )
        self.state.items.insert(0, item)
        return item, on_list

    def edit(self, item_id: str, name: str, category_id: str | None = None) -> ProductItem | None:
        """Rename and/or recategorize an item.

        Raises:
            ItemNotFoundError: If item not found
        """
        item = self.require(item_id)
        name = normalize_name(name)
        if not name:
            return None
        item.name = name
        if category_id is not None:
            item.category_id = category_id
        return item

    def complete(self, item: ProductItem, now: datetime) -> None:
        item.completed = True
        item.completed_at = now
        item.purchase_count += 1

    def uncomplete(self, item: ProductItem, decrement: bool = False) -> None:
        item.completed = False
        item.completed_at = None
        if decrement:
            item.purchase_count = max(0, item.purchase_count - 1)

    def take_off_list(self, item: ProductItem) -> None:
        item.on_list = False
        item.completed = False
        item.completed_at = None

    def remove(self, item_id: str) -> ProductItem:
        """Remove an item.

        Raises:
            ItemNotFoundError: If item not found
        """
        item = self.require(item_id)
        self.state.items.remove(item)
        return item

    def restore(self, item: ProductItem) -> bool:
        """Put a previously removed item back at the top of the store."""
        if self.get(item.id) is not None:
            return False
        self.state.items.insert(0, item)
        return True

    def reassign_category(self, old_id: str, new_id: str) -> list[ProductItem]:
        moved = [item for item in self.items if item.category_id == old_id]
        for item in moved:
            item.category_id = new_id
        return moved

    def rollover(self, today: date) -> list[ProductItem]:
        """Reset items completed on a previous day.

        Returns:
            Items that were reset
        """
        reset = []
        for item in self.items:
            if item.completed and item.completed_at and item.completed_at.date() < today:
                item.completed = False
                item.on_list = False
                item.completed_at = None
                reset.append(item)
        if reset:
            logger.info("Daily rollover reset %d items", len(reset))
        return reset

    # --- Remote rows ---

    def to_remote(self, item: ProductItem, family_id: int) -> RemoteItem:
        return RemoteItem(
            id=item.id,
            text=item.name,
            is_bought=item.completed,
            category=item.category_id,
            family_id=family_id,
            purchase_count=item.purchase_count,
        )

    def _apply_row(self, item: ProductItem, row: RemoteItem, now: datetime) -> None:
        item.name = row.text
        item.category_id = row.category or SENTINEL_CATEGORY_ID
        item.purchase_count = max(0, row.purchase_count)
        if row.is_bought:
            item.completed = True
            item.completed_at = item.completed_at or now
        else:
            item.completed = False
            item.completed_at = None

    def insert_remote(self, row: RemoteItem, now: datetime) -> ProductItem | None:
        """Apply a remote insert; a no-op when the id is already known."""
        if self.get(row.id) is not None:
            return None
        item = ProductItem(id=row.id, name=row.text, on_list=True)
        self._apply_row(item, row, now)
        self.state.items.append(item)
        return item

    def update_remote(self, row: RemoteItem, now: datetime) -> ProductItem | None:
        """Apply a remote update by id; unknown ids are ignored.

        Only the row fields are replaced. Whether the item is on this
        device's list is decided by inserts and deletes.
        """
        item = self.get(row.id)
        if item is None:
            return None
        self._apply_row(item, row, now)
        return item

    def delete_remote(self, item_id: str) -> ProductItem | None:
        """Apply a remote delete by id.

        An item already taken off the list locally stays in history: the
        event is the echo of that removal.
        """
        item = self.get(item_id)
        if item is None or not item.on_list:
            return None
        self.state.items.remove(item)
        return item

    def merge_snapshot(self, rows: list[RemoteItem], now: datetime) -> None:
        """Replace on-list items with a fresh remote snapshot.

        Remote rows are authoritative for on-list items; history-only local
        items are kept; local on-list items missing remotely were deleted
        elsewhere and are dropped.
        """
        remote_ids = {row.id for row in rows}
        kept = [
            item
            for item in self.items
            if item.id in remote_ids or not item.on_list
        ]
        self.state.items[:] = kept
        for row in rows:
            item = self.get(row.id)
            if item is None:
                self.insert_remote(row, now)
            else:
                item.on_list = True
                self._apply_row(item, row, now)
