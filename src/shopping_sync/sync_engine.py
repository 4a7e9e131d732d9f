"""Sync engine: the single writer of household list state.

Every user action is applied locally first. The engine then queues a
remote write (outbox) that is flushed independently; failures are
reported as notifications and never roll the local change back. Changes
made by other family members arrive as typed events (inbox) and are merged
by one dispatch loop.
"""

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from .ai_gateway import AIError, AIGateway, classify_ai_error
from .categories import CategoryRegistry
from .history import CategoryFilter
from .item_store import ItemStore, normalize_name
from .log_config import get_logger
from .models import (
    DEFAULT_EMOJI,
    DEFAULT_SET_EMOJI,
    SENTINEL_CATEGORY_ID,
    AppState,
    CategoryDef,
    FamilyInfo,
    FamilyMember,
    Identity,
    ItemDeleted,
    ItemInserted,
    ItemUpdated,
    Notification,
    ParsedItem,
    ParsedText,
    ProductItem,
    RemoteEvent,
    RemoteWrite,
    SetCandidate,
    SetItem,
    ShoppingSet,
    SuggestedSet,
    WriteKind,
)
from .purchase_log import PurchaseBook
from .remote import RemoteDatastore, RemoteError, Unsubscribe
from .sets import SetRegistry, items_from_candidates, items_from_history, items_from_text

logger = get_logger(__name__)

UNDO_WINDOW = timedelta(seconds=5)
MIN_HISTORY_DAYS = 10


class NotAuthorizedError(Exception):
    """Raised when a non-owner tries an owner-only family action."""

    def __init__(self, action: str = "remove family members"):
        self.action = action
        super().__init__(f"Only the family owner can {action}")


@dataclass
class _UndoRecord:
    item_id: str
    expires: datetime
    item: ProductItem | None = None


class SyncEngine:
    """Owns an AppState and mediates between it and the shared datastore.

    Args:
        state: Household state; a fresh one with default categories if omitted
        datastore: Shared family datastore; None keeps everything local
        gateway: AI gateway used when AI assistance is enabled
        clock: Source of the current time
        auto_flush: Send queued remote writes right after each mutation
    """

    def __init__(
        self,
        state: AppState | None = None,
        datastore: RemoteDatastore | None = None,
        gateway: AIGateway | None = None,
        clock: Callable[[], datetime] = datetime.now,
        auto_flush: bool = True,
    ):
        self.state = state or AppState()
        self.datastore = datastore
        self.gateway = gateway
        self.clock = clock
        self.auto_flush = auto_flush

        self.categories = CategoryRegistry(self.state)
        self.items = ItemStore(self.state)
        self.purchases = PurchaseBook(self.state)
        self.sets = SetRegistry(self.state)
        self.category_filter = CategoryFilter()

        self.identity: Identity | None = None
        self.user: FamilyMember | None = None
        self.family: FamilyInfo | None = None

        self.outbox: list[RemoteWrite] = []
        self.failed: list[RemoteWrite] = []
        self.inbox: deque[RemoteEvent] = deque()
        # writes sent but not yet seen coming back from the datastore
        self.echoes: list[RemoteWrite] = []
        self.notifications: list[Notification] = []

        self._unsubscribe: Unsubscribe | None = None
        self._completion_undo: _UndoRecord | None = None
        self._delete_undo: _UndoRecord | None = None

    # --- Notifications ---

    def notify(self, message: str, is_error: bool = False) -> None:
        self.notifications.append(
            Notification(message=message, is_error=is_error, created_at=self.clock())
        )

    def drain_notifications(self) -> list[Notification]:
        """Return and clear pending notifications."""
        drained, self.notifications = self.notifications, []
        return drained

    # --- Connection ---

    @property
    def connected(self) -> bool:
        return self.family is not None

    def connect(self, identity: Identity, invite_code: str | None = None) -> bool:
        """Sign in, optionally join a family, load its items and subscribe.

        The daily rollover runs whether or not the connection succeeds.

        Returns:
            True if connected to a family
        """
        self.identity = identity
        try:
            connected = self._connect(identity, invite_code)
        except RemoteError as e:
            logger.error("Remote datastore unavailable: %s", e)
            connected = False

        if not connected:
            self.notify("Could not connect to the family list", is_error=True)
        self.rollover()
        return connected

    def _connect(self, identity: Identity, invite_code: str | None) -> bool:
        if self.datastore is None:
            return False

        auth = self.datastore.authenticate(identity)
        if auth is None:
            logger.error("Authentication failed for user %d", identity.id)
            return False
        self.user = auth.user

        family = auth.family
        code = (invite_code or "").strip()
        if code and code != family.invite_code:
            joined = self.datastore.join_family(identity.id, code)
            if joined is None:
                self.notify("Invite code not found", is_error=True)
            else:
                family = joined
                self.notify("Joined family")

        self._attach_family(family)
        return True

    def disconnect(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.family = None
        self.inbox.clear()
        self.echoes.clear()

    def _attach_family(self, family: FamilyInfo) -> None:
        """Switch to a family: reload its items and resubscribe."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.family = family
        self.inbox.clear()
        self.echoes.clear()

        rows = self.datastore.list_items(family.id)
        self.items.merge_snapshot(rows, self.clock())
        self._unsubscribe = self.datastore.subscribe(family.id, self.inbox.append)
        logger.info("Attached to family %d with %d remote items", family.id, len(rows))

    # --- Remote writes ---

    def _enqueue(self, write: RemoteWrite) -> None:
        if self.family is None:
            return
        self.outbox.append(write)
        if self.auto_flush:
            self.flush()

    def _push(self, item: ProductItem) -> None:
        if self.family is None:
            return
        self._enqueue(
            RemoteWrite(
                kind=WriteKind.UPSERT,
                item_id=item.id,
                item=self.items.to_remote(item, self.family.id),
            )
        )

    def _push_delete(self, item_id: str) -> None:
        self._enqueue(RemoteWrite(kind=WriteKind.DELETE, item_id=item_id))

    def _send(self, write: RemoteWrite) -> bool:
        write.attempts += 1
        # push backends deliver the echo before the call returns
        self.echoes.append(write)
        try:
            if write.kind == WriteKind.UPSERT:
                sent = self.datastore.upsert_item(write.item)
            else:
                sent = self.datastore.delete_item(write.item_id)
        except RemoteError as e:
            logger.debug("Remote write raised: %s", e)
            sent = False
        if not sent:
            self.echoes.remove(write)
        return sent

    def flush(self) -> int:
        """Send queued remote writes in order.

        Returns:
            Number of writes that succeeded
        """
        sent = 0
        while self.outbox:
            write = self.outbox.pop(0)
            if self._send(write):
                sent += 1
                continue
            logger.warning(
                "Remote %s of item %s failed (attempt %d)",
                write.kind.value,
                write.item_id,
                write.attempts,
            )
            self.failed.append(write)
            self.notify("Sync failed; the change is kept on this device", is_error=True)
        return sent

    def retry_failed(self) -> int:
        """Re-queue failed writes ahead of anything pending and flush."""
        if not self.failed:
            return 0
        self.outbox[:0] = self.failed
        self.failed = []
        return self.flush()

    # --- Remote events ---

    def process_events(self) -> int:
        """Apply queued remote events.

        Returns:
            Number of events that changed local state
        """
        applied = 0
        now = self.clock()
        while self.inbox:
            event = self.inbox.popleft()
            if self._is_echo(event):
                continue
            if isinstance(event, ItemInserted):
                changed = self.items.insert_remote(event.item, now)
            elif isinstance(event, ItemUpdated):
                changed = self.items.update_remote(event.item, now)
            else:
                changed = self.items.delete_remote(event.item_id)

            if changed is not None:
                applied += 1
                logger.debug("Applied remote %s for %s", type(event).__name__, changed.name)
        return applied

    def _is_echo(self, event: RemoteEvent) -> bool:
        """Consume the sent write this event reports back, if any.

        An echo describes a state this device already had when it sent the
        write, so applying it could only revert newer local changes.
        """
        for index, write in enumerate(self.echoes):
            if isinstance(event, ItemDeleted):
                matches = write.kind == WriteKind.DELETE and write.item_id == event.item_id
            else:
                matches = write.kind == WriteKind.UPSERT and write.item == event.item
            if matches:
                del self.echoes[index]
                return True
        return False

    def poll(self) -> int:
        """Ask the datastore for changes and apply them."""
        if self.datastore is None or self.family is None:
            return 0
        try:
            self.datastore.poll()
        except RemoteError as e:
            logger.warning("Polling failed: %s", e)
            self.notify("Could not refresh the family list", is_error=True)
            return self.process_events()
        applied = self.process_events()
        # a poll reports only the latest row state; older echoes never arrive
        self.echoes.clear()
        return applied

    # --- Items ---

    def finalize_add(
        self, name: str, category_id: str | None = None, on_list: bool = True
    ) -> ProductItem | None:
        """Merge-or-create a named product and push it if it is on the list."""
        result = self.items.finalize_add(name, category_id, on_list)
        if result is None:
            return None
        item, push = result
        if push:
            self._push(item)
        return item

    def add_item(
        self, name: str, category_id: str | None = None, on_list: bool = True
    ) -> ProductItem | None:
        """Add a product typed by the user.

        Without an explicit category, a product never seen before is
        categorized by the AI gateway when AI assistance is enabled.
        """
        name = normalize_name(name)
        if not name:
            return None

        if category_id is None and self.items.find_by_name(name) is None:
            if self.state.preferences.ai_enabled and self.gateway is not None:
                category_id = self._categorize(name)
        return self.finalize_add(name, category_id, on_list)

    def _categorize(self, name: str) -> str:
        try:
            suggestion = self.gateway.categorize(name, self.categories.categories)
        except AIError as e:
            self._ai_failed(e)
            return SENTINEL_CATEGORY_ID
        if suggestion is None:
            return SENTINEL_CATEGORY_ID
        return self.categories.ensure(suggestion.category_name, suggestion.suggested_emoji).id

    def bulk_add(
        self, text: str, category_id: str | None = None, on_list: bool = True
    ) -> list[ProductItem]:
        """Add newline-separated names into one category."""
        added = [self.finalize_add(line, category_id, on_list) for line in text.splitlines()]
        added = [item for item in added if item is not None]
        if added:
            self.notify(f"Added {len(added)} items")
        return added

    def edit_item(
        self, item_id: str, name: str, category_id: str | None = None
    ) -> ProductItem | None:
        if category_id is not None:
            self.categories.require(category_id)
        item = self.items.edit(item_id, name, category_id)
        if item is not None and item.on_list:
            self._push(item)
        return item

    def toggle_complete(self, item_id: str) -> ProductItem:
        """Check an item off, or uncheck it.

        Unchecking within the undo window of its own completion is an undo
        and also takes back the purchase count.
        """
        item = self.items.require(item_id)
        now = self.clock()
        undo = self._completion_undo

        if item.completed and undo and undo.item_id == item.id and now < undo.expires:
            self.undo_completion()
            return item

        if not item.completed:
            self.items.complete(item, now)
            self.purchases.record(item.name, item.category_id, now.date())
            self._completion_undo = _UndoRecord(item_id=item.id, expires=now + UNDO_WINDOW)
        else:
            self.items.uncomplete(item)
            self.purchases.remove_last(item.name, now.date())
            if undo and undo.item_id == item.id:
                self._completion_undo = None

        self._push(item)
        return item

    def undo_completion(self) -> ProductItem | None:
        """Reverse the most recent completion if its window is still open."""
        undo, self._completion_undo = self._completion_undo, None
        now = self.clock()
        if undo is None or now >= undo.expires:
            return None

        item = self.items.get(undo.item_id)
        if item is None or not item.completed:
            return None

        self.items.uncomplete(item, decrement=True)
        self.purchases.remove_last(item.name, now.date())
        self._push(item)
        return item

    def delete_item(self, item_id: str) -> ProductItem:
        """Forget an item entirely; undoable for a few seconds."""
        item = self.items.remove(item_id)
        self._delete_undo = _UndoRecord(item_id=item.id, expires=self.clock() + UNDO_WINDOW, item=item)
        if self._completion_undo and self._completion_undo.item_id == item.id:
            self._completion_undo = None
        self._push_delete(item.id)
        return item

    def undo_delete(self) -> ProductItem | None:
        undo, self._delete_undo = self._delete_undo, None
        if undo is None or self.clock() >= undo.expires or undo.item is None:
            return None
        if not self.items.restore(undo.item):
            return None
        if undo.item.on_list:
            self._push(undo.item)
        return undo.item

    def toggle_on_list(self, item_id: str) -> ProductItem | None:
        """Move an item between history and the buy list."""
        item = self.items.require(item_id)
        if item.on_list:
            self.items.take_off_list(item)
            self._push_delete(item.id)
            return item
        return self.finalize_add(item.name, item.category_id, on_list=True)

    def rollover(self) -> list[ProductItem]:
        """Take items completed on earlier days off the buy list."""
        reset = self.items.rollover(self.clock().date())
        for item in reset:
            self._push_delete(item.id)
        return reset

    # --- Categories ---

    def save_category(
        self, name: str, emoji: str = DEFAULT_EMOJI, category_id: str | None = None
    ) -> CategoryDef | None:
        """Create a category, or rename one when category_id is given."""
        if category_id is None:
            return self.categories.create(name, emoji)
        return self.categories.edit(category_id, name, emoji)

    def delete_category(self, category_id: str) -> list[ProductItem]:
        """Delete a category, moving its items to the uncategorized bucket.

        Returns:
            Items that were reassigned
        """
        self.categories.remove(category_id)
        moved = self.items.reassign_category(category_id, SENTINEL_CATEGORY_ID)
        for item in moved:
            if item.on_list:
                self._push(item)
        return moved

    def resolve_category(self, name: str, emoji: str | None = None) -> CategoryDef:
        return self.categories.ensure(name, emoji)

    # --- Sets ---

    def _add_resolved(self, name: str, category_name: str, emoji: str | None) -> ProductItem | None:
        """Put a product named elsewhere on the list; a known product keeps its category."""
        history = self.items.find_by_name(name)
        if history is not None:
            category_id = history.category_id
        else:
            category_id = self.categories.ensure(category_name, emoji).id
        return self.finalize_add(name, category_id, on_list=True)

    def add_set(self, set_id: str, item_names: list[str] | None = None) -> list[ProductItem]:
        """Put all or some of a set's items on the buy list.

        Args:
            set_id: Set to expand
            item_names: Subset to add, matched case-insensitively; None adds all

        Returns:
            Items now on the list
        """
        shopping_set = self.sets.require(set_id)
        if item_names is None:
            chosen = list(shopping_set.items)
        else:
            wanted = {name.strip().lower() for name in item_names}
            chosen = [entry for entry in shopping_set.items if entry.name.lower() in wanted]
        if not chosen:
            return []

        added = [self._add_resolved(entry.name, entry.category_name, entry.emoji) for entry in chosen]
        self.categories.reorder()
        self.sets.record_usage(set_id, self.clock())
        return [item for item in added if item is not None]

    def set_recently_added(self, set_id: str) -> bool:
        return self.sets.is_recently_added(set_id, self.clock())

    def create_set_from_text(
        self, name: str, text: str, emoji: str = DEFAULT_SET_EMOJI, set_id: str | None = None
    ) -> ShoppingSet | None:
        return self.sets.save(name, items_from_text(text, self.items, self.categories), emoji, set_id)

    def create_set_from_history(
        self,
        name: str,
        item_ids: list[str],
        emoji: str = DEFAULT_SET_EMOJI,
        set_id: str | None = None,
    ) -> ShoppingSet | None:
        items = items_from_history(item_ids, self.items, self.categories)
        return self.sets.save(name, items, emoji, set_id)

    def create_set_from_candidates(
        self,
        name: str,
        candidates: list[SetCandidate],
        emoji: str = DEFAULT_SET_EMOJI,
        set_id: str | None = None,
    ) -> ShoppingSet | None:
        return self.sets.save(name, items_from_candidates(candidates), emoji, set_id)

    def edit_set(
        self, set_id: str, name: str, items: list[SetItem], emoji: str | None = None
    ) -> ShoppingSet | None:
        """Replace a set's name and contents, keeping its id and usage count."""
        current = self.sets.require(set_id)
        return self.sets.save(name, items, emoji or current.emoji, set_id=set_id)

    def delete_set(self, set_id: str) -> ShoppingSet:
        return self.sets.delete(set_id)

    # --- AI assistance ---

    def _ai_ready(self) -> bool:
        if not self.state.preferences.ai_enabled:
            self.notify("AI assistance is turned off", is_error=True)
            return False
        if self.gateway is None:
            self.notify("AI assistance is not configured", is_error=True)
            return False
        return True

    def _ai_failed(self, exc: AIError) -> None:
        logger.warning("AI request failed: %s", exc)
        self.notify(classify_ai_error(exc), is_error=True)

    def generate_set_candidates(self, set_name: str) -> tuple[str, list[SetCandidate]] | None:
        """Ask the AI gateway for a set's contents.

        Returns:
            (suggested set emoji, candidates to review), or None on failure
        """
        if not set_name.strip() or not self._ai_ready():
            return None
        try:
            generated = self.gateway.generate_set_items(set_name.strip(), self.categories.categories)
        except AIError as e:
            self._ai_failed(e)
            return None

        candidates = [
            SetCandidate(name=normalize_name(entry.name), category_name=entry.category_name, emoji=entry.emoji)
            for entry in generated.items
            if entry.name.strip()
        ]
        return generated.set_emoji or DEFAULT_SET_EMOJI, candidates

    def analyze_history(self) -> list[SuggestedSet]:
        """Suggest sets from recurring purchases; needs enough distinct days."""
        days = self.purchases.distinct_days()
        if days < MIN_HISTORY_DAYS:
            self.notify(
                f"History analysis needs purchases on at least {MIN_HISTORY_DAYS} days "
                f"(currently {days})"
            )
            return []
        if not self._ai_ready():
            return []
        try:
            return self.gateway.analyze_history(self.purchases.logs, self.categories.categories)
        except AIError as e:
            self._ai_failed(e)
            return []

    def save_suggested_set(self, suggestion: SuggestedSet) -> ShoppingSet | None:
        if self.sets.find_by_name(suggestion.name) is not None:
            self.notify(f"A set named '{suggestion.name}' already exists", is_error=True)
            return None
        return self.sets.save(suggestion.name, suggestion.items, suggestion.emoji)

    def parse_free_text(self, text: str) -> ParsedText | None:
        """Split free-form text into products for review before adding."""
        if not text.strip() or not self._ai_ready():
            return None
        try:
            parsed = self.gateway.parse_free_text(text.strip(), self.categories.categories)
        except AIError as e:
            self._ai_failed(e)
            return None

        for entry in parsed.items:
            entry.name = normalize_name(entry.name)
        parsed.items = [entry for entry in parsed.items if entry.name]
        return parsed

    def accept_parsed(self, items: list[ParsedItem]) -> list[ProductItem]:
        """Add the selected parsed products to the buy list."""
        added = [
            self._add_resolved(entry.name, entry.category_name, entry.suggested_emoji)
            for entry in items
            if entry.selected
        ]
        self.categories.reorder()
        return [item for item in added if item is not None]

    # --- Family ---

    def join_family(self, invite_code: str) -> FamilyInfo | None:
        code = invite_code.strip()
        if not code or self.identity is None or self.datastore is None:
            return None
        try:
            family = self.datastore.join_family(self.identity.id, code)
            if family is not None:
                self._attach_family(family)
        except RemoteError as e:
            logger.error("Joining family failed: %s", e)
            self.notify("Could not reach the family list", is_error=True)
            return None

        if family is None:
            self.notify("Invite code not found", is_error=True)
            return None
        self.notify("Joined family")
        return family

    def leave_family(self) -> FamilyInfo | None:
        """Leave the current family for a fresh single-member one."""
        if self.identity is None or self.datastore is None or self.family is None:
            return None
        try:
            family = self.datastore.leave_family(self.identity.id)
            if family is not None:
                self._attach_family(family)
        except RemoteError as e:
            logger.error("Leaving family failed: %s", e)
            family = None

        if family is None:
            self.notify("Could not leave the family", is_error=True)
            return None
        self.notify("Left family")
        return family

    def remove_member(self, target_id: int) -> FamilyInfo | None:
        """Move another member out of the family.

        Raises:
            NotAuthorizedError: If the current user does not own the family
        """
        if self.family is None or self.identity is None or not self.family.is_owner:
            raise NotAuthorizedError()
        try:
            family = self.datastore.remove_member(self.identity.id, target_id)
        except RemoteError as e:
            logger.error("Removing member failed: %s", e)
            family = None

        if family is None:
            self.notify("Could not remove member", is_error=True)
            return None
        self.family = family
        self.notify("Member removed")
        return family

    def other_members(self) -> list[FamilyMember]:
        if self.family is None:
            return []
        own_id = self.identity.id if self.identity else None
        return [m for m in self.family.members if m.user_id != own_id]
