"""Terminal UI for Shopping Sync."""

from __future__ import annotations

from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Header,
    Input,
    Label,
    Static,
    TabbedContent,
    TabPane,
)

from .categories import CategoryNotFoundError
from .history import ALL_CATEGORIES, buy_list_groups, sorted_active_categories, unique_by_name
from .item_store import ItemNotFoundError
from .models import Theme
from .sets import SetNotFoundError
from .sync_engine import SyncEngine

POLL_INTERVAL = 2.0
FILTER_INTERVAL = 0.1


class ItemFormScreen(ModalScreen[dict[str, Any] | None]):
    """Modal dialog to add or edit a buy-list item."""

    DEFAULT_CSS = """
    ItemFormScreen {
        align: center middle;
    }

    #item-form-dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: round $primary;
        background: $surface;
    }

    #item-form-actions {
        align-horizontal: right;
        height: auto;
        margin-top: 1;
    }

    .field-label {
        margin-top: 1;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, mode: str, defaults: dict[str, Any] | None = None):
        super().__init__()
        self.mode = mode
        self.defaults = defaults or {}

    def compose(self) -> ComposeResult:
        is_edit = self.mode == "edit"
        title = "Edit Item" if is_edit else "Add Item"
        submit = "Save" if is_edit else "Add"

        with Vertical(id="item-form-dialog"):
            yield Label(title, classes="field-label")
            yield Label("Name", classes="field-label")
            yield Input(value=self.defaults.get("name", ""), placeholder="Milk", id="name")
            yield Label("Category (optional)", classes="field-label")
            yield Input(
                value=self.defaults.get("category", ""), placeholder="Dairy & Eggs", id="category"
            )
            with Horizontal(id="item-form-actions"):
                yield Button("Cancel", id="cancel")
                yield Button(submit, id="submit", variant="primary")

    def action_cancel(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.dismiss(None)
            return

        if event.button.id != "submit":
            return

        name = self.query_one("#name", Input).value.strip()
        if not name:
            self.app.bell()
            return

        category = self.query_one("#category", Input).value.strip()
        self.dismiss({"name": name, "category": category or None})


class SetFormScreen(ModalScreen[dict[str, Any] | None]):
    """Modal dialog to create or edit a shopping set."""

    DEFAULT_CSS = """
    SetFormScreen {
        align: center middle;
    }

    #set-form-dialog {
        width: 70;
        height: auto;
        padding: 1 2;
        border: round $accent;
        background: $surface;
    }

    #set-form-actions {
        align-horizontal: right;
        height: auto;
        margin-top: 1;
    }

    .field-label {
        margin-top: 1;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, mode: str, defaults: dict[str, Any] | None = None):
        super().__init__()
        self.mode = mode
        self.defaults = defaults or {}

    def compose(self) -> ComposeResult:
        title = "Edit Set" if self.mode == "edit" else "New Set"

        with Vertical(id="set-form-dialog"):
            yield Label(title, classes="field-label")
            yield Label("Name", classes="field-label")
            yield Input(value=self.defaults.get("name", ""), placeholder="Pancakes", id="name")
            yield Label("Emoji", classes="field-label")
            yield Input(value=self.defaults.get("emoji", ""), placeholder="🥞", id="emoji")
            yield Label("Items, comma separated", classes="field-label")
            yield Input(
                value=self.defaults.get("items", ""), placeholder="Flour, Eggs, Milk", id="items"
            )
            with Horizontal(id="set-form-actions"):
                yield Button("Cancel", id="cancel")
                yield Button("Save", id="submit", variant="primary")

    def action_cancel(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.dismiss(None)
            return

        if event.button.id != "submit":
            return

        name = self.query_one("#name", Input).value.strip()
        items = [
            part.strip()
            for part in self.query_one("#items", Input).value.split(",")
            if part.strip()
        ]
        if not name or not items:
            self.app.bell()
            return

        emoji = self.query_one("#emoji", Input).value.strip()
        self.dismiss({"name": name, "emoji": emoji or None, "items": items})


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no confirmation before a destructive action."""

    DEFAULT_CSS = """
    ConfirmScreen {
        align: center middle;
    }

    #confirm-dialog {
        width: 50;
        height: auto;
        padding: 1 2;
        border: round $error;
        background: $surface;
    }

    #confirm-actions {
        align-horizontal: right;
        height: auto;
        margin-top: 1;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, question: str):
        super().__init__()
        self.question = question

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Label(self.question)
            with Horizontal(id="confirm-actions"):
                yield Button("Cancel", id="cancel")
                yield Button("Delete", id="confirm", variant="error")

    def action_cancel(self) -> None:
        self.dismiss(False)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "confirm")


class ShoppingSyncTUI(App[None]):
    """Interactive terminal UI for the shared buy list."""

    TITLE = "Shopping Sync"
    SUB_TITLE = "Family Buy List"

    DEFAULT_CSS = """
    #status {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $boost;
        color: $text;
    }

    #filter {
        height: 1;
        padding: 0 1;
    }

    DataTable {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("a", "add_item", "Add Item"),
        Binding("e", "edit_selected", "Edit"),
        Binding("space", "toggle_complete", "Check Off"),
        Binding("z", "undo", "Undo"),
        Binding("x", "delete_selected", "Delete"),
        Binding("l", "toggle_on_list", "List/History"),
        Binding("f", "cycle_filter", "Filter"),
        Binding("n", "new_set", "New Set"),
        Binding("s", "add_set", "Add Set"),
        Binding("1", "show_tab('buy')", "Buy"),
        Binding("2", "show_tab('history')", "History"),
        Binding("3", "show_tab('sets')", "Sets"),
    ]

    def __init__(self, engine: SyncEngine):
        super().__init__()
        self.engine = engine
        self._row_ids: dict[str, list[str]] = {"buy": [], "history": [], "sets": []}

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with TabbedContent(initial="buy"):
            with TabPane("Buy", id="buy"):
                yield Static("", id="filter")
                yield DataTable(id="buy-table")
            with TabPane("History", id="history"):
                yield DataTable(id="history-table")
            with TabPane("Sets", id="sets"):
                yield DataTable(id="sets-table")
        yield Static(
            "a:add  space:check  z:undo  x:delete  l:list/history  f:filter  s:add set  q:quit",
            id="status",
        )
        yield Footer()

    def on_mount(self) -> None:
        if self.engine.state.preferences.theme == Theme.DARK:
            self.theme = "textual-dark"
        else:
            self.theme = "textual-light"

        buy_table = self.query_one("#buy-table", DataTable)
        buy_table.cursor_type = "row"
        buy_table.add_columns("", "Item", "Category", "Bought")

        history_table = self.query_one("#history-table", DataTable)
        history_table.cursor_type = "row"
        history_table.add_columns("Item", "Category", "Bought", "On List")

        sets_table = self.query_one("#sets-table", DataTable)
        sets_table.cursor_type = "row"
        sets_table.add_columns("Set", "Items", "Used")

        self.set_interval(POLL_INTERVAL, self._poll)
        self.set_interval(FILTER_INTERVAL, self._refresh_filter)
        self.action_refresh()

    # --- Background work ---

    def _poll(self) -> None:
        if self.engine.poll():
            self._refresh_tables()
        self._show_notifications()

    def _refresh_filter(self) -> None:
        before = self.engine.category_filter.selected
        after = self.engine.category_filter.refresh(self.engine.items.items, self.engine.clock())
        if after != before:
            self._refresh_tables()

    # --- Actions ---

    def action_refresh(self) -> None:
        self.engine.retry_failed()
        self.engine.poll()
        self._refresh_tables()
        if not self._show_notifications():
            self._set_status("Refreshed")

    def action_show_tab(self, tab: str) -> None:
        self.query_one(TabbedContent).active = tab

    def action_add_item(self) -> None:
        self.push_screen(ItemFormScreen(mode="add"), self._handle_add)

    def action_edit_selected(self) -> None:
        active_tab = self._active_tab()
        selected_id = self._selected_id(active_tab)
        if selected_id is None:
            self._set_status("Nothing selected")
            return

        if active_tab == "sets":
            shopping_set = self.engine.sets.get(selected_id)
            if shopping_set is None:
                return
            defaults = {
                "name": shopping_set.name,
                "emoji": shopping_set.emoji,
                "items": ", ".join(i.name for i in shopping_set.items),
            }
            self.push_screen(
                SetFormScreen(mode="edit", defaults=defaults),
                lambda payload, set_id=selected_id: self._handle_set_form(payload, set_id),
            )
            return

        item = self.engine.items.get(selected_id)
        if item is None:
            self._set_status("Selected item is unavailable")
            return
        defaults = {
            "name": item.name,
            "category": self.engine.categories.resolve(item.category_id).name,
        }
        self.push_screen(
            ItemFormScreen(mode="edit", defaults=defaults),
            lambda payload, item_id=selected_id: self._handle_edit(item_id, payload),
        )

    def action_toggle_complete(self) -> None:
        if self._active_tab() != "buy":
            self._set_status("Switch to the Buy tab to check items off")
            return
        item_id = self._selected_id("buy")
        if item_id is None:
            self._set_status("No item selected")
            return

        try:
            item = self.engine.toggle_complete(item_id)
        except ItemNotFoundError as exc:
            self._set_status(str(exc))
            return
        self._after_change(f"Bought {item.name} (z to undo)" if item.completed else f"Unchecked {item.name}")

    def action_undo(self) -> None:
        item = self.engine.undo_completion() or self.engine.undo_delete()
        if item is None:
            self._set_status("Nothing to undo")
            return
        self._after_change(f"Restored {item.name}")

    def action_delete_selected(self) -> None:
        active_tab = self._active_tab()
        selected_id = self._selected_id(active_tab)
        if selected_id is None:
            self._set_status("Nothing selected")
            return

        prefs = self.engine.state.preferences
        if active_tab == "sets":
            shopping_set = self.engine.sets.get(selected_id)
            if shopping_set is None:
                return
            if prefs.confirm_set_delete:
                self.push_screen(
                    ConfirmScreen(f"Delete set {shopping_set.name}?"),
                    lambda ok, set_id=selected_id: ok and self._delete_set(set_id),
                )
            else:
                self._delete_set(selected_id)
            return

        item = self.engine.items.get(selected_id)
        if item is None:
            return
        if prefs.confirm_item_delete:
            self.push_screen(
                ConfirmScreen(f"Delete {item.name} and its history?"),
                lambda ok, item_id=selected_id: ok and self._delete_item(item_id),
            )
        else:
            self._delete_item(selected_id)

    def action_toggle_on_list(self) -> None:
        active_tab = self._active_tab()
        if active_tab == "sets":
            return
        item_id = self._selected_id(active_tab)
        if item_id is None:
            self._set_status("No item selected")
            return

        item = self.engine.toggle_on_list(item_id)
        if item is not None:
            where = "the buy list" if item.on_list else "history"
            self._after_change(f"Moved {item.name} to {where}")

    def action_cycle_filter(self) -> None:
        """Step through All and the active category chips."""
        chips = sorted_active_categories(self.engine.items.items, self.engine.categories)
        choices = [ALL_CATEGORIES, *(c.id for c in chips)]
        current = self.engine.category_filter.selected
        index = choices.index(current) if current in choices else 0
        self.engine.category_filter.select(choices[(index + 1) % len(choices)])
        self._refresh_tables()

    def action_new_set(self) -> None:
        self.push_screen(SetFormScreen(mode="add"), self._handle_set_form)

    def action_add_set(self) -> None:
        if self._active_tab() != "sets":
            self._set_status("Switch to the Sets tab to add a set")
            return
        set_id = self._selected_id("sets")
        if set_id is None:
            self._set_status("No set selected")
            return

        try:
            added = self.engine.add_set(set_id)
        except SetNotFoundError as exc:
            self._set_status(str(exc))
            return
        self._after_change(f"Added {len(added)} items to the buy list")

    # --- Form handlers ---

    def _handle_add(self, payload: dict[str, Any] | None) -> None:
        if payload is None:
            self._set_status("Add item canceled")
            return

        category_id = None
        if payload["category"]:
            category_id = self.engine.resolve_category(payload["category"]).id
        item = self.engine.add_item(payload["name"], category_id)
        if item is not None:
            self._after_change(f"Added {item.name}")

    def _handle_edit(self, item_id: str, payload: dict[str, Any] | None) -> None:
        if payload is None:
            self._set_status("Edit canceled")
            return

        category_id = None
        if payload["category"]:
            category_id = self.engine.resolve_category(payload["category"]).id
        try:
            item = self.engine.edit_item(item_id, payload["name"], category_id)
        except (ItemNotFoundError, CategoryNotFoundError) as exc:
            self._set_status(str(exc))
            return
        if item is not None:
            self._after_change(f"Updated {item.name}")

    def _handle_set_form(self, payload: dict[str, Any] | None, set_id: str | None = None) -> None:
        if payload is None:
            self._set_status("Set canceled")
            return

        current = self.engine.sets.get(set_id) if set_id else None
        emoji = payload["emoji"] or (current.emoji if current else None)
        kwargs = {"emoji": emoji} if emoji else {}
        saved = self.engine.create_set_from_text(
            payload["name"], "\n".join(payload["items"]), set_id=set_id, **kwargs
        )
        if saved is not None:
            self._after_change(f"Saved set {saved.name}")

    def _delete_item(self, item_id: str) -> None:
        try:
            item = self.engine.delete_item(item_id)
        except ItemNotFoundError as exc:
            self._set_status(str(exc))
            return
        self._after_change(f"Deleted {item.name} (z to undo)")

    def _delete_set(self, set_id: str) -> None:
        try:
            shopping_set = self.engine.delete_set(set_id)
        except SetNotFoundError as exc:
            self._set_status(str(exc))
            return
        self._after_change(f"Deleted set {shopping_set.name}")

    # --- Rendering ---

    def _after_change(self, message: str) -> None:
        self.engine.process_events()
        self._refresh_tables()
        self._set_status(message)
        self._show_notifications()

    def _refresh_tables(self) -> None:
        self._refresh_buy_table()
        self._refresh_history_table()
        self._refresh_sets_table()

    def _refresh_buy_table(self) -> None:
        table = self.query_one("#buy-table", DataTable)
        table.clear(columns=False)
        ids: list[str] = []

        engine = self.engine
        current = engine.category_filter.selected
        groups, completed = buy_list_groups(
            engine.items.items, engine.categories, engine.clock().date(), current
        )
        for group in groups:
            label = f"{group.category.emoji} {group.category.name}"
            for item in group.items:
                ids.append(item.id)
                table.add_row("○", item.name, label, str(item.purchase_count), key=item.id)
        for item in completed:
            ids.append(item.id)
            table.add_row("✓", item.name, "", str(item.purchase_count), key=item.id)

        self._row_ids["buy"] = ids
        if current == ALL_CATEGORIES:
            filter_label = "All"
        else:
            category = engine.categories.resolve(current)
            filter_label = f"{category.emoji} {category.name}"
        chips = sorted_active_categories(engine.items.items, engine.categories)
        self.query_one("#filter", Static).update(
            f"Filter: {filter_label}  ({len(chips)} categories with items)"
        )

    def _refresh_history_table(self) -> None:
        table = self.query_one("#history-table", DataTable)
        table.clear(columns=False)
        ids: list[str] = []

        for item in unique_by_name(self.engine.items.items):
            category = self.engine.categories.resolve(item.category_id)
            ids.append(item.id)
            table.add_row(
                item.name,
                f"{category.emoji} {category.name}",
                str(item.purchase_count),
                "●" if item.on_list else "",
                key=item.id,
            )
        self._row_ids["history"] = ids

    def _refresh_sets_table(self) -> None:
        table = self.query_one("#sets-table", DataTable)
        table.clear(columns=False)
        ids: list[str] = []

        for shopping_set in self.engine.sets.sorted_by_usage():
            ids.append(shopping_set.id)
            name = f"{shopping_set.emoji} {shopping_set.name}"
            if self.engine.set_recently_added(shopping_set.id):
                name += " ✓"
            table.add_row(
                name,
                ", ".join(i.name for i in shopping_set.items),
                str(shopping_set.usage_count),
                key=shopping_set.id,
            )
        self._row_ids["sets"] = ids

    def _show_notifications(self) -> bool:
        notifications = self.engine.drain_notifications()
        if not notifications:
            return False
        latest = notifications[-1]
        prefix = "✗ " if latest.is_error else ""
        self._set_status(prefix + latest.message)
        return True

    def _selected_id(self, tab: str) -> str | None:
        table = self.query_one(f"#{tab}-table", DataTable)
        ids = self._row_ids[tab]
        row = table.cursor_row
        if row is None or row < 0 or row >= len(ids):
            return None
        return ids[row]

    def _active_tab(self) -> str:
        tabbed_content = self.query_one(TabbedContent)
        return tabbed_content.active or "buy"

    def _set_status(self, message: str) -> None:
        self.query_one("#status", Static).update(message)
