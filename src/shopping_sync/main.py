"""CLI entry point for Shopping Sync."""

import locale
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer

from .ai_gateway import create_gateway
from .categories import CategoryNotFoundError, ProtectedCategoryError
from .config import ConfigManager
from .history import (
    buy_list_groups,
    grouped_by_category,
    sorted_active_categories,
    unique_by_name,
)
from .item_store import ItemNotFoundError
from .local_store import LocalStore
from .log_config import configure_logging, get_logger, set_log_level
from .models import CategoryDef, Identity, ProductItem, ShoppingSet, Theme
from .output_formatter import OutputFormatter
from .remote import RemoteError, create_datastore
from .sets import SetNotFoundError
from .sync_engine import NotAuthorizedError, SyncEngine

app = typer.Typer(
    name="shopping",
    help="Shared household shopping list",
    no_args_is_help=True,
)

logger = get_logger(__name__)

# Global state for formatter and config (set by callback)
formatter: OutputFormatter = OutputFormatter()
config: ConfigManager | None = None
data_dir: Path | None = None
offline: bool = False

ERROR_CODES: dict[type[Exception], str] = {
    ItemNotFoundError: "ITEM_NOT_FOUND",
    CategoryNotFoundError: "CATEGORY_NOT_FOUND",
    SetNotFoundError: "SET_NOT_FOUND",
    ProtectedCategoryError: "PROTECTED_CATEGORY",
    NotAuthorizedError: "NOT_AUTHORIZED",
}

CLI_ERRORS = (*ERROR_CODES, RemoteError, ValueError)


def get_config() -> ConfigManager:
    """Get or create ConfigManager instance."""
    global config
    if config is None:
        config = ConfigManager()
    return config


def get_local_store() -> LocalStore:
    return LocalStore(data_dir or get_config().data.storage_dir)


def build_engine(connect: bool = True) -> SyncEngine:
    """Load local state and, unless offline, connect to the family list."""
    cfg = get_config()
    state = get_local_store().load_state()
    gateway = create_gateway(cfg) if state.preferences.ai_enabled else None
    datastore = None if offline or not connect else create_datastore(cfg, data_dir)

    engine = SyncEngine(state=state, datastore=datastore, gateway=gateway)
    if datastore is None:
        engine.rollover()
    else:
        identity = Identity(
            id=cfg.user.id, first_name=cfg.user.first_name, username=cfg.user.username
        )
        engine.connect(identity, cfg.user.invite_code)
    return engine


@contextmanager
def open_engine(connect: bool = True) -> Iterator[SyncEngine]:
    """Yield a ready engine and persist its state afterwards."""
    engine = build_engine(connect)
    try:
        yield engine
    finally:
        engine.process_events()
        get_local_store().save_state(engine.state)
        engine.disconnect()


def fail(exc: Exception) -> NoReturn:
    """Report a domain error and exit with status 1."""
    code = next((c for t, c in ERROR_CODES.items() if isinstance(exc, t)), None)
    formatter.error(str(exc), error_code=code)
    raise typer.Exit(code=1)


def result(engine: SyncEngine, message: str, **data: Any) -> dict[str, Any]:
    """Build a command result, attaching pending engine notifications."""
    return {
        "success": True,
        "message": message,
        "data": data,
        "notifications": [n.model_dump(mode="json") for n in engine.drain_notifications()],
    }


def find_item(engine: SyncEngine, ref: str) -> ProductItem:
    """Look an item up by id, then by name."""
    item = engine.items.get(ref) or engine.items.find_by_name(ref)
    if item is None:
        raise ItemNotFoundError(ref)
    return item


def find_category(engine: SyncEngine, ref: str) -> CategoryDef:
    category = engine.categories.get(ref) or engine.categories.find_by_name(ref)
    if category is None:
        raise CategoryNotFoundError(ref)
    return category


def find_set(engine: SyncEngine, ref: str) -> ShoppingSet:
    shopping_set = engine.sets.get(ref) or engine.sets.find_by_name(ref)
    if shopping_set is None:
        raise SetNotFoundError(ref)
    return shopping_set


def item_data(engine: SyncEngine, item: ProductItem) -> dict[str, Any]:
    return {
        "item": item.model_dump(mode="json"),
        "category": engine.categories.resolve(item.category_id).model_dump(mode="json"),
    }


@app.callback()
def main(
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON for programmatic use")
    ] = False,
    data_dir_option: Annotated[
        Path | None, typer.Option("--data-dir", help="Data directory path")
    ] = None,
    config_path: Annotated[
        Path | None, typer.Option("--config", help="Configuration file path")
    ] = None,
    offline_option: Annotated[
        bool, typer.Option("--offline", help="Do not connect to the family list")
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Shopping Sync CLI - one buy list for the whole family."""
    global formatter, config, data_dir, offline

    configure_logging()
    if verbose:
        set_log_level(logging.DEBUG)

    # name tie-breaks in history views follow the user's collation
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.debug("Keeping default collation: %s", e)

    formatter = OutputFormatter(json_mode=json_output)
    config = ConfigManager(config_path)
    # CLI --data-dir overrides config, which overrides default
    data_dir = data_dir_option or config.data.storage_dir
    offline = offline_option


# --- Items ---


@app.command()
def add(
    name: Annotated[str, typer.Argument(help="Item name to add")],
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Category name or ID")
    ] = None,
    history: Annotated[
        bool, typer.Option("--history", help="Add to history only, not the buy list")
    ] = False,
) -> None:
    """Add an item to the buy list (merging with a known item of the same name)."""
    try:
        with open_engine() as engine:
            category_id = find_category(engine, category).id if category else None
            item = engine.add_item(name, category_id, on_list=not history)
            if item is None:
                formatter.warning("Nothing to add")
                return
            output = result(engine, f"Added {item.name}", **item_data(engine, item))
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@app.command()
def bulk(
    names: Annotated[list[str], typer.Argument(help="Item names")],
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Category name or ID")
    ] = None,
    history: Annotated[
        bool, typer.Option("--history", help="Add to history only, not the buy list")
    ] = False,
) -> None:
    """Add several items into one category."""
    try:
        with open_engine() as engine:
            category_id = find_category(engine, category).id if category else None
            added = engine.bulk_add("\n".join(names), category_id, on_list=not history)
            output = result(
                engine,
                f"Added {len(added)} items",
                items=[i.model_dump(mode="json") for i in added],
            )
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@app.command(name="list")
def list_items(
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Show one category only")
    ] = None,
) -> None:
    """View the buy list, grouped by category."""
    try:
        with open_engine() as engine:
            if category:
                engine.category_filter.select(find_category(engine, category).id)
            current = engine.category_filter.refresh(engine.items.items, engine.clock())
            groups, completed = buy_list_groups(
                engine.items.items, engine.categories, engine.clock().date(), current
            )
            chips = sorted_active_categories(engine.items.items, engine.categories)
            output = result(
                engine,
                "",
                buy_list={
                    "filter": current,
                    "chips": [c.model_dump(mode="json") for c in chips],
                    "groups": [g.model_dump(mode="json") for g in groups],
                    "completed_today": [i.model_dump(mode="json") for i in completed],
                },
            )
        formatter.output(output)
    except CLI_ERRORS as e:
        fail(e)


@app.command()
def done(
    item: Annotated[str, typer.Argument(help="Item name or ID")],
) -> None:
    """Check an item off (or uncheck it)."""
    try:
        with open_engine() as engine:
            toggled = engine.toggle_complete(find_item(engine, item).id)
            verb = "Bought" if toggled.completed else "Unchecked"
            output = result(engine, f"{verb} {toggled.name}", **item_data(engine, toggled))
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@app.command()
def edit(
    item: Annotated[str, typer.Argument(help="Item name or ID")],
    name: Annotated[str | None, typer.Option("--name", "-n", help="New name")] = None,
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="New category name or ID")
    ] = None,
) -> None:
    """Rename or recategorize an item."""
    try:
        with open_engine() as engine:
            current = find_item(engine, item)
            category_id = find_category(engine, category).id if category else None
            edited = engine.edit_item(current.id, name or current.name, category_id)
            if edited is None:
                formatter.warning("Name cannot be empty")
                return
            output = result(engine, f"Updated {edited.name}", **item_data(engine, edited))
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@app.command()
def remove(
    item: Annotated[str, typer.Argument(help="Item name or ID")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete an item and its history."""
    try:
        with open_engine() as engine:
            target = find_item(engine, item)
            if engine.state.preferences.confirm_item_delete and not yes:
                if not typer.confirm(f"Delete {target.name}?"):
                    formatter.warning("Canceled")
                    return
            removed = engine.delete_item(target.id)
            output = result(
                engine, f"Removed {removed.name}", item=removed.model_dump(mode="json")
            )
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@app.command(name="toggle-list")
def toggle_list(
    item: Annotated[str, typer.Argument(help="Item name or ID")],
) -> None:
    """Move an item between history and the buy list."""
    try:
        with open_engine() as engine:
            toggled = engine.toggle_on_list(find_item(engine, item).id)
            where = "the buy list" if toggled.on_list else "history"
            output = result(engine, f"Moved {toggled.name} to {where}", **item_data(engine, toggled))
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@app.command()
def history(
    grouped: Annotated[
        bool, typer.Option("--grouped", "-g", help="Group by category")
    ] = False,
) -> None:
    """View every known item, most purchased first."""
    try:
        with open_engine() as engine:
            if grouped:
                groups = grouped_by_category(engine.items.items, engine.categories)
                view = {"groups": [g.model_dump(mode="json") for g in groups]}
            else:
                items = unique_by_name(engine.items.items)
                view = {"items": [i.model_dump(mode="json") for i in items]}
            output = result(engine, "", history=view)
        formatter.output(output)
    except CLI_ERRORS as e:
        fail(e)


@app.command()
def log(
    day: Annotated[
        str | None, typer.Option("--date", "-d", help="Day to show (YYYY-MM-DD); default today")
    ] = None,
) -> None:
    """Show what was bought on a day."""
    try:
        wanted = date.fromisoformat(day) if day else None
        with open_engine(connect=False) as engine:
            wanted = wanted or engine.clock().date()
            groups = engine.purchases.purchases_on(wanted, engine.categories)
            output = result(
                engine,
                "",
                purchases={
                    "date": wanted.isoformat(),
                    "groups": [g.model_dump(mode="json") for g in groups],
                    "distinct_days": engine.purchases.distinct_days(),
                },
            )
        formatter.output(output)
    except CLI_ERRORS as e:
        fail(e)


@app.command()
def sync() -> None:
    """Retry failed uploads and pull changes from the family list."""
    try:
        with open_engine() as engine:
            sent = engine.retry_failed()
            applied = engine.poll()
            output = result(
                engine,
                "Synced" if engine.connected else "Not connected",
                sync={"sent": sent, "failed": len(engine.failed), "applied": applied},
            )
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@app.command()
def tui() -> None:
    """Open the interactive terminal interface."""
    from .tui import ShoppingSyncTUI

    engine = build_engine()
    try:
        ShoppingSyncTUI(engine).run()
    finally:
        get_local_store().save_state(engine.state)
        engine.disconnect()


# --- Categories ---

category_app = typer.Typer(help="Category commands")
app.add_typer(category_app, name="category")


@category_app.command("list")
def category_list() -> None:
    """List categories (uncategorized always last)."""
    try:
        with open_engine(connect=False) as engine:
            output = result(
                engine,
                "",
                categories=[c.model_dump(mode="json") for c in engine.categories.categories],
            )
        formatter.output(output)
    except CLI_ERRORS as e:
        fail(e)


@category_app.command("add")
def category_add(
    name: Annotated[str, typer.Argument(help="Category name")],
    emoji: Annotated[str | None, typer.Option("--emoji", "-e", help="Category emoji")] = None,
) -> None:
    """Create a category."""
    try:
        with open_engine(connect=False) as engine:
            created = engine.save_category(name, emoji or get_config().defaults.category_emoji)
            if created is None:
                formatter.warning("Category name cannot be empty")
                return
            output = result(engine, f"Created {created.name}", categories=[created.model_dump()])
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@category_app.command("edit")
def category_edit(
    category: Annotated[str, typer.Argument(help="Category name or ID")],
    name: Annotated[str | None, typer.Option("--name", "-n", help="New name")] = None,
    emoji: Annotated[str | None, typer.Option("--emoji", "-e", help="New emoji")] = None,
) -> None:
    """Rename a category or change its emoji."""
    try:
        with open_engine(connect=False) as engine:
            current = find_category(engine, category)
            edited = engine.save_category(name or current.name, emoji, category_id=current.id)
            if edited is None:
                formatter.warning("Category name cannot be empty")
                return
            output = result(engine, f"Updated {edited.name}", categories=[edited.model_dump()])
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@category_app.command("delete")
def category_delete(
    category: Annotated[str, typer.Argument(help="Category name or ID")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a category; its items become uncategorized."""
    try:
        with open_engine() as engine:
            target = find_category(engine, category)
            if engine.state.preferences.confirm_category_delete and not yes and not target.is_sentinel:
                if not typer.confirm(f"Delete category {target.name}?"):
                    formatter.warning("Canceled")
                    return
            moved = engine.delete_category(target.id)
            output = result(
                engine,
                f"Deleted {target.name}; {len(moved)} items uncategorized",
                items=[i.model_dump(mode="json") for i in moved],
            )
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


# --- Sets ---

set_app = typer.Typer(help="Shopping set commands")
app.add_typer(set_app, name="set")


@set_app.command("list")
def set_list() -> None:
    """List sets, most used first."""
    try:
        with open_engine(connect=False) as engine:
            sets = engine.sets.sorted_by_usage()
            output = result(engine, "", sets=[s.model_dump(mode="json") for s in sets])
        formatter.output(output)
    except CLI_ERRORS as e:
        fail(e)


@set_app.command("show")
def set_show(
    shopping_set: Annotated[str, typer.Argument(help="Set name or ID")],
) -> None:
    """Show a set's contents."""
    try:
        with open_engine(connect=False) as engine:
            found = find_set(engine, shopping_set)
            output = result(engine, "", set=found.model_dump(mode="json"))
        formatter.output(output)
    except CLI_ERRORS as e:
        fail(e)


@set_app.command("create")
def set_create(
    name: Annotated[str, typer.Argument(help="Set name")],
    item: Annotated[
        list[str] | None, typer.Option("--item", "-i", help="Item name (repeatable)")
    ] = None,
    from_history: Annotated[
        list[str] | None,
        typer.Option("--from-history", "-H", help="Known item name or ID (repeatable)"),
    ] = None,
    ai: Annotated[bool, typer.Option("--ai", help="Let AI propose the items")] = False,
    exclude: Annotated[
        list[str] | None, typer.Option("--exclude", "-x", help="Drop an AI-proposed item")
    ] = None,
    emoji: Annotated[str | None, typer.Option("--emoji", "-e", help="Set emoji")] = None,
) -> None:
    """Create a set from typed names, known items, or an AI proposal."""
    modes = sum([bool(item), bool(from_history), ai])
    if modes != 1:
        formatter.error("Choose exactly one of --item, --from-history or --ai")
        raise typer.Exit(code=1)

    try:
        with open_engine(connect=False) as engine:
            set_emoji = emoji or get_config().defaults.set_emoji
            if item:
                created = engine.create_set_from_text(name, "\n".join(item), set_emoji)
            elif from_history:
                ids = [find_item(engine, ref).id for ref in from_history]
                created = engine.create_set_from_history(name, ids, set_emoji)
            else:
                created = _create_from_ai(engine, name, exclude or [], emoji)

            if created is None:
                output = result(engine, "Set not created")
                formatter.output(output)
                return
            output = result(engine, f"Created set {created.name}", set=created.model_dump(mode="json"))
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


def _create_from_ai(
    engine: SyncEngine, name: str, exclude: list[str], emoji: str | None
) -> ShoppingSet | None:
    generated = engine.generate_set_candidates(name)
    if generated is None:
        return None
    suggested_emoji, candidates = generated
    dropped = {x.strip().lower() for x in exclude}
    reviewed = [c.model_copy(update={"included": c.name.lower() not in dropped}) for c in candidates]
    return engine.create_set_from_candidates(name, reviewed, emoji or suggested_emoji)


@set_app.command("edit")
def set_edit(
    shopping_set: Annotated[str, typer.Argument(help="Set name or ID")],
    name: Annotated[str | None, typer.Option("--name", "-n", help="New name")] = None,
    item: Annotated[
        list[str] | None, typer.Option("--item", "-i", help="Replacement item (repeatable)")
    ] = None,
    emoji: Annotated[str | None, typer.Option("--emoji", "-e", help="New emoji")] = None,
) -> None:
    """Rename a set or replace its items."""
    try:
        with open_engine(connect=False) as engine:
            current = find_set(engine, shopping_set)
            if item:
                edited = engine.create_set_from_text(
                    name or current.name, "\n".join(item), emoji or current.emoji, set_id=current.id
                )
            else:
                edited = engine.edit_set(current.id, name or current.name, current.items, emoji)
            if edited is None:
                formatter.warning("Set name and items cannot be empty")
                return
            output = result(engine, f"Updated set {edited.name}", set=edited.model_dump(mode="json"))
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@set_app.command("delete")
def set_delete(
    shopping_set: Annotated[str, typer.Argument(help="Set name or ID")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a set."""
    try:
        with open_engine(connect=False) as engine:
            target = find_set(engine, shopping_set)
            if engine.state.preferences.confirm_set_delete and not yes:
                if not typer.confirm(f"Delete set {target.name}?"):
                    formatter.warning("Canceled")
                    return
            engine.delete_set(target.id)
            output = result(engine, f"Deleted set {target.name}")
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@set_app.command("add")
def set_add(
    shopping_set: Annotated[str, typer.Argument(help="Set name or ID")],
    only: Annotated[
        list[str] | None, typer.Option("--only", "-o", help="Add just this item (repeatable)")
    ] = None,
) -> None:
    """Put a set's items on the buy list."""
    try:
        with open_engine() as engine:
            target = find_set(engine, shopping_set)
            added = engine.add_set(target.id, only)
            output = result(
                engine,
                f"Added {len(added)} items from {target.name}",
                items=[i.model_dump(mode="json") for i in added],
            )
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


# --- AI ---

ai_app = typer.Typer(help="AI assistance commands")
app.add_typer(ai_app, name="ai")


@ai_app.command("parse")
def ai_parse(
    text: Annotated[str, typer.Argument(help="Free-form text, e.g. 'milk, eggs and bread'")],
    add_items: Annotated[bool, typer.Option("--add", help="Add the parsed items")] = False,
) -> None:
    """Split free-form text into items."""
    try:
        with open_engine() as engine:
            parsed = engine.parse_free_text(text)
            if parsed is None:
                output = result(engine, "Nothing parsed")
            elif add_items:
                added = engine.accept_parsed(parsed.items)
                output = result(
                    engine,
                    f"Added {len(added)} items",
                    items=[i.model_dump(mode="json") for i in added],
                )
            else:
                output = result(engine, "", parsed=parsed.model_dump(mode="json"))
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@ai_app.command("generate")
def ai_generate(
    name: Annotated[str, typer.Argument(help="Set name, e.g. a dish")],
) -> None:
    """Preview the items AI proposes for a set."""
    try:
        with open_engine(connect=False) as engine:
            generated = engine.generate_set_candidates(name)
            if generated is None:
                output = result(engine, "No proposal")
            else:
                set_emoji, candidates = generated
                output = result(
                    engine,
                    "",
                    candidates={
                        "name": name,
                        "set_emoji": set_emoji,
                        "items": [c.model_dump(mode="json") for c in candidates],
                    },
                )
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@ai_app.command("analyze")
def ai_analyze(
    save: Annotated[bool, typer.Option("--save", help="Save every suggestion as a set")] = False,
) -> None:
    """Suggest sets from purchase history."""
    try:
        with open_engine(connect=False) as engine:
            suggestions = engine.analyze_history()
            saved = [engine.save_suggested_set(s) for s in suggestions] if save else []
            output = result(
                engine,
                f"Saved {sum(1 for s in saved if s)} sets" if save else "",
                suggestions=[s.model_dump(mode="json") for s in suggestions],
            )
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


# --- Family ---

family_app = typer.Typer(help="Family list commands")
app.add_typer(family_app, name="family")


def _family_output(engine: SyncEngine, message: str) -> dict[str, Any]:
    return result(
        engine,
        message,
        family=engine.family.model_dump(mode="json") if engine.family else None,
        members=[m.model_dump(mode="json") for m in engine.other_members()],
    )


@family_app.command("status")
def family_status() -> None:
    """Show the family, its invite code and members."""
    try:
        with open_engine() as engine:
            output = _family_output(engine, "")
        formatter.output(output)
    except CLI_ERRORS as e:
        fail(e)


@family_app.command("join")
def family_join(
    invite_code: Annotated[str, typer.Argument(help="Invite code")],
) -> None:
    """Join another family's list."""
    try:
        with open_engine() as engine:
            engine.join_family(invite_code)
            output = _family_output(engine, "")
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@family_app.command("leave")
def family_leave() -> None:
    """Leave the family for a list of your own."""
    try:
        with open_engine() as engine:
            engine.leave_family()
            output = _family_output(engine, "")
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


@family_app.command("remove")
def family_remove(
    user_id: Annotated[int, typer.Argument(help="Member user ID")],
) -> None:
    """Remove a member (family owner only)."""
    try:
        with open_engine() as engine:
            engine.remove_member(user_id)
            output = _family_output(engine, "")
        formatter.output(output, output["message"])
    except CLI_ERRORS as e:
        fail(e)


# --- Preferences ---

prefs_app = typer.Typer(help="Preference commands")
app.add_typer(prefs_app, name="prefs")


@prefs_app.command("view")
def prefs_view() -> None:
    """View preferences."""
    try:
        prefs = get_local_store().load_preferences()
        output_data = {"success": True, "data": {"preferences": prefs.model_dump(mode="json")}}
        formatter.output(output_data, "Preferences")
    except CLI_ERRORS as e:
        fail(e)


@prefs_app.command("set")
def prefs_set(
    theme: Annotated[Theme | None, typer.Option("--theme", help="Display theme")] = None,
    ai: Annotated[bool | None, typer.Option("--ai/--no-ai", help="AI assistance")] = None,
    confirm_item: Annotated[
        bool | None, typer.Option("--confirm-item/--no-confirm-item", help="Confirm item deletes")
    ] = None,
    confirm_category: Annotated[
        bool | None,
        typer.Option("--confirm-category/--no-confirm-category", help="Confirm category deletes"),
    ] = None,
    confirm_set: Annotated[
        bool | None, typer.Option("--confirm-set/--no-confirm-set", help="Confirm set deletes")
    ] = None,
) -> None:
    """Change preferences."""
    try:
        store = get_local_store()
        prefs = store.load_preferences()

        if theme is not None:
            prefs.theme = theme
        if ai is not None:
            prefs.ai_enabled = ai
        if confirm_item is not None:
            prefs.confirm_item_delete = confirm_item
        if confirm_category is not None:
            prefs.confirm_category_delete = confirm_category
        if confirm_set is not None:
            prefs.confirm_set_delete = confirm_set

        store.save_preferences(prefs)
        output_data = {
            "success": True,
            "message": "Updated preferences",
            "data": {"preferences": prefs.model_dump(mode="json")},
        }
        formatter.output(output_data, output_data["message"])
    except CLI_ERRORS as e:
        fail(e)


if __name__ == "__main__":
    app()
