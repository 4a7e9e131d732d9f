"""Output formatting for CLI and programmatic use."""

import json
from datetime import date, datetime
from enum import Enum
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for output."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


def _label(category: dict) -> str:
    return f"{category.get('emoji', '')} {category['name']}".strip()


class OutputFormatter:
    """Formats output for both Rich terminal and JSON modes."""

    def __init__(self, json_mode: bool = False):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode
        self.console = Console()

    def output(self, data: dict[str, Any], message: str = "") -> None:
        """Output data in appropriate format.

        Args:
            data: Data to output
            message: Optional message for Rich mode
        """
        if self.json_mode:
            self._output_json(data)
        else:
            self._output_rich(data, message)

    def _output_json(self, data: dict[str, Any]) -> None:
        """Output as JSON to stdout."""
        print(json.dumps(data, cls=JSONEncoder, indent=2, ensure_ascii=False))

    def _output_rich(self, data: dict[str, Any], message: str) -> None:
        """Output with Rich formatting."""
        if message:
            self.console.print(f"[green]✓[/green] {message}")

        payload = data.get("data", {})
        if "buy_list" in payload:
            self._render_buy_list(data)
        elif "item" in payload and isinstance(payload["item"], dict):
            self._render_item(data)
        elif "items" in payload:
            self._render_items(data)
        elif "history" in payload:
            self._render_history(data)
        elif "categories" in payload:
            self._render_categories(data)
        elif "sets" in payload:
            self._render_sets(data)
        elif "set" in payload and isinstance(payload["set"], dict):
            self._render_set(payload["set"])
        elif "purchases" in payload:
            self._render_purchases(data)
        elif "family" in payload:
            self._render_family(data)
        elif "preferences" in payload:
            self._render_preferences(data)
        elif "parsed" in payload:
            self._render_parsed(data)
        elif "candidates" in payload:
            self._render_candidates(data)
        elif "suggestions" in payload:
            self._render_suggestions(data)
        elif "sync" in payload:
            self._render_sync(data)

        self.notifications(data.get("notifications", []))

    def _render_buy_list(self, data: dict) -> None:
        """Render the active buy list grouped by category."""
        buy_list = data["data"]["buy_list"]
        groups = buy_list["groups"]
        completed = buy_list["completed_today"]

        if buy_list.get("chips"):
            chips = "  ".join(_label(c) for c in buy_list["chips"])
            self.console.print(f"[dim]Categories:[/dim] {chips}")
        if buy_list.get("filter") and buy_list["filter"] != "All":
            self.console.print(f"[dim]Filter:[/dim] {buy_list['filter']}")

        if not groups and not completed:
            self.console.print("[dim]The buy list is empty[/dim]")
            return

        table = Table(title="Buy List", show_header=True, header_style="bold cyan")
        table.add_column("Item", style="cyan", no_wrap=False)
        table.add_column("Category", style="yellow")
        table.add_column("Bought", style="magenta", justify="right")
        table.add_column("ID", style="dim")

        for group in groups:
            for item in group["items"]:
                table.add_row(
                    f"[white]○[/white] {item['name']}",
                    _label(group["category"]),
                    str(item["purchase_count"]),
                    item["id"],
                )
        for item in completed:
            table.add_row(
                f"[green]✓[/green] [strike]{item['name']}[/strike]",
                "-",
                str(item["purchase_count"]),
                item["id"],
            )

        self.console.print(table)
        remaining = sum(len(g["items"]) for g in groups)
        self.console.print(f"\nTo buy: {remaining}  Done today: {len(completed)}")

    def _render_item(self, data: dict) -> None:
        """Render a single item with Rich."""
        item = data["data"]["item"]
        category = data["data"].get("category")

        if item.get("completed"):
            status = "bought"
        elif item.get("on_list"):
            status = "on list"
        else:
            status = "history"

        panel_content = f"""[bold]{item["name"]}[/bold]

Category: {_label(category) if category else item.get("category_id")}
Status: {status}
Times bought: {item.get("purchase_count", 0)}"""

        if item.get("completed_at"):
            panel_content += f"\nBought at: {item['completed_at']}"

        panel = Panel(panel_content, title="Item Details", border_style="green")
        self.console.print(panel)

    def _render_items(self, data: dict) -> None:
        items = data["data"]["items"]
        if not items:
            self.console.print("[dim]No items changed[/dim]")
            return
        for item in items:
            marker = "[green]+[/green]" if item.get("on_list") else "[dim]·[/dim]"
            self.console.print(f"  {marker} {item['name']}")

    def _render_history(self, data: dict) -> None:
        """Render purchase history, flat or grouped."""
        history = data["data"]["history"]

        if history.get("groups") is not None:
            if not history["groups"]:
                self.console.print("[dim]No history yet[/dim]")
                return
            for group in history["groups"]:
                self.console.print(
                    f"\n[bold]{_label(group['category'])}[/bold] "
                    f"[dim]({group['total_count']} purchases)[/dim]"
                )
                for item in group["items"]:
                    on_list = " [cyan]●[/cyan]" if item["on_list"] else ""
                    self.console.print(f"  {item['name']}: {item['purchase_count']}{on_list}")
            return

        items = history.get("items", [])
        if not items:
            self.console.print("[dim]No history yet[/dim]")
            return

        table = Table(title="History", show_header=True, header_style="bold cyan")
        table.add_column("Item", style="cyan")
        table.add_column("Bought", justify="right", style="magenta")
        table.add_column("On List", justify="center")
        table.add_column("ID", style="dim")
        for item in items:
            table.add_row(
                item["name"],
                str(item["purchase_count"]),
                "●" if item["on_list"] else "",
                item["id"],
            )
        self.console.print(table)

    def _render_categories(self, data: dict) -> None:
        categories = data["data"]["categories"]

        table = Table(title="Categories", show_header=True, header_style="bold cyan")
        table.add_column("Emoji")
        table.add_column("Name", style="cyan")
        table.add_column("ID", style="dim")
        for category in categories:
            table.add_row(category["emoji"], category["name"], category["id"])
        self.console.print(table)

    def _render_sets(self, data: dict) -> None:
        sets = data["data"]["sets"]
        if not sets:
            self.console.print("[dim]No sets yet[/dim]")
            return

        table = Table(title="Sets", show_header=True, header_style="bold cyan")
        table.add_column("Set", style="cyan")
        table.add_column("Items")
        table.add_column("Used", justify="right", style="magenta")
        table.add_column("ID", style="dim")
        for shopping_set in sets:
            names = ", ".join(i["name"] for i in shopping_set["items"])
            table.add_row(
                f"{shopping_set['emoji']} {shopping_set['name']}",
                names,
                str(shopping_set["usage_count"]),
                shopping_set["id"],
            )
        self.console.print(table)

    def _render_set(self, shopping_set: dict) -> None:
        lines = [f"{i['emoji']} {i['name']} [dim]({i['category_name']})[/dim]" for i in shopping_set["items"]]
        panel = Panel(
            "\n".join(lines) or "[dim]empty[/dim]",
            title=f"{shopping_set['emoji']} {shopping_set['name']}",
            subtitle=f"used {shopping_set['usage_count']} times",
            border_style="green",
        )
        self.console.print(panel)

    def _render_purchases(self, data: dict) -> None:
        """Render one day's purchases with repeat counts."""
        purchases = data["data"]["purchases"]
        self.console.print(f"\n[bold]Purchases on {purchases['date']}[/bold]")

        if not purchases["groups"]:
            self.console.print("[dim]Nothing bought that day[/dim]")
            return
        for group in purchases["groups"]:
            self.console.print(f"\n{_label(group['category'])}")
            for item in group["items"]:
                times = f" [magenta]x{item['count']}[/magenta]" if item["count"] > 1 else ""
                self.console.print(f"  {item['name']}{times}")

    def _render_family(self, data: dict) -> None:
        family = data["data"]["family"]
        if family is None:
            self.console.print("[dim]Not connected to a family list[/dim]")
            return

        role = "owner" if family.get("is_owner") else "member"
        self.console.print(
            f"\n[bold]Family #{family['id']}[/bold] ({role})  "
            f"Invite code: [cyan]{family['invite_code']}[/cyan]"
        )
        members = data["data"].get("members", [])
        if not members:
            self.console.print("[dim]No other members[/dim]")
            return
        for member in members:
            name = member.get("username") or f"user {member['user_id']}"
            self.console.print(f"  {name} [dim]({member['user_id']})[/dim]")

    def _render_preferences(self, data: dict) -> None:
        """Render persisted preferences."""
        prefs = data["data"]["preferences"]

        table = Table(title="Preferences", show_header=True, header_style="bold cyan")
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        for key, value in prefs.items():
            if isinstance(value, bool):
                value = "[green]on[/green]" if value else "[dim]off[/dim]"
            table.add_row(key, str(value))
        self.console.print(table)

    def _render_parsed(self, data: dict) -> None:
        parsed = data["data"]["parsed"]
        if parsed.get("dish_name"):
            self.console.print(f"[bold]Dish:[/bold] {parsed['dish_name']}")
        for index, item in enumerate(parsed["items"], start=1):
            self.console.print(
                f"  {index}. {item['suggested_emoji']} {item['name']} "
                f"[dim]({item['category_name']})[/dim]"
            )

    def _render_candidates(self, data: dict) -> None:
        candidates = data["data"]["candidates"]
        self.console.print(f"[bold]{candidates['set_emoji']} {candidates['name']}[/bold]")
        for item in candidates["items"]:
            box = "[green]☑[/green]" if item["included"] else "☐"
            self.console.print(f"  {box} {item['emoji']} {item['name']} [dim]({item['category_name']})[/dim]")

    def _render_suggestions(self, data: dict) -> None:
        suggestions = data["data"]["suggestions"]
        if not suggestions:
            self.console.print("[dim]No suggestions[/dim]")
            return
        for suggestion in suggestions:
            self._render_set({**suggestion, "usage_count": 0})

    def _render_sync(self, data: dict) -> None:
        sync = data["data"]["sync"]
        self.console.print(
            f"Sent: {sync['sent']}  Failed: {sync['failed']}  Remote changes: {sync['applied']}"
        )

    def notifications(self, notifications: list[dict]) -> None:
        """Print engine notifications in Rich mode."""
        if self.json_mode:
            return
        for notification in notifications:
            if notification["is_error"]:
                self.console.print(f"[red]✗[/red] {notification['message']}")
            else:
                self.console.print(f"[blue]ℹ[/blue] {notification['message']}")

    def error(self, message: str, error_code: str | None = None) -> None:
        """Output error message.

        Args:
            message: Error message
            error_code: Optional error code
        """
        if self.json_mode:
            output = {"success": False, "error": message}
            if error_code:
                output["error_code"] = error_code
            print(json.dumps(output))
        else:
            self.console.print(f"[red]✗ Error:[/red] {message}")

    def success(self, message: str, data: dict | None = None) -> None:
        """Output success message.

        Args:
            message: Success message
            data: Optional data to include
        """
        if self.json_mode:
            output: dict[str, Any] = {"success": True, "message": message}
            if data:
                output["data"] = data
            print(json.dumps(output, cls=JSONEncoder, ensure_ascii=False))
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        """Output warning message.

        Args:
            message: Warning message
        """
        if self.json_mode:
            print(json.dumps({"warning": message}))
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")
