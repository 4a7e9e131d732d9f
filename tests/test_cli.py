"""Tests for CLI commands."""

import json

import pytest
from typer.testing import CliRunner

from shopping_sync.main import app

runner = CliRunner()


@pytest.fixture
def cli(temp_data_dir, missing_config):
    """Invoke the CLI in JSON mode against a throwaway data directory."""

    def invoke(*args: str, input: str | None = None):
        return runner.invoke(
            app,
            ["--json", "--data-dir", str(temp_data_dir), "--config", str(missing_config), *args],
            input=input,
        )

    return invoke


def output(result) -> dict:
    return json.loads(result.stdout)


class TestAddCommand:
    """Tests for add command."""

    def test_add_item_basic(self, cli):
        result = cli("add", "Milk")
        assert result.exit_code == 0

        data = output(result)
        assert data["success"] is True
        assert data["data"]["item"]["name"] == "Milk"
        assert data["data"]["item"]["on_list"] is True
        assert data["data"]["category"]["id"] == "none"

    def test_add_with_category(self, cli):
        data = output(cli("add", "Milk", "--category", "Dairy & Eggs"))
        assert data["data"]["item"]["category_id"] == "dairy"

    def test_add_unknown_category(self, cli):
        result = cli("add", "Milk", "--category", "Spaceship parts")
        assert result.exit_code == 1
        assert output(result)["error_code"] == "CATEGORY_NOT_FOUND"

    def test_add_to_history_only(self, cli):
        data = output(cli("add", "Milk", "--history"))
        assert data["data"]["item"]["on_list"] is False

    def test_add_twice_merges(self, cli):
        first = output(cli("add", "Milk"))
        second = output(cli("add", "  milk "))
        assert second["data"]["item"]["id"] == first["data"]["item"]["id"]

    def test_bulk(self, cli):
        data = output(cli("bulk", "Milk", "Eggs", "", "-c", "dairy"))
        assert [i["name"] for i in data["data"]["items"]] == ["Milk", "Eggs"]


class TestListCommand:
    """Tests for list command."""

    def test_list_empty(self, cli):
        data = output(cli("list"))
        buy_list = data["data"]["buy_list"]
        assert buy_list["groups"] == []
        assert buy_list["filter"] == "All"

    def test_list_groups_by_category(self, cli):
        cli("add", "Milk", "-c", "dairy")
        cli("add", "Bread", "-c", "bakery")

        buy_list = output(cli("list"))["data"]["buy_list"]

        assert {g["category"]["id"] for g in buy_list["groups"]} == {"dairy", "bakery"}
        assert {c["id"] for c in buy_list["chips"]} == {"dairy", "bakery"}

    def test_list_filtered(self, cli):
        cli("add", "Milk", "-c", "dairy")
        cli("add", "Bread", "-c", "bakery")

        buy_list = output(cli("list", "-c", "bakery"))["data"]["buy_list"]

        assert buy_list["filter"] == "bakery"
        assert [g["category"]["id"] for g in buy_list["groups"]] == ["bakery"]


class TestItemCommands:
    """Tests for done, edit, remove and toggle-list."""

    def test_done_and_completed_today(self, cli):
        cli("add", "Milk")
        data = output(cli("done", "Milk"))
        assert data["data"]["item"]["completed"] is True
        assert data["data"]["item"]["purchase_count"] == 1

        buy_list = output(cli("list"))["data"]["buy_list"]
        assert [i["name"] for i in buy_list["completed_today"]] == ["Milk"]

    def test_done_unknown_item(self, cli):
        result = cli("done", "Unicorn")
        assert result.exit_code == 1
        data = output(result)
        assert data["success"] is False
        assert data["error_code"] == "ITEM_NOT_FOUND"

    def test_edit(self, cli):
        cli("add", "Milk")
        data = output(cli("edit", "Milk", "--name", "Oat milk", "--category", "dairy"))
        assert data["data"]["item"]["name"] == "Oat milk"
        assert data["data"]["category"]["name"] == "Dairy & Eggs"

    def test_remove(self, cli):
        cli("add", "Milk")
        result = cli("remove", "Milk", "--yes")
        assert result.exit_code == 0
        assert output(cli("history"))["data"]["history"]["items"] == []

    def test_toggle_list(self, cli):
        cli("add", "Milk")
        data = output(cli("toggle-list", "Milk"))
        assert data["data"]["item"]["on_list"] is False

        history = output(cli("history"))["data"]["history"]["items"]
        assert [i["name"] for i in history] == ["Milk"]

    def test_log_shows_todays_purchases(self, cli):
        cli("add", "Milk")
        cli("done", "Milk")
        purchases = output(cli("log"))["data"]["purchases"]
        assert purchases["groups"][0]["items"] == [{"name": "Milk", "count": 1}]


class TestCategoryCommands:
    """Tests for category subcommands."""

    def test_uncategorized_is_last(self, cli):
        categories = output(cli("category", "list"))["data"]["categories"]
        assert categories[-1]["id"] == "none"

    def test_add_category(self, cli):
        data = output(cli("category", "add", "Garden", "-e", "🌱"))
        assert data["data"]["categories"][0]["emoji"] == "🌱"

        names = [c["name"] for c in output(cli("category", "list"))["data"]["categories"]]
        assert names.index("Garden") < names.index("Uncategorized")

    def test_delete_moves_items(self, cli):
        cli("add", "Milk", "-c", "dairy")
        data = output(cli("category", "delete", "dairy", "--yes"))
        assert data["data"]["items"][0]["category_id"] == "none"

    def test_cannot_delete_uncategorized(self, cli):
        result = cli("category", "delete", "Uncategorized", "--yes")
        assert result.exit_code == 1
        assert output(result)["error_code"] == "PROTECTED_CATEGORY"


class TestSetCommands:
    """Tests for set subcommands."""

    def test_create_and_add(self, cli):
        created = output(cli("set", "create", "Pancakes", "-i", "Flour", "-i", "Eggs"))
        assert [i["name"] for i in created["data"]["set"]["items"]] == ["Flour", "Eggs"]

        added = output(cli("set", "add", "Pancakes"))
        assert [i["name"] for i in added["data"]["items"]] == ["Flour", "Eggs"]

        listed = output(cli("set", "list"))["data"]["sets"]
        assert listed[0]["usage_count"] == 1

    def test_add_only_some(self, cli):
        cli("set", "create", "Pancakes", "-i", "Flour", "-i", "Eggs")
        added = output(cli("set", "add", "Pancakes", "--only", "Eggs"))
        assert [i["name"] for i in added["data"]["items"]] == ["Eggs"]

    def test_create_from_history(self, cli):
        cli("add", "Milk", "-c", "dairy")
        created = output(cli("set", "create", "Breakfast", "-H", "Milk"))
        assert created["data"]["set"]["items"][0]["category_name"] == "Dairy & Eggs"

    def test_create_requires_one_mode(self, cli):
        result = cli("set", "create", "Pancakes")
        assert result.exit_code == 1
        assert output(result)["success"] is False

    def test_ai_create_needs_ai_enabled(self, cli):
        data = output(cli("set", "create", "Pizza", "--ai"))
        assert data["message"] == "Set not created"
        assert data["notifications"][0]["is_error"] is True

    def test_show_unknown_set(self, cli):
        result = cli("set", "show", "Nope")
        assert result.exit_code == 1
        assert output(result)["error_code"] == "SET_NOT_FOUND"

    def test_delete(self, cli):
        cli("set", "create", "Pancakes", "-i", "Flour")
        assert cli("set", "delete", "Pancakes", "--yes").exit_code == 0
        assert output(cli("set", "list"))["data"]["sets"] == []


class TestPrefsCommands:
    """Tests for preference subcommands."""

    def test_defaults(self, cli):
        prefs = output(cli("prefs", "view"))["data"]["preferences"]
        assert prefs["theme"] == "light"
        assert prefs["ai_enabled"] is False

    def test_set_and_view(self, cli):
        cli("prefs", "set", "--theme", "dark", "--no-confirm-item")
        prefs = output(cli("prefs", "view"))["data"]["preferences"]
        assert prefs["theme"] == "dark"
        assert prefs["confirm_item_delete"] is False

    def test_remove_without_confirmation_prompt(self, cli):
        cli("prefs", "set", "--no-confirm-item")
        cli("add", "Milk")
        assert cli("remove", "Milk").exit_code == 0


class TestFamilyAndSync:
    """Tests for family and sync commands."""

    def test_family_status(self, cli):
        data = output(cli("family", "status"))
        family = data["data"]["family"]
        assert family["is_owner"] is True
        assert family["invite_code"]
        assert data["data"]["members"] == []

    def test_offline_has_no_family(self, cli):
        data = output(cli("--offline", "family", "status"))
        assert data["data"]["family"] is None

    def test_remove_member_while_offline(self, cli):
        result = cli("--offline", "family", "remove", "7")
        assert result.exit_code == 1
        assert output(result)["error_code"] == "NOT_AUTHORIZED"

    def test_sync(self, cli):
        cli("add", "Milk")
        sync = output(cli("sync"))["data"]["sync"]
        assert sync == {"sent": 0, "failed": 0, "applied": 0}
