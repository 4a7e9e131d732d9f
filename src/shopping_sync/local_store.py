"""Local JSON persistence for Shopping Sync.

Categories, sets, purchase logs and preferences live only on this device.
Items are mirrored too, so history-only products survive between sessions
and the buy list is readable while the family datastore is unreachable.
"""

import json
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from .log_config import get_logger
from .models import (
    AppState,
    CategoryDef,
    Preferences,
    ProductItem,
    PurchaseLog,
    ShoppingSet,
    default_categories,
)

logger = get_logger(__name__)


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for our data types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


class LocalStore:
    """Manages JSON file persistence of one member's AppState."""

    def __init__(self, data_dir: Path | None = None):
        """Initialize local store.

        Args:
            data_dir: Directory for data files. Defaults to ./data
        """
        self.data_dir = data_dir or Path.cwd() / "data"
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    def _read(self, name: str) -> Any:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            with open(path) as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring unreadable %s: %s", path, e)
            return None

    def _write(self, name: str, data: Any) -> None:
        with open(self._path(name), "w") as f:
            json.dump(data, f, cls=JSONEncoder, indent=2, ensure_ascii=False)

    # --- Collections ---

    def load_categories(self) -> list[CategoryDef]:
        """Load categories; a fresh install gets the default catalogue."""
        data = self._read("categories")
        if not data:
            return default_categories()
        return [CategoryDef(**entry) for entry in data]

    def save_categories(self, categories: list[CategoryDef]) -> None:
        self._write("categories", [c.model_dump() for c in categories])

    def load_items(self) -> list[ProductItem]:
        data = self._read("items") or []
        return [ProductItem(**entry) for entry in data]

    def save_items(self, items: list[ProductItem]) -> None:
        self._write("items", [i.model_dump() for i in items])

    def load_sets(self) -> list[ShoppingSet]:
        data = self._read("sets") or []
        return [ShoppingSet(**entry) for entry in data]

    def save_sets(self, sets: list[ShoppingSet]) -> None:
        self._write("sets", [s.model_dump() for s in sets])

    def load_logs(self) -> list[PurchaseLog]:
        data = self._read("purchase_logs") or []
        return [PurchaseLog(**entry) for entry in data]

    def save_logs(self, logs: list[PurchaseLog]) -> None:
        self._write("purchase_logs", [log.model_dump() for log in logs])

    def load_preferences(self) -> Preferences:
        data = self._read("preferences")
        return Preferences(**data) if data else Preferences()

    def save_preferences(self, preferences: Preferences) -> None:
        self._write("preferences", preferences.model_dump())

    # --- Whole state ---

    def load_state(self) -> AppState:
        """Load everything into one AppState."""
        return AppState(
            categories=self.load_categories(),
            items=self.load_items(),
            sets=self.load_sets(),
            logs=self.load_logs(),
            preferences=self.load_preferences(),
        )

    def save_state(self, state: AppState) -> None:
        self.save_categories(state.categories)
        self.save_items(state.items)
        self.save_sets(state.sets)
        self.save_logs(state.logs)
        self.save_preferences(state.preferences)
        logger.debug("Saved state to %s", self.data_dir)
