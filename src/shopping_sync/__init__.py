"""Shopping Sync - a household buy list shared across family members."""

from .ai_gateway import AIError, AIGateway, ClaudeGateway, GeminiGateway, create_gateway
from .categories import CategoryNotFoundError, CategoryRegistry, ProtectedCategoryError
from .config import ConfigManager
from .item_store import ItemNotFoundError, ItemStore
from .local_store import LocalStore
from .models import (
    AppState,
    CategoryDef,
    FamilyInfo,
    FamilyMember,
    Identity,
    ItemDeleted,
    ItemInserted,
    ItemUpdated,
    Notification,
    Preferences,
    ProductItem,
    PurchaseLog,
    RemoteItem,
    SetItem,
    ShoppingSet,
    Theme,
)
from .output_formatter import OutputFormatter
from .purchase_log import PurchaseBook
from .remote import (
    BackendType,
    FileDatastore,
    InMemoryDatastore,
    PostgrestDatastore,
    RemoteDatastore,
    RemoteError,
    create_datastore,
)
from .sets import SetNotFoundError, SetRegistry
from .sync_engine import NotAuthorizedError, SyncEngine

__version__ = "0.1.0"

__all__ = [
    "AIError",
    "AIGateway",
    "AppState",
    "BackendType",
    "CategoryDef",
    "CategoryNotFoundError",
    "CategoryRegistry",
    "ClaudeGateway",
    "ConfigManager",
    "create_datastore",
    "create_gateway",
    "FamilyInfo",
    "FamilyMember",
    "FileDatastore",
    "GeminiGateway",
    "Identity",
    "InMemoryDatastore",
    "ItemDeleted",
    "ItemInserted",
    "ItemNotFoundError",
    "ItemStore",
    "ItemUpdated",
    "LocalStore",
    "NotAuthorizedError",
    "Notification",
    "OutputFormatter",
    "PostgrestDatastore",
    "Preferences",
    "ProductItem",
    "ProtectedCategoryError",
    "PurchaseBook",
    "PurchaseLog",
    "RemoteDatastore",
    "RemoteError",
    "RemoteItem",
    "SetItem",
    "SetNotFoundError",
    "SetRegistry",
    "ShoppingSet",
    "SyncEngine",
    "Theme",
]
