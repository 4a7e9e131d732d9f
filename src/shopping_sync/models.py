"""Core data models for Shopping Sync."""

from datetime import date, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

SENTINEL_CATEGORY_ID = "none"
SENTINEL_CATEGORY_NAME = "Uncategorized"
SENTINEL_CATEGORY_EMOJI = "⚪"
DEFAULT_EMOJI = "📦"
DEFAULT_SET_EMOJI = "🍱"


def new_id() -> str:
    """Generate a fresh opaque identifier."""
    return uuid4().hex


class Theme(str, Enum):
    """Display theme preference."""

    LIGHT = "light"
    DARK = "dark"


class DefaultCategory(str, Enum):
    """Categories every new household starts with."""

    PRODUCE = "Produce"
    DAIRY = "Dairy & Eggs"
    MEAT = "Meat & Seafood"
    BAKERY = "Bakery"
    PANTRY = "Pantry & Canned Goods"
    FROZEN = "Frozen Foods"
    BEVERAGES = "Beverages"
    SNACKS = "Snacks"
    HEALTH = "Health & Beauty"
    HOUSEHOLD = "Household Supplies"


DEFAULT_CATEGORY_EMOJI = {
    DefaultCategory.PRODUCE: "🥦",
    DefaultCategory.DAIRY: "🥛",
    DefaultCategory.MEAT: "🥩",
    DefaultCategory.BAKERY: "🍞",
    DefaultCategory.PANTRY: "🥫",
    DefaultCategory.FROZEN: "🧊",
    DefaultCategory.BEVERAGES: "🧃",
    DefaultCategory.SNACKS: "🍪",
    DefaultCategory.HEALTH: "🧴",
    DefaultCategory.HOUSEHOLD: "🧻",
}


class CategoryDef(BaseModel):
    """A named, emoji-tagged bucket for items."""

    id: str = Field(default_factory=new_id)
    name: str
    emoji: str = DEFAULT_EMOJI

    @property
    def is_sentinel(self) -> bool:
        return self.id == SENTINEL_CATEGORY_ID


def sentinel_category() -> CategoryDef:
    """Build the always-present uncategorized bucket."""
    return CategoryDef(
        id=SENTINEL_CATEGORY_ID, name=SENTINEL_CATEGORY_NAME, emoji=SENTINEL_CATEGORY_EMOJI
    )


def default_categories() -> list[CategoryDef]:
    """Starting category catalogue, sentinel last."""
    categories = [
        CategoryDef(id=member.name.lower(), name=member.value, emoji=DEFAULT_CATEGORY_EMOJI[member])
        for member in DefaultCategory
    ]
    categories.append(sentinel_category())
    return categories


class ProductItem(BaseModel):
    """A product known to the household, on the buy list or only in history."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    category_id: str = SENTINEL_CATEGORY_ID
    completed: bool = False
    on_list: bool = True
    purchase_count: int = Field(default=0, ge=0)
    completed_at: datetime | None = None


class SetItem(BaseModel):
    """An item inside a shopping set, referenced by name."""

    name: str
    category_name: str = SENTINEL_CATEGORY_NAME
    emoji: str = DEFAULT_EMOJI


class ShoppingSet(BaseModel):
    """A reusable bundle of items (e.g. ingredients for a dish)."""

    id: str = Field(default_factory=new_id)
    name: str
    emoji: str = DEFAULT_EMOJI
    items: list[SetItem] = Field(default_factory=list)
    usage_count: int = 0


class PurchaseLogItem(BaseModel):
    """One purchase event recorded in a day's log."""

    name: str
    category_id: str = SENTINEL_CATEGORY_ID


class PurchaseLog(BaseModel):
    """All purchases for one calendar day."""

    id: str = Field(default_factory=new_id)
    date: date
    items: list[PurchaseLogItem] = Field(default_factory=list)


class Preferences(BaseModel):
    """Persisted presentation and confirmation preferences."""

    theme: Theme = Theme.LIGHT
    ai_enabled: bool = False
    confirm_item_delete: bool = True
    confirm_category_delete: bool = True
    confirm_set_delete: bool = True


class AppState(BaseModel):
    """Everything the Sync Engine owns for one household member."""

    categories: list[CategoryDef] = Field(default_factory=default_categories)
    items: list[ProductItem] = Field(default_factory=list)
    sets: list[ShoppingSet] = Field(default_factory=list)
    logs: list[PurchaseLog] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)


class Notification(BaseModel):
    """Transient, non-blocking message for the user."""

    message: str
    is_error: bool = False
    created_at: datetime = Field(default_factory=datetime.now)


# --- Family / remote models ---


class Identity(BaseModel):
    """The person signing in."""

    id: int
    first_name: str = "Guest"
    last_name: str | None = None
    username: str | None = None
    photo_url: str | None = None


class FamilyMember(BaseModel):
    """A user row in the remote datastore."""

    user_id: int
    username: str | None = None
    photo_url: str | None = None
    family_id: int
    last_seen: datetime | None = None
    visit_count: int = 0


class FamilyInfo(BaseModel):
    """A family as seen by one of its members."""

    id: int
    invite_code: str
    owner_id: int | None = None
    is_owner: bool = False
    members: list[FamilyMember] = Field(default_factory=list)


class AuthResult(BaseModel):
    """Result of signing in to the remote datastore."""

    user: FamilyMember
    family: FamilyInfo


class RemoteItem(BaseModel):
    """An item row as stored remotely (one row per on-list item)."""

    id: str
    text: str
    is_bought: bool = False
    category: str = SENTINEL_CATEGORY_ID
    family_id: int
    purchase_count: int = 0


class ItemInserted(BaseModel):
    """Push notification: a row appeared."""

    item: RemoteItem


class ItemUpdated(BaseModel):
    """Push notification: a row changed."""

    item: RemoteItem


class ItemDeleted(BaseModel):
    """Push notification: a row was removed."""

    item_id: str


RemoteEvent = ItemInserted | ItemUpdated | ItemDeleted


class WriteKind(str, Enum):
    """Kinds of pending remote writes."""

    UPSERT = "upsert"
    DELETE = "delete"


class RemoteWrite(BaseModel):
    """A remote write waiting in the outbox."""

    kind: WriteKind
    item_id: str
    item: RemoteItem | None = None
    attempts: int = 0


# --- AI gateway models ---


class CategorySuggestion(BaseModel):
    """AI answer for categorizing a single product."""

    category_name: str
    suggested_emoji: str = DEFAULT_EMOJI
    is_new: bool = False


class ParsedItem(BaseModel):
    """One product parsed from dictated text."""

    name: str
    category_name: str = SENTINEL_CATEGORY_NAME
    suggested_emoji: str = DEFAULT_EMOJI
    selected: bool = True


class ParsedText(BaseModel):
    """AI answer for free-form text parsing."""

    items: list[ParsedItem] = Field(default_factory=list)
    dish_name: str | None = None


class GeneratedSet(BaseModel):
    """AI answer for generating a set's contents."""

    set_emoji: str = DEFAULT_SET_EMOJI
    items: list[SetItem] = Field(default_factory=list)


class SetCandidate(BaseModel):
    """A generated set item awaiting inclusion/exclusion before commit."""

    name: str
    category_name: str = SENTINEL_CATEGORY_NAME
    emoji: str = DEFAULT_EMOJI
    included: bool = True


class SuggestedSet(BaseModel):
    """A recurring bundle mined from purchase history."""

    name: str
    emoji: str = DEFAULT_EMOJI
    items: list[SetItem] = Field(default_factory=list)


# --- Derived views ---


class CategoryGroup(BaseModel):
    """Items grouped under one resolved category."""

    category: CategoryDef
    items: list[ProductItem] = Field(default_factory=list)
    total_count: int = 0


class DayPurchase(BaseModel):
    """A product bought on a day, with its repeat count."""

    name: str
    count: int = 1


class DayPurchaseGroup(BaseModel):
    """A day's purchases under one category."""

    category: CategoryDef
    items: list[DayPurchase] = Field(default_factory=list)
