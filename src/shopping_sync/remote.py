"""Remote datastore: shared family list storage and change notifications.

Three backends implement the same contract:

- ``InMemoryDatastore`` keeps tables in process and delivers change events
  synchronously; used for tests and single-process sessions.
- ``FileDatastore`` keeps tables in a shared JSON file so several processes
  on one machine can share a list; changes are discovered by polling.
- ``PostgrestDatastore`` talks to a PostgREST/Supabase REST endpoint over
  httpx; changes are discovered by polling.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol
from uuid import uuid4

import httpx
from pydantic import BaseModel, Field

from .log_config import get_logger
from .models import (
    AuthResult,
    FamilyInfo,
    FamilyMember,
    Identity,
    ItemDeleted,
    ItemInserted,
    ItemUpdated,
    RemoteEvent,
    RemoteItem,
)

if TYPE_CHECKING:
    from .config import ConfigManager

logger = get_logger(__name__)

EventListener = Callable[[RemoteEvent], None]
Unsubscribe = Callable[[], None]


class RemoteError(Exception):
    """Raised when the remote datastore cannot be reached."""


class BackendType(str, Enum):
    """Available datastore backends."""

    MEMORY = "memory"
    FILE = "file"
    POSTGREST = "postgrest"


class RemoteDatastore(Protocol):
    """Operations the sync engine needs from a shared datastore."""

    def authenticate(self, identity: Identity) -> AuthResult | None: ...

    def join_family(self, user_id: int, invite_code: str) -> FamilyInfo | None: ...

    def leave_family(self, user_id: int) -> FamilyInfo | None: ...

    def remove_member(self, owner_id: int, target_id: int) -> FamilyInfo | None: ...

    def list_items(self, family_id: int) -> list[RemoteItem]: ...

    def upsert_item(self, item: RemoteItem) -> bool: ...

    def delete_item(self, item_id: str) -> bool: ...

    def subscribe(self, family_id: int, listener: EventListener) -> Unsubscribe: ...

    def poll(self) -> None: ...


def new_invite_code() -> str:
    return uuid4().hex[:8]


def diff_snapshots(
    before: dict[str, RemoteItem], after: dict[str, RemoteItem]
) -> list[RemoteEvent]:
    """Translate two snapshots of a family's rows into change events."""
    events: list[RemoteEvent] = []
    for item_id, row in after.items():
        previous = before.get(item_id)
        if previous is None:
            events.append(ItemInserted(item=row))
        elif previous != row:
            events.append(ItemUpdated(item=row))
    for item_id in before:
        if item_id not in after:
            events.append(ItemDeleted(item_id=item_id))
    return events


class _Channel:
    """Listeners grouped by family id."""

    def __init__(self):
        self._listeners: dict[int, list[EventListener]] = {}

    def add(self, family_id: int, listener: EventListener) -> Unsubscribe:
        self._listeners.setdefault(family_id, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(family_id, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(family_id, None)

        return unsubscribe

    def families(self) -> list[int]:
        return list(self._listeners)

    def publish(self, family_id: int, event: RemoteEvent) -> None:
        for listener in list(self._listeners.get(family_id, [])):
            listener(event)


class _PollingMixin:
    """Snapshot-diff change discovery for backends without push."""

    _channel: _Channel
    _baselines: dict[int, dict[str, RemoteItem]]
    list_items: Callable[[int], list[RemoteItem]]

    def subscribe(self, family_id: int, listener: EventListener) -> Unsubscribe:
        self._baselines[family_id] = {row.id: row for row in self.list_items(family_id)}
        unsubscribe = self._channel.add(family_id, listener)

        def stop() -> None:
            unsubscribe()
            if family_id not in self._channel.families():
                self._baselines.pop(family_id, None)

        return stop

    def poll(self) -> None:
        for family_id in self._channel.families():
            current = {row.id: row for row in self.list_items(family_id)}
            events = diff_snapshots(self._baselines.get(family_id, {}), current)
            self._baselines[family_id] = current
            if events:
                logger.debug("Family %d: %d remote changes", family_id, len(events))
            for event in events:
                self._channel.publish(family_id, event)


# --- Table-backed datastores ---


class FamilyRow(BaseModel):
    """A families table row."""

    id: int
    invite_code: str = Field(default_factory=new_invite_code)
    owner_id: int | None = None


class Tables(BaseModel):
    """users, families and items tables."""

    users: list[FamilyMember] = Field(default_factory=list)
    families: list[FamilyRow] = Field(default_factory=list)
    items: list[RemoteItem] = Field(default_factory=list)

    def user(self, user_id: int) -> FamilyMember | None:
        return next((u for u in self.users if u.user_id == user_id), None)

    def family(self, family_id: int) -> FamilyRow | None:
        return next((f for f in self.families if f.id == family_id), None)

    def family_by_code(self, invite_code: str) -> FamilyRow | None:
        return next((f for f in self.families if f.invite_code == invite_code), None)

    def new_family(self, owner_id: int) -> FamilyRow:
        next_id = max((f.id for f in self.families), default=0) + 1
        family = FamilyRow(id=next_id, owner_id=owner_id)
        self.families.append(family)
        return family

    def info(self, family_id: int, user_id: int) -> FamilyInfo:
        family = self.family(family_id)
        members = [u for u in self.users if u.family_id == family_id]
        return FamilyInfo(
            id=family_id,
            invite_code=family.invite_code if family else "",
            owner_id=family.owner_id if family else None,
            is_owner=family is not None and family.owner_id == user_id,
            members=members,
        )


class TableDatastore:
    """Datastore contract implemented over a Tables snapshot.

    Subclasses decide where the snapshot lives and how changes reach
    subscribers.
    """

    def _load(self) -> Tables:
        raise NotImplementedError

    def _save(self, tables: Tables) -> None:
        raise NotImplementedError

    def _changed(self, family_id: int, event: RemoteEvent) -> None:
        """Hook called after every item write."""

    def authenticate(self, identity: Identity) -> AuthResult | None:
        tables = self._load()
        now = datetime.now()
        user = tables.user(identity.id)

        if user is None:
            family = tables.new_family(owner_id=identity.id)
            user = FamilyMember(
                user_id=identity.id,
                username=identity.username,
                photo_url=identity.photo_url,
                family_id=family.id,
                last_seen=now,
                visit_count=1,
            )
            tables.users.append(user)
            logger.info("Registered user %d in new family %d", identity.id, family.id)
        else:
            user.username = identity.username or user.username
            user.photo_url = identity.photo_url or user.photo_url
            user.last_seen = now
            user.visit_count += 1
            if tables.family(user.family_id) is None:
                user.family_id = tables.new_family(owner_id=identity.id).id

        self._save(tables)
        return AuthResult(user=user, family=tables.info(user.family_id, identity.id))

    def join_family(self, user_id: int, invite_code: str) -> FamilyInfo | None:
        tables = self._load()
        family = tables.family_by_code(invite_code.strip())
        user = tables.user(user_id)
        if family is None or user is None:
            logger.error("Family not found for invite code %r", invite_code)
            return None
        user.family_id = family.id
        self._save(tables)
        return tables.info(family.id, user_id)

    def leave_family(self, user_id: int) -> FamilyInfo | None:
        tables = self._load()
        user = tables.user(user_id)
        if user is None:
            return None
        user.family_id = tables.new_family(owner_id=user_id).id
        self._save(tables)
        return tables.info(user.family_id, user_id)

    def remove_member(self, owner_id: int, target_id: int) -> FamilyInfo | None:
        tables = self._load()
        owner = tables.user(owner_id)
        family = tables.family(owner.family_id) if owner else None
        if owner is None or family is None or family.owner_id != owner_id:
            logger.error("User %d is not authorized to remove members", owner_id)
            return None

        target = tables.user(target_id)
        if target is None or target.family_id != family.id or target_id == owner_id:
            return None
        target.family_id = tables.new_family(owner_id=target_id).id
        self._save(tables)
        return tables.info(family.id, owner_id)

    def list_items(self, family_id: int) -> list[RemoteItem]:
        return [row for row in self._load().items if row.family_id == family_id]

    def upsert_item(self, item: RemoteItem) -> bool:
        tables = self._load()
        for index, row in enumerate(tables.items):
            if row.id == item.id:
                tables.items[index] = item
                event: RemoteEvent = ItemUpdated(item=item)
                break
        else:
            tables.items.append(item)
            event = ItemInserted(item=item)
        self._save(tables)
        self._changed(item.family_id, event)
        return True

    def delete_item(self, item_id: str) -> bool:
        tables = self._load()
        row = next((r for r in tables.items if r.id == item_id), None)
        if row is None:
            return True
        tables.items.remove(row)
        self._save(tables)
        self._changed(row.family_id, ItemDeleted(item_id=item_id))
        return True


class InMemoryDatastore(TableDatastore):
    """Process-local datastore that pushes events synchronously."""

    def __init__(self, tables: Tables | None = None):
        self.tables = tables or Tables()
        self._channel = _Channel()

    def _load(self) -> Tables:
        return self.tables

    def _save(self, tables: Tables) -> None:
        self.tables = tables

    def _changed(self, family_id: int, event: RemoteEvent) -> None:
        self._channel.publish(family_id, event)

    def subscribe(self, family_id: int, listener: EventListener) -> Unsubscribe:
        return self._channel.add(family_id, listener)

    def poll(self) -> None:
        """Events are pushed as they happen."""


class FileDatastore(_PollingMixin, TableDatastore):
    """Datastore kept in a JSON file shared between processes."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._channel = _Channel()
        self._baselines = {}

    def _load(self) -> Tables:
        if not self.path.exists():
            return Tables()
        try:
            return Tables.model_validate_json(self.path.read_text())
        except (OSError, ValueError) as e:
            raise RemoteError(f"Cannot read datastore file {self.path}: {e}") from e

    def _save(self, tables: Tables) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(tables.model_dump_json(indent=2))
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise RemoteError(f"Cannot write datastore file {self.path}: {e}") from e


class PostgrestDatastore(_PollingMixin):
    """Datastore behind a PostgREST (e.g. Supabase) REST API.

    Expects ``users``, ``families`` and ``items`` tables shaped like
    FamilyMember, FamilyRow and RemoteItem.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self._client = httpx.Client(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )
        self._channel = _Channel()
        self._baselines = {}

    def close(self) -> None:
        self._client.close()

    def _send(self, method: str, path: str, **kwargs) -> httpx.Response | None:
        """Issue a request.

        Returns:
            The response, or None when the server answered with an error

        Raises:
            RemoteError: If the server could not be reached
        """
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error("Failed to reach datastore: %s", e)
            raise RemoteError(f"Failed to reach datastore: {e}") from e

        if response.is_error:
            logger.error("Datastore error: %s - %s", response.status_code, response.text)
            return None
        return response

    def _select(self, table: str, **filters: object) -> list[dict]:
        params = {"select": "*", **{key: f"eq.{value}" for key, value in filters.items()}}
        response = self._send("GET", f"/{table}", params=params)
        return response.json() if response is not None else []

    def _insert(self, table: str, row: dict) -> dict | None:
        response = self._send(
            "POST", f"/{table}", json=row, headers={"Prefer": "return=representation"}
        )
        if response is None:
            return None
        rows = response.json()
        return rows[0] if rows else None

    def _update(self, table: str, values: dict, **filters: object) -> bool:
        params = {key: f"eq.{value}" for key, value in filters.items()}
        return self._send("PATCH", f"/{table}", params=params, json=values) is not None

    def _new_family(self, owner_id: int) -> FamilyRow | None:
        row = self._insert("families", {"owner_id": owner_id, "invite_code": new_invite_code()})
        return FamilyRow.model_validate(row) if row else None

    def _info(self, family_id: int, user_id: int) -> FamilyInfo | None:
        rows = self._select("families", id=family_id)
        if not rows:
            return None
        family = FamilyRow.model_validate(rows[0])
        members = [FamilyMember.model_validate(u) for u in self._select("users", family_id=family_id)]
        return FamilyInfo(
            id=family.id,
            invite_code=family.invite_code,
            owner_id=family.owner_id,
            is_owner=family.owner_id == user_id,
            members=members,
        )

    def _move_user(self, user_id: int, family_id: int) -> bool:
        return self._update("users", {"family_id": family_id}, user_id=user_id)

    def authenticate(self, identity: Identity) -> AuthResult | None:
        now = datetime.now().isoformat()
        rows = self._select("users", user_id=identity.id)

        if not rows:
            family = self._new_family(identity.id)
            if family is None:
                return None
            created = self._insert(
                "users",
                {
                    "user_id": identity.id,
                    "username": identity.username,
                    "photo_url": identity.photo_url,
                    "family_id": family.id,
                    "last_seen": now,
                    "visit_count": 1,
                },
            )
            if created is None:
                return None
            user = FamilyMember.model_validate(created)
        else:
            user = FamilyMember.model_validate(rows[0])
            user.username = identity.username or user.username
            user.photo_url = identity.photo_url or user.photo_url
            user.visit_count += 1
            self._update(
                "users",
                {
                    "username": user.username,
                    "photo_url": user.photo_url,
                    "last_seen": now,
                    "visit_count": user.visit_count,
                },
                user_id=identity.id,
            )

        info = self._info(user.family_id, identity.id)
        if info is None:
            return None
        return AuthResult(user=user, family=info)

    def join_family(self, user_id: int, invite_code: str) -> FamilyInfo | None:
        rows = self._select("families", invite_code=invite_code.strip())
        if not rows:
            logger.error("Family not found for invite code %r", invite_code)
            return None
        family = FamilyRow.model_validate(rows[0])
        if not self._move_user(user_id, family.id):
            return None
        return self._info(family.id, user_id)

    def leave_family(self, user_id: int) -> FamilyInfo | None:
        if not self._select("users", user_id=user_id):
            return None
        family = self._new_family(user_id)
        if family is None or not self._move_user(user_id, family.id):
            return None
        return self._info(family.id, user_id)

    def remove_member(self, owner_id: int, target_id: int) -> FamilyInfo | None:
        owners = self._select("users", user_id=owner_id)
        if not owners:
            return None
        owner = FamilyMember.model_validate(owners[0])
        info = self._info(owner.family_id, owner_id)
        if info is None or not info.is_owner:
            logger.error("User %d is not authorized to remove members", owner_id)
            return None

        family = self._new_family(target_id)
        if family is None or not self._move_user(target_id, family.id):
            return None
        return self._info(owner.family_id, owner_id)

    def list_items(self, family_id: int) -> list[RemoteItem]:
        return [RemoteItem.model_validate(row) for row in self._select("items", family_id=family_id)]

    def upsert_item(self, item: RemoteItem) -> bool:
        response = self._send(
            "POST",
            "/items",
            params={"on_conflict": "id"},
            json=item.model_dump(),
            headers={"Prefer": "resolution=merge-duplicates"},
        )
        return response is not None

    def delete_item(self, item_id: str) -> bool:
        return self._send("DELETE", "/items", params={"id": f"eq.{item_id}"}) is not None


def create_datastore(config: ConfigManager, data_dir: Path | None = None) -> RemoteDatastore:
    """Create a datastore based on configuration.

    Args:
        config: Loaded configuration
        data_dir: Local data directory overriding data.storage_dir; the file
                  backend keeps remote.json there unless remote.path is set
    """
    backend = config.remote.backend

    match backend:
        case BackendType.MEMORY.value:
            return InMemoryDatastore()
        case BackendType.FILE.value:
            path = config.remote.path or (data_dir or config.data.storage_dir) / "remote.json"
            return FileDatastore(path)
        case BackendType.POSTGREST.value:
            if not config.remote.url or not config.remote.api_key:
                raise RemoteError(
                    "PostgREST backend needs remote.url and remote.api_key "
                    "(or the SHOPPING_SYNC_REMOTE_KEY environment variable)"
                )
            return PostgrestDatastore(
                url=config.remote.url,
                api_key=config.remote.api_key,
                timeout=config.remote.timeout,
            )
        case _:
            raise ValueError(
                f"Unknown remote backend: {backend!r} (choose memory, file or postgrest)"
            )
