"""Dict-backed storage used for local development and tests."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from app.adapters.storage.base import AbstractStorage, DuplicateItemError
from app.schemas.pinned_items import PinnedItem
from app.schemas.users import User, UserUpsert


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStorage(AbstractStorage):
    """Process-local store mirroring the relational schema.

    Pinned items are unique per ``(user_id, item_name)`` and deleting a user
    cascades to their pinned items. Returned models are copies, so callers
    cannot mutate stored state.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._pinned: dict[tuple[str, str], PinnedItem] = {}

    async def get_user(self, user_id: str) -> User | None:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def upsert_user(self, user_id: str, data: UserUpsert) -> User:
        now = _utcnow()
        existing = self._users.get(user_id)
        created_at = existing.created_at if existing else now
        user = User(id=user_id, created_at=created_at, updated_at=now, **data.model_dump())
        self._users[user_id] = user
        return user.model_copy(deep=True)

    async def delete_user(self, user_id: str) -> User | None:
        for key in [k for k in self._pinned if k[0] == user_id]:
            del self._pinned[key]
        return self._users.pop(user_id, None)

    async def get_pinned_items(
        self, user_id: str, *, limit: int = 100, offset: int = 0
    ) -> list[PinnedItem]:
        items = [item for (owner, _), item in self._pinned.items() if owner == user_id]
        # Newest first; insertion order breaks ties on identical timestamps.
        items.reverse()
        items.sort(key=lambda item: item.created_at or _utcnow(), reverse=True)
        return [item.model_copy(deep=True) for item in items[offset : offset + limit]]

    async def get_pinned_item(self, user_id: str, item_name: str) -> PinnedItem | None:
        item = self._pinned.get((user_id, item_name))
        return item.model_copy(deep=True) if item else None

    async def insert_pinned_item(self, user_id: str, item_data: dict[str, Any]) -> PinnedItem:
        item_name = item_data["name"]
        key = (user_id, item_name)
        if key in self._pinned:
            raise DuplicateItemError(f"{item_name!r} is already pinned")
        item = PinnedItem(
            id=str(uuid.uuid4()),
            user_id=user_id,
            item_name=item_name,
            item_data=dict(item_data),
            created_at=_utcnow(),
        )
        self._pinned[key] = item
        return item.model_copy(deep=True)

    async def unpin_item(self, user_id: str, item_name: str) -> PinnedItem | None:
        return self._pinned.pop((user_id, item_name), None)

    async def is_item_pinned(self, user_id: str, item_name: str) -> bool:
        return (user_id, item_name) in self._pinned

    async def ping(self) -> None:
        return None
