"""Persistence interfaces.

The cached storage service depends on this abstraction so the database
backend (Postgres in production) can be supplied from outside.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from app.schemas.pinned_items import PinnedItem
from app.schemas.users import User, UserUpsert


class AbstractStorage(ABC):
    """Interface for the user and pinned-item data store.

    Implementations raise ``ConnectionError`` when the store is unreachable
    and ``TimeoutError`` when a query times out; other exceptions are
    treated as bugs and propagate unchanged.
    """

    @abstractmethod
    async def get_user(self, user_id: str) -> User | None:
        raise NotImplementedError

    @abstractmethod
    async def upsert_user(self, user_id: str, data: UserUpsert) -> User:
        raise NotImplementedError

    @abstractmethod
    async def delete_user(self, user_id: str) -> User | None:
        """Delete the user and everything they own; return the removed record."""
        raise NotImplementedError

    @abstractmethod
    async def get_pinned_items(
        self, user_id: str, *, limit: int = 100, offset: int = 0
    ) -> list[PinnedItem]:
        """Return the user's pinned items, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def get_pinned_item(self, user_id: str, item_name: str) -> PinnedItem | None:
        raise NotImplementedError

    @abstractmethod
    async def insert_pinned_item(self, user_id: str, item_data: dict[str, Any]) -> PinnedItem:
        """Insert a pinned item.

        Raises:
            DuplicateItemError: If ``(user_id, item_data["name"])`` already exists.
        """
        raise NotImplementedError

    @abstractmethod
    async def unpin_item(self, user_id: str, item_name: str) -> PinnedItem | None:
        raise NotImplementedError

    @abstractmethod
    async def is_item_pinned(self, user_id: str, item_name: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> None:
        """Raise if the store cannot serve queries."""
        raise NotImplementedError


class DuplicateItemError(Exception):
    """Unique constraint violation on ``(user_id, item_name)``."""
