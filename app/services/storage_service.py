"""Read-through caching in front of the storage backend.

User records and pinned-item collections are read far more often than they
change, so each read consults a short-TTL in-memory cache first. Every write
invalidates the affected entries before returning, so a client never reads
its own write stale from this process.

The cache is an optimization only: the backend stays authoritative, backend
failures propagate to the caller, and a failed read never populates the cache.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Awaitable, TypeVar

from app.adapters.storage.base import AbstractStorage, DuplicateItemError
from app.core.errors import StorageAppError
from app.schemas.pinned_items import PinnedItem
from app.schemas.users import User, UserUpsert
from app.utils.simple_cache import MISSING, SimpleTTLCache

logger = logging.getLogger(__name__)

R = TypeVar("R")

USER_CACHE_TTL_MS = 10_000
PINNED_ITEMS_CACHE_TTL_MS = 5_000


def user_cache_key(user_id: str) -> str:
    return f"user:{user_id}"


def pinned_items_cache_key(user_id: str) -> str:
    return f"pinned:{user_id}"


def _user_scope(user_id: str) -> re.Pattern[str]:
    """Match every cache key scoped to ``user_id`` regardless of entity type."""
    return re.compile(rf"^[a-z_]+:{re.escape(user_id)}$")


async def _guard(operation: str, call: Awaitable[R]) -> R:
    """Await a backend call, translating transport failures into StorageAppError.

    Args:
        operation: Name of the storage operation, for logs and error details.
        call: Pending backend coroutine.

    Raises:
        StorageAppError: On connection failures or query timeouts.
    """
    try:
        return await call
    except TimeoutError as exc:
        logger.error(
            "storage.error",
            extra={"operation": operation, "error_code": "db_timeout"},
        )
        raise StorageAppError(
            code="db_timeout",
            message="Database query timeout",
            details={"operation": operation},
        ) from exc
    except ConnectionError as exc:
        logger.error(
            "storage.error",
            extra={"operation": operation, "error_code": "db_connection_error"},
        )
        raise StorageAppError(
            code="db_connection_error",
            message="Database connection failed",
            details={"operation": operation},
        ) from exc


class CachedStorage:
    """Storage facade with read-through caches for users and pinned items.

    Two independent cache instances are used: single-user lookups live
    longer than pinned-item collections, which change more often and whose
    staleness is more visible.
    """

    def __init__(
        self,
        backend: AbstractStorage,
        *,
        user_cache: SimpleTTLCache[User | None] | None = None,
        pinned_items_cache: SimpleTTLCache[list[PinnedItem]] | None = None,
        user_ttl_ms: int = USER_CACHE_TTL_MS,
        pinned_items_ttl_ms: int = PINNED_ITEMS_CACHE_TTL_MS,
    ) -> None:
        self._backend = backend
        self._user_cache = user_cache if user_cache is not None else SimpleTTLCache(name="users")
        self._pinned_items_cache = (
            pinned_items_cache
            if pinned_items_cache is not None
            else SimpleTTLCache(name="pinned_items")
        )
        self._user_ttl_ms = user_ttl_ms
        self._pinned_items_ttl_ms = pinned_items_ttl_ms

    @property
    def backend(self) -> AbstractStorage:
        return self._backend

    async def get_user(self, user_id: str) -> User | None:
        """Fetch a user, caching misses as ``None`` to avoid repeated lookups."""

        key = user_cache_key(user_id)
        cached = self._user_cache.get(key)
        if cached is not MISSING:
            return cached.model_copy(deep=True) if cached is not None else None

        user = await _guard("get_user", self._backend.get_user(user_id))
        self._user_cache.set(
            key, user.model_copy(deep=True) if user is not None else None, self._user_ttl_ms
        )
        return user

    async def upsert_user(self, user_id: str, data: UserUpsert) -> User:
        user = await _guard("upsert_user", self._backend.upsert_user(user_id, data))
        self._user_cache.delete(user_cache_key(user_id))
        return user

    async def delete_user(self, user_id: str) -> User | None:
        """Delete the account and drop every cached entry scoped to it."""

        deleted = await _guard("delete_user", self._backend.delete_user(user_id))
        self.invalidate_user(user_id)
        logger.info("storage.user_deleted", extra={"found": deleted is not None})
        return deleted

    async def get_pinned_items(
        self,
        user_id: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[PinnedItem]:
        """Fetch pinned items, newest first.

        Only the default, unpaginated listing is cached; paginated reads
        always go to the backend.
        """

        paginated = bool(limit) or bool(offset)
        key = pinned_items_cache_key(user_id)
        if not paginated:
            cached = self._pinned_items_cache.get(key)
            if cached is not MISSING:
                return [item.model_copy(deep=True) for item in cached]

        items = await _guard(
            "get_pinned_items",
            self._backend.get_pinned_items(user_id, limit=limit or 100, offset=offset or 0),
        )
        if not paginated:
            self._pinned_items_cache.set(
                key, [item.model_copy(deep=True) for item in items], self._pinned_items_ttl_ms
            )
        return items

    async def get_pinned_item(self, user_id: str, item_name: str) -> PinnedItem | None:
        return await _guard("get_pinned_item", self._backend.get_pinned_item(user_id, item_name))

    async def is_item_pinned(self, user_id: str, item_name: str) -> bool:
        return await _guard("is_item_pinned", self._backend.is_item_pinned(user_id, item_name))

    async def pin_item(self, user_id: str, item_data: dict[str, Any]) -> PinnedItem:
        """Pin an item; pinning an already-pinned name returns the existing row.

        A concurrent pin of the same name surfaces as ``DuplicateItemError``
        from the backend and is resolved by re-reading the winner.
        """

        item_name = item_data["name"]
        existing = await self.get_pinned_item(user_id, item_name)
        if existing is not None:
            return existing

        try:
            pinned = await _guard(
                "pin_item", self._backend.insert_pinned_item(user_id, item_data)
            )
        except DuplicateItemError:
            existing = await self.get_pinned_item(user_id, item_name)
            if existing is None:
                raise
            return existing

        self._pinned_items_cache.delete(pinned_items_cache_key(user_id))
        return pinned

    async def unpin_item(self, user_id: str, item_name: str) -> PinnedItem | None:
        unpinned = await _guard("unpin_item", self._backend.unpin_item(user_id, item_name))
        self._pinned_items_cache.delete(pinned_items_cache_key(user_id))
        return unpinned

    async def ping(self) -> None:
        await _guard("ping", self._backend.ping())

    def invalidate_user(self, user_id: str) -> int:
        """Remove all cached entries for ``user_id`` across both caches."""

        scope = _user_scope(user_id)
        return self._user_cache.invalidate_pattern(scope) + self._pinned_items_cache.invalidate_pattern(
            scope
        )

    def cache_stats(self) -> dict[str, dict[str, int | str]]:
        return {
            "users": self._user_cache.stats(),
            "pinned_items": self._pinned_items_cache.stats(),
        }
