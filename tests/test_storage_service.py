"""Tests for read-through caching in CachedStorage."""

from collections import Counter

import pytest

from app.adapters.storage.in_memory import InMemoryStorage
from app.core.errors import StorageAppError
from app.schemas.users import UserUpsert
from app.services.storage_service import (
    CachedStorage,
    pinned_items_cache_key,
    user_cache_key,
)
from app.utils.simple_cache import MISSING, SimpleTTLCache


class CountingStorage(InMemoryStorage):
    """In-memory backend that records how often each read reaches it."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: Counter[str] = Counter()
        self.fail_with: Exception | None = None

    async def get_user(self, user_id):
        self.calls["get_user"] += 1
        if self.fail_with:
            raise self.fail_with
        return await super().get_user(user_id)

    async def get_pinned_items(self, user_id, *, limit=100, offset=0):
        self.calls["get_pinned_items"] += 1
        if self.fail_with:
            raise self.fail_with
        return await super().get_pinned_items(user_id, limit=limit, offset=offset)


@pytest.fixture
def backend() -> CountingStorage:
    return CountingStorage()


@pytest.fixture
def caches(clock):
    return (
        SimpleTTLCache(100, name="users", clock=clock),
        SimpleTTLCache(100, name="pinned_items", clock=clock),
    )


@pytest.fixture
def storage(backend, caches) -> CachedStorage:
    user_cache, pinned_cache = caches
    return CachedStorage(
        backend,
        user_cache=user_cache,
        pinned_items_cache=pinned_cache,
        user_ttl_ms=10_000,
        pinned_items_ttl_ms=5_000,
    )


@pytest.mark.asyncio
async def test_user_read_is_served_from_cache_within_ttl(storage, backend, clock) -> None:
    await backend.upsert_user("u1", UserUpsert(email="a@example.com"))

    first = await storage.get_user("u1")
    clock.advance(9_000)
    second = await storage.get_user("u1")

    assert first is not None and second is not None
    assert second.email == "a@example.com"
    assert backend.calls["get_user"] == 1


@pytest.mark.asyncio
async def test_user_read_hits_backend_after_ttl(storage, backend, clock) -> None:
    await storage.get_user("u1")
    clock.advance(10_001)
    await storage.get_user("u1")

    assert backend.calls["get_user"] == 2


@pytest.mark.asyncio
async def test_missing_user_is_negatively_cached(storage, backend) -> None:
    assert await storage.get_user("ghost") is None
    assert await storage.get_user("ghost") is None

    assert backend.calls["get_user"] == 1


@pytest.mark.asyncio
async def test_upsert_invalidates_user_entry(storage, backend, caches) -> None:
    user_cache, _ = caches
    assert await storage.get_user("u1") is None

    await storage.upsert_user("u1", UserUpsert(first_name="Ada"))

    assert user_cache.get(user_cache_key("u1")) is MISSING
    user = await storage.get_user("u1")
    assert user is not None and user.first_name == "Ada"
    assert backend.calls["get_user"] == 2


@pytest.mark.asyncio
async def test_pinned_items_cached_and_invalidated_on_pin(storage, backend) -> None:
    assert await storage.get_pinned_items("u1") == []
    assert await storage.get_pinned_items("u1") == []
    assert backend.calls["get_pinned_items"] == 1

    await storage.pin_item("u1", {"name": "Sonnet", "type": "form"})

    items = await storage.get_pinned_items("u1")
    assert [item.item_name for item in items] == ["Sonnet"]
    assert backend.calls["get_pinned_items"] == 2


@pytest.mark.asyncio
async def test_pinned_items_invalidated_on_unpin(storage, backend) -> None:
    await storage.pin_item("u1", {"name": "Villanelle"})
    assert len(await storage.get_pinned_items("u1")) == 1

    await storage.unpin_item("u1", "Villanelle")

    assert await storage.get_pinned_items("u1") == []


@pytest.mark.asyncio
async def test_pinned_items_ttl_is_shorter_than_user_ttl(storage, backend, clock) -> None:
    await storage.get_pinned_items("u1")
    await storage.get_user("u1")

    clock.advance(5_001)
    await storage.get_pinned_items("u1")
    await storage.get_user("u1")

    assert backend.calls["get_pinned_items"] == 2
    assert backend.calls["get_user"] == 1


@pytest.mark.asyncio
async def test_paginated_reads_bypass_cache(storage, backend, caches) -> None:
    _, pinned_cache = caches
    for name in ("Haiku", "Ode", "Elegy"):
        await storage.pin_item("u1", {"name": name})

    page = await storage.get_pinned_items("u1", limit=2, offset=1)
    await storage.get_pinned_items("u1", limit=2, offset=1)

    assert len(page) == 2
    assert backend.calls["get_pinned_items"] == 2
    assert pinned_cache.get(pinned_items_cache_key("u1")) is MISSING


@pytest.mark.asyncio
async def test_pin_is_idempotent(storage) -> None:
    first = await storage.pin_item("u1", {"name": "Sonnet"})
    second = await storage.pin_item("u1", {"name": "Sonnet"})

    assert first.id == second.id
    assert len(await storage.get_pinned_items("u1")) == 1


@pytest.mark.asyncio
async def test_delete_user_clears_all_user_scoped_entries(storage, backend, caches) -> None:
    user_cache, pinned_cache = caches
    await backend.upsert_user("u1", UserUpsert())
    await backend.upsert_user("u10", UserUpsert())
    await storage.pin_item("u1", {"name": "Sonnet"})
    await storage.get_user("u1")
    await storage.get_user("u10")
    await storage.get_pinned_items("u1")

    deleted = await storage.delete_user("u1")

    assert deleted is not None
    assert user_cache.get(user_cache_key("u1")) is MISSING
    assert pinned_cache.get(pinned_items_cache_key("u1")) is MISSING
    assert user_cache.get(user_cache_key("u10")) is not MISSING
    assert await storage.get_user("u1") is None
    assert await storage.get_pinned_items("u1") == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "code"),
    [
        (ConnectionError("refused"), "db_connection_error"),
        (TimeoutError("slow"), "db_timeout"),
    ],
)
async def test_backend_failures_propagate_and_are_not_cached(
    storage, backend, caches, error, code
) -> None:
    user_cache, _ = caches
    backend.fail_with = error

    with pytest.raises(StorageAppError) as exc_info:
        await storage.get_user("u1")

    assert exc_info.value.code == code
    assert user_cache.get(user_cache_key("u1")) is MISSING

    backend.fail_with = None
    assert await storage.get_user("u1") is None
    assert backend.calls["get_user"] == 2


@pytest.mark.asyncio
async def test_unexpected_backend_errors_are_not_masked(storage, backend) -> None:
    backend.fail_with = KeyError("bug")

    with pytest.raises(KeyError):
        await storage.get_pinned_items("u1")


@pytest.mark.asyncio
async def test_mutating_a_cached_user_does_not_leak(storage, backend) -> None:
    await storage.upsert_user("u1", UserUpsert(email="a@example.com", first_name="Ada"))
    first = await storage.get_user("u1")
    assert first is not None
    first.first_name = "Mallory"

    second = await storage.get_user("u1")

    assert second is not None and second.first_name == "Ada"
    assert backend.calls["get_user"] == 1


@pytest.mark.asyncio
async def test_mutating_cached_pinned_items_does_not_leak(storage, backend) -> None:
    await storage.pin_item("u1", {"name": "Sonnet", "type": "form"})
    items = await storage.get_pinned_items("u1")
    items[0].item_data["type"] = "altered"
    items[0].item_name = "altered"

    again = await storage.get_pinned_items("u1")

    assert again[0].item_name == "Sonnet"
    assert again[0].item_data["type"] == "form"
    assert backend.calls["get_pinned_items"] == 1
