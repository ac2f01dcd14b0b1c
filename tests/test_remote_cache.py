import asyncio
import json
import time
from unittest.mock import AsyncMock, MagicMock

import aiosqlite
import pytest

from newsdesk.services.cache_service import CacheService
from newsdesk.services.remote_cache import (
    KEY_NAMESPACE,
    CacheBackendError,
    SqliteCacheBackend,
    UpstashRedisBackend,
)


@pytest.fixture
def sqlite_backend(tmp_path):
    return SqliteCacheBackend(str(tmp_path / "cache.db"))


@pytest.mark.asyncio
async def test_sqlite_set_get_delete(sqlite_backend):
    await sqlite_backend.set("pair-key", {"timestamp": 1.0, "articles": []}, ttl_seconds=3600)
    assert await sqlite_backend.get("pair-key") == {"timestamp": 1.0, "articles": []}

    await sqlite_backend.set("pair-key", {"timestamp": 2.0, "articles": []})
    assert (await sqlite_backend.get("pair-key"))["timestamp"] == 2.0

    await sqlite_backend.delete("pair-key")
    assert await sqlite_backend.get("pair-key") is None


@pytest.mark.asyncio
async def test_sqlite_expired_rows_are_dropped(sqlite_backend):
    await sqlite_backend.set("fresh", {"v": 1}, ttl_seconds=3600)
    await sqlite_backend.set("stale", {"v": 2}, ttl_seconds=3600)
    async with aiosqlite.connect(sqlite_backend.db_path) as db:
        await db.execute(
            "UPDATE cache_entries SET expires_at = ? WHERE key = ?",
            (time.time() - 1, f"{KEY_NAMESPACE}stale"),
        )
        await db.commit()

    assert await sqlite_backend.get("stale") is None
    assert await sqlite_backend.get("fresh") == {"v": 1}


@pytest.mark.asyncio
async def test_sqlite_cleanup(sqlite_backend):
    await sqlite_backend.set("a", {"v": 1}, ttl_seconds=3600)
    await sqlite_backend.set("b", {"v": 2}, ttl_seconds=3600)
    async with aiosqlite.connect(sqlite_backend.db_path) as db:
        await db.execute("UPDATE cache_entries SET expires_at = ?", (time.time() - 1,))
        await db.commit()

    assert await sqlite_backend.cleanup() == 2


@pytest.mark.asyncio
async def test_sqlite_unusable_path_raises_backend_error(tmp_path):
    backend = SqliteCacheBackend(str(tmp_path / "missing-dir" / "cache.db"))
    with pytest.raises(CacheBackendError):
        await backend.get("anything")


def test_upstash_requires_credentials():
    with pytest.raises(ValueError):
        UpstashRedisBackend("", "token")


@pytest.mark.asyncio
async def test_upstash_commands_are_namespaced():
    backend = UpstashRedisBackend("https://example.upstash.io", "token")
    backend._command = AsyncMock(return_value=None)

    await backend.set("pair-key", {"v": 1}, ttl_seconds=7200)
    backend._command.assert_awaited_with("SET", f"{KEY_NAMESPACE}pair-key", json.dumps({"v": 1}), "EX", 7200)

    assert await backend.get("pair-key") is None
    backend._command.assert_awaited_with("GET", f"{KEY_NAMESPACE}pair-key")


@pytest.mark.asyncio
async def test_upstash_malformed_payload_raises():
    backend = UpstashRedisBackend("https://example.upstash.io", "token")
    backend._command = AsyncMock(return_value="{not json")
    with pytest.raises(CacheBackendError):
        await backend.get("pair-key")


@pytest.mark.asyncio
async def test_sqlite_row_with_wrong_shape_is_a_cache_miss(sqlite_backend):
    """A shared row that is valid JSON but not an entry never fails the caller."""
    await sqlite_backend.set("pair-key", ["not", "a", "dict"], ttl_seconds=3600)
    cache = CacheService(remote=sqlite_backend)

    assert await cache.get("pair-key") is None
    assert cache.stats["remote_errors"] == 1


@pytest.mark.asyncio
async def test_upstash_timeout_becomes_backend_error():
    backend = UpstashRedisBackend("https://example.upstash.io", "token")
    session = MagicMock()
    session.post = MagicMock(side_effect=asyncio.TimeoutError())
    backend._get_session = AsyncMock(return_value=session)

    with pytest.raises(CacheBackendError):
        await backend.get("pair-key")
