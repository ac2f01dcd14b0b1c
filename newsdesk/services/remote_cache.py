"""
Optional shared cache backends.

Instances of the service each keep an in-process cache; a shared backend lets
them reuse each other's results. Every backend raises CacheBackendError on
failure and CacheService degrades to the in-process store when that happens.
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

import aiohttp
import aiosqlite

# Bump when the cached entry shape changes so stale payloads are never read back
KEY_NAMESPACE = "newsdesk:v1:"


class CacheBackendError(Exception):
    """Raised when a shared cache backend cannot serve a request"""
    pass


class RemoteCacheBackend:
    """Interface for shared cache stores."""

    name = "remote"

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def set(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None

    @staticmethod
    def namespaced(key: str) -> str:
        return f"{KEY_NAMESPACE}{key}"


class UpstashRedisBackend(RemoteCacheBackend):
    """Upstash Redis over its REST interface."""

    name = "upstash"

    def __init__(self, url: str, token: str, timeout: float = 3.0):
        if not url or not token:
            raise ValueError("Upstash backend requires both a REST URL and a token")
        self.url = url
        self.token = token
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self.logger = logging.getLogger(__name__)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def _command(self, *args: Any) -> Any:
        session = await self._get_session()
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }
        try:
            async with session.post(self.url, headers=headers, data=json.dumps(list(args))) as resp:
                if resp.status != 200:
                    raise CacheBackendError(f"Upstash Redis error: HTTP {resp.status}")
                payload = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise CacheBackendError(f"Upstash Redis unreachable: {e!r}") from e
        except ValueError as e:
            raise CacheBackendError(f"Upstash Redis returned malformed JSON: {e}") from e

        if isinstance(payload, dict) and payload.get("error"):
            raise CacheBackendError(f"Upstash Redis error: {payload['error']}")
        return payload.get("result") if isinstance(payload, dict) else None

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        raw = await self._command("GET", self.namespaced(key))
        if not raw:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CacheBackendError(f"Malformed cache payload for {key}: {e}") from e

    async def set(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> None:
        serialized = json.dumps(value)
        if ttl_seconds:
            await self._command("SET", self.namespaced(key), serialized, "EX", int(ttl_seconds))
        else:
            await self._command("SET", self.namespaced(key), serialized)

    async def delete(self, key: str) -> None:
        await self._command("DEL", self.namespaced(key))

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()


class SqliteCacheBackend(RemoteCacheBackend):
    """
    SQLite file shared by several processes on one host.

    Expiry is stored per row and checked on read; expired rows are deleted
    lazily when read or when ``cleanup`` runs.
    """

    name = "sqlite"

    def __init__(self, db_path: str = "data/newsdesk_cache.db"):
        self.db_path = db_path
        self._initialized = False
        self.logger = logging.getLogger(__name__)

    async def initialize_db(self) -> None:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """
                    CREATE TABLE IF NOT EXISTS cache_entries (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        expires_at REAL
                    );
                    """
                )
                await db.execute(
                    "CREATE INDEX IF NOT EXISTS idx_cache_expires ON cache_entries(expires_at);"
                )
                await db.commit()
        except (aiosqlite.Error, OSError) as e:
            raise CacheBackendError(f"SQLite cache init failed: {e}") from e
        self._initialized = True

    async def _ensure_db(self) -> None:
        if not self._initialized:
            await self.initialize_db()

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        await self._ensure_db()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                cur = await db.execute(
                    "SELECT value, expires_at FROM cache_entries WHERE key = ?",
                    (self.namespaced(key),),
                )
                row = await cur.fetchone()
                if row is None:
                    return None
                value, expires_at = row
                if expires_at is not None and expires_at <= time.time():
                    await db.execute("DELETE FROM cache_entries WHERE key = ?", (self.namespaced(key),))
                    await db.commit()
                    return None
        except aiosqlite.Error as e:
            raise CacheBackendError(f"SQLite cache read failed: {e}") from e

        try:
            return json.loads(value)
        except ValueError as e:
            raise CacheBackendError(f"Malformed cache payload for {key}: {e}") from e

    async def set(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> None:
        await self._ensure_db()
        expires_at = time.time() + ttl_seconds if ttl_seconds else None
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """
                    INSERT INTO cache_entries (key, value, expires_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, expires_at = excluded.expires_at
                    """,
                    (self.namespaced(key), json.dumps(value), expires_at),
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise CacheBackendError(f"SQLite cache write failed: {e}") from e

    async def delete(self, key: str) -> None:
        await self._ensure_db()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("DELETE FROM cache_entries WHERE key = ?", (self.namespaced(key),))
                await db.commit()
        except aiosqlite.Error as e:
            raise CacheBackendError(f"SQLite cache delete failed: {e}") from e

    async def cleanup(self) -> int:
        """Remove expired rows. Returns number of removed rows."""
        await self._ensure_db()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                cur = await db.execute(
                    "DELETE FROM cache_entries WHERE expires_at IS NOT NULL AND expires_at <= ?",
                    (time.time(),),
                )
                await db.commit()
                return cur.rowcount
        except aiosqlite.Error as e:
            raise CacheBackendError(f"SQLite cache cleanup failed: {e}") from e
