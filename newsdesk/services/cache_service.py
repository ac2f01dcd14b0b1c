import hashlib
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from newsdesk.models.article import DEFAULT_DATE_RANGE, CacheEntry
from newsdesk.services.quota_tracker import QuotaTracker
from newsdesk.services.remote_cache import CacheBackendError, RemoteCacheBackend


KEYWORD_KEY_PREFIX = "kw-"
KEYWORD_CACHE_TTL_HOURS = 1
DEFAULT_CACHE_TTL_HOURS = 12
CACHE_MAX_ENTRIES = 500

# Narrower windows go stale sooner. Every value divides 24 so time slots line
# up with midnight UTC.
DATE_RANGE_TTL_HOURS: Dict[str, int] = {
    "24h": 2,
    "3d": 4,
    "week": 6,
    "month": 12,
    "all": 12,
}

_RANGE_TOKEN_RE = re.compile(r"-(24h|3d|week|month|all)-[0-9a-z]+-(?:en|all)$")


def ttl_hours_for_range(date_range: Optional[str]) -> int:
    return DATE_RANGE_TTL_HOURS.get(date_range or DEFAULT_DATE_RANGE, DEFAULT_CACHE_TTL_HOURS)


def get_source_fingerprint(sources: Optional[Iterable[str]]) -> str:
    """
    Short stable hash of a user-selected source list.
    Returns 'all' when no sources are selected.
    """
    sources = list(sources or [])
    if not sources:
        return "all"
    joined = ",".join(sorted(sources))
    h = 0
    for ch in joined:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return _to_base36(h)


def _to_base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def query_hash(query: str) -> str:
    normalized = " ".join(query.lower().split())
    return hashlib.md5(normalized.encode()).hexdigest()[:10]


def build_cache_key(
    country: str,
    category: str,
    date_range: Optional[str] = None,
    source_fingerprint: Optional[str] = None,
    show_non_english: bool = False,
    search_query: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Deterministic key for one (country, category) result set.

    The time slot is ``hour // ttl`` so that a key rolls over exactly on a TTL
    boundary. Keyword searches get a ``kw-`` prefix carrying the query hash.
    """
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    date_range = date_range or DEFAULT_DATE_RANGE
    slot = now.hour // ttl_hours_for_range(date_range)
    fingerprint = source_fingerprint or "all"
    lang = "all" if show_non_english else "en"
    key = f"{now.date().isoformat()}-{slot}-{country}-{category}-{date_range}-{fingerprint}-{lang}"
    if search_query:
        return f"{KEYWORD_KEY_PREFIX}{query_hash(search_query)}-{key}"
    return key


def range_token_from_key(key: str) -> Optional[str]:
    match = _RANGE_TOKEN_RE.search(key or "")
    return match.group(1) if match else None


class CacheService:
    """
    Result-set cache keyed by request shape.

    The in-process store is always authoritative for this instance; a shared
    backend, when configured, is read first and written through. Backend
    failures are logged and never reach the caller.
    """

    def __init__(
        self,
        quota_tracker: Optional[QuotaTracker] = None,
        remote: Optional[RemoteCacheBackend] = None,
        max_entries: int = CACHE_MAX_ENTRIES,
        clock=None,
    ):
        self.quota_tracker = quota_tracker
        self.remote = remote
        self.max_entries = max_entries
        self._clock = clock or time.time
        self._store: Dict[str, CacheEntry] = {}
        self.stats: Dict[str, int] = {
            "hits": 0,
            "misses": 0,
            "remote_hits": 0,
            "remote_errors": 0,
            "evictions": 0,
        }
        self.logger = logging.getLogger(__name__)

        if self.remote is not None:
            self.logger.info(f"Shared cache backend enabled: {self.remote.name}")
        else:
            self.logger.info("No shared cache backend configured - using in-process cache")

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def now_ms(self) -> float:
        return self._clock() * 1000

    def is_quota_pressured(self) -> bool:
        return bool(self.quota_tracker and self.quota_tracker.is_pressured())

    def ttl_hours(self, key: str) -> float:
        """TTL for a key: short for keyword searches, range-dependent otherwise."""
        if key.startswith(KEYWORD_KEY_PREFIX):
            ttl = KEYWORD_CACHE_TTL_HOURS
        else:
            token = range_token_from_key(key)
            ttl = DATE_RANGE_TTL_HOURS.get(token, DEFAULT_CACHE_TTL_HOURS) if token else DEFAULT_CACHE_TTL_HOURS
        if self.is_quota_pressured():
            ttl *= 2
        return ttl

    def ttl_seconds_for(self, date_range: Optional[str], keyword: bool = False) -> int:
        ttl = KEYWORD_CACHE_TTL_HOURS if keyword else ttl_hours_for_range(date_range)
        if self.is_quota_pressured():
            ttl *= 2
        return int(ttl * 3600)

    def is_cache_valid(self, entry: Optional[CacheEntry], key: str) -> bool:
        if entry is None:
            return False
        age_hours = (self.now_ms() - entry.timestamp) / (1000 * 60 * 60)
        return age_hours < self.ttl_hours(key)

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Return a valid entry for ``key`` or None on miss."""
        if self.remote is not None:
            try:
                payload = await self.remote.get(key)
            except CacheBackendError as e:
                self.stats["remote_errors"] += 1
                self.logger.warning(f"Remote cache GET failed (falling back to in-process): {e}")
                payload = None
            entry = self._decode_remote(key, payload) if payload else None
            if entry is not None and self.is_cache_valid(entry, key):
                self.stats["hits"] += 1
                self.stats["remote_hits"] += 1
                self._store[key] = entry
                self.logger.info(f"Cache HIT (remote): {key}")
                return entry

        entry = self._store.get(key)
        if entry is None:
            self.stats["misses"] += 1
            return None
        if not self.is_cache_valid(entry, key):
            del self._store[key]
            self.stats["misses"] += 1
            self.logger.debug(f"Cache entry expired: {key}")
            return None

        self.stats["hits"] += 1
        self.logger.info(f"Cache HIT: {key}")
        return entry

    def _decode_remote(self, key: str, payload: Any) -> Optional[CacheEntry]:
        """Shared-store payload as an entry; unreadable shapes count as a miss."""
        try:
            return CacheEntry.from_dict(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            self.stats["remote_errors"] += 1
            self.logger.warning(f"Discarding malformed remote cache entry {key}: {e!r}")
            return None

    async def set(self, key: str, entry: CacheEntry, ttl_override: Optional[int] = None) -> None:
        """Store ``entry`` locally and, when configured, in the shared backend."""
        self._store[key] = entry
        self.evict_if_needed()

        if self.remote is None:
            return
        ttl = ttl_override if ttl_override is not None else int(self.ttl_hours(key) * 3600)
        try:
            await self.remote.set(key, entry.to_dict(), ttl)
            self.logger.debug(f"Remote cache SET: {key} (TTL {ttl}s)")
        except CacheBackendError as e:
            self.stats["remote_errors"] += 1
            self.logger.warning(f"Remote cache SET failed (in-process cache still updated): {e}")

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)
        if self.remote is None:
            return
        try:
            await self.remote.delete(key)
        except CacheBackendError as e:
            self.stats["remote_errors"] += 1
            self.logger.warning(f"Remote cache DEL failed: {e}")

    def evict_if_needed(self) -> List[str]:
        """Drop the oldest entries once the store exceeds ``max_entries``."""
        overflow = len(self._store) - self.max_entries
        if overflow <= 0:
            return []
        oldest = sorted(self._store.items(), key=lambda kv: kv[1].timestamp or 0)[:overflow]
        removed = [k for k, _ in oldest]
        for k in removed:
            del self._store[k]
        self.stats["evictions"] += len(removed)
        self.logger.info(f"Evicted {len(removed)} cache entries (cap {self.max_entries})")
        return removed

    def clear(self) -> None:
        self._store.clear()

    async def close(self) -> None:
        if self.remote is not None:
            await self.remote.close()
