"""
Cache collaborator - read-aside store for ledger list views and reports.

Doctrine: the cache is disposable. A miss is always safe, so callers treat
any cache failure as a miss. Values are opaque bytes; serialization belongs
to the caller.

Backends:
- MemoryCache: in-process LRU + TTL
- MongoCache: shared store in a Mongo collection with a TTL index
- HybridCache: primary backend that degrades to a fallback on first failure
"""

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from bson import Binary
from motor.motor_asyncio import AsyncIOMotorDatabase

from backoffice.models.base import utcnow

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class CacheBackend(Protocol):
    async def get(self, key: str) -> Optional[bytes]:
        ...

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...

    async def remove_by_prefix(self, prefix: str) -> int:
        ...


@dataclass
class CacheEntry:
    """A single cached value with its expiry."""

    value: bytes
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class MemoryCache:
    """In-process LRU cache with per-entry TTL."""

    def __init__(self, max_size: int = 1000, clock: Clock = utcnow) -> None:
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry.value

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        self._entries[key] = CacheEntry(value=value, expires_at=expires_at)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    async def remove_by_prefix(self, prefix: str) -> int:
        keys = [k for k in self._entries if k.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)


class MongoCache:
    """
    Cache entries in a Mongo collection.

    Expired documents are filtered on read and reaped by the TTL index on
    expires_at (see db.mongo.create_indexes).
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection: str = "cache_entries", clock: Clock = utcnow):
        self.collection = db[collection]
        self._clock = clock

    async def get(self, key: str) -> Optional[bytes]:
        doc = await self.collection.find_one({
            "_id": key,
            "expires_at": {"$gt": self._clock()}
        })
        if not doc:
            return None
        return bytes(doc["value"])

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        await self.collection.update_one(
            {"_id": key},
            {"$set": {
                "value": Binary(value),
                "expires_at": self._clock() + timedelta(seconds=ttl_seconds)
            }},
            upsert=True
        )

    async def remove(self, key: str) -> None:
        await self.collection.delete_one({"_id": key})

    async def remove_by_prefix(self, prefix: str) -> int:
        result = await self.collection.delete_many({
            "_id": {"$regex": f"^{re.escape(prefix)}"}
        })
        return result.deleted_count


class HybridCache:
    """
    Primary cache with an in-process fallback.

    The first primary failure switches every later call to the fallback for
    the lifetime of the instance. Removals always reach the fallback too, so
    entries written while degraded never outlive an invalidation.
    """

    def __init__(self, primary: CacheBackend, fallback: CacheBackend):
        self.primary = primary
        self.fallback = fallback
        self.primary_available = True

    def _degrade(self, operation: str, exc: Exception) -> None:
        logger.warning("Primary cache failed in %s, using fallback: %s", operation, exc)
        self.primary_available = False

    async def get(self, key: str) -> Optional[bytes]:
        if self.primary_available:
            try:
                return await self.primary.get(key)
            except Exception as exc:
                self._degrade("get", exc)
        return await self.fallback.get(key)

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        if self.primary_available:
            try:
                await self.primary.set(key, value, ttl_seconds)
                return
            except Exception as exc:
                self._degrade("set", exc)
        await self.fallback.set(key, value, ttl_seconds)

    async def remove(self, key: str) -> None:
        if self.primary_available:
            try:
                await self.primary.remove(key)
            except Exception as exc:
                self._degrade("remove", exc)
        await self.fallback.remove(key)

    async def remove_by_prefix(self, prefix: str) -> int:
        removed = 0
        if self.primary_available:
            try:
                removed = await self.primary.remove_by_prefix(prefix)
            except Exception as exc:
                self._degrade("remove_by_prefix", exc)
        return removed + await self.fallback.remove_by_prefix(prefix)


class LedgerCacheKeys:
    """Key layout: {prefix}:{polarity}:all, {prefix}:{polarity}:report:{start}:{end}."""

    SEPARATOR = ":"

    def __init__(self, prefix: str, polarity: str):
        self.root = f"{prefix}{self.SEPARATOR}{polarity}{self.SEPARATOR}"

    def all(self) -> str:
        return f"{self.root}all"

    def report(self, start, end) -> str:
        return f"{self.root}report{self.SEPARATOR}{start:%Y%m%d}{self.SEPARATOR}{end:%Y%m%d}"

    def pattern(self) -> str:
        return self.root
