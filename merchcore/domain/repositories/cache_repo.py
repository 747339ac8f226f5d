# merchcore/domain/repositories/cache_repo.py
from __future__ import annotations
from typing import Any, Dict, Optional, Protocol, Tuple
from redis.asyncio import Redis
import hashlib
import json
import logging
import time

"""
Note:
    - Result caches hold JSON-serializable payloads (lists/dicts of plain values).
    - No business logic here, just cache access (get/set/delete/invalidate).
    - Cache errors never fail a request: they are logged and treated as a miss.
"""

logger = logging.getLogger(__name__)

def _h(params: Dict[str, Any]) -> str:
    """
    Create a short hash of the query parameters.
    Used to generate unique cache keys for different query parameters.
    """
    s = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha1(s.encode()).hexdigest()[:10]

def cache_key(namespace: str, **params: Any) -> str:
    """'{namespace}:{hash(params)}'; the namespace is what invalidate() targets."""
    return f"{namespace}:{_h(params)}"

class ResultCache(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...
    async def set(self, key: str, value: Any, ttl: int) -> None: ...
    async def delete(self, key: str) -> None: ...
    async def invalidate(self, namespace: str) -> int: ...

class RedisResultCache:
    """
    Adapter for caching query results in Redis.
    Keys are prefixed (e.g. 'mc:best_sellers:3f2a...') so one deployment can share a Redis.
    """
    def __init__(self, redis: Redis, prefix: str = "mc"):
        self.redis = redis
        self.prefix = prefix

    def _k(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        try:
            if raw := await self.redis.get(self._k(key)):
                return json.loads(raw)
        except Exception as e:
            logger.warning("cache redis.get error key=%s err=%s", key, e)
        return None

    async def set(self, key: str, value: Any, ttl: int) -> None:
        try:
            await self.redis.set(self._k(key), json.dumps(value, default=str), ex=ttl)
        except Exception as e:
            logger.warning("cache redis.set error key=%s err=%s", key, e)

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(self._k(key))
        except Exception as e:
            logger.warning("cache redis.delete error key=%s err=%s", key, e)

    async def invalidate(self, namespace: str) -> int:
        """Delete every key under a namespace. Returns the number of keys removed."""
        removed = 0
        try:
            async for k in self.redis.scan_iter(match=f"{self._k(namespace)}:*"):
                removed += await self.redis.delete(k)
        except Exception as e:
            logger.warning("cache redis.invalidate error namespace=%s err=%s", namespace, e)
        return removed

class MemoryResultCache:
    """
    In-process TTL cache with the same contract, used when REDIS_URL is not configured.
    Values are stored JSON-encoded so callers never share mutable state with the cache.
    """
    def __init__(self, clock=time.monotonic):
        self._data: Dict[str, Tuple[float, str]] = {}
        self._clock = clock

    async def get(self, key: str) -> Optional[Any]:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at, raw = entry
        if self._clock() >= expires_at:
            self._data.pop(key, None)
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: int) -> None:
        self._data[key] = (self._clock() + ttl, json.dumps(value, default=str))

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def invalidate(self, namespace: str) -> int:
        stale = [k for k in self._data if k.startswith(f"{namespace}:")]
        for k in stale:
            del self._data[k]
        return len(stale)
