"""
Key-value stores for short-lived protocol state.

Both implementations hold plain strings and offer the two atomic primitives
the payment flow depends on:

- put_if_absent: insert only when the key is free
- compare_and_delete: delete only when the stored value is exactly the one
  the caller read earlier

InMemoryStore is process-local and guarded by a lock. RedisStore shares the
state between instances and keeps the same guarantees with SET NX and a Lua
script.
"""
import threading
import time
from typing import Dict, Optional, Protocol, Tuple

from redis.asyncio import Redis


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None: ...

    async def put_if_absent(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool: ...

    async def delete(self, key: str) -> bool: ...

    async def compare_and_delete(self, key: str, expected: str) -> bool: ...


class InMemoryStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[str, Tuple[str, Optional[float]]] = {}

    def _live(self, key: str) -> Optional[str]:
        item = self._items.get(key)
        if item is None:
            return None
        value, deadline = item
        if deadline is not None and time.monotonic() >= deadline:
            del self._items[key]
            return None
        return value

    @staticmethod
    def _deadline(ttl_seconds: Optional[int]) -> Optional[float]:
        return time.monotonic() + ttl_seconds if ttl_seconds else None

    async def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._live(key)

    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        with self._lock:
            self._items[key] = (value, self._deadline(ttl_seconds))

    async def put_if_absent(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        with self._lock:
            if self._live(key) is not None:
                return False
            self._items[key] = (value, self._deadline(ttl_seconds))
            return True

    async def delete(self, key: str) -> bool:
        with self._lock:
            return self._items.pop(key, None) is not None

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        with self._lock:
            if self._live(key) != expected:
                return False
            del self._items[key]
            return True


_COMPARE_AND_DELETE = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class RedisStore:
    def __init__(self, redis: Redis, namespace: str = "storefront"):
        self.redis = redis
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(self._key(key))

    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        await self.redis.set(self._key(key), value, ex=ttl_seconds)

    async def put_if_absent(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        return bool(await self.redis.set(self._key(key), value, ex=ttl_seconds, nx=True))

    async def delete(self, key: str) -> bool:
        return bool(await self.redis.delete(self._key(key)))

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        deleted = await self.redis.eval(_COMPARE_AND_DELETE, 1, self._key(key), expected)
        return bool(deleted)
