"""Load-or-compute cache with optional TTL and per-key single-flight."""

from __future__ import annotations

import asyncio
import time
import weakref
from typing import Any, Awaitable, Callable, Optional, TypeVar

from wp_mirror.cache.storage import Item, MemoryStorage, Storage
from wp_mirror.logger import get_logger

T = TypeVar("T")


class CacheStore:
    """Namespaced cache on top of a :class:`~wp_mirror.cache.storage.Storage`.

    Concurrent callers asking for the same missing key share one computation:
    the first caller computes while the others wait on a per-key lock and then
    read the stored value. Storages flagged as ``blocking`` are accessed from
    a worker thread inside the async paths.
    """

    def __init__(
        self,
        namespace: str,
        storage: Optional[Storage] = None,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.namespace = namespace
        self.storage: Storage = storage if storage is not None else MemoryStorage()
        self.ttl = ttl
        self.clock = clock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )
        self.logger = get_logger("cache")

    def _valid(self, item: Optional[Item]) -> tuple[bool, Any]:
        if item is None:
            return False, None
        expires_at, value = item
        if expires_at is not None and expires_at <= self.clock():
            return False, None
        return True, value

    async def _read(self, key: str) -> tuple[bool, Any]:
        if self.storage.blocking:
            item = await asyncio.to_thread(self.storage.read, self.namespace, key)
        else:
            item = self.storage.read(self.namespace, key)
        return self._valid(item)

    async def _write(self, key: str, value: Any) -> None:
        expires_at = self.clock() + self.ttl if self.ttl is not None else None
        if self.storage.blocking:
            await asyncio.to_thread(self.storage.write, self.namespace, key, (expires_at, value))
        else:
            self.storage.write(self.namespace, key, (expires_at, value))

    def _lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def contains(self, key: str) -> bool:
        return self._valid(self.storage.read(self.namespace, key))[0]

    async def load_or_compute(self, key: str, compute: Callable[[], Awaitable[T]]) -> T:
        found, value = await self._read(key)
        if found:
            self.logger.debug("hit %s/%s", self.namespace, key)
            return value

        async with self._lock(key):
            found, value = await self._read(key)
            if found:
                self.logger.debug("hit %s/%s after wait", self.namespace, key)
                return value
            self.logger.debug("miss %s/%s", self.namespace, key)
            value = await compute()
            await self._write(key, value)
            return value

    async def replace(self, key: str, compute: Callable[[], Awaitable[T]]) -> T:
        """Recompute *key* unconditionally; the old entry stays if ``compute`` fails."""
        async with self._lock(key):
            self.logger.debug("refresh %s/%s", self.namespace, key)
            value = await compute()
            await self._write(key, value)
            return value

    def remove(self, key: str) -> None:
        self.storage.remove(self.namespace, key)

    def clean_all(self) -> None:
        self.logger.info("Cleaning cache namespace %s", self.namespace)
        self.storage.clean(self.namespace)


__all__ = ["CacheStore"]
