"""wp_mirror.cache: namespaced load-or-compute cache and its storage backends."""

from __future__ import annotations

from typing import Optional

from wp_mirror.config import CacheConfig

from .storage import FileStorage, MemoryStorage, Storage
from .store import CacheStore


def create_storage(config: CacheConfig) -> Storage:
    """File storage when a cache directory is configured, memory otherwise."""
    if config.directory is not None:
        return FileStorage(config.directory)
    return MemoryStorage()


def create_store(
    config: CacheConfig, namespace: str, storage: Optional[Storage] = None
) -> CacheStore:
    return CacheStore(namespace, storage or create_storage(config), ttl=config.ttl)


__all__ = [
    "CacheStore",
    "FileStorage",
    "MemoryStorage",
    "Storage",
    "create_storage",
    "create_store",
]
