"""Key/value storage backends for :class:`wp_mirror.cache.store.CacheStore`.

Each stored item is an ``(expires_at, value)`` pair; ``expires_at`` is a
``time.time()`` timestamp or ``None`` for entries that never expire.
"""

from __future__ import annotations

import hashlib
import os
import pickle
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Tuple

Item = Tuple[Optional[float], Any]


class Storage(Protocol):
    """Namespaced key/value storage; ``blocking`` marks backends doing disk I/O."""

    blocking: bool

    def read(self, namespace: str, key: str) -> Optional[Item]: ...

    def write(self, namespace: str, key: str, item: Item) -> None: ...

    def remove(self, namespace: str, key: str) -> None: ...

    def clean(self, namespace: str) -> None: ...


class MemoryStorage:
    """Process-local storage; contents vanish with the process."""

    blocking = False

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Item]] = {}

    def read(self, namespace: str, key: str) -> Optional[Item]:
        return self._data.get(namespace, {}).get(key)

    def write(self, namespace: str, key: str, item: Item) -> None:
        self._data.setdefault(namespace, {})[key] = item

    def remove(self, namespace: str, key: str) -> None:
        self._data.get(namespace, {}).pop(key, None)

    def clean(self, namespace: str) -> None:
        self._data.pop(namespace, None)


class FileStorage:
    """One pickle file per key under ``<root>/<namespace>/``.

    Writes go to a temporary file in the same directory and are moved into
    place with :func:`os.replace`, so readers see either the old or the new
    value, never a partial one.
    """

    SUFFIX = ".cache"
    blocking = True

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).expanduser()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, namespace: str, key: str) -> Path:
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self.root / namespace / f"{digest}{self.SUFFIX}"

    def read(self, namespace: str, key: str) -> Optional[Item]:
        path = self._path(namespace, key)
        try:
            with path.open("rb") as fh:
                stored_key, expires_at, value = pickle.load(fh)
        except FileNotFoundError:
            return None
        if stored_key != key:
            return None
        return expires_at, value

    def write(self, namespace: str, key: str, item: Item) -> None:
        path = self._path(namespace, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                pickle.dump((key, *item), fh, protocol=pickle.HIGHEST_PROTOCOL)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def remove(self, namespace: str, key: str) -> None:
        self._path(namespace, key).unlink(missing_ok=True)

    def clean(self, namespace: str) -> None:
        shutil.rmtree(self.root / namespace, ignore_errors=True)


__all__ = ["Item", "Storage", "MemoryStorage", "FileStorage"]
