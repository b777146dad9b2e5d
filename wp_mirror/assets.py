# File: wp_mirror/assets.py
"""wp_mirror.assets: validation, mapping and caching of proxied binary assets."""

from __future__ import annotations

import asyncio
import posixpath
import re
from typing import Any, Dict, Optional, Protocol, Sequence, Tuple

from aiohttp import ClientError

from wp_mirror.cache.store import CacheStore
from wp_mirror.config import PathsConfig
from wp_mirror.exceptions import MirrorError
from wp_mirror.logger import get_logger
from wp_mirror.models import AssetResponse

__all__: Sequence[str] = ("AssetProxy", "CONTENT_TYPES", "ASSET_KINDS")

CONTENT_TYPES: Dict[str, str] = {
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
    "svg": "image/svg+xml",
    "png": "image/png",
    "css": "text/css",
    "jpg": "image/jpeg",
    "pdf": "application/pdf",
}

ASSET_KINDS: Tuple[str, ...] = ("downloads", "images", "styles")

_BAD_CHAR_RE = re.compile(r"[^a-z0-9./_-]", re.IGNORECASE)
_HIDDEN_RE = re.compile(r"(^|/)\.")

logger = get_logger("assets")


class GetsContent(Protocol):
    async def get_content(self, path: str, query: Any = None) -> bytes: ...


class AssetProxy:
    """Serves and warms ``<route>/{downloads|images|styles}/<path>`` assets."""

    def __init__(
        self, api: GetsContent, cache: CacheStore, route: str, paths: PathsConfig
    ) -> None:
        self.api = api
        self.cache = cache
        self.route = route
        self.paths = paths

    def resolve(self, kind: str, rel_path: str) -> Optional[Tuple[str, str]]:
        """Return ``(remote_path, content_type)`` or ``None`` when the asset is not served."""
        if _BAD_CHAR_RE.search(rel_path):
            return None
        if _HIDDEN_RE.search(rel_path):
            return None
        ext = posixpath.splitext(rel_path)[1].lstrip(".").lower()
        content_type = CONTENT_TYPES.get(ext)
        if content_type is None:
            return None
        if kind not in ASSET_KINDS:
            return None
        base: str = getattr(self.paths, kind)
        return base + rel_path, content_type

    @staticmethod
    def cache_key(remote_path: str) -> str:
        return f"content-{remote_path}"

    async def _load(self, remote_path: str) -> bytes:
        return await self.cache.load_or_compute(
            self.cache_key(remote_path), lambda: self.api.get_content(remote_path)
        )

    async def serve(self, kind: str, rel_path: str) -> Optional[AssetResponse]:
        """Cached or freshly fetched asset; ``None`` when invalid or the fetch fails."""
        resolved = self.resolve(kind, rel_path)
        if resolved is None:
            logger.debug("Rejected asset %s/%s/%s", self.route, kind, rel_path)
            return None
        remote_path, content_type = resolved
        try:
            content = await self._load(remote_path)
        except (ClientError, asyncio.TimeoutError, MirrorError) as exc:
            logger.warning("Failed to fetch asset %s: %s", remote_path, exc)
            return None
        return AssetResponse(path=remote_path, content_type=content_type, content=content)

    async def warm(self, kind: str, rel_path: str) -> bool:
        """Populate the cache entry only; fetch errors propagate."""
        resolved = self.resolve(kind, rel_path)
        if resolved is None:
            return False
        await self._load(resolved[0])
        return True

    async def warm_path(self, logical_path: str) -> bool:
        """Warm a discovery log entry of the form ``<route>/<kind>/<path>``."""
        parts = logical_path.strip("/").split("/", 2)
        if len(parts) != 3 or parts[0] != self.route:
            return False
        return await self.warm(parts[1], parts[2])
