# File: wp_mirror/engine.py
"""wp_mirror.engine: wiring of one mirror engine per route binding, and the facade over all of them."""

from __future__ import annotations

from contextlib import AsyncExitStack
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from wp_mirror.assets import AssetProxy
from wp_mirror.cache import create_storage, create_store
from wp_mirror.cache.storage import Storage
from wp_mirror.client.api import WpApiClient
from wp_mirror.config import MirrorConfig, RouteConfig
from wp_mirror.logger import get_logger
from wp_mirror.models import INDEX_SLUG, RenderResult
from wp_mirror.parser.html_rewriter import HtmlRewriter
from wp_mirror.renderer import PageRenderer, split_path
from wp_mirror.sitemap import SitemapBuilder
from wp_mirror.warmer import CacheWarmer, Progress, WarmReport

__all__ = ["MirrorEngine", "Mirror"]

logger = get_logger("engine")


class MirrorEngine:
    """All mirror operations of one route binding, sharing one cache namespace."""

    def __init__(
        self,
        config: MirrorConfig,
        binding: RouteConfig,
        client: Optional[Any] = None,
        storage: Optional[Storage] = None,
        progress: Optional[Progress] = None,
    ) -> None:
        self.config = config
        self.binding = binding
        self.post_type = binding.post_type
        self.route = binding.name
        self._owns_client = client is None
        self.api = client if client is not None else WpApiClient(config.api, config.use_login)
        self.cache = create_store(config.cache, self.post_type, storage)
        self.sitemaps = SitemapBuilder(self.api, self.cache, self.post_type, config.status)
        self.rewriter = HtmlRewriter(config.prefix, config.api.url, config.paths)
        self.assets = AssetProxy(self.api, self.cache, self.route, config.paths)
        self.renderer = PageRenderer(
            self.api, self.cache, self.route, self.sitemaps, self.rewriter, self.assets
        )
        self.warmer = CacheWarmer(self.route, self.sitemaps, self.renderer, self.assets, progress)

    async def __aenter__(self) -> MirrorEngine:
        if self._owns_client:
            await self.api.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_client:
            await self.api.__aexit__(exc_type, exc, tb)

    # Rendering & caching -------------------------------------------------------

    async def render(self, path: str, lang: Optional[str] = None) -> RenderResult:
        return await self.renderer.render(path, lang)

    async def invalidate(self, path: str, lang: Optional[str] = None) -> List[str]:
        return await self.warmer.invalidate(path, lang)

    async def warm_all(self) -> WarmReport:
        logger.info("Warming %s", self.route)
        return await self.warmer.warm_all()

    def clean_cache(self) -> None:
        self.cache.clean_all()

    # Remote metadata -----------------------------------------------------------

    async def get_pages(self) -> Dict[str, Dict[str, str]]:
        """Slugs of the route with their titles."""
        sitemap = await self.sitemaps.get_sitemap()
        return {slug: {"title": sitemap.title[slug]} for slug in sitemap.translation}

    async def _metadata_type(self, page_id: int | str) -> str:
        sitemap = await self.sitemaps.get_sitemap()
        index = sitemap.translation.get(INDEX_SLUG, {})
        if str(page_id) in {str(i) for i in index.values()}:
            return "pages"
        return self.post_type

    async def get_page_metadata(self, page_id: int | str) -> Any:
        post_type = await self._metadata_type(page_id)
        return await self.api.list_json(
            f"/wp-json/wp/v2/{post_type}/{quote(str(page_id), safe='')}", {"context": "edit"}
        )

    async def update_metadata(self, page_id: int | str, data: Dict[str, Any]) -> Any:
        post_type = await self._metadata_type(page_id)
        return await self.api.post_json(
            f"/wp-json/wp/v2/{post_type}/{quote(str(page_id), safe='')}", {}, data
        )

    async def update_fields(self, page_id: int | str, fields: Dict[str, Any]) -> Any:
        """Update ACF fields; the user needs the edit_posts capability."""
        return await self.api.post_json(
            f"/wp-json/acf/v3/{self.post_type}/{quote(str(page_id), safe='')}",
            {},
            {"fields": fields},
        )


class Mirror:
    """Dispatches route-relative paths to the engine of their route binding."""

    def __init__(
        self,
        config: MirrorConfig,
        clients: Optional[Dict[str, Any]] = None,
        progress: Optional[Progress] = None,
    ) -> None:
        self.config = config
        storage = create_storage(config.cache)
        clients = clients or {}
        self.engines: Dict[str, MirrorEngine] = {
            binding.name: MirrorEngine(
                config, binding, clients.get(binding.name), storage, progress
            )
            for binding in config.routes
        }
        self._stack: Optional[AsyncExitStack] = None

    async def __aenter__(self) -> Mirror:
        self._stack = AsyncExitStack()
        await self._stack.__aenter__()
        try:
            for engine in self.engines.values():
                await self._stack.enter_async_context(engine)
        except BaseException:
            await self._stack.aclose()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._stack is not None:
            await self._stack.__aexit__(exc_type, exc, tb)
            self._stack = None

    def engine_for(self, path: str) -> Optional[MirrorEngine]:
        return self.engines.get(split_path(path)[0])

    def select(self, route: Optional[str]) -> List[MirrorEngine]:
        """One engine by route name, or all of them."""
        if route is None:
            return list(self.engines.values())
        return [self.engines[route]]

    async def render(self, path: str, lang: Optional[str] = None) -> RenderResult:
        engine = self.engine_for(path)
        if engine is None:
            return RenderResult.not_found()
        return await engine.render(path, lang)

    async def invalidate(self, path: str, lang: Optional[str] = None) -> List[str]:
        engine = self.engine_for(path)
        if engine is None:
            return []
        return await engine.invalidate(path, lang)
