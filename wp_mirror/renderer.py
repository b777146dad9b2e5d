# File: wp_mirror/renderer.py
"""wp_mirror.renderer: route resolution, language fallback and cached page rendering."""

from __future__ import annotations

from typing import Any, List, Optional, Protocol, Sequence, Tuple

from wp_mirror.assets import AssetProxy
from wp_mirror.cache.store import CacheStore
from wp_mirror.logger import get_logger
from wp_mirror.models import DEFAULT_LANG, INDEX_SLUG, RenderContext, RenderResult, Sitemap
from wp_mirror.parser.html_rewriter import HtmlRewriter
from wp_mirror.sitemap import SitemapBuilder

__all__: Sequence[str] = ("PageRenderer", "split_path", "page_key")

logger = get_logger("renderer")

PageEntry = Tuple[str, List[str]]


class GetsContent(Protocol):
    async def get_content(self, path: str, query: Any = None) -> bytes: ...


def split_path(path: str) -> List[str]:
    """Route, slug and asset parts of a route-relative URL."""
    return path.strip("/").split("/", 2)


def page_key(page_id: int | str) -> str:
    return f"page-{page_id}"


class PageRenderer:
    """Renders mirror pages of one route binding."""

    def __init__(
        self,
        api: GetsContent,
        cache: CacheStore,
        route: str,
        sitemaps: SitemapBuilder,
        rewriter: HtmlRewriter,
        assets: AssetProxy,
    ) -> None:
        self.api = api
        self.cache = cache
        self.route = route
        self.sitemaps = sitemaps
        self.rewriter = rewriter
        self.assets = assets

    def resolve(self, path: str) -> Optional[str]:
        """Slug addressed by a page path, ``None`` for other routes and asset paths."""
        parts = split_path(path)
        if parts[0] != self.route:
            return None
        if len(parts) == 1:
            return INDEX_SLUG
        if len(parts) == 2:
            return parts[1]
        return None

    @staticmethod
    def resolve_lang(sitemap: Sitemap, slug: str, lang: Optional[str]) -> Optional[Tuple[int, str]]:
        """``(page_id, language)`` of a slug; unknown languages fall back to English."""
        translations = sitemap.translation.get(slug)
        if translations is None:
            return None
        resolved = lang if lang in translations else DEFAULT_LANG
        page_id = translations.get(resolved)
        if page_id is None:
            return None
        return page_id, resolved

    async def render(self, path: str, lang: Optional[str]) -> RenderResult:
        parts = split_path(path)
        if parts[0] != self.route:
            return RenderResult.not_found()
        if len(parts) == 3:
            asset = await self.assets.serve(parts[1], parts[2])
            if asset is None:
                return RenderResult.not_found()
            return RenderResult(asset.content, content_type=asset.content_type)

        slug = INDEX_SLUG if len(parts) == 1 else parts[1]
        sitemap = await self.sitemaps.get_sitemap()
        resolved = self.resolve_lang(sitemap, slug, lang)
        if resolved is None:
            return RenderResult.not_found()
        page_id, resolved_lang = resolved

        ctx = RenderContext(route=self.route, lang=resolved_lang, sitemap=sitemap)
        html, scripts = await self.load_page(page_id, ctx)
        return RenderResult(
            html,
            scripts=list(scripts),
            lang=resolved_lang,
            title=sitemap.title.get(slug),
        )

    async def load_page(self, page_id: int | str, ctx: RenderContext) -> PageEntry:
        """Cached ``(html, scripts)`` of a remote page, fetched and rewritten on a miss."""
        return await self.cache.load_or_compute(
            page_key(page_id), lambda: self.fetch_page(page_id, ctx)
        )

    async def refresh_page(self, page_id: int | str, ctx: RenderContext) -> PageEntry:
        """Fetch and rewrite a page again; a failure keeps the cached entry."""
        return await self.cache.replace(
            page_key(page_id), lambda: self.fetch_page(page_id, ctx)
        )

    async def fetch_page(self, page_id: int | str, ctx: RenderContext) -> PageEntry:
        logger.debug("Fetching page %s (%s)", page_id, ctx.lang)
        markup = await self.api.get_content("/index.php", {"page_id": page_id})
        return self.rewriter.rewrite(markup, ctx)
