# File: wp_mirror/warmer.py
"""wp_mirror.warmer: bulk and single-page cache refresh.

Warming renders every page of the sitemap and collects the asset URLs the
rewriter writes into the markup; those assets are fetched afterwards, so no
static asset manifest is needed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from wp_mirror.assets import AssetProxy
from wp_mirror.logger import get_logger
from wp_mirror.models import RenderContext
from wp_mirror.renderer import PageRenderer
from wp_mirror.sitemap import SitemapBuilder

__all__: Sequence[str] = ("CacheWarmer", "WarmReport")

logger = get_logger("warmer")

Progress = Callable[[str], None]


def _log_progress(line: str) -> None:
    logger.info("%s", line)


@dataclass(slots=True)
class WarmReport:
    """Number of pages and assets processed by a warming pass."""

    pages: int = 0
    assets: int = 0


class CacheWarmer:
    """Invalidates and pre-fills the caches of one route binding."""

    MAIN_STYLESHEET = "styles/main.css"

    def __init__(
        self,
        route: str,
        sitemaps: SitemapBuilder,
        renderer: PageRenderer,
        assets: AssetProxy,
        progress: Optional[Progress] = None,
    ) -> None:
        self.route = route
        self.sitemaps = sitemaps
        self.renderer = renderer
        self.assets = assets
        self.progress: Progress = progress or _log_progress

    async def invalidate(self, path: str, lang: Optional[str] = None) -> List[str]:
        """Re-render the cached variants of one page; returns the languages processed."""
        slug = self.renderer.resolve(path)
        if slug is None:
            return []
        sitemap = await self.sitemaps.get_sitemap()
        translations = sitemap.translation.get(slug)
        if translations is None:
            return []

        done: List[str] = []
        for lg, page_id in translations.items():
            if lang is not None and lg != lang:
                continue
            self.progress(f"{self.route}/{slug} {lg}")
            ctx = RenderContext(route=self.route, lang=lg, sitemap=sitemap)
            await self.renderer.refresh_page(page_id, ctx)
            done.append(lg)
        return done

    async def warm_all(self) -> WarmReport:
        """Rebuild the sitemap, re-render every page variant and fetch every referenced asset."""
        report = WarmReport()
        discovered: Dict[str, None] = {}

        self.progress("Pages:")
        sitemap = await self.sitemaps.get_sitemap(force=True)
        for slug, translations in sitemap.translation.items():
            for lg, page_id in translations.items():
                self.progress(f"{self.route}/{slug} {lg}")
                ctx = RenderContext(route=self.route, lang=lg, sitemap=sitemap, assets=discovered)
                await self.renderer.refresh_page(page_id, ctx)
                report.pages += 1

        self.progress("Assets:")
        discovered[f"{self.route}/{self.MAIN_STYLESHEET}"] = None
        for path in discovered:
            self.progress(path)
            if await self.assets.warm_path(path):
                report.assets += 1
        logger.info("Warmed %s: %d pages, %d assets", self.route, report.pages, report.assets)
        return report
