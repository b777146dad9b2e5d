# File: wp_mirror/sitemap.py
"""wp_mirror.sitemap: builds slug, title and link maps from the remote REST metadata."""

from __future__ import annotations

import re
from typing import Any, Dict, Protocol, Sequence
from urllib.parse import urlsplit

from wp_mirror.cache.store import CacheStore
from wp_mirror.exceptions import DuplicateLinkError
from wp_mirror.logger import get_logger
from wp_mirror.models import INDEX_SLUG, Sitemap

__all__: Sequence[str] = ("SitemapBuilder", "derive_slug", "link_path", "SITEMAP_KEY")

SITEMAP_KEY = "sitemap"

_TAG_RE = re.compile(r"<[^>]*>")
_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")

logger = get_logger("sitemap")


class ListsJson(Protocol):
    async def list_json(self, path: str, query: Any = None) -> list[Any]: ...


def derive_slug(slug: str, title: str) -> str:
    """Mirror slug from the English slug, falling back to the title.

    >>> derive_slug("en-about", "About")
    'about'
    >>> derive_slug("", "Über Uns!!")
    'ber-uns'
    """
    if slug.startswith("en-"):
        slug = slug[3:]
    if slug == "":
        slug = _TAG_RE.sub("", title).lower()
        slug = _NON_SLUG_RE.sub("-", slug).strip("-")
        if slug == "":
            slug = "unnamed"
    return slug


def _translations(record: Dict[str, Any]) -> Dict[str, int]:
    # an empty PHP array is serialized as a JSON list
    return dict(record.get("translations") or {})


def link_path(link: str) -> str:
    """Path of a canonical link, with its query string when there is one."""
    parts = urlsplit(link)
    if parts.query:
        return f"{parts.path}?{parts.query}"
    return parts.path


class SitemapBuilder:
    """Builds the :class:`Sitemap` of one post type and keeps it in the cache."""

    def __init__(
        self, api: ListsJson, cache: CacheStore, post_type: str, status: Sequence[str]
    ) -> None:
        self.api = api
        self.cache = cache
        self.post_type = post_type
        self.status = ",".join(status)

    async def get_sitemap(self, force: bool = False) -> Sitemap:
        if force:
            return await self.cache.replace(SITEMAP_KEY, self.build)
        return await self.cache.load_or_compute(SITEMAP_KEY, self.build)

    async def build(self) -> Sitemap:
        sitemap = Sitemap()

        # optional container page, anchors the index route
        pages = await self.api.list_json(
            "/wp-json/wp/v2/pages",
            {
                "slug": self.post_type,
                "parent": 0,
                "lang": "en",
                "status": self.status,
                "_fields": "id,translations,title",
            },
        )
        for page in pages:
            sitemap.translation[INDEX_SLUG] = _translations(page)
            sitemap.title[INDEX_SLUG] = page["title"]["rendered"]

        # English slug is the external URL of every language variant
        slugs: Dict[int, str] = {}
        items = await self.api.list_json(
            f"/wp-json/wp/v2/{self.post_type}",
            {"lang": "en", "status": self.status, "_fields": "slug,translations,title"},
        )
        for item in items:
            slug = derive_slug(item.get("slug") or "", item["title"]["rendered"])
            translations = _translations(item)
            sitemap.translation[slug] = translations
            sitemap.title[slug] = item["title"]["rendered"]
            for page_id in translations.values():
                slugs[page_id] = slug

        # canonical links, language is taken from the page holding the link
        links = await self.api.list_json(
            f"/wp-json/wp/v2/{self.post_type}",
            {"status": self.status, "_fields": "id,link"},
        )
        for item in links:
            slug = slugs.get(item["id"])
            if slug is None:
                continue
            path = link_path(item["link"])
            if path in sitemap.link:
                raise DuplicateLinkError(item["id"], path)
            sitemap.link[path] = slug

        logger.info(
            "Sitemap for %s: %d slugs, %d links",
            self.post_type,
            len(sitemap.translation),
            len(sitemap.link),
        )
        return sitemap
