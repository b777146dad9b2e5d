# === FILE: wp_mirror/parser/html_rewriter.py ===
"""Rewriting of fetched WordPress page markup into mirror markup.

:class:`HtmlRewriter` takes the full HTML of a remote page and returns only
the ``div[role=document]`` subtree, with

* comments, editor bookmarks and external ``<script src>`` tags removed
  (script URLs are returned separately so the host page can re-insert them),
* the ``active`` state of navigation links moved from ``<a>`` to ``<li>``,
* internal links and image URLs pointing at the mirror,
* Word paste leftovers (``Mso*`` classes, table ``width``) dropped.

Every asset URL written into the markup is added to the render context's
discovery log so a warming pass can fetch it afterwards.
"""
from __future__ import annotations

import re
from collections.abc import Sequence
from typing import List, Tuple, Union

from bs4 import BeautifulSoup, Comment
from bs4.element import Tag

from wp_mirror.config import PathsConfig
from wp_mirror.exceptions import AssetPathError, MarkupError
from wp_mirror.models import RenderContext

__all__: Sequence[str] = ("HtmlRewriter",)

_MSO_RE = re.compile(r"\bMso\w*")
_DOCUMENT_SELECTOR = 'html > body > div[role="document"]'


def _classes(tag: Tag) -> List[str]:
    value = tag.get("class")
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return list(value)


class HtmlRewriter:
    """Transforms remote page markup for one mirror deployment."""

    def __init__(self, prefix: str, base_url: str, paths: PathsConfig) -> None:
        self.prefix = prefix
        self.base_url = base_url
        self.paths = paths

    def rewrite(self, markup: Union[str, bytes], ctx: RenderContext) -> Tuple[str, List[str]]:
        """Return the rewritten document subtree and the removed script URLs."""
        if not markup or not markup.strip():
            raise MarkupError("could not parse HTML: empty document")
        soup = BeautifulSoup(markup, "lxml")

        self._remove_noise(soup)
        scripts = self._extract_scripts(soup)
        self._move_nav_active(soup)
        self._rewrite_links(soup, ctx)
        self._rewrite_images(soup, ctx)
        self._strip_mso_classes(soup)
        for node in soup.find_all(["table", "td"]):
            if "width" in node.attrs:
                del node["width"]

        document = soup.select_one(_DOCUMENT_SELECTOR)
        if document is None:
            raise MarkupError("could not find div[role=document] in page")
        return str(document), scripts

    # Pipeline steps ----------------------------------------------------------

    @staticmethod
    def _remove_noise(soup: BeautifulSoup) -> None:
        for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()
        for node in soup.select('span[data-mce-type="bookmark"]'):
            node.decompose()

    @staticmethod
    def _extract_scripts(soup: BeautifulSoup) -> List[str]:
        scripts: List[str] = []
        for node in soup.select("script[src]"):
            scripts.append(str(node["src"]))
            node.decompose()
        return scripts

    @staticmethod
    def _move_nav_active(soup: BeautifulSoup) -> None:
        for anchor in soup.select("li > a"):
            classes = _classes(anchor)
            if "nav-link" not in classes or "active" not in classes:
                continue
            anchor["class"] = [c for c in classes if c != "active"]
            item = anchor.parent
            item["class"] = _classes(item) + ["active"]

    def _rewrite_links(self, soup: BeautifulSoup, ctx: RenderContext) -> None:
        for anchor in soup.find_all("a", href=True):
            href = self._strip_base(str(anchor["href"]))
            if not href.startswith("/"):
                continue
            anchor["href"] = self.convert_href(href, ctx)

    def _rewrite_images(self, soup: BeautifulSoup, ctx: RenderContext) -> None:
        for img in soup.find_all("img", src=True):
            img["src"] = self.convert_src(str(img["src"]), ctx)
            if img.has_attr("srcset"):
                img["srcset"] = self._convert_srcset(str(img["srcset"]), ctx)

    def _convert_srcset(self, srcset: str, ctx: RenderContext) -> str:
        candidates = []
        for candidate in srcset.split(","):
            terms = candidate.split(" ")
            for i, term in enumerate(terms):
                if term == "":
                    continue
                terms[i] = self.convert_src(term, ctx)
                break
            candidates.append(" ".join(terms))
        return ",".join(candidates)

    @staticmethod
    def _strip_mso_classes(soup: BeautifulSoup) -> None:
        for node in soup.find_all(["p", "li", "table"], class_=True):
            value, count = _MSO_RE.subn("", " ".join(_classes(node)))
            if not count:
                continue
            value = value.strip()
            if value == "":
                del node["class"]
            else:
                node["class"] = value

    # URL conversion ----------------------------------------------------------

    def _strip_base(self, url: str) -> str:
        if url.startswith(self.base_url):
            return url[len(self.base_url):]
        return url

    def _mirror_url(self, ctx: RenderContext, kind: str, rest: str) -> str:
        return f"{self.prefix}/" + ctx.log_asset(f"{ctx.route}/{kind}/{rest}")

    def convert_href(self, href: str, ctx: RenderContext) -> str:
        """Mirror URL of an internal link; unknown targets become an empty href."""
        slug = ctx.sitemap.link.get(href)
        if slug is not None:
            return f"{self.prefix}/{ctx.route}/{slug}?lg={ctx.lang}"
        if href.startswith(self.paths.downloads):
            return self._mirror_url(ctx, "downloads", href[len(self.paths.downloads):])
        return ""

    def convert_src(self, src: str, ctx: RenderContext) -> str:
        """Mirror URL of an image; raises :class:`AssetPathError` for unknown locations."""
        src = self._strip_base(src)
        for kind, base in (
            ("images", self.paths.images),
            ("styles", self.paths.styles),
            ("downloads", self.paths.downloads),
        ):
            if src.startswith(base):
                return self._mirror_url(ctx, kind, src[len(base):])
        raise AssetPathError(src)
