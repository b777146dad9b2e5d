# wp_mirror/models.py
"""
Data models shared by the sitemap builder, renderer, rewriter and asset proxy.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

INDEX_SLUG = "index.html"
DEFAULT_LANG = "en"


@dataclass(slots=True)
class Sitemap:
    """Slug, title and link maps derived from the remote metadata."""

    translation: Dict[str, Dict[str, int]] = field(default_factory=dict)
    title: Dict[str, str] = field(default_factory=dict)
    link: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class RenderContext:
    """Per-render state: route, resolved language, sitemap and the asset discovery log."""

    route: str
    lang: str
    sitemap: Sitemap
    assets: Dict[str, None] = field(default_factory=dict)

    def log_asset(self, path: str) -> str:
        self.assets[path] = None
        return path


@dataclass(slots=True)
class RenderResult:
    """What the HTTP boundary needs to emit a response."""

    body: Union[str, bytes]
    status: int = 200
    content_type: str = "text/html"
    scripts: List[str] = field(default_factory=list)
    lang: Optional[str] = None
    title: Optional[str] = None

    @classmethod
    def not_found(cls) -> RenderResult:
        return cls("Not Found", status=404, content_type="text/plain")


@dataclass(slots=True)
class AssetResponse:
    """Binary asset ready to be sent to the browser."""

    path: str
    content_type: str
    content: bytes
