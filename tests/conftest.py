# File: tests/conftest.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from aiohttp import ClientError, web

from wp_mirror.config import MirrorConfig
from wp_mirror.engine import MirrorEngine

BASE = "https://wp.example.org"
IMAGES = "/wp-content/themes/ezbdataviz/assets/images/"
STYLES = "/wp-content/themes/ezbdataviz/assets/build/css/"
DOWNLOADS = "/wp-content/uploads/"


def page_html(body: str, head: str = "") -> bytes:
    """Full remote page with *body* inside the document div."""
    return (
        f'<!DOCTYPE html><html><head><meta charset="utf-8"><title>t</title>{head}</head><body>'
        f'<header><nav>menu</nav></header>'
        f'<div role="document">{body}</div>'
        f'<footer>footer</footer></body></html>'
    ).encode("utf-8")


class FakeWpApi:
    """In-memory stand-in for :class:`wp_mirror.client.api.WpApiClient`."""

    def __init__(self, post_type: str = "stories") -> None:
        self.post_type = post_type
        self.containers: List[Dict[str, Any]] = [
            {"id": 1, "translations": {"en": 1, "fr": 2}, "title": {"rendered": "Stories"}},
        ]
        self.items: List[Dict[str, Any]] = [
            {
                "slug": "en-about",
                "translations": {"en": 10, "fr": 11, "de": 12},
                "title": {"rendered": "About"},
            },
            {"slug": "", "translations": {"en": 20}, "title": {"rendered": "Über Uns!!"}},
        ]
        self.links: List[Dict[str, Any]] = [
            {"id": 1, "link": f"{BASE}/stories/"},
            {"id": 10, "link": f"{BASE}/stories/about/"},
            {"id": 11, "link": f"{BASE}/fr/stories/a-propos/"},
            {"id": 12, "link": f"{BASE}/?p=12&lang=de"},
            {"id": 20, "link": f"{BASE}/stories/ber-uns/"},
        ]
        self.pages: Dict[int, bytes] = {
            1: page_html("<p>Index</p>"),
            2: page_html("<p>Sommaire</p>"),
            10: page_html(
                f'<p>About</p><a href="{BASE}/stories/ber-uns/">us</a>'
                f'<img src="{BASE}{IMAGES}logo.png">'
                f'<a href="{DOWNLOADS}report.pdf">report</a>',
                head='<script src="/wp-includes/js/app.js"></script>',
            ),
            11: page_html("<p>À propos</p>"),
            12: page_html("<p>Über</p>"),
            20: page_html(f'<p>Über uns</p><img src="{DOWNLOADS}2024/chart.svg">'),
        }
        self.files: Dict[str, bytes] = {
            f"{IMAGES}logo.png": b"\x89PNG",
            f"{DOWNLOADS}report.pdf": b"%PDF-1.7",
            f"{DOWNLOADS}2024/chart.svg": b"<svg/>",
            f"{STYLES}main.css": b"body{}",
        }
        self.content_error: Optional[BaseException] = None
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self.posts: List[Tuple[str, Any]] = []

    async def list_json(self, path: str, query: Optional[Dict[str, Any]] = None) -> Any:
        query = dict(query or {})
        self.calls.append(("list", path, query))
        if path == "/wp-json/wp/v2/pages":
            return list(self.containers)
        if path == f"/wp-json/wp/v2/{self.post_type}":
            if query.get("lang") == "en":
                return list(self.items)
            return list(self.links)
        return {"path": path, "query": query}

    async def post_json(self, path: str, query: Any = None, body: Any = None) -> Any:
        self.posts.append((path, body))
        return {"path": path}

    async def get_content(self, path: str, query: Optional[Dict[str, Any]] = None) -> bytes:
        query = dict(query or {})
        self.calls.append(("content", path, query))
        if self.content_error is not None:
            raise self.content_error
        if path == "/index.php":
            try:
                return self.pages[query["page_id"]]
            except KeyError:
                raise ClientError(f"404 page {query.get('page_id')}") from None
        if path in self.files:
            return self.files[path]
        raise ClientError(f"404 {path}")

    def content_calls(self) -> List[Tuple[str, str, Dict[str, Any]]]:
        return [c for c in self.calls if c[0] == "content"]

    def fetched_pages(self) -> List[int]:
        return [c[2]["page_id"] for c in self.content_calls() if c[1] == "/index.php"]


def make_config(**overrides: Any) -> MirrorConfig:
    data: Dict[str, Any] = {
        "prefix": "/mirror",
        "api": {"url": BASE, "user": "mirror", "password": "secret"},
        "routes": [{"post_type": "stories"}],
    }
    data.update(overrides)
    return MirrorConfig(**data)


@pytest.fixture()
def config() -> MirrorConfig:
    return make_config()


@pytest.fixture()
def fake_api() -> FakeWpApi:
    return FakeWpApi()


@pytest.fixture()
def engine(config: MirrorConfig, fake_api: FakeWpApi) -> MirrorEngine:
    """Engine of the ``stories`` route over the fake site, memory cache."""
    return MirrorEngine(config, config.routes[0], client=fake_api)


@pytest_asyncio.fixture
async def serve(unused_tcp_port: int):
    """Start an aiohttp app on a free port and return its base URL; cleaned up after the test."""
    runners: List[web.AppRunner] = []

    async def _start(app: web.Application) -> str:
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, "localhost", unused_tcp_port)
        await site.start()
        runners.append(runner)
        return f"http://localhost:{unused_tcp_port}"

    yield _start
    for runner in runners:
        await runner.cleanup()
