# File: tests/test_assets.py
from __future__ import annotations

import asyncio

import pytest
from aiohttp import ClientError
from conftest import DOWNLOADS, IMAGES, STYLES
from wp_mirror.assets import AssetProxy
from wp_mirror.cache import CacheStore
from wp_mirror.config import PathsConfig


@pytest.fixture()
def proxy(fake_api) -> AssetProxy:
    return AssetProxy(fake_api, CacheStore("stories"), "stories", PathsConfig())


@pytest.mark.parametrize(
    "kind,rel,expected",
    [
        ("images", "logo.png", (f"{IMAGES}logo.png", "image/png")),
        ("styles", "main.css", (f"{STYLES}main.css", "text/css")),
        ("downloads", "2024/Data_File-v2.XLSX", (
            f"{DOWNLOADS}2024/Data_File-v2.XLSX",
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )),
        ("downloads", "report.pdf", (f"{DOWNLOADS}report.pdf", "application/pdf")),
        ("downloads", "a.csv", (f"{DOWNLOADS}a.csv", "text/csv")),
        ("images", "x.jpg", (f"{IMAGES}x.jpg", "image/jpeg")),
        ("images", "x.svg", (f"{IMAGES}x.svg", "image/svg+xml")),
    ],
)
def test_resolve_accepts(proxy, kind, rel, expected):
    assert proxy.resolve(kind, rel) == expected


@pytest.mark.parametrize(
    "kind,rel",
    [
        ("downloads", "../../etc/passwd"),
        ("downloads", "a/../../b.png"),
        ("downloads", ".hidden.png"),
        ("downloads", "dir/.git/x.css"),
        ("downloads", "page.php"),
        ("downloads", "noext"),
        ("downloads", "a b.png"),
        ("downloads", "a%2e.png"),
        ("scripts", "x.png"),
        ("images", ""),
    ],
)
def test_resolve_rejects(proxy, kind, rel):
    assert proxy.resolve(kind, rel) is None


@pytest.mark.asyncio()
async def test_serve_fetches_once(proxy, fake_api):
    first = await proxy.serve("images", "logo.png")
    second = await proxy.serve("images", "logo.png")

    assert first.content == second.content == b"\x89PNG"
    assert first.content_type == "image/png"
    assert first.path == f"{IMAGES}logo.png"
    assert len(fake_api.content_calls()) == 1
    assert proxy.cache.contains(f"content-{IMAGES}logo.png")


@pytest.mark.asyncio()
async def test_serve_rejected_path_does_not_fetch(proxy, fake_api):
    assert await proxy.serve("downloads", "../secret.pdf") is None
    assert fake_api.content_calls() == []


@pytest.mark.asyncio()
async def test_serve_fetch_failure_returns_none(proxy, fake_api):
    assert await proxy.serve("downloads", "missing.pdf") is None
    assert not proxy.cache.contains(f"content-{DOWNLOADS}missing.pdf")

    # a later successful fetch is cached normally
    fake_api.files[f"{DOWNLOADS}missing.pdf"] = b"%PDF"
    asset = await proxy.serve("downloads", "missing.pdf")
    assert asset.content == b"%PDF"


@pytest.mark.asyncio()
async def test_warm(proxy, fake_api):
    assert await proxy.warm("downloads", "report.pdf") is True
    assert await proxy.warm("downloads", "report.exe") is False
    assert proxy.cache.contains(f"content-{DOWNLOADS}report.pdf")

    with pytest.raises(ClientError):
        await proxy.warm("downloads", "missing.pdf")


@pytest.mark.asyncio()
async def test_warm_path(proxy, fake_api):
    assert await proxy.warm_path("stories/downloads/2024/chart.svg") is True
    assert await proxy.warm_path("/stories/styles/main.css") is True
    assert await proxy.warm_path("glossary/images/logo.png") is False
    assert await proxy.warm_path("stories/images") is False
    assert [c[1] for c in fake_api.content_calls()] == [
        f"{DOWNLOADS}2024/chart.svg",
        f"{STYLES}main.css",
    ]


@pytest.mark.asyncio()
async def test_serve_timeout_returns_none(proxy, fake_api):
    fake_api.content_error = asyncio.TimeoutError()
    assert await proxy.serve("images", "logo.png") is None
    assert not proxy.cache.contains(f"content-{IMAGES}logo.png")
