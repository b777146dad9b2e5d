# File: tests/test_sitemap.py
from __future__ import annotations

import pytest
from conftest import BASE, FakeWpApi
from wp_mirror.cache import CacheStore
from wp_mirror.exceptions import DuplicateLinkError
from wp_mirror.sitemap import SITEMAP_KEY, SitemapBuilder, derive_slug, link_path


@pytest.mark.parametrize(
    "slug,title,expected",
    [
        ("en-about", "About", "about"),
        ("about", "About", "about"),
        ("en-", "Annual Report 2024", "annual-report-2024"),
        ("", "Über Uns!!", "ber-uns"),
        ("", "<em>Key</em> figures &mdash; 2024", "key-figures-mdash-2024"),
        ("", "!!!", "unnamed"),
        ("", "", "unnamed"),
        ("fr-apropos", "À propos", "fr-apropos"),
    ],
)
def test_derive_slug(slug, title, expected):
    assert derive_slug(slug, title) == expected


@pytest.mark.parametrize(
    "link,expected",
    [
        (f"{BASE}/stories/about/", "/stories/about/"),
        (f"{BASE}/?p=12&lang=de", "/?p=12&lang=de"),
        (f"{BASE}/fr/stories/a-propos/#top", "/fr/stories/a-propos/"),
    ],
)
def test_link_path(link, expected):
    assert link_path(link) == expected


def make_builder(api: FakeWpApi, status=("publish",)) -> SitemapBuilder:
    return SitemapBuilder(api, CacheStore("stories"), "stories", list(status))


@pytest.mark.asyncio()
async def test_build_sitemap(fake_api):
    sitemap = await make_builder(fake_api).build()

    assert sitemap.translation == {
        "index.html": {"en": 1, "fr": 2},
        "about": {"en": 10, "fr": 11, "de": 12},
        "ber-uns": {"en": 20},
    }
    assert sitemap.title == {"index.html": "Stories", "about": "About", "ber-uns": "Über Uns!!"}
    # the container page has no item entry, so its link is not registered
    assert sitemap.link == {
        "/stories/about/": "about",
        "/fr/stories/a-propos/": "about",
        "/?p=12&lang=de": "about",
        "/stories/ber-uns/": "ber-uns",
    }


@pytest.mark.asyncio()
async def test_queries_are_scoped_by_post_type_and_status(fake_api):
    await make_builder(fake_api, status=("publish", "draft")).build()

    containers, items, links = [c for c in fake_api.calls if c[0] == "list"]
    assert containers[1] == "/wp-json/wp/v2/pages"
    assert containers[2] == {
        "slug": "stories",
        "parent": 0,
        "lang": "en",
        "status": "publish,draft",
        "_fields": "id,translations,title",
    }
    assert items[1] == "/wp-json/wp/v2/stories"
    assert items[2]["lang"] == "en"
    assert items[2]["_fields"] == "slug,translations,title"
    assert links[2] == {"status": "publish,draft", "_fields": "id,link"}


@pytest.mark.asyncio()
async def test_no_container_page(fake_api):
    fake_api.containers = []
    sitemap = await make_builder(fake_api).build()
    assert "index.html" not in sitemap.translation


@pytest.mark.asyncio()
async def test_empty_translations_serialized_as_list(fake_api):
    fake_api.items.append({"slug": "orphan", "translations": [], "title": {"rendered": "O"}})
    sitemap = await make_builder(fake_api).build()
    assert sitemap.translation["orphan"] == {}


@pytest.mark.asyncio()
async def test_duplicate_link_aborts_before_cache_write(fake_api):
    fake_api.links.append({"id": 20, "link": f"{BASE}/stories/about/"})
    builder = make_builder(fake_api)

    with pytest.raises(DuplicateLinkError) as excinfo:
        await builder.get_sitemap()

    assert excinfo.value.page_id == 20
    assert excinfo.value.path == "/stories/about/"
    assert not builder.cache.contains(SITEMAP_KEY)


@pytest.mark.asyncio()
async def test_get_sitemap_is_cached_and_force_rebuilds(fake_api):
    builder = make_builder(fake_api)
    first = await builder.get_sitemap()
    await builder.get_sitemap()
    assert len(fake_api.calls) == 3

    fake_api.items[0]["title"] = {"rendered": "About us"}
    rebuilt = await builder.get_sitemap(force=True)
    assert len(fake_api.calls) == 6
    assert first.title["about"] == "About"
    assert rebuilt.title["about"] == "About us"


@pytest.mark.asyncio()
async def test_failed_rebuild_keeps_cached_sitemap(fake_api):
    builder = make_builder(fake_api)
    first = await builder.get_sitemap()

    fake_api.links.append({"id": 20, "link": f"{BASE}/stories/about/"})
    with pytest.raises(DuplicateLinkError):
        await builder.get_sitemap(force=True)

    assert await builder.get_sitemap() == first
