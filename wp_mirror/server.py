# File: wp_mirror/server.py
"""wp_mirror.server: aiohttp.web front end serving mirror pages and assets."""

from __future__ import annotations

import asyncio
from typing import Optional
from urllib.parse import urlsplit

from aiohttp import ClientError, web
from jinja2 import Environment, PackageLoader, select_autoescape

from wp_mirror.engine import Mirror
from wp_mirror.exceptions import MirrorError
from wp_mirror.logger import get_logger
from wp_mirror.models import RenderResult
from wp_mirror.renderer import split_path

__all__ = ["create_app", "render_page"]

logger = get_logger("server")

MIRROR_KEY = web.AppKey("mirror", Mirror)

_env = Environment(
    loader=PackageLoader("wp_mirror", "templates"),
    autoescape=select_autoescape(["html", "xml", "j2"]),
)


def render_page(result: RenderResult, stylesheet: str) -> str:
    """Full HTML document around a cached page body, with its scripts re-inserted."""
    template = _env.get_template("page.html.j2")
    return template.render(
        body=result.body,
        scripts=result.scripts,
        lang=result.lang or "en",
        title=result.title or "",
        stylesheet=stylesheet,
    )


def _not_found() -> web.Response:
    return web.Response(status=404, text="Not Found", content_type="text/plain")


async def handle(request: web.Request) -> web.Response:
    mirror = request.app[MIRROR_KEY]
    path: str = request.match_info["path"]
    lang: Optional[str] = request.query.get("lg")
    try:
        result = await mirror.render(path, lang)
    except (MirrorError, ClientError, asyncio.TimeoutError) as exc:
        logger.error("Rendering %s failed: %s", path, exc)
        return _not_found()

    if result.status != 200:
        return _not_found()
    if isinstance(result.body, bytes):
        return web.Response(body=result.body, content_type=result.content_type)

    route = split_path(path)[0]
    stylesheet = f"{mirror.config.prefix}/{route}/styles/main.css"
    return web.Response(text=render_page(result, stylesheet), content_type="text/html")


def create_app(mirror: Mirror) -> web.Application:
    """Application serving the mirror under the path part of its prefix.

    The caller enters *mirror* before the first request.
    """
    app = web.Application()
    app[MIRROR_KEY] = mirror
    mount = urlsplit(mirror.config.prefix).path.rstrip("/")
    app.router.add_get(mount + "/{path:.*}", handle)
    return app
