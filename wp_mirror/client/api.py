# wp_mirror/client/api.py
"""
Remote WordPress client: paginated REST listing, JSON updates and raw content
fetches with optional cookie login for draft content.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

from aiohttp import BasicAuth, ClientSession, ClientTimeout, CookieJar

from wp_mirror.config import ApiConfig
from wp_mirror.exceptions import LoginError
from wp_mirror.logger import get_logger

__all__ = ("WpApiClient",)

_Query = Mapping[str, Any]


class WpApiClient:
    """Async client for a WordPress site (REST API and front-end pages)."""

    PER_PAGE = 100
    LOGIN_PATH = "/wp-login.php"
    STATIC_PREFIX = "/wp-content/"

    def __init__(self, config: ApiConfig, use_login: bool = False) -> None:
        self.config = config
        self.use_login = use_login
        self.session: Optional[ClientSession] = None
        self._auth = BasicAuth(config.user, config.rest_key)
        self._logged_in = False
        self.logger = get_logger("client")

    async def __aenter__(self) -> WpApiClient:
        self.session = ClientSession(
            timeout=ClientTimeout(total=self.config.timeout),
            headers={"User-Agent": self.config.user_agent},
            cookie_jar=CookieJar(unsafe=True),
            raise_for_status=True,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None
        self._logged_in = False

    def _session(self) -> ClientSession:
        if not self.session:
            raise RuntimeError("Session not initialized")
        return self.session

    def _url(self, path: str) -> str:
        return self.config.url + "/" + path.lstrip("/")

    @staticmethod
    def _params(query: Optional[_Query]) -> Dict[str, str]:
        return {k: str(v) for k, v in (query or {}).items()}

    # ------------------------------------------------------------------
    # REST API
    # ------------------------------------------------------------------

    async def list_json(self, path: str, query: Optional[_Query] = None) -> List[Any]:
        """
        GET a collection endpoint and concatenate all result pages.

        Results are ordered by id ascending so pagination stays stable.
        Without an ``X-WP-TotalPages`` header the single response is returned as is.
        """
        params = self._params(query)
        params.update(per_page=str(self.PER_PAGE), order="asc", orderby="id")
        results: List[Any] = []
        page = 1
        while True:
            if page == 1:
                params.pop("page", None)
            else:
                params["page"] = str(page)
            total, data = await self._get_json_page(path, params)
            if total is None:
                return data
            results.extend(data)
            page += 1
            if total < page:
                break
        self.logger.debug("Listed %s: %d records in %d page(s)", path, len(results), page - 1)
        return results

    async def _get_json_page(self, path: str, params: Dict[str, str]) -> tuple[Optional[int], Any]:
        async with self._session().get(
            self._url(path),
            params=params,
            auth=self._auth,
            headers={"Accept": "application/json"},
        ) as resp:
            pages = resp.headers.get("X-WP-TotalPages")
            data = await resp.json(content_type=None)
        return (int(pages) if pages else None), data

    async def post_json(
        self, path: str, query: Optional[_Query] = None, body: Any = None
    ) -> Any:
        """POST a JSON body; unicode and slashes are sent unescaped."""
        payload = json.dumps(body, ensure_ascii=False).encode("utf-8")
        async with self._session().post(
            self._url(path),
            params=self._params(query),
            data=payload,
            auth=self._auth,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        ) as resp:
            return await resp.json(content_type=None)

    # ------------------------------------------------------------------
    # Front-end content
    # ------------------------------------------------------------------

    async def get_content(self, path: str, query: Optional[_Query] = None) -> bytes:
        """Fetch raw page or asset bytes, logging in first when draft access is needed."""
        if self.use_login and not self._logged_in and not path.startswith(self.STATIC_PREFIX):
            await self._login()
        async with self._session().get(self._url(path), params=self._params(query)) as resp:
            return await resp.read()

    async def _login(self) -> None:
        session = self._session()
        form = {"log": self.config.user, "pwd": self.config.password, "wp-submit": "Log In"}
        async with session.post(self._url(self.LOGIN_PATH), data=form) as resp:
            await resp.read()
        names = [cookie.key for cookie in session.cookie_jar]
        if not any(name.startswith("wp-settings-") for name in names):
            raise LoginError(f"{self.config.url}: login failed")
        self._logged_in = True
        self.logger.info("Logged in to %s as %s", self.config.url, self.config.user)
