# === FILE: wp_mirror/config.py ===
"""
Loading and validation of the wp_mirror configuration.
Pydantic describes the schema and checks the data.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)


class ApiConfig(BaseModel):
    """Remote WordPress site and its credentials."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str = Field(..., description="Base URL of the WordPress site.")
    user: str = Field(..., min_length=1, description="WordPress user name.")
    password: str = Field(..., description="Account password, used for the login form.")
    key: Optional[str] = Field(None, description="Application password for the REST API.")
    timeout: float = Field(30.0, gt=0, description="Timeout per request (seconds).")
    user_agent: str = Field("wpmirror/1.0", min_length=1, description="User-Agent header.")

    @field_validator("url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @field_validator("url")
    def _check_scheme(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return v

    @property
    def rest_key(self) -> str:
        return self.key if self.key is not None else self.password


class CacheConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    directory: Optional[Path] = Field(None, description="File cache root; memory cache if unset.")
    ttl: Optional[float] = Field(None, gt=0, description="Entry lifetime in seconds.")


class RouteConfig(BaseModel):
    """Binding of a mirror route segment to a remote post type."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    post_type: str = Field(..., pattern=r"^[a-z0-9_-]+$")
    route: Optional[str] = Field(None, pattern=r"^[A-Za-z0-9_-]+$")

    @property
    def name(self) -> str:
        return self.route or self.post_type


class PathsConfig(BaseModel):
    """Remote base paths of downloadable files, theme images and theme styles."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    downloads: str = "/wp-content/uploads/"
    images: str = "/wp-content/themes/ezbdataviz/assets/images/"
    styles: str = "/wp-content/themes/ezbdataviz/assets/build/css/"

    @field_validator("downloads", "images", "styles")
    def _slashes(cls, v: str) -> str:
        if not (v.startswith("/") and v.endswith("/")):
            raise ValueError("base paths must start and end with '/'")
        return v


class MirrorConfig(BaseModel):
    """Configuration of one mirror deployment."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    prefix: str = Field("", description="URL prefix the mirror is served under.")
    api: ApiConfig
    status: List[str] = Field(default_factory=lambda: ["publish"], min_length=1)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    routes: List[RouteConfig] = Field(..., min_length=1)
    paths: PathsConfig = Field(default_factory=PathsConfig)

    @field_validator("prefix", mode="before")
    def _strip_prefix_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @model_validator(mode="after")
    def _check_unique_routes(self) -> MirrorConfig:
        names = [r.name for r in self.routes]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate route names: {names}")
        post_types = [r.post_type for r in self.routes]
        if len(post_types) != len(set(post_types)):
            raise ValueError(f"duplicate post types: {post_types}")
        return self

    @property
    def use_login(self) -> bool:
        """Draft content is only visible to a logged-in user."""
        return "draft" in self.status

    def route(self, name: str) -> RouteConfig:
        for binding in self.routes:
            if binding.name == name:
                return binding
        raise KeyError(name)


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> MirrorConfig:
    """
    Read YAML or JSON and return a validated MirrorConfig.
    Raises FileNotFoundError when the config file is missing.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data: Dict[str, Any] = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Unsupported config format: {suffix}")

    try:
        return MirrorConfig(**data)
    except ValidationError:
        raise
