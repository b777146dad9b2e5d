"""wp_mirror.exceptions: errors raised while building, rendering and fetching mirror content."""

from __future__ import annotations


class MirrorError(Exception):
    """Base class for every fatal mirror error."""


class DuplicateLinkError(MirrorError):
    """Two content items resolve to the same remote link path."""

    def __init__(self, page_id: int | str, path: str) -> None:
        super().__init__(f"duplicate link: {page_id} ({path})")
        self.page_id = page_id
        self.path = path


class MarkupError(MirrorError):
    """Fetched page markup could not be parsed or lacks the document subtree."""


class AssetPathError(MirrorError):
    """An image URL does not start with any known asset base path."""

    def __init__(self, url: str) -> None:
        super().__init__(f"could not find url {url}")
        self.url = url


class LoginError(MirrorError):
    """Cookie login against the remote site did not succeed."""


__all__ = [
    "MirrorError",
    "DuplicateLinkError",
    "MarkupError",
    "AssetPathError",
    "LoginError",
]
