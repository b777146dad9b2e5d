"""wp_mirror.client: access to the remote WordPress site."""

from .api import WpApiClient

__all__ = ["WpApiClient"]
