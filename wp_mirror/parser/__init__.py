"""wp_mirror.parser: transformation of remote page markup."""

from .html_rewriter import HtmlRewriter

__all__ = ["HtmlRewriter"]
