"""Link safety for generated Markdown."""

from .link_sanitizer import LinkSanitizer

__all__ = ["LinkSanitizer"]
