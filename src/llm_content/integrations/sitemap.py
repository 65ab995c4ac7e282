"""Optional sitemap integration for Markdown URLs."""

from typing import Protocol, runtime_checkable

from ..models.content import ContentItem


@runtime_checkable
class SitemapLinks(Protocol):
    """
    Capability for keeping a sitemap in step with stored Markdown.

    Chosen when the service is composed: a real sitemap backend when one
    is installed and configured, otherwise NullSitemapLinks.
    """

    def save_item_link(self, item: ContentItem) -> None:
        """Add or refresh the sitemap entry for an item's Markdown URL."""
        ...

    def delete_item_link(self, item_id: int) -> None:
        """Remove the sitemap entry for an item."""
        ...


class NullSitemapLinks:
    """Sitemap capability used when no sitemap backend is configured."""

    def save_item_link(self, item: ContentItem) -> None:
        return None

    def delete_item_link(self, item_id: int) -> None:
        return None
