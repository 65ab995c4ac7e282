"""Protocol definitions for content conversion."""

from typing import Protocol

from ..models.content import ContentItem


class HtmlNormalizer(Protocol):
    """
    Protocol for the DOM-level cleanup pass run before conversion.

    Implementations remove page chrome and rewrite structures the
    Markdown transform can not render faithfully. They must not raise
    on malformed markup.
    """

    def normalize(self, html: str) -> str:
        """
        Normalize an HTML fragment.

        Args:
            html: Rendered HTML fragment

        Returns:
            Normalized HTML fragment
        """
        ...


class MarkdownConverter(Protocol):
    """
    Protocol for converting HTML to Markdown.

    Implementations convert rendered HTML to sanitized Markdown.
    """

    def convert(self, html: str) -> str:
        """
        Convert HTML to Markdown.

        Args:
            html: HTML content string

        Returns:
            Markdown string
        """
        ...


class MetadataBuilder(Protocol):
    """Protocol for the frontmatter and heading of a document."""

    def build(self, item: ContentItem, canonical_path: str) -> str:
        ...

    def heading(self, item: ContentItem) -> str:
        ...
