"""HTML to Markdown conversion and frontmatter."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

import html2text
from bs4 import BeautifulSoup

from ..models.content import ContentItem
from ..security.link_sanitizer import LinkSanitizer
from .normalizer import StructuralNormalizer
from .protocols import HtmlNormalizer

logger = logging.getLogger(__name__)

# Elements dropped outright before the transform
REMOVE_ELEMENTS = ["script", "style", "iframe", "nav", "header", "footer", "aside"]

CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
TRAILING_WHITESPACE = re.compile(r"[ \t\u00a0]+$", re.MULTILINE)
BLANK_LINE_RUN = re.compile(r"\n{3,}")


def strip_tags(value: str) -> str:
    """Remove HTML tags, keeping the text content."""
    if "<" not in value:
        return value
    text: str = BeautifulSoup(value, "html.parser").get_text()
    return text


class HtmlToMarkdown:
    """
    Converts rendered HTML content to clean Markdown.

    Runs the structural normalizer, drops chrome elements and unsafe
    href/src values, transforms with html2text (ATX headings, inline
    links, no wrapping), then checks link schemes again on the Markdown
    text and collapses blank-line runs.

    Example:
        converter = HtmlToMarkdown()
        markdown = converter.convert("<h2>Intro</h2><p>Hello</p>")
    """

    def __init__(
        self,
        normalizer: Optional[HtmlNormalizer] = None,
        link_sanitizer: Optional[LinkSanitizer] = None,
        remove_elements: Optional[list[str]] = None,
        body_width: int = 0,
        ignore_images: bool = False,
        ignore_tables: bool = False,
        unicode_snob: bool = True,
        escape_snob: bool = False,
    ):
        """
        Initialize the Markdown converter.

        Args:
            normalizer: Structural normalizer (uses default if None)
            link_sanitizer: Link scheme sanitizer (uses default if None)
            remove_elements: Tag names dropped with their content
            body_width: Max line width (0 = no wrapping)
            ignore_images: Skip image conversion
            ignore_tables: Skip table conversion
            unicode_snob: Use Unicode chars where possible
            escape_snob: Escape all special Markdown chars
        """
        self._normalizer: HtmlNormalizer = normalizer or StructuralNormalizer()
        self._link_sanitizer = link_sanitizer or LinkSanitizer()
        self._remove_elements = remove_elements or list(REMOVE_ELEMENTS)

        self._options = {
            # Line width (0 = no wrapping for consistent output)
            "body_width": body_width,
            # Link handling: always [text](url) so every target passes the sanitizer
            "inline_links": True,
            "wrap_links": False,
            "protect_links": False,
            "use_automatic_links": False,
            "skip_internal_links": False,
            # Content handling
            "ignore_images": ignore_images,
            "ignore_tables": ignore_tables,
            "unicode_snob": unicode_snob,
            "escape_snob": escape_snob,
            "mark_code": False,
            "default_image_alt": "",
            "single_line_break": False,
        }

    def _new_converter(self) -> html2text.HTML2Text:
        # HTML2Text keeps its output buffer between handle() calls, so each
        # conversion gets a fresh instance
        converter = html2text.HTML2Text()
        for name, value in self._options.items():
            setattr(converter, name, value)
        return converter

    def _prepare(self, html: str) -> str:
        """Remove elements the Markdown output should never contain and unsafe link targets."""
        soup = BeautifulSoup(html, "html.parser")
        for element in soup.find_all(self._remove_elements):
            if not element.decomposed:
                element.decompose()
        self._link_sanitizer.sanitize_tree(soup)
        return str(soup)

    def _clean_output(self, markdown: str) -> str:
        """Clean up the converted Markdown."""
        # Trailing spaces and non-breaking spaces; whitespace-only lines become blank
        markdown = TRAILING_WHITESPACE.sub("", markdown)

        # Collapse runs of blank lines left by nested wrapper elements
        markdown = BLANK_LINE_RUN.sub("\n\n", markdown)

        return markdown.strip() + "\n"

    def _transform(self, html: str) -> str:
        try:
            html = self._prepare(html)
            markdown: str = self._new_converter().handle(html)
            return markdown
        except Exception as e:
            logger.error(f"Failed to convert HTML to Markdown: {e}")
            # Return plain text as fallback
            soup = BeautifulSoup(html, "html.parser")
            for element in soup.find_all(self._remove_elements):
                if not element.decomposed:
                    element.decompose()
            text: str = soup.get_text(separator="\n")
            return text

    def convert(self, html: str) -> str:
        """
        Convert rendered HTML to Markdown.

        Args:
            html: Rendered HTML fragment

        Returns:
            Markdown string ending in a single newline
        """
        normalized = self._normalizer.normalize(html)
        markdown = self._transform(normalized)
        markdown = self._link_sanitizer.sanitize(markdown)
        return self._clean_output(markdown)


class FrontmatterBuilder:
    """
    Builds the YAML frontmatter and title heading of a Markdown document.

    Example:
        builder = FrontmatterBuilder()
        frontmatter = builder.build(item, "/blog/hello-world")
        heading = builder.heading(item)
    """

    def __init__(self, timezone: str = "UTC", link_sanitizer: Optional[LinkSanitizer] = None):
        """
        Initialize the frontmatter builder.

        Args:
            timezone: IANA timezone name used to render dates
            link_sanitizer: Applied to the title (uses default if None)
        """
        self._tz = ZoneInfo(timezone)
        self._link_sanitizer = link_sanitizer or LinkSanitizer()

    @staticmethod
    def quote(value: str, link_sanitizer: Optional[LinkSanitizer] = None) -> str:
        """Make a value safe for a double-quoted YAML scalar."""
        value = strip_tags(value)
        value = CONTROL_CHARS.sub("", value)
        if link_sanitizer is not None:
            value = link_sanitizer.sanitize(value)
        value = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{value}"'

    def format_date(self, value: datetime) -> str:
        if value.tzinfo is not None:
            value = value.astimezone(self._tz)
        return value.strftime("%Y-%m-%d")

    def build(self, item: ContentItem, canonical_path: str) -> str:
        """
        Build YAML frontmatter string.

        Args:
            item: The content item being converted
            canonical_path: The item's alias or fallback path

        Returns:
            YAML frontmatter string (with --- delimiters)
        """
        lines = ["---"]
        lines.append(f"title: {self.quote(item.title or '', self._link_sanitizer)}")
        lines.append(f"url: {self.quote(canonical_path)}")
        lines.append(f"type: {item.type}")
        lines.append(f"date: {self.format_date(item.created)}")
        if item.revised is not None:
            lines.append(f"updated: {self.format_date(item.revised)}")
        lines.append("---")
        return "\n".join(lines) + "\n\n"

    def heading(self, item: ContentItem) -> str:
        """
        Build the H1 title line.

        Markup is stripped from the label and Markdown links in it go
        through the link sanitizer, so the heading renders back to HTML
        without raw tags or disallowed link targets.
        """
        title = CONTROL_CHARS.sub(" ", strip_tags(item.title or ""))
        title = self._link_sanitizer.sanitize(title).strip()
        return f"# {title}"
