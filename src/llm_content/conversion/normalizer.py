"""Structural normalization of rendered HTML before Markdown conversion."""

import copy
import logging
import re
from typing import Callable

from bs4 import BeautifulSoup, Tag
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

logger = logging.getLogger(__name__)

DEFAULT_ACCORDION_TITLE_CLASS = "field--name-field-accordion-title"
DEFAULT_EMBED_URL_CLASS = "field--name-field-embed-url"

EMBED_LINK_TEXT = "Embedded Video"

HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)

# Minimal escaping, void elements written as <img ...> rather than <img .../>
OUTPUT_FORMATTER = HTMLFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
)


def _is_detached(element: Tag) -> bool:
    """True when an earlier removal already took the element out of the tree."""
    return element.decomposed or element.parent is None


class StructuralNormalizer:
    """
    Strips page chrome and rewrites non-Markdown-friendly structures.

    The passes run in a fixed order because later passes rely on the
    removals and insertions of earlier ones:

    1. comment sections (id or data-drupal-selector "comments")
    2. inline action-link lists (<ul class="links inline">)
    3. <nav> elements
    4. <details>/<summary> accordions -> <h3> + hoisted body
    5. <figure> -> image + emphasized caption paragraph
    6. <iframe> -> "Embedded Video" link (http/https sources only)
    7. accordion title fields -> <h3>
    8. embed URL fields -> "Embedded Video" link

    Every pass collects its matches into a list before touching the tree,
    so detaching one match never hides a sibling match from the pass.
    A pass that fails is logged and skipped; normalization never raises.

    Example:
        normalizer = StructuralNormalizer()
        html = normalizer.normalize("<details><summary>Q</summary><p>A</p></details>")
        # "<h3>Q</h3><p>A</p>"
    """

    def __init__(
        self,
        accordion_title_class: str = DEFAULT_ACCORDION_TITLE_CLASS,
        embed_url_class: str = DEFAULT_EMBED_URL_CLASS,
    ):
        """
        Initialize the normalizer.

        Args:
            accordion_title_class: Class token of accordion title fields
            embed_url_class: Class token of plain-text embed URL fields
        """
        self._accordion_title_class = accordion_title_class
        self._embed_url_class = embed_url_class

    @property
    def _passes(self) -> list[tuple[str, Callable[[BeautifulSoup], None]]]:
        return [
            ("comments", self._remove_comments),
            ("inline links", self._remove_inline_links),
            ("nav", self._remove_nav),
            ("details", self._rewrite_details),
            ("figure", self._rewrite_figures),
            ("iframe", self._rewrite_iframes),
            ("accordion title", self._rewrite_accordion_titles),
            ("embed url", self._rewrite_embed_urls),
        ]

    def normalize(self, html: str) -> str:
        """
        Normalize an HTML fragment.

        Args:
            html: Rendered HTML, with or without a root element

        Returns:
            The normalized HTML fragment, or the input unchanged when it
            can not be parsed into any nodes
        """
        if not html or not html.strip():
            return html

        try:
            soup = BeautifulSoup(html, "html.parser")
        except Exception as e:
            logger.warning(f"Could not parse HTML for normalization: {e}")
            return html

        if not soup.contents:
            return html

        for name, apply_pass in self._passes:
            try:
                apply_pass(soup)
            except Exception as e:
                logger.warning(f"Normalization pass '{name}' failed, leaving markup as-is: {e}")

        return soup.decode(formatter=OUTPUT_FORMATTER)

    @staticmethod
    def _remove_all(elements: list[Tag]) -> None:
        for element in elements:
            if not element.decomposed:
                element.decompose()

    def _remove_comments(self, soup: BeautifulSoup) -> None:
        self._remove_all(soup.find_all(id="comments"))
        self._remove_all(soup.find_all(attrs={"data-drupal-selector": "comments"}))

    def _remove_inline_links(self, soup: BeautifulSoup) -> None:
        self._remove_all(soup.select("ul.links.inline"))

    def _remove_nav(self, soup: BeautifulSoup) -> None:
        self._remove_all(soup.find_all("nav"))

    def _rewrite_details(self, soup: BeautifulSoup) -> None:
        for details in soup.find_all("details"):
            if _is_detached(details):
                continue

            summary = details.find("summary", recursive=False)
            if summary is not None:
                if summary.get_text().strip():
                    # Clone the children rather than copying text so inline
                    # markup (links, emphasis) survives in the heading
                    heading = soup.new_tag("h3")
                    for child in list(summary.contents):
                        heading.append(copy.copy(child))
                    details.insert_before(heading)
                summary.decompose()

            details.unwrap()

    def _rewrite_figures(self, soup: BeautifulSoup) -> None:
        for figure in soup.find_all("figure"):
            if _is_detached(figure):
                continue

            image = figure.find("img")
            if image is not None:
                figure.insert_before(copy.copy(image))

            caption = figure.find("figcaption")
            if caption is not None and caption.get_text().strip():
                paragraph = soup.new_tag("p")
                emphasis = soup.new_tag("em")
                for child in list(caption.contents):
                    emphasis.append(copy.copy(child))
                paragraph.append(emphasis)
                figure.insert_before(paragraph)

            figure.decompose()

    def _embed_link(self, soup: BeautifulSoup, url: str) -> Tag:
        paragraph = soup.new_tag("p")
        link = soup.new_tag("a", href=url)
        link.string = EMBED_LINK_TEXT
        paragraph.append(link)
        return paragraph

    def _rewrite_iframes(self, soup: BeautifulSoup) -> None:
        # Every iframe goes, with or without a usable src; the Markdown
        # transform would otherwise drop it without leaving a link behind
        for iframe in soup.find_all("iframe"):
            if _is_detached(iframe):
                continue

            src = iframe.get("src")
            if isinstance(src, str) and HTTP_URL.match(src):
                iframe.insert_before(self._embed_link(soup, src))
            iframe.decompose()

    def _rewrite_accordion_titles(self, soup: BeautifulSoup) -> None:
        for element in soup.find_all(class_=self._accordion_title_class):
            if _is_detached(element):
                continue

            heading = soup.new_tag("h3")
            heading.string = element.get_text().strip()
            element.replace_with(heading)

    def _rewrite_embed_urls(self, soup: BeautifulSoup) -> None:
        for element in soup.find_all(class_=self._embed_url_class):
            if _is_detached(element):
                continue

            url = element.get_text().strip()
            if HTTP_URL.match(url):
                element.replace_with(self._embed_link(soup, url))

