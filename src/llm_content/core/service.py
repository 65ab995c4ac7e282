"""Conversion service: the composition root of the Markdown pipeline."""

from __future__ import annotations

import logging
import os
import re
import tempfile
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from ..conversion.markdown import CONTROL_CHARS, FrontmatterBuilder, HtmlToMarkdown, strip_tags
from ..conversion.normalizer import StructuralNormalizer
from ..conversion.protocols import MarkdownConverter, MetadataBuilder
from ..errors import RenderFailure
from ..integrations.sitemap import NullSitemapLinks, SitemapLinks
from ..models.config import LlmContentConfig
from ..models.content import ContentItem, MarkdownDocument
from ..storage.store import ArtifactStore
from .protocols import AliasResolver, Clock, HtmlSupplier, Renderer

CORPUS_SEPARATOR = "\n\n---\n\n"

# Files listed after the items of the Markdown sitemap
CORPUS_FILES = ("llms.txt", "llms-full.txt")

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

# Longest description shown next to an entry of the llms.txt index
DESCRIPTION_LENGTH = 200

FRONTMATTER_BLOCK = re.compile(r"\A---\n.*?\n---\n", re.DOTALL)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConversionService:
    """
    Converts content items to Markdown artifacts and serves them.

    This is what drivers (queue workers, batch commands, HTTP read
    endpoints, save/delete handlers) call. All collaborators are passed in;
    the service reaches for no globals.

    Example:
        config = LlmContentConfig(enabled_content_types=["article"])
        service = ConversionService.from_config(config, renderer=my_renderer)

        document = service.convert(item, rendered_html)
        body = service.get_or_generate(item)
        backlog = service.find_missing(limit=100)
    """

    def __init__(
        self,
        store: ArtifactStore,
        config: Optional[LlmContentConfig] = None,
        renderer: Optional[Renderer] = None,
        converter: Optional[MarkdownConverter] = None,
        frontmatter: Optional[MetadataBuilder] = None,
        alias_resolver: Optional[AliasResolver] = None,
        sitemap_links: Optional[SitemapLinks] = None,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the service.

        Args:
            store: Artifact store
            config: Configuration snapshot (defaults if None)
            renderer: CMS renderer, needed for on-demand generation
            converter: HTML to Markdown converter (uses default if None)
            frontmatter: Frontmatter builder (uses default if None)
            alias_resolver: Canonical path lookup, optional
            sitemap_links: Sitemap capability (no-op if None)
            clock: Source of the generated-at time
            logger: Logger (module logger if None)
        """
        self._store = store
        self._config = config or LlmContentConfig()
        self._renderer = renderer
        self._converter = converter or HtmlToMarkdown(
            normalizer=StructuralNormalizer(
                accordion_title_class=self._config.conversion.accordion_title_class,
                embed_url_class=self._config.conversion.embed_url_class,
            )
        )
        self._frontmatter = frontmatter or FrontmatterBuilder(timezone=self._config.conversion.timezone)
        self._alias_resolver = alias_resolver
        self._sitemap_links: SitemapLinks = sitemap_links or NullSitemapLinks()
        self._clock = clock or _utc_now
        self._logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(
        cls,
        config: LlmContentConfig,
        renderer: Optional[Renderer] = None,
        alias_resolver: Optional[AliasResolver] = None,
        sitemap_links: Optional[SitemapLinks] = None,
    ) -> "ConversionService":
        """Compose a service and its store from configuration."""
        store = ArtifactStore(config.storage.database, timeout=config.storage.timeout)
        return cls(
            store,
            config=config,
            renderer=renderer,
            alias_resolver=alias_resolver,
            sitemap_links=sitemap_links,
        )

    @property
    def store(self) -> ArtifactStore:
        return self._store

    @property
    def config(self) -> LlmContentConfig:
        return self._config

    def _types(self, types: Optional[list[str]]) -> list[str]:
        return list(types) if types is not None else list(self._config.enabled_content_types)

    def _canonical_path(self, item: ContentItem) -> str:
        if self._alias_resolver is not None:
            try:
                path = self._alias_resolver.canonical_path_for(item.id)
            except Exception as e:
                self._logger.warning(f"Alias lookup failed for item {item.id}: {e}")
                path = None
            if path:
                return path
        if item.path:
            return item.path
        return self._config.conversion.item_path_template.format(item_id=item.id)

    def _render(self, item: ContentItem) -> str:
        if self._renderer is None:
            raise RenderFailure(item.id, "no renderer configured")
        try:
            return self._renderer.render(item, self._config.view_mode)
        except RenderFailure:
            raise
        except Exception as e:
            self._logger.error(f"Failed to render item {item.id} for Markdown conversion: {e}")
            raise RenderFailure(item.id, str(e)) from e

    def build_document(self, item: ContentItem, rendered_html: str) -> str:
        """Build the full Markdown body without storing it."""
        markdown = self._converter.convert(rendered_html)
        frontmatter = self._frontmatter.build(item, self._canonical_path(item))
        heading = self._frontmatter.heading(item)
        return f"{frontmatter}{heading}\n\n{markdown.strip()}\n"

    def convert(self, item: ContentItem, rendered_html: Optional[str]) -> MarkdownDocument:
        """
        Convert rendered HTML for an item and store the result.

        Args:
            item: The content item
            rendered_html: Markup produced by the renderer for the item

        Returns:
            The stored document

        Raises:
            RenderFailure: The markup is unusable; nothing is written
            StorageFailure: The store rejected the write
        """
        if rendered_html is None or not rendered_html.strip():
            self._logger.error(f"Renderer produced no markup for item {item.id}")
            raise RenderFailure(item.id, "renderer produced no markup")

        body = self.build_document(item, rendered_html)
        generated_at = int(self._clock().timestamp())
        self._store.upsert(item.key, body, generated_at)

        try:
            self._sitemap_links.save_item_link(item)
        except Exception as e:
            self._logger.warning(f"Could not update sitemap link for item {item.id}: {e}")

        self._logger.debug(f"Converted item {item.id} ({item.langcode}) to {len(body)} bytes of Markdown")
        return MarkdownDocument(
            item_id=item.id,
            langcode=item.langcode,
            body=body,
            generated_at=generated_at,
        )

    def generate(self, item: ContentItem) -> MarkdownDocument:
        """Render an item with the configured renderer, then convert it."""
        return self.convert(item, self._render(item))

    def get_or_generate(self, item: ContentItem, html_supplier: Optional[HtmlSupplier] = None) -> str:
        """
        Return the stored body, generating it on a miss.

        Args:
            item: The content item
            html_supplier: Produces rendered HTML; only called on a miss.
                Defaults to the configured renderer.

        Returns:
            The Markdown body
        """
        stored = self._store.get(item.key)
        if stored is not None:
            return stored

        self._logger.info(f"No stored Markdown for item {item.id} ({item.langcode}), generating")
        if html_supplier is None:
            html = self._render(item)
        else:
            try:
                html = html_supplier()
            except RenderFailure:
                raise
            except Exception as e:
                self._logger.error(f"Failed to render item {item.id} for Markdown conversion: {e}")
                raise RenderFailure(item.id, str(e)) from e
        return self.convert(item, html).body

    def get(self, item: ContentItem) -> Optional[str]:
        """Return the stored body without generating."""
        return self._store.get(item.key)

    def delete(self, item_id: int, langcode: Optional[str] = None) -> int:
        """
        Delete stored Markdown for one language, or all languages when None.

        Returns:
            Number of documents removed
        """
        removed = self._store.delete(item_id, langcode)
        if langcode is None:
            try:
                self._sitemap_links.delete_item_link(item_id)
            except Exception as e:
                self._logger.warning(f"Could not remove sitemap link for item {item_id}: {e}")
        self._logger.debug(f"Deleted {removed} document(s) for item {item_id}")
        return removed

    def find_missing(self, types: Optional[list[str]] = None, limit: int = 0) -> list[int]:
        """Return ids of eligible items without a default-language artifact."""
        return self._store.find_missing(self._types(types), limit)

    def _banner(self) -> str:
        site = self._config.site
        output = f"# {site.name}\n\n"
        if site.slogan:
            output += f"> {site.slogan}\n\n"
        return output

    def export_corpus(self, types: Optional[list[str]] = None, limit: Optional[int] = None) -> str:
        """
        Concatenate stored documents into one corpus (llms-full.txt).

        Args:
            types: Content types to include (configured types if None)
            limit: Maximum documents (configured maximum if None)

        Returns:
            Site banner followed by the documents, each closed by a rule
        """
        output = self._banner()
        types = self._types(types)
        if not types:
            return output

        for body in self._store.list_all(types, limit or self._config.export.max_items):
            output += body.rstrip("\n") + CORPUS_SEPARATOR
        return output

    def write_corpus(self, path: Optional[Path] = None) -> Path:
        """
        Write the exported corpus to a file, replacing it atomically.

        Args:
            path: Target file (configured corpus file if None)

        Returns:
            The written path
        """
        target = path or self._config.export.corpus_file
        if target is None:
            raise ValueError("No corpus file configured")
        target = Path(target)
        target.parent.mkdir(parents=True, exist_ok=True)

        content = self.export_corpus()
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        self._logger.info(f"Wrote corpus to {target}")
        return target

    @staticmethod
    def describe(body: str) -> str:
        """First prose paragraph of a stored document, shortened."""
        content = FRONTMATTER_BLOCK.sub("", body, count=1)
        for block in re.split(r"\n\s*\n", content):
            text = " ".join(block.split())
            if not text or text.startswith(("#", "!", "---", "|", ">")):
                continue
            return text[:DESCRIPTION_LENGTH].rstrip()
        return ""

    def build_index(self, types: Optional[list[str]] = None, limit: Optional[int] = None) -> str:
        """
        Build the llms.txt index of published items, newest first.

        Each entry links to the item's Markdown view and carries a short
        description taken from its stored document, when there is one.
        """
        output = self._banner()
        types = self._types(types)
        if not types:
            return output

        items = self._store.list_items(types, limit or self._config.export.index_items)
        if not items:
            return output

        output += "## Content\n\n"
        for item in items:
            title = CONTROL_CHARS.sub(" ", strip_tags(item.title)).strip() or "Untitled"
            title = title.replace("[", "\\[").replace("]", "\\]")
            url = self._config.conversion.markdown_path_template.format(item_id=item.id)
            line = f"- [{title}]({url})"

            body = self._store.get(item.key)
            description = self.describe(body) if body else ""
            if description:
                line += f": {description}"
            output += line + "\n"
        return output

    def build_sitemap(self, types: Optional[list[str]] = None, limit: Optional[int] = None) -> str:
        """
        Build an XML sitemap of the Markdown views, most recently changed first.

        Every published item of the selected types gets an entry with its
        last change time. The llms.txt and llms-full.txt files are listed
        last. Locations are prefixed with the configured site base URL.
        """
        base_url = self._config.site.base_url.rstrip("/")
        tz = ZoneInfo(self._config.conversion.timezone)
        urlset = ET.Element("urlset", xmlns=SITEMAP_NAMESPACE)

        types = self._types(types)
        items = self._store.list_items(types, limit or self._config.export.sitemap_items, by_changed=True)
        for item in items:
            path = self._config.conversion.markdown_path_template.format(item_id=item.id)
            changed = (item.revised or item.created).astimezone(tz)

            entry = ET.SubElement(urlset, "url")
            ET.SubElement(entry, "loc").text = base_url + path
            ET.SubElement(entry, "lastmod").text = changed.isoformat(timespec="seconds")
            ET.SubElement(entry, "changefreq").text = "weekly"

        for name in CORPUS_FILES:
            entry = ET.SubElement(urlset, "url")
            ET.SubElement(entry, "loc").text = f"{base_url}/{name}"
            ET.SubElement(entry, "changefreq").text = "daily"

        self._logger.debug(f"Built sitemap with {len(items)} item(s)")
        document: str = ET.tostring(urlset, encoding="unicode")
        return XML_DECLARATION + document + "\n"
