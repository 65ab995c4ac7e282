"""Reactions to content lifecycle events from the CMS."""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import RenderFailure
from ..models.content import ContentItem, MarkdownDocument
from .service import ConversionService

logger = logging.getLogger(__name__)


class ContentEventHandler:
    """
    Keeps the catalog and stored artifacts in step with content changes.

    Saving an item mirrors it into the catalog. When automatic generation
    is on and the item's type is enabled, a published item is regenerated
    and an unpublished one loses its artifact for that language. Deleting
    an item removes every language.

    A render failure on save is logged; any prior artifact stays in place.

    Example:
        handler = ContentEventHandler(service)
        handler.item_saved(item)
        handler.item_deleted(item.id)
    """

    def __init__(self, service: ConversionService):
        self._service = service

    def item_saved(self, item: ContentItem) -> Optional[MarkdownDocument]:
        """
        Handle an insert or update of one item translation.

        Returns:
            The regenerated document, or None when nothing was generated
        """
        self._service.store.save_item(item)

        config = self._service.config
        if not config.auto_generate or not config.is_enabled_type(item.type):
            return None

        if not item.published:
            removed = self._service.delete(item.id, item.langcode)
            if removed:
                logger.info(f"Removed Markdown for unpublished item {item.id} ({item.langcode})")
            return None

        try:
            return self._service.generate(item)
        except RenderFailure as e:
            logger.error(f"Failed to regenerate Markdown for item {item.id}: {e.reason}")
            return None

    def translation_deleted(self, item_id: int, langcode: str) -> int:
        """Handle removal of a single translation."""
        self._service.store.remove_item(item_id, langcode)
        return self._service.delete(item_id, langcode)

    def item_deleted(self, item_id: int) -> int:
        """Handle deletion of an item and all its translations."""
        self._service.store.remove_item(item_id)
        removed = self._service.delete(item_id)
        logger.info(f"Removed {removed} Markdown document(s) for deleted item {item_id}")
        return removed
