"""Backlog processing: generate Markdown for items that have none yet."""

from __future__ import annotations

import logging
import time
from typing import Optional

from ..errors import RenderFailure, StorageFailure
from ..models.events import BatchStats, ConversionEvent, EventEmitter, EventType
from .protocols import ItemSource
from .service import ConversionService

logger = logging.getLogger(__name__)


class BacklogProcessor:
    """
    Works through the conversion backlog in batches.

    Asks the service which eligible items lack a default-language
    artifact, loads them in batches and generates each one. A failing
    item is reported and skipped; the run continues with the next.

    Example:
        processor = BacklogProcessor(service, item_source=store)

        def on_event(event: ConversionEvent) -> None:
            if event.type == EventType.ITEM_FAILED:
                print(f"Failed: {event.item_id} - {event.error}")

        stats = processor.run(batch_size=25, emit=on_event)
        print(f"Converted {stats.processed} of {stats.total}")
    """

    def __init__(self, service: ConversionService, item_source: Optional[ItemSource] = None):
        """
        Initialize the processor.

        Args:
            service: Conversion service doing the work
            item_source: Loads items by id (the service's store if None)
        """
        self._service = service
        self._items = item_source or service.store
        self._cancelled = False

    def cancel(self) -> None:
        """Stop after the item currently being converted."""
        self._cancelled = True

    def _select(self, types: Optional[list[str]], force: bool, limit: int) -> list[int]:
        if not force:
            return self._service.find_missing(types, limit)
        selected_types = types if types is not None else self._service.config.enabled_content_types
        return self._service.store.list_eligible(list(selected_types), limit)

    def run(
        self,
        types: Optional[list[str]] = None,
        force: bool = False,
        batch_size: int = 25,
        limit: int = 0,
        emit: Optional[EventEmitter] = None,
    ) -> BatchStats:
        """
        Generate artifacts for the backlog.

        Args:
            types: Content types to process (configured types if None)
            force: Regenerate every eligible item, not only missing ones
            batch_size: Items loaded per batch
            limit: Maximum items to process (0 = all)
            emit: Optional callback for progress events

        Returns:
            Statistics of the run
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        def _emit(event: ConversionEvent) -> None:
            if emit:
                emit(event)

        self._cancelled = False
        start = time.monotonic()
        item_ids = self._select(types, force, limit)
        stats = BatchStats(total=len(item_ids))

        logger.info(f"Processing {stats.total} item(s) in batches of {batch_size}")
        _emit(ConversionEvent(type=EventType.STARTED, total=stats.total, message=f"{stats.total} item(s) queued"))

        for offset in range(0, len(item_ids), batch_size):
            if self._cancelled:
                break

            batch = item_ids[offset : offset + batch_size]
            items = self._items.load_items(batch)

            # Items removed from the catalog since selection count as skipped
            loaded = {item.id for item in items}
            for item_id in batch:
                if item_id not in loaded:
                    stats.skipped += 1
                    _emit(
                        ConversionEvent(
                            type=EventType.ITEM_SKIPPED,
                            item_id=item_id,
                            message="Item no longer exists",
                        )
                    )

            for item in items:
                if self._cancelled:
                    break
                try:
                    self._service.generate(item)
                except (RenderFailure, StorageFailure) as e:
                    stats.failed += 1
                    logger.warning(f"Could not convert item {item.id}: {e}")
                    _emit(
                        ConversionEvent(
                            type=EventType.ITEM_FAILED,
                            item_id=item.id,
                            langcode=item.langcode,
                            error=str(e),
                        )
                    )
                    continue

                stats.processed += 1
                _emit(
                    ConversionEvent(
                        type=EventType.ITEM_CONVERTED,
                        item_id=item.id,
                        langcode=item.langcode,
                    )
                )

            _emit(
                ConversionEvent(
                    type=EventType.BATCH_PROGRESS,
                    current=stats.done,
                    total=stats.total,
                )
            )

        stats.duration_seconds = time.monotonic() - start
        logger.info(
            f"Backlog run finished: {stats.processed} converted, {stats.failed} failed, "
            f"{stats.skipped} skipped in {stats.duration_seconds:.1f}s"
        )
        _emit(
            ConversionEvent(
                type=EventType.COMPLETED,
                current=stats.done,
                total=stats.total,
                message=f"Converted {stats.processed} item(s)",
            )
        )
        return stats
