"""Exception types raised by llm_content."""

from __future__ import annotations

from typing import Optional


class LlmContentError(Exception):
    """Base class for all llm_content errors."""


class RenderFailure(LlmContentError):
    """
    The renderer failed or produced markup that can not be converted.

    Conversion is aborted and nothing is written to the store, so a
    previously stored artifact for the item stays in place.
    """

    def __init__(self, item_id: Optional[int], reason: str):
        self.item_id = item_id
        self.reason = reason
        if item_id is None:
            super().__init__(f"Render failed: {reason}")
        else:
            super().__init__(f"Render failed for item {item_id}: {reason}")


class StorageFailure(LlmContentError):
    """The artifact store backend is unavailable or rejected an operation."""
