"""Protocols for the collaborators the conversion service consumes."""

from datetime import datetime
from typing import Callable, Optional, Protocol

from ..models.content import ContentItem

# Returns the current time; injected so timestamps are testable
Clock = Callable[[], datetime]

# Produces rendered HTML on demand (called only on a cache miss)
HtmlSupplier = Callable[[], str]


class Renderer(Protocol):
    """
    Protocol for the CMS rendering step.

    Turns a content item and a view mode into an HTML string. May raise;
    the service reports any exception as a RenderFailure.
    """

    def render(self, item: ContentItem, view_mode: str) -> str:
        ...


class AliasResolver(Protocol):
    """
    Protocol for canonical path lookup.

    Best effort: returning None makes the service fall back to the raw
    item path.
    """

    def canonical_path_for(self, item_id: int) -> Optional[str]:
        ...


class ItemSource(Protocol):
    """Protocol for loading content items by id (default language)."""

    def load_items(self, item_ids: list[int]) -> list[ContentItem]:
        ...
