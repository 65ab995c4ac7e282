"""llm_content configuration, content and event models."""

from .config import (
    ConversionConfig,
    ExportConfig,
    LlmContentConfig,
    SiteConfig,
    StorageConfig,
)
from .content import ArtifactKey, ContentItem, MarkdownDocument
from .events import BatchStats, ConversionEvent, EventEmitter, EventType

__all__ = [
    # Config
    "ConversionConfig",
    "ExportConfig",
    "LlmContentConfig",
    "SiteConfig",
    "StorageConfig",
    # Content
    "ArtifactKey",
    "ContentItem",
    "MarkdownDocument",
    # Events
    "BatchStats",
    "ConversionEvent",
    "EventEmitter",
    "EventType",
]
