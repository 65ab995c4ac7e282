"""
llm_content - Convert rendered CMS content to Markdown for LLMs and crawlers.

Usage:
    from llm_content import ConversionService, LlmContentConfig

    config = LlmContentConfig(enabled_content_types=["article"])
    service = ConversionService.from_config(config, renderer=my_renderer)

    document = service.convert(item, rendered_html)
    corpus = service.export_corpus()
"""

__version__ = "1.0.0"

from .conversion import FrontmatterBuilder, HtmlToMarkdown, StructuralNormalizer
from .core import BacklogProcessor, ContentEventHandler, ConversionService
from .errors import LlmContentError, RenderFailure, StorageFailure
from .integrations import NullSitemapLinks, SitemapLinks
from .models.config import (
    ConversionConfig,
    ExportConfig,
    LlmContentConfig,
    SiteConfig,
    StorageConfig,
)
from .models.content import ContentItem, MarkdownDocument
from .models.events import BatchStats, ConversionEvent, EventType
from .security import LinkSanitizer
from .storage import ArtifactStore

__all__ = [
    "__version__",
    # Core
    "ConversionService",
    "BacklogProcessor",
    "ContentEventHandler",
    # Conversion
    "StructuralNormalizer",
    "HtmlToMarkdown",
    "FrontmatterBuilder",
    "LinkSanitizer",
    # Storage
    "ArtifactStore",
    # Integrations
    "SitemapLinks",
    "NullSitemapLinks",
    # Config
    "LlmContentConfig",
    "SiteConfig",
    "ConversionConfig",
    "StorageConfig",
    "ExportConfig",
    # Models
    "ContentItem",
    "MarkdownDocument",
    # Events
    "EventType",
    "ConversionEvent",
    "BatchStats",
    # Errors
    "LlmContentError",
    "RenderFailure",
    "StorageFailure",
]
