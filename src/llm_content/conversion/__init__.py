"""Content conversion for llm_content (HTML to Markdown, frontmatter)."""

from .markdown import FrontmatterBuilder, HtmlToMarkdown, strip_tags
from .normalizer import StructuralNormalizer
from .protocols import HtmlNormalizer, MarkdownConverter, MetadataBuilder

__all__ = [
    # Protocols
    "HtmlNormalizer",
    "MarkdownConverter",
    "MetadataBuilder",
    # Implementations
    "StructuralNormalizer",
    "HtmlToMarkdown",
    "FrontmatterBuilder",
    "strip_tags",
]
