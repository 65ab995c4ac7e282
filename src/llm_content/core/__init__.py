"""Conversion service, backlog processing and content event handling."""

from .batch import BacklogProcessor
from .handlers import ContentEventHandler
from .protocols import AliasResolver, Clock, HtmlSupplier, ItemSource, Renderer
from .service import ConversionService

__all__ = [
    "AliasResolver",
    "BacklogProcessor",
    "Clock",
    "ContentEventHandler",
    "ConversionService",
    "HtmlSupplier",
    "ItemSource",
    "Renderer",
]
