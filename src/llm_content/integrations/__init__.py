"""Optional integrations selected when the service is composed."""

from .sitemap import NullSitemapLinks, SitemapLinks

__all__ = ["NullSitemapLinks", "SitemapLinks"]
