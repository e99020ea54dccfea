"""Site audit module -- URL classification, crawling and sitemap reconciliation."""

from seo_analyzer.modules.site_audit.crawler import SiteCrawler
from seo_analyzer.modules.site_audit.sitemap import SitemapParseError, SitemapReconciler
from seo_analyzer.modules.site_audit.state import CrawlState, SitemapState

__all__ = [
    "CrawlState",
    "SiteCrawler",
    "SitemapParseError",
    "SitemapReconciler",
    "SitemapState",
]
