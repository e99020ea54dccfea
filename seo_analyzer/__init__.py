"""SEO Analyzer -- crawl a site, reconcile it with its sitemap, and report."""

__version__ = "1.0.0"
