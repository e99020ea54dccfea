"""SEO analyzer -- orchestrates one analysis run.

Crawl, sitemap expansion, reconciliation, report aggregation and report
export, in that order.  All state lives for a single call to
:meth:`SEOAnalyzer.analyze`.
"""

import logging
import os
import time
from typing import Any, Optional

from seo_analyzer.integrations.page_fetcher import PageFetcher
from seo_analyzer.modules.reporting.report_engine import ReportEngine
from seo_analyzer.modules.reporting.report_renderer import ReportRenderer
from seo_analyzer.modules.site_audit.crawler import SiteCrawler
from seo_analyzer.modules.site_audit.sitemap import SitemapReconciler, reconcile
from seo_analyzer.modules.site_audit.state import CrawlState
from seo_analyzer.modules.site_audit.url_classifier import base_url

logger = logging.getLogger(__name__)

DEFAULT_REPORT_FILES = {
    "json": "seo-report.json",
    "html": "seo-report.html",
    "pdf": "seo-report.pdf",
}


class SEOAnalyzer:
    """Run a full crawl + sitemap audit for one start URL."""

    def __init__(
        self,
        start_url: str,
        max_depth: int = 10,
        keywords: Optional[list[str]] = None,
        fetcher: Optional[Any] = None,
        optimizer: Optional[Any] = None,
        concurrency: int = 1,
        max_index_depth: int = 5,
        report_engine: Optional[ReportEngine] = None,
        renderer: Optional[ReportRenderer] = None,
        owns_fetcher: Optional[bool] = None,
    ) -> None:
        self.start_url = start_url
        self.origin = base_url(start_url)
        self.max_depth = max_depth
        self._keywords = list(keywords or [])
        self._fetcher = fetcher
        # A fetcher we own is closed at the end of analyze().
        self._owns_fetcher = fetcher is None if owns_fetcher is None else owns_fetcher
        self._optimizer = optimizer
        self._concurrency = concurrency
        self._max_index_depth = max_index_depth
        self._report_engine = report_engine or ReportEngine()
        self._renderer = renderer or ReportRenderer(
            title_length=(self._report_engine.title_min, self._report_engine.title_max),
            description_length=(
                self._report_engine.description_min, self._report_engine.description_max
            ),
        )

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def analyze(self) -> dict[str, Any]:
        """Crawl, reconcile with the sitemap, and return the report dict."""
        fetcher = self._fetcher or PageFetcher()
        start = time.monotonic()
        logger.info("Starting SEO analysis for %s (max depth %d)", self.start_url, self.max_depth)

        try:
            # --- Stage 1: Crawl ---
            state = CrawlState(
                start_url=self.start_url,
                origin=self.origin,
                max_depth=self.max_depth,
            )
            state.add_keywords(self._keywords)
            crawler = SiteCrawler(fetcher, optimizer=self._optimizer, concurrency=self._concurrency)
            await crawler.crawl_site(state)

            # --- Stage 2: Sitemap ---
            reconciler = SitemapReconciler(fetcher, max_index_depth=self._max_index_depth)
            sitemap_state = await reconciler.collect(self.origin)
        finally:
            if self._owns_fetcher:
                await fetcher.close()

        # --- Stage 3: Reconciliation ---
        reconciliation = reconcile(state.visited, sitemap_state.sitemap_urls)
        logger.info(
            "Reconciliation: %d crawled pages not in sitemap, %d sitemap URLs not crawled",
            len(reconciliation.not_in_sitemap), len(reconciliation.in_sitemap_not_crawled),
        )

        # --- Stage 4: Report ---
        report = self._report_engine.build_report(state, sitemap_state, reconciliation)
        report["elapsed_seconds"] = round(time.monotonic() - start, 2)

        logger.info(
            "Analysis complete for %s: %d pages, %d issues in %.1fs",
            self.start_url, len(state.visited), len(report["issues"]), report["elapsed_seconds"],
        )
        return report

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export_reports(
        self,
        report: dict[str, Any],
        output_dir: str = ".",
        files: Optional[dict[str, str]] = None,
        pdf: bool = True,
    ) -> dict[str, str]:
        """Write JSON, HTML and (optionally) PDF reports; return written paths.

        A PDF failure is logged and leaves the other files in place.
        """
        names = dict(DEFAULT_REPORT_FILES)
        names.update(files or {})
        paths = {fmt: os.path.join(output_dir, name) for fmt, name in names.items()}

        written = {
            "json": self._renderer.write_json(report, paths["json"]),
            "html": self._renderer.write_html(report, paths["html"]),
        }
        if pdf:
            try:
                html_content = self._renderer.render_html(report)
                written["pdf"] = await self._renderer.render_pdf(html_content, paths["pdf"])
            except Exception as exc:
                logger.error("PDF generation failed: %s", exc)
        return written
