"""Depth-bounded site crawler.

Visits every internal page reachable from the start URL at most once,
records outgoing links per page, keeps static resources out of the
traversal, and turns every fetch failure into a broken-link entry instead
of an exception.
"""

import asyncio
import logging
from typing import Any, Optional

from bs4 import BeautifulSoup

from seo_analyzer.modules.site_audit import extractor
from seo_analyzer.modules.site_audit.state import BrokenLink, CrawlState, PageRecord
from seo_analyzer.modules.site_audit.url_classifier import (
    is_internal,
    is_skippable,
    normalize,
    should_crawl,
)

logger = logging.getLogger(__name__)


class SiteCrawler:
    """Recursive depth-first crawler over the internal link graph.

    *fetcher* needs an async ``fetch(url)`` returning a
    :class:`~seo_analyzer.integrations.page_fetcher.FetchResult`;
    *optimizer* is an optional :class:`MetaOptimizer`.  With
    ``concurrency > 1`` sibling pages are crawled as concurrent tasks and at
    most *concurrency* fetches run at once.
    """

    def __init__(
        self,
        fetcher: Any,
        optimizer: Optional[Any] = None,
        concurrency: int = 1,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._fetcher = fetcher
        self._optimizer = optimizer
        self._concurrency = concurrency
        self._semaphore = asyncio.Semaphore(concurrency)

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    async def crawl_site(self, state: CrawlState) -> CrawlState:
        """Crawl from ``state.start_url`` and return the filled *state*."""
        logger.info(
            "Crawling %s (max depth %d, concurrency %d)",
            state.start_url, state.max_depth, self._concurrency,
        )
        await self.crawl(state, state.start_url, 0)
        logger.info(
            "Crawl complete: %d URLs visited, %d static resources, %d broken links",
            len(state.visited), len(state.static_resources), len(state.broken_links),
        )
        return state

    async def crawl(self, state: CrawlState, url: str, depth: int) -> None:
        if depth > state.max_depth or url in state.visited:
            return
        if not should_crawl(url):
            state.add_static(url)
            return

        # No await between the membership test above and this insert.
        state.mark_visited(url)
        logger.info("Crawling %s (depth %d)", url, depth)

        async with self._semaphore:
            result = await self._fetcher.fetch(url)

        state.status_codes[url] = result.status
        if result.is_broken:
            state.broken_links.append(BrokenLink(url=url, status=result.status, error=result.error))
            logger.warning("Broken link %s (status %d)", url, result.status)
        if not result.ok:
            return
        if not result.is_html:
            logger.debug("Skipping non-HTML content at %s (%s)", url, result.content_type)
            return

        soup = extractor.parse_html(result.body)
        record = state.page_records.setdefault(url, PageRecord())

        await self._analyze_page(state, url, soup, record)
        await self._extract_metadata(state, url, soup, record)
        internal_links = self._extract_links(state, url, soup)

        if self._concurrency == 1:
            for link in internal_links:
                await self._crawl_child(state, link, depth + 1)
        else:
            await asyncio.gather(
                *(self._crawl_child(state, link, depth + 1) for link in internal_links)
            )

    async def _crawl_child(self, state: CrawlState, url: str, depth: int) -> None:
        """Crawl one linked page; an unexpected error drops only that branch."""
        try:
            await self.crawl(state, url, depth)
        except Exception as exc:
            logger.error("Crawl of %s failed: %s", url, exc)

    # ------------------------------------------------------------------
    # Per-page steps
    # ------------------------------------------------------------------

    async def _analyze_page(
        self, state: CrawlState, url: str, soup: BeautifulSoup, record: PageRecord
    ) -> None:
        """AI content analysis; grows the run's keyword list."""
        if self._optimizer is None:
            return
        try:
            content = extractor.extract_content(soup)
            analysis = await self._optimizer.analyze_page_content(content, url)
        except Exception as exc:
            logger.warning("Content analysis failed for %s: %s", url, exc)
            return
        record.content_analysis = analysis
        state.add_keywords(analysis.get("mainKeywords", []))
        state.add_keywords(analysis.get("longTailKeywords", []))

    async def _extract_metadata(
        self, state: CrawlState, url: str, soup: BeautifulSoup, record: PageRecord
    ) -> None:
        meta = extractor.extract_metadata(soup)
        record.title = meta["title"]
        record.description = meta["description"]
        record.h1 = meta["h1"]
        record.meta_tags = meta["meta_tags"]

        if self._optimizer is None or not (record.title or record.description):
            return
        try:
            record.ai_suggestions = await self._optimizer.optimize_meta_tags(
                record.title, record.description, list(state.keywords)
            )
        except Exception as exc:
            logger.warning("AI meta optimisation failed for %s: %s", url, exc)

    def _extract_links(self, state: CrawlState, url: str, soup: BeautifulSoup) -> list[str]:
        """Record the page's internal and external links; return the internal ones."""
        internal: list[str] = []
        external: list[str] = []
        for href in extractor.extract_links(soup):
            if is_skippable(href):
                continue
            try:
                link = normalize(href, url, state.origin)
            except ValueError as exc:
                logger.warning("Invalid URL %r on %s: %s", href, url, exc)
                continue
            if is_internal(link, state.origin):
                internal.append(link)
            else:
                external.append(link)

        state.internal_links[url] = internal
        state.external_links[url] = external
        return internal
