"""Sitemap fetching, index expansion and crawl reconciliation."""

import logging
from typing import Any, Iterable, Optional
from xml.etree import ElementTree as ET

from seo_analyzer.modules.site_audit.state import ReconciliationResult, SitemapState

logger = logging.getLogger(__name__)

SITEMAP_INDEX = "sitemapindex"
URLSET = "urlset"


class SitemapParseError(ValueError):
    """Sitemap body is not XML or has neither a sitemapindex nor a urlset root."""


def _local(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


def parse_sitemap(xml_text: str) -> tuple[str, list[str]]:
    """Parse a sitemap document.

    Returns ``("sitemapindex", child_sitemap_urls)`` or
    ``("urlset", page_urls)``.  Namespaced and plain tags are accepted.
    """
    text = (xml_text or "").lstrip("\ufeff").strip()
    if not text:
        raise SitemapParseError("Empty sitemap document")
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise SitemapParseError(f"Invalid sitemap XML: {exc}") from exc

    kind = _local(root.tag)
    if kind == SITEMAP_INDEX:
        entry_tag = "sitemap"
    elif kind == URLSET:
        entry_tag = "url"
    else:
        raise SitemapParseError(f"Unexpected sitemap root element <{kind}>")

    locs: list[str] = []
    for entry in root:
        if _local(entry.tag) != entry_tag:
            continue
        for child in entry:
            if _local(child.tag) == "loc" and child.text and child.text.strip():
                locs.append(child.text.strip())
                break
    return kind, locs


def reconcile(visited: Iterable[str], sitemap_urls: Iterable[str]) -> ReconciliationResult:
    """Set differences in both directions, keeping source order."""
    visited = list(dict.fromkeys(visited))
    sitemap_urls = list(dict.fromkeys(sitemap_urls))
    visited_set = set(visited)
    sitemap_set = set(sitemap_urls)
    return ReconciliationResult(
        not_in_sitemap=tuple(u for u in visited if u not in sitemap_set),
        in_sitemap_not_crawled=tuple(u for u in sitemap_urls if u not in visited_set),
    )


class SitemapReconciler:
    """Collect every page URL declared by a site's ``/sitemap.xml``.

    Sitemap indexes are expanded recursively.  Each sitemap URL is processed
    at most once and expansion stops at *max_index_depth* nested indexes, so
    circular indexes terminate.  A failing child sitemap is logged and
    skipped; its siblings are still processed.
    """

    def __init__(self, fetcher: Any, max_index_depth: int = 5) -> None:
        self._fetcher = fetcher
        self._max_index_depth = max_index_depth

    async def fetch_sitemap(self, origin: str) -> Optional[str]:
        """Body of ``{origin}/sitemap.xml`` or ``None`` when unavailable."""
        sitemap_url = f"{origin.rstrip('/')}/sitemap.xml"
        logger.info("Fetching sitemap from %s", sitemap_url)
        result = await self._fetcher.fetch(sitemap_url)
        if result.status != 200 or not result.body:
            logger.warning(
                "Sitemap not available at %s (status %d%s)",
                sitemap_url, result.status,
                f", {result.error}" if result.error else "",
            )
            return None
        return result.body

    async def collect(self, origin: str) -> SitemapState:
        state = SitemapState()
        xml_text = await self.fetch_sitemap(origin)
        if xml_text is None:
            return state
        root_url = f"{origin.rstrip('/')}/sitemap.xml"
        await self._process(root_url, xml_text, state, set(), depth=0)
        logger.info(
            "Processed %d sitemap(s), found %d URLs",
            len(state.processed_sitemaps), len(state.sitemap_urls),
        )
        return state

    async def _process(
        self,
        sitemap_url: str,
        xml_text: str,
        state: SitemapState,
        seen: set[str],
        depth: int,
    ) -> None:
        seen.add(sitemap_url)
        try:
            kind, locs = parse_sitemap(xml_text)
        except SitemapParseError as exc:
            logger.error("Error processing sitemap %s: %s", sitemap_url, exc)
            state.errors.append(f"{sitemap_url}: {exc}")
            return
        state.processed_sitemaps.append(sitemap_url)

        if kind == URLSET:
            for loc in locs:
                state.sitemap_urls.setdefault(loc, None)
            logger.info("Added %d URLs from %s", len(locs), sitemap_url)
            return

        logger.info("Sitemap index %s lists %d sitemaps", sitemap_url, len(locs))
        if depth >= self._max_index_depth:
            logger.warning("Sitemap index depth limit reached at %s", sitemap_url)
            state.errors.append(f"{sitemap_url}: index depth limit {self._max_index_depth} reached")
            return

        for child_url in locs:
            if child_url in seen:
                logger.warning("Skipping already processed sitemap %s", child_url)
                continue
            seen.add(child_url)
            logger.info("Fetching sub-sitemap %s", child_url)
            result = await self._fetcher.fetch(child_url)
            if result.status != 200 or not result.body:
                detail = result.error or f"status {result.status}"
                logger.error("Error fetching sub-sitemap %s: %s", child_url, detail)
                state.errors.append(f"{child_url}: {detail}")
                continue
            await self._process(child_url, result.body, state, seen, depth + 1)
