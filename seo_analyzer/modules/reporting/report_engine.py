"""Report aggregation.

Turns the state of one run (crawl, sitemap, reconciliation) into the report
dict consumed by the renderers.  Pure: no network or filesystem access.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from seo_analyzer.modules.site_audit.state import (
    CrawlState,
    PageRecord,
    ReconciliationResult,
    SitemapState,
)
from seo_analyzer.modules.site_audit.url_classifier import resource_type

logger = logging.getLogger(__name__)

DEFAULT_TITLE_LENGTH = (30, 60)
DEFAULT_DESCRIPTION_LENGTH = (120, 160)


def analyze_keywords(text: str, keywords: list[str]) -> dict[str, list[str]]:
    """Split *keywords* into those found in *text* and those missing.

    Case-insensitive substring match.
    """
    if not text:
        return {"found": [], "missing": list(keywords)}
    lowered = text.lower()
    found: list[str] = []
    missing: list[str] = []
    for keyword in keywords:
        (found if keyword.lower() in lowered else missing).append(keyword)
    return {"found": found, "missing": missing}


class ReportEngine:
    """Build the report for one analysis run."""

    def __init__(
        self,
        title_length: tuple[int, int] = DEFAULT_TITLE_LENGTH,
        description_length: tuple[int, int] = DEFAULT_DESCRIPTION_LENGTH,
    ) -> None:
        self.title_min, self.title_max = title_length
        self.description_min, self.description_max = description_length

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build_report(
        self,
        crawl: CrawlState,
        sitemap: SitemapState,
        reconciliation: ReconciliationResult,
        generated_at: Optional[datetime] = None,
    ) -> dict[str, Any]:
        generated_at = generated_at or datetime.now(timezone.utc)
        visited = list(crawl.visited)
        records = {url: crawl.page_records.get(url, PageRecord()) for url in visited}

        report: dict[str, Any] = {
            "base_url": crawl.origin,
            "start_url": crawl.start_url,
            "date_generated": generated_at.isoformat(),
            "max_depth": crawl.max_depth,
            "issues": [],
            "crawl_stats": self._crawl_stats(crawl, records),
            "sitemap_stats": {
                "sitemap_found": sitemap.found,
                "total_urls_in_sitemap": len(sitemap.sitemap_urls),
                "sitemaps_processed": list(sitemap.processed_sitemaps),
                "sitemap_errors": list(sitemap.errors),
                "urls_not_in_sitemap": list(reconciliation.not_in_sitemap),
                "urls_in_sitemap_not_crawled": list(reconciliation.in_sitemap_not_crawled),
            },
            "broken_links": [link.to_dict() for link in crawl.broken_links],
            "page_meta": [
                self._page_entry(url, records[url], crawl) for url in visited
            ],
            "static_resources": [
                {
                    "url": url,
                    "type": resource_type(url),
                    "status": crawl.status_codes.get(url),
                }
                for url in crawl.static_resources
            ],
            "keywords": list(crawl.keywords),
        }
        self.collect_issues(report)
        logger.info(
            "Report built: %d pages, %d issues", len(report["page_meta"]), len(report["issues"])
        )
        return report

    def collect_issues(self, report: dict[str, Any]) -> list[str]:
        """Append one human-readable issue per detected problem to ``report["issues"]``."""
        issues: list[str] = report.setdefault("issues", [])
        for page in report.get("page_meta", []):
            # Pages that failed to load are reported as broken links instead.
            if not page.get("analyzed", True):
                continue
            url = page["url"]
            if not page["title"]:
                issues.append(f"Missing title on page: {url}")
            elif not self.title_min <= page["title_length"] <= self.title_max:
                issues.append(
                    f"Invalid title length ({page['title_length']} characters, expected "
                    f"{self.title_min}-{self.title_max}) on page: {url}"
                )
            if not page["description"]:
                issues.append(f"Missing meta description on page: {url}")
            elif not self.description_min <= page["description_length"] <= self.description_max:
                issues.append(
                    f"Invalid meta description length ({page['description_length']} characters, "
                    f"expected {self.description_min}-{self.description_max}) on page: {url}"
                )
            if not page["h1"]:
                issues.append(f"Missing H1 heading on page: {url}")

        broken = len(report.get("broken_links", []))
        if broken:
            issues.append(f"Found {broken} broken links")

        sitemap_stats = report.get("sitemap_stats", {})
        not_in_sitemap = len(sitemap_stats.get("urls_not_in_sitemap", []))
        if not_in_sitemap:
            issues.append(f"{not_in_sitemap} crawled pages are not in the sitemap")
        not_crawled = len(sitemap_stats.get("urls_in_sitemap_not_crawled", []))
        if not_crawled:
            issues.append(f"{not_crawled} sitemap URLs were not crawled")
        return issues

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _title_out_of_range(self, title: str) -> bool:
        return bool(title) and not self.title_min <= len(title) <= self.title_max

    def _description_out_of_range(self, description: str) -> bool:
        return bool(description) and not (
            self.description_min <= len(description) <= self.description_max
        )

    def _crawl_stats(self, crawl: CrawlState, records: dict[str, PageRecord]) -> dict[str, Any]:
        # Pages that never loaded count as broken links, not as missing metadata.
        records = {u: r for u, r in records.items() if u in crawl.page_records}
        return {
            "total_urls_crawled": len(crawl.visited),
            "total_static_resources": len(crawl.static_resources),
            "broken_links": len(crawl.broken_links),
            "total_internal_links": sum(len(v) for v in crawl.internal_links.values()),
            "total_external_links": sum(len(v) for v in crawl.external_links.values()),
            "urls_without_title": [u for u, r in records.items() if not r.title],
            "urls_without_description": [u for u, r in records.items() if not r.description],
            "urls_without_h1": [u for u, r in records.items() if not r.h1],
            "urls_with_invalid_title_length": [
                {"url": u, "length": len(r.title)}
                for u, r in records.items() if self._title_out_of_range(r.title)
            ],
            "urls_with_invalid_description_length": [
                {"url": u, "length": len(r.description)}
                for u, r in records.items() if self._description_out_of_range(r.description)
            ],
        }

    @staticmethod
    def _page_entry(url: str, record: PageRecord, crawl: CrawlState) -> dict[str, Any]:
        return {
            "url": url,
            "status": crawl.status_codes.get(url, 0),
            "analyzed": url in crawl.page_records,
            "title": record.title,
            "title_length": len(record.title),
            "description": record.description,
            "description_length": len(record.description),
            "h1": record.h1,
            "internal_links_count": len(crawl.internal_links.get(url, [])),
            "external_links_count": len(crawl.external_links.get(url, [])),
            "meta_tags": dict(record.meta_tags),
            "ai_suggestions": dict(record.ai_suggestions or {}),
            "content_analysis": dict(record.content_analysis or {}),
            "title_keywords": analyze_keywords(record.title, crawl.keywords),
            "description_keywords": analyze_keywords(record.description, crawl.keywords),
        }
