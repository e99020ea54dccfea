"""Per-run state shared by the crawler, the sitemap reconciler and the report engine."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class BrokenLink:
    """A URL whose fetch failed (status 0) or returned an HTTP error."""
    url: str
    status: int
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"url": self.url, "status": self.status}
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class PageRecord:
    """Metadata extracted from one successfully fetched page."""
    title: str = ""
    description: str = ""
    h1: str = ""
    meta_tags: dict[str, str] = field(default_factory=dict)
    ai_suggestions: Optional[dict[str, Any]] = None
    content_analysis: Optional[dict[str, list]] = None


@dataclass
class CrawlState:
    """Accumulators owned by a single crawl run.

    ``visited`` receives a URL before its fetch starts and never loses it;
    ``broken_links`` is append-only.
    """
    start_url: str
    origin: str
    max_depth: int = 10
    visited: dict[str, None] = field(default_factory=dict)
    static_resources: dict[str, None] = field(default_factory=dict)
    broken_links: list[BrokenLink] = field(default_factory=list)
    internal_links: dict[str, list[str]] = field(default_factory=dict)
    external_links: dict[str, list[str]] = field(default_factory=dict)
    status_codes: dict[str, int] = field(default_factory=dict)
    page_records: dict[str, PageRecord] = field(default_factory=dict)
    keywords: list[str] = field(default_factory=list)

    # ``visited`` and ``static_resources`` are dicts used as insertion-ordered sets.

    def mark_visited(self, url: str) -> bool:
        """Add *url* to the visited set; False if it was already there."""
        if url in self.visited:
            return False
        self.visited[url] = None
        return True

    def add_static(self, url: str) -> None:
        self.static_resources.setdefault(url, None)

    def add_keywords(self, keywords: list[Any]) -> None:
        """Extend the keyword list, keeping order and skipping duplicates."""
        for keyword in keywords:
            if isinstance(keyword, str) and keyword.strip() and keyword not in self.keywords:
                self.keywords.append(keyword)


@dataclass
class SitemapState:
    """Flattened result of sitemap (index) expansion."""
    sitemap_urls: dict[str, None] = field(default_factory=dict)
    processed_sitemaps: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.processed_sitemaps)


@dataclass(frozen=True)
class ReconciliationResult:
    """Set differences between crawled URLs and sitemap URLs."""
    not_in_sitemap: tuple[str, ...] = ()
    in_sitemap_not_crawled: tuple[str, ...] = ()
