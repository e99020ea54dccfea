"""Tests for report aggregation and issue collection."""

from datetime import datetime, timezone

import pytest

from seo_analyzer.modules.reporting import ReportEngine
from seo_analyzer.modules.reporting.report_engine import analyze_keywords
from seo_analyzer.modules.site_audit.sitemap import reconcile
from seo_analyzer.modules.site_audit.state import (
    BrokenLink,
    CrawlState,
    PageRecord,
    SitemapState,
)

from conftest import ORIGIN

GOOD_TITLE = "A perfectly sized page title for SEO tests"  # 42 chars
GOOD_DESCRIPTION = "x" * 130


@pytest.fixture()
def crawl_state():
    state = CrawlState(start_url=ORIGIN + "/", origin=ORIGIN, max_depth=2)
    for url in ("/", "/about", "/missing"):
        state.mark_visited(ORIGIN + url)
    state.status_codes = {ORIGIN + "/": 200, ORIGIN + "/about": 200, ORIGIN + "/missing": 404}
    state.page_records[ORIGIN + "/"] = PageRecord(
        title=GOOD_TITLE,
        description=GOOD_DESCRIPTION,
        h1="Welcome",
        meta_tags={"description": GOOD_DESCRIPTION},
        ai_suggestions={"optimizedTitle": "Better"},
    )
    state.page_records[ORIGIN + "/about"] = PageRecord(title="About", description="")
    state.internal_links = {
        ORIGIN + "/": [ORIGIN + "/about", ORIGIN + "/logo.png"],
        ORIGIN + "/about": [ORIGIN + "/missing"],
    }
    state.external_links = {ORIGIN + "/": ["https://other.test/"], ORIGIN + "/about": []}
    state.add_static(ORIGIN + "/logo.png")
    state.broken_links.append(BrokenLink(url=ORIGIN + "/missing", status=404))
    state.add_keywords(["page title", "crawler"])
    return state


@pytest.fixture()
def sitemap_state():
    state = SitemapState(processed_sitemaps=[ORIGIN + "/sitemap.xml"])
    for url in ("/", "/about", "/orphan"):
        state.sitemap_urls[ORIGIN + url] = None
    return state


@pytest.fixture()
def report(crawl_state, sitemap_state):
    reconciliation = reconcile(crawl_state.visited, sitemap_state.sitemap_urls)
    generated = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    return ReportEngine().build_report(crawl_state, sitemap_state, reconciliation, generated)


class TestAnalyzeKeywords:

    def test_found_and_missing(self):
        result = analyze_keywords("Best SEO Crawler", ["seo", "crawler", "audit"])
        assert result == {"found": ["seo", "crawler"], "missing": ["audit"]}

    def test_empty_text(self):
        assert analyze_keywords("", ["seo"]) == {"found": [], "missing": ["seo"]}


class TestBuildReport:

    def test_header_fields(self, report):
        assert report["base_url"] == ORIGIN
        assert report["start_url"] == ORIGIN + "/"
        assert report["date_generated"] == "2024-01-02T03:04:05+00:00"
        assert report["max_depth"] == 2
        assert report["keywords"] == ["page title", "crawler"]

    def test_crawl_stats(self, report):
        stats = report["crawl_stats"]
        assert stats["total_urls_crawled"] == 3
        assert stats["total_static_resources"] == 1
        assert stats["broken_links"] == 1
        assert stats["total_internal_links"] == 3
        assert stats["total_external_links"] == 1
        assert stats["urls_without_title"] == []
        assert stats["urls_without_description"] == [ORIGIN + "/about"]
        assert stats["urls_without_h1"] == [ORIGIN + "/about"]
        assert stats["urls_with_invalid_title_length"] == [{"url": ORIGIN + "/about", "length": 5}]

    def test_missing_metadata_stats_match_issues(self, report):
        stats = report["crawl_stats"]
        for key, prefix in (
            ("urls_without_title", "Missing title on page: "),
            ("urls_without_description", "Missing meta description on page: "),
            ("urls_without_h1", "Missing H1 heading on page: "),
        ):
            flagged = [i[len(prefix):] for i in report["issues"] if i.startswith(prefix)]
            assert stats[key] == flagged, key

    def test_sitemap_stats(self, report):
        stats = report["sitemap_stats"]
        assert stats["sitemap_found"] is True
        assert stats["total_urls_in_sitemap"] == 3
        assert stats["urls_not_in_sitemap"] == [ORIGIN + "/missing"]
        assert stats["urls_in_sitemap_not_crawled"] == [ORIGIN + "/orphan"]

    def test_one_page_entry_per_visited_url(self, report):
        assert [p["url"] for p in report["page_meta"]] == [
            ORIGIN + "/", ORIGIN + "/about", ORIGIN + "/missing",
        ]

    def test_page_entry_fields(self, report):
        home = report["page_meta"][0]
        assert home["status"] == 200
        assert home["analyzed"] is True
        assert home["title_length"] == len(GOOD_TITLE)
        assert home["internal_links_count"] == 2
        assert home["external_links_count"] == 1
        assert home["ai_suggestions"] == {"optimizedTitle": "Better"}
        assert home["title_keywords"] == {"found": ["page title"], "missing": ["crawler"]}

    def test_failed_page_has_defaults(self, report):
        missing = report["page_meta"][2]
        assert missing["status"] == 404
        assert missing["analyzed"] is False
        assert missing["title"] == ""
        assert missing["title_length"] == 0
        assert missing["meta_tags"] == {}
        assert missing["ai_suggestions"] == {}
        assert missing["content_analysis"] == {}
        assert missing["internal_links_count"] == 0

    def test_static_resources_listed(self, report):
        assert report["static_resources"] == [
            {"url": ORIGIN + "/logo.png", "type": "png", "status": None},
        ]

    def test_broken_links_listed(self, report):
        assert report["broken_links"] == [{"url": ORIGIN + "/missing", "status": 404}]


class TestIssues:

    def test_expected_issues(self, report):
        assert report["issues"] == [
            f"Invalid title length (5 characters, expected 30-60) on page: {ORIGIN}/about",
            f"Missing meta description on page: {ORIGIN}/about",
            f"Missing H1 heading on page: {ORIGIN}/about",
            "Found 1 broken links",
            "1 crawled pages are not in the sitemap",
            "1 sitemap URLs were not crawled",
        ]

    def test_clean_page_has_no_issues(self, report):
        assert not any(issue.endswith(ORIGIN + "/") for issue in report["issues"])

    def test_custom_length_bounds(self, crawl_state, sitemap_state):
        engine = ReportEngine(title_length=(10, 20), description_length=(10, 20))
        reconciliation = reconcile(crawl_state.visited, sitemap_state.sitemap_urls)
        report = engine.build_report(crawl_state, sitemap_state, reconciliation)
        assert (
            f"Invalid title length ({len(GOOD_TITLE)} characters, expected 10-20) on page: {ORIGIN}/"
            in report["issues"]
        )
        assert (
            f"Invalid meta description length (130 characters, expected 10-20) on page: {ORIGIN}/"
            in report["issues"]
        )

    def test_no_sitemap_issues_when_sets_match(self):
        state = CrawlState(start_url=ORIGIN + "/", origin=ORIGIN)
        state.mark_visited(ORIGIN + "/")
        state.status_codes[ORIGIN + "/"] = 200
        state.page_records[ORIGIN + "/"] = PageRecord(
            title=GOOD_TITLE, description=GOOD_DESCRIPTION, h1="Hi",
        )
        sitemap = SitemapState(sitemap_urls={ORIGIN + "/": None}, processed_sitemaps=["s"])
        report = ReportEngine().build_report(state, sitemap, reconcile(state.visited, sitemap.sitemap_urls))
        assert report["issues"] == []
