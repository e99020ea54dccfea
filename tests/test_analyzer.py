"""End-to-end tests for SEOAnalyzer against an in-memory site."""

import json
from unittest.mock import AsyncMock

import pytest

from seo_analyzer.integrations.page_fetcher import FetchResult
from seo_analyzer.modules.site_audit.analyzer import SEOAnalyzer

from conftest import ORIGIN

SITEMAP = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
    f"<url><loc>{ORIGIN}/</loc></url>"
    f"<url><loc>{ORIGIN}/about</loc></url>"
    f"<url><loc>{ORIGIN}/old-page</loc></url>"
    "</urlset>"
)


@pytest.fixture()
def fetcher(site_fetcher):
    site_fetcher.responses[ORIGIN + "/sitemap.xml"] = FetchResult(
        url=ORIGIN + "/sitemap.xml", status=200, body=SITEMAP, content_type="application/xml",
    )
    return site_fetcher


class TestAnalyze:

    @pytest.mark.asyncio
    async def test_full_run(self, fetcher):
        report = await SEOAnalyzer(ORIGIN + "/", max_depth=5, fetcher=fetcher).analyze()

        assert report["base_url"] == ORIGIN
        assert report["crawl_stats"]["total_urls_crawled"] == 4
        assert report["crawl_stats"]["broken_links"] == 1
        assert report["sitemap_stats"]["sitemap_found"] is True
        assert report["sitemap_stats"]["urls_not_in_sitemap"] == [
            ORIGIN + "/contact", ORIGIN + "/missing",
        ]
        assert report["sitemap_stats"]["urls_in_sitemap_not_crawled"] == [ORIGIN + "/old-page"]
        assert "2 crawled pages are not in the sitemap" in report["issues"]
        assert "1 sitemap URLs were not crawled" in report["issues"]
        assert "Found 1 broken links" in report["issues"]
        assert "elapsed_seconds" in report

    @pytest.mark.asyncio
    async def test_injected_fetcher_not_closed(self, fetcher):
        await SEOAnalyzer(ORIGIN + "/", fetcher=fetcher).analyze()
        assert fetcher.closed is False

    @pytest.mark.asyncio
    async def test_owned_fetcher_closed_after_run(self, fetcher):
        await SEOAnalyzer(ORIGIN + "/", fetcher=fetcher, owns_fetcher=True).analyze()
        assert fetcher.closed is True

    @pytest.mark.asyncio
    async def test_without_sitemap(self, site_fetcher):
        report = await SEOAnalyzer(ORIGIN + "/", fetcher=site_fetcher).analyze()
        assert report["sitemap_stats"]["sitemap_found"] is False
        assert len(report["sitemap_stats"]["urls_not_in_sitemap"]) == 4

    @pytest.mark.asyncio
    async def test_seed_keywords_and_ai(self, fetcher, mock_optimizer):
        analyzer = SEOAnalyzer(
            ORIGIN + "/", keywords=["testing"], fetcher=fetcher, optimizer=mock_optimizer,
        )
        report = await analyzer.analyze()
        assert report["keywords"][0] == "testing"
        assert "crawler" in report["keywords"]
        home = report["page_meta"][0]
        assert home["ai_suggestions"]["optimizedTitle"] == "Better title"
        assert home["title_keywords"]["found"] == ["testing", "crawler"]

    def test_relative_start_url_rejected(self):
        with pytest.raises(ValueError):
            SEOAnalyzer("/not-absolute")


class TestExportReports:

    @pytest.mark.asyncio
    async def test_json_and_html_written(self, tmp_path, fetcher):
        analyzer = SEOAnalyzer(ORIGIN + "/", fetcher=fetcher)
        report = await analyzer.analyze()
        written = await analyzer.export_reports(report, str(tmp_path), pdf=False)

        assert set(written) == {"json", "html"}
        data = json.loads((tmp_path / "seo-report.json").read_text(encoding="utf-8"))
        assert data["crawl_stats"]["total_urls_crawled"] == 4
        assert (tmp_path / "seo-report.html").exists()

    @pytest.mark.asyncio
    async def test_pdf_failure_keeps_other_files(self, tmp_path, fetcher):
        analyzer = SEOAnalyzer(ORIGIN + "/", fetcher=fetcher)
        analyzer._renderer.render_pdf = AsyncMock(side_effect=RuntimeError("no chromium"))
        report = await analyzer.analyze()
        written = await analyzer.export_reports(report, str(tmp_path))

        assert "pdf" not in written
        assert (tmp_path / "seo-report.json").exists()
        assert (tmp_path / "seo-report.html").exists()

    @pytest.mark.asyncio
    async def test_custom_file_names(self, tmp_path, fetcher):
        analyzer = SEOAnalyzer(ORIGIN + "/", fetcher=fetcher)
        analyzer._renderer.render_pdf = AsyncMock(side_effect=lambda html, path: path)
        report = await analyzer.analyze()
        written = await analyzer.export_reports(
            report, str(tmp_path), files={"json": "a.json", "pdf": "a.pdf"},
        )
        assert written["json"] == str(tmp_path / "a.json")
        assert written["html"] == str(tmp_path / "seo-report.html")
        assert written["pdf"] == str(tmp_path / "a.pdf")
