"""
report_renderer.py - SEO report output formats

Renders the report dict built by ReportEngine as JSON, as a self-contained
HTML page, and as a PDF printed from that HTML by headless Chromium.
"""

import html
import json
import logging
import os
from typing import Any

from playwright.async_api import async_playwright

logger = logging.getLogger(__name__)


def _e(value: Any) -> str:
    return html.escape(str(value), quote=True)


class ReportRenderer:
    """Renders SEO report dicts into JSON, HTML and PDF."""

    COLORS = {
        "bg": "#f5f5f5",
        "text": "#333333",
        "heading": "#2c3e50",
        "card_bg": "#ffffff",
        "panel_bg": "#f8f9fa",
        "border": "#eeeeee",
        "muted": "#666666",
        "success_bg": "#d4edda",
        "success": "#155724",
        "error_bg": "#f8d7da",
        "error": "#721c24",
        "warning": "#e67e22",
        "ai_bg": "#eef6ff",
    }

    def __init__(
        self,
        title_length: tuple[int, int] = (30, 60),
        description_length: tuple[int, int] = (120, 160),
    ) -> None:
        self._title_length = title_length
        self._description_length = description_length

    # ------------------------------------------------------------------
    # Public rendering methods
    # ------------------------------------------------------------------

    def render_json(self, report_data: dict) -> str:
        """Export report data as pretty-printed JSON."""
        output = json.dumps(report_data, indent=2, default=str, ensure_ascii=False)
        logger.debug("JSON report rendered (%d chars)", len(output))
        return output

    def render_html(self, report_data: dict) -> str:
        """Generate a self-contained HTML report with embedded CSS."""
        base_url = report_data.get("base_url", "")
        parts = []
        parts.append(self._build_html_head(base_url))
        parts.append(self._build_summary_html(report_data))
        parts.append(self._build_issues_html(report_data.get("issues", [])))
        parts.append(self._build_sitemap_html(report_data.get("sitemap_stats", {})))
        parts.append(self._build_broken_links_html(report_data.get("broken_links", [])))
        keyword_total = len(report_data.get("keywords", []))
        for page in report_data.get("page_meta", []):
            parts.append(self._build_page_html(page, keyword_total))
        parts.append("</div></body></html>")

        output = "\n".join(p for p in parts if p)
        logger.debug("HTML report rendered (%d chars)", len(output))
        return output

    async def render_pdf(self, html_content: str, filepath: str) -> str:
        """Print *html_content* to an A4 PDF at *filepath* with headless Chromium."""
        self._ensure_dir(filepath)
        async with async_playwright() as pw:
            browser = await pw.chromium.launch(headless=True)
            try:
                page = await browser.new_page()
                await page.set_content(html_content, wait_until="networkidle")
                await page.pdf(
                    path=filepath,
                    format="A4",
                    print_background=True,
                    margin={"top": "20px", "right": "20px", "bottom": "20px", "left": "20px"},
                )
            finally:
                await browser.close()
        logger.info("PDF report written to %s", filepath)
        return filepath

    def write_json(self, report_data: dict, filepath: str) -> str:
        self._ensure_dir(filepath)
        with open(filepath, "w", encoding="utf-8") as fh:
            fh.write(self.render_json(report_data))
        logger.info("JSON report written to %s", filepath)
        return filepath

    def write_html(self, report_data: dict, filepath: str) -> str:
        self._ensure_dir(filepath)
        with open(filepath, "w", encoding="utf-8") as fh:
            fh.write(self.render_html(report_data))
        logger.info("HTML report written to %s", filepath)
        return filepath

    # ------------------------------------------------------------------
    # HTML builders
    # ------------------------------------------------------------------

    def _build_html_head(self, base_url: str) -> str:
        c = self.COLORS
        css = []
        css.append("body { font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; ")
        css.append("line-height: 1.6; color: " + c["text"] + "; max-width: 1200px; margin: 0 auto; ")
        css.append("padding: 20px; background: " + c["bg"] + "; }")
        css.append(".container { background: " + c["card_bg"] + "; border-radius: 8px; ")
        css.append("box-shadow: 0 2px 4px rgba(0,0,0,0.1); padding: 20px; }")
        css.append("h1, h2, h3 { color: " + c["heading"] + "; }")
        css.append(".section { margin-bottom: 30px; padding: 20px; background: " + c["panel_bg"] + "; border-radius: 8px; }")
        css.append(".stats { display: flex; flex-wrap: wrap; gap: 20px; margin: 15px 0; }")
        css.append(".stat-item { background: " + c["card_bg"] + "; padding: 15px; border-radius: 6px; ")
        css.append("box-shadow: 0 1px 3px rgba(0,0,0,0.1); flex: 1; min-width: 200px; }")
        css.append(".stat-label { font-size: 0.9em; color: " + c["muted"] + "; margin-bottom: 5px; }")
        css.append(".stat-value { font-size: 1.2em; font-weight: 500; color: " + c["heading"] + "; }")
        css.append(".page-analysis { border: 1px solid " + c["border"] + "; border-radius: 8px; margin-bottom: 30px; overflow: hidden; }")
        css.append(".page-header { background: " + c["panel_bg"] + "; padding: 15px 20px; display: flex; ")
        css.append("justify-content: space-between; align-items: center; border-bottom: 1px solid " + c["border"] + "; }")
        css.append(".page-url { font-weight: 500; word-break: break-all; }")
        css.append(".page-status { padding: 4px 8px; border-radius: 4px; font-size: 0.9em; }")
        css.append(".success { background: " + c["success_bg"] + "; color: " + c["success"] + "; }")
        css.append(".error { background: " + c["error_bg"] + "; color: " + c["error"] + "; }")
        css.append(".meta-section { padding: 15px 20px; border-bottom: 1px solid " + c["border"] + "; }")
        css.append(".meta-title { font-weight: 600; margin-bottom: 6px; }")
        css.append(".warning, .length-warning { color: " + c["warning"] + "; }")
        css.append(".length-ok { color: " + c["success"] + "; }")
        css.append(".ai-suggestions { background: " + c["ai_bg"] + "; padding: 10px 15px; border-radius: 6px; margin-top: 10px; }")
        css.append(".issues li { margin-bottom: 4px; }")
        css.append("table { width: 100%; border-collapse: collapse; }")
        css.append("td, th { text-align: left; padding: 6px 10px; border-bottom: 1px solid " + c["border"] + "; }")
        css.append("@media print { body { background: #fff; } .page-analysis { break-inside: avoid; } }")

        head = []
        head.append("<!DOCTYPE html>")
        head.append('<html lang="en">')
        head.append("<head>")
        head.append('<meta charset="UTF-8">')
        head.append("<title>SEO Report - " + _e(base_url) + "</title>")
        head.append("<style>")
        head.append("\n".join(css))
        head.append("</style>")
        head.append("</head>")
        head.append('<body><div class="container">')
        return "\n".join(head)

    def _build_summary_html(self, report: dict) -> str:
        stats = report.get("crawl_stats", {})
        sitemap = report.get("sitemap_stats", {})
        pages = report.get("page_meta", [])
        avg_title = round(sum(p.get("title_length", 0) for p in pages) / len(pages)) if pages else 0
        avg_desc = round(sum(p.get("description_length", 0) for p in pages) / len(pages)) if pages else 0

        items = [
            ("Pages crawled", stats.get("total_urls_crawled", 0)),
            ("Static resources", stats.get("total_static_resources", 0)),
            ("Broken links", stats.get("broken_links", 0)),
            ("Internal links", stats.get("total_internal_links", 0)),
            ("External links", stats.get("total_external_links", 0)),
            ("URLs in sitemap", sitemap.get("total_urls_in_sitemap", 0)),
            ("Average title length", str(avg_title) + " characters"),
            ("Average description length", str(avg_desc) + " characters"),
        ]

        parts = []
        parts.append("<h1>SEO Report: " + _e(report.get("base_url", "")) + "</h1>")
        parts.append("<p>Generated: " + _e(report.get("date_generated", "")) + "</p>")
        parts.append('<div class="section"><h2>Summary</h2><div class="stats">')
        for label, value in items:
            parts.append(
                '<div class="stat-item"><div class="stat-label">' + _e(label)
                + '</div><div class="stat-value">' + _e(value) + "</div></div>"
            )
        parts.append("</div></div>")
        return "\n".join(parts)

    def _build_issues_html(self, issues: list) -> str:
        if not issues:
            return ""
        parts = ['<div class="section issues"><h2>Detected issues (' + str(len(issues)) + ")</h2><ul>"]
        for issue in issues:
            parts.append("<li>" + _e(issue) + "</li>")
        parts.append("</ul></div>")
        return "\n".join(parts)

    def _build_sitemap_html(self, sitemap: dict) -> str:
        not_in = sitemap.get("urls_not_in_sitemap", [])
        not_crawled = sitemap.get("urls_in_sitemap_not_crawled", [])
        if not (not_in or not_crawled or sitemap.get("sitemap_errors")):
            return ""
        parts = ['<div class="section"><h2>Sitemap</h2>']
        if not sitemap.get("sitemap_found"):
            parts.append('<p class="warning">No sitemap.xml could be processed.</p>')
        for title, urls in (
            ("Crawled pages missing from the sitemap", not_in),
            ("Sitemap URLs not reached by the crawl", not_crawled),
            ("Sitemap errors", sitemap.get("sitemap_errors", [])),
        ):
            if urls:
                parts.append("<h3>" + _e(title) + " (" + str(len(urls)) + ")</h3><ul>")
                parts.extend("<li>" + _e(u) + "</li>" for u in urls)
                parts.append("</ul>")
        parts.append("</div>")
        return "\n".join(parts)

    def _build_broken_links_html(self, broken_links: list) -> str:
        if not broken_links:
            return ""
        parts = ['<div class="section"><h2>Broken links</h2><table>']
        parts.append("<tr><th>URL</th><th>Status</th><th>Error</th></tr>")
        for link in broken_links:
            parts.append(
                "<tr><td>" + _e(link.get("url", "")) + "</td><td>" + _e(link.get("status", 0))
                + "</td><td>" + _e(link.get("error", "")) + "</td></tr>"
            )
        parts.append("</table></div>")
        return "\n".join(parts)

    def _build_page_html(self, page: dict, keyword_total: int) -> str:
        status = page.get("status", 0)
        status_class = "success" if status == 200 else "error"

        parts = []
        parts.append('<div class="page-analysis">')
        parts.append('<div class="page-header"><div class="page-url">' + _e(page.get("url", "")) + "</div>")
        parts.append('<span class="page-status ' + status_class + '">Status: ' + _e(status) + "</span></div>")

        analysis = page.get("content_analysis") or {}
        if analysis:
            parts.append(self._build_content_analysis_html(analysis))

        ai = page.get("ai_suggestions") or {}
        parts.append(self._build_field_html(
            "Page title", page.get("title", ""), page.get("title_length", 0),
            self._title_length, page.get("title_keywords", {}), keyword_total,
            ai.get("optimizedTitle"), "Optimised title",
        ))
        parts.append(self._build_field_html(
            "Meta description", page.get("description", ""), page.get("description_length", 0),
            self._description_length, page.get("description_keywords", {}), keyword_total,
            ai.get("optimizedDescription"), "Optimised description",
        ))
        if ai.get("keywordSuggestions"):
            parts.append('<div class="meta-section"><div class="meta-title">Keyword suggestions</div>')
            parts.append("<div>" + _e(", ".join(str(k) for k in ai["keywordSuggestions"])) + "</div></div>")

        parts.append('<div class="meta-section"><div class="meta-title">Page statistics</div><div class="stats">')
        parts.append('<div class="stat-item"><div class="stat-label">H1</div><div class="stat-value">'
                     + (_e(page.get("h1")) if page.get("h1") else '<span class="warning">Missing H1</span>')
                     + "</div></div>")
        parts.append('<div class="stat-item"><div class="stat-label">Internal links</div><div class="stat-value">'
                     + _e(page.get("internal_links_count", 0)) + "</div></div>")
        parts.append('<div class="stat-item"><div class="stat-label">External links</div><div class="stat-value">'
                     + _e(page.get("external_links_count", 0)) + "</div></div>")
        parts.append("</div></div>")
        parts.append("</div>")
        return "\n".join(parts)

    def _build_field_html(
        self,
        label: str,
        value: str,
        length: int,
        bounds: tuple[int, int],
        keywords: dict,
        keyword_total: int,
        suggestion: Any,
        suggestion_label: str,
    ) -> str:
        low, high = bounds
        length_class = "length-ok" if low <= length <= high else "length-warning"
        found = keywords.get("found", [])
        missing = keywords.get("missing", [])
        pct = round(len(found) / keyword_total * 100) if keyword_total else 0

        parts = []
        parts.append('<div class="meta-section"><div class="meta-title">' + _e(label) + "</div>")
        parts.append("<div>" + (_e(value) if value else '<span class="warning">Missing</span>') + "</div>")
        parts.append("<div>Keywords found: " + (_e(", ".join(found)) or "none") + "</div>")
        if missing:
            more = "..." if len(missing) > 3 else ""
            parts.append("<div>Keywords missing: " + _e(", ".join(missing[:3])) + more + "</div>")
        parts.append('<div class="stats">')
        parts.append('<div class="stat-item"><div class="stat-label">Length</div><div class="stat-value '
                     + length_class + '">' + str(length) + " characters</div></div>")
        parts.append('<div class="stat-item"><div class="stat-label">Keyword coverage</div><div class="stat-value">'
                     + str(len(found)) + "/" + str(keyword_total) + " (" + str(pct) + "%)</div></div>")
        parts.append("</div>")
        if suggestion:
            parts.append('<div class="ai-suggestions"><strong>' + _e(suggestion_label) + ":</strong> "
                         + _e(suggestion) + "</div>")
        parts.append("</div>")
        return "\n".join(parts)

    def _build_content_analysis_html(self, analysis: dict) -> str:
        sections = [
            ("mainKeywords", "Main keywords"),
            ("longTailKeywords", "Long-tail keywords"),
            ("relatedTopics", "Related topics"),
            ("contentStructure", "Content structure suggestions"),
            ("seoSuggestions", "SEO suggestions"),
        ]
        parts = ['<div class="meta-section"><div class="meta-title">AI content analysis</div><div class="stats">']
        for key, title in sections:
            values = analysis.get(key) or []
            if not values:
                continue
            parts.append('<div class="stat-item"><div class="meta-title">' + _e(title) + "</div><ul>")
            parts.extend("<li>" + _e(v) + "</li>" for v in values)
            parts.append("</ul></div>")
        parts.append("</div></div>")
        return "\n".join(parts)

    @staticmethod
    def _ensure_dir(filepath: str) -> None:
        dirpath = os.path.dirname(filepath)
        if dirpath:
            os.makedirs(dirpath, exist_ok=True)
