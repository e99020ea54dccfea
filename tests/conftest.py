"""Shared pytest fixtures for SEO Analyzer tests."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Ensure project root is on sys.path so 'seo_analyzer' is importable.
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from seo_analyzer.integrations.page_fetcher import FetchResult  # noqa: E402

ORIGIN = "https://example.test"


def html_page(title="", description="", h1="", links=(), body=""):
    """Build a small HTML document with the given metadata and anchors."""
    head = ""
    if title:
        head += f"<title>{title}</title>"
    if description:
        head += f'<meta name="description" content="{description}">'
    anchors = "".join(f'<a href="{href}">link</a>' for href in links)
    heading = f"<h1>{h1}</h1>" if h1 else ""
    return f"<html><head>{head}</head><body>{heading}<p>{body}</p>{anchors}</body></html>"


def ok(url, html, content_type="text/html; charset=utf-8"):
    return FetchResult(url=url, status=200, body=html, content_type=content_type)


class FakeFetcher:
    """In-memory fetcher: serves canned :class:`FetchResult` objects by URL.

    Unknown URLs answer 404.  Every call is recorded in ``calls``.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self.closed = False

    async def fetch(self, url):
        self.calls.append(url)
        if url in self.responses:
            return self.responses[url]
        return FetchResult(url=url, status=404, body="Not Found", content_type="text/html")

    async def close(self):
        self.closed = True

    def count(self, url):
        return self.calls.count(url)


@pytest.fixture()
def make_fetcher():
    """Factory fixture returning a :class:`FakeFetcher` for a response map."""
    return FakeFetcher


@pytest.fixture()
def site_fetcher():
    """A four-page site with a cycle, a static file, an external link and a 404."""
    pages = {
        ORIGIN + "/": ok(ORIGIN + "/", html_page(
            title="Example Home Page for Testing the Crawler",
            description="Home",
            h1="Welcome",
            links=["/about", "/contact", "/logo.png", "https://other.test/x", "#top"],
        )),
        ORIGIN + "/about": ok(ORIGIN + "/about", html_page(
            title="About",
            h1="About us",
            links=["/", "/contact", "/missing"],
        )),
        ORIGIN + "/contact": ok(ORIGIN + "/contact", html_page(
            title="Contact",
            description="Contact page",
            links=["mailto:hi@example.test", "/about"],
        )),
    }
    return FakeFetcher(pages)


@pytest.fixture()
def mock_llm_client():
    """Return a mock LLMClient that returns canned responses."""
    client = MagicMock()
    client.generate_text = AsyncMock(return_value="Mock LLM response text.")
    client.generate_json = AsyncMock(return_value={})
    client.get_usage_summary = MagicMock(return_value={
        "total_requests": 0,
        "total_cost_usd": 0.0,
    })
    return client


@pytest.fixture()
def mock_optimizer():
    """Return a mock MetaOptimizer with fixed suggestions and analysis."""
    optimizer = MagicMock()
    optimizer.optimize_meta_tags = AsyncMock(return_value={
        "optimizedTitle": "Better title",
        "optimizedDescription": "Better description",
        "keywordSuggestions": ["seo audit"],
    })
    optimizer.analyze_page_content = AsyncMock(return_value={
        "mainKeywords": ["crawler", "seo"],
        "longTailKeywords": ["seo site audit tool"],
        "relatedTopics": [],
        "contentStructure": [],
        "seoSuggestions": ["Add a meta description"],
    })
    return optimizer
