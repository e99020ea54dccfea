"""HTML extraction: SEO metadata, structured text content and outgoing links."""

import logging
import re
from typing import Any

from bs4 import BeautifulSoup, Comment

logger = logging.getLogger(__name__)


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def extract_metadata(soup: BeautifulSoup) -> dict[str, Any]:
    """Return title, meta description, first H1 and every named meta tag."""
    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""

    description = ""
    desc_tag = soup.find("meta", attrs={"name": re.compile(r"^description$", re.I)})
    if desc_tag:
        description = (desc_tag.get("content") or "").strip()

    h1_tag = soup.find("h1")
    h1 = h1_tag.get_text(strip=True) if h1_tag else ""

    meta_tags: dict[str, str] = {}
    for tag in soup.find_all("meta"):
        name = tag.get("name") or tag.get("property")
        content = tag.get("content")
        if name and content:
            meta_tags[name] = content

    return {
        "title": title,
        "description": description,
        "h1": h1,
        "meta_tags": meta_tags,
    }


def extract_content(soup: BeautifulSoup) -> dict[str, Any]:
    """Structured visible text of a page, used as input for AI content analysis.

    Works on a copy so the caller's tree keeps its scripts and styles.
    """
    work = BeautifulSoup(str(soup), "html.parser")
    for tag in work(["script", "style", "noscript"]):
        tag.decompose()
    for comment in work.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    def _texts(selector: str) -> list[str]:
        return [el.get_text(" ", strip=True) for el in work.select(selector)]

    title_tag = work.find("title")
    desc_tag = work.find("meta", attrs={"name": re.compile(r"^description$", re.I)})
    kw_tag = work.find("meta", attrs={"name": re.compile(r"^keywords$", re.I)})

    return {
        "title": title_tag.get_text(strip=True) if title_tag else "",
        "h1": _texts("h1"),
        "h2": _texts("h2"),
        "h3": _texts("h3"),
        "paragraphs": [p for p in _texts("p") if p],
        "lists": [li for li in _texts("ul, ol") if li],
        "meta_description": (desc_tag.get("content") or "") if desc_tag else "",
        "meta_keywords": (kw_tag.get("content") or "") if kw_tag else "",
    }


def extract_links(soup: BeautifulSoup) -> list[str]:
    """Raw ``href`` values of every anchor, in document order."""
    hrefs: list[str] = []
    for a_tag in soup.find_all("a", href=True):
        href = a_tag["href"].strip()
        if href:
            hrefs.append(href)
    return hrefs
