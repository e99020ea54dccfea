"""URL classification helpers for the site crawler.

Decides whether a link belongs to the audited site, turns relative hrefs
into absolute URLs, and filters out static resources that are recorded
but never fetched.
"""

import logging
from urllib.parse import urljoin, urlparse

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

STATIC_EXTENSIONS: tuple[str, ...] = (
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".pdf",
    ".doc",
    ".zip",
    ".css",
    ".js",
    ".webp",
    ".svg",
    ".ico",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
)

_SKIPPED_PREFIXES: tuple[str, ...] = ("#", "javascript:", "mailto:", "tel:")


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

def base_url(url: str) -> str:
    """Return the origin (scheme + host, plus an explicit port) of *url*."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"Not an absolute URL: {url!r}")
    origin = f"{parsed.scheme}://{parsed.hostname}"
    if parsed.port:
        origin += f":{parsed.port}"
    return origin


def is_skippable(href: str) -> bool:
    """True for anchors and pseudo-links that are never classified or visited."""
    return href.strip().lower().startswith(_SKIPPED_PREFIXES)


def is_internal(link: str, origin: str) -> bool:
    """Prefix test: root-relative links and links starting with *origin*.

    Two hosts sharing a string prefix (``https://example.test`` and
    ``https://example.test.evil.com``) are both treated as internal.
    """
    return link.startswith("/") or link.startswith(origin)


def normalize(link: str, current_url: str, origin: str) -> str:
    """Return *link* as an absolute URL.

    Root-relative links resolve against *origin*, scheme-less links against
    the page they were found on, anything else passes through unchanged.
    Raises ``ValueError`` when the link cannot be parsed.
    """
    link = link.strip()
    if not link:
        raise ValueError("Empty link")
    if link.startswith("/"):
        resolved = urljoin(origin, link)
    elif not link.startswith("http"):
        resolved = urljoin(current_url, link)
    else:
        resolved = link
    # urlparse raises ValueError on malformed netlocs such as "http://[::1"
    parsed = urlparse(resolved)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Cannot resolve link {link!r} on {current_url}")
    return resolved


def should_crawl(url: str) -> bool:
    """False when the URL path ends with a static-file extension."""
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        path = url.lower()
    return not path.endswith(STATIC_EXTENSIONS)


def resource_type(url: str) -> str:
    """Extension (without the dot) of a static resource URL."""
    path = urlparse(url).path
    tail = path.rsplit("/", 1)[-1]
    if "." not in tail:
        return ""
    return tail.rsplit(".", 1)[-1].lower()
