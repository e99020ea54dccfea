"""Async HTTP fetcher used by the crawler and the sitemap reconciler."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

logger = logging.getLogger(__name__)

_HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


@dataclass
class FetchResult:
    """Outcome of one GET request.

    ``status`` is the final HTTP status after redirects, or ``0`` when no
    HTTP response was received (DNS, connection, timeout).
    """
    url: str
    status: int
    body: str = ""
    content_type: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == 200 and bool(self.body)

    @property
    def is_broken(self) -> bool:
        return self.status == 0 or self.status >= 400

    @property
    def is_html(self) -> bool:
        if not self.content_type:
            return True
        return self.content_type.split(";")[0].strip().lower() in _HTML_CONTENT_TYPES


class PageFetcher:
    """Thin aiohttp wrapper that never raises for network problems.

    Usage::

        async with PageFetcher(timeout=10) as fetcher:
            result = await fetcher.fetch("https://example.com/")
            if result.ok:
                ...
    """

    def __init__(
        self,
        timeout: float = 10,
        max_redirects: int = 5,
        user_agent: str = "SEOAnalyzer/1.0",
    ) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._max_redirects = max_redirects
        self._user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"User-Agent": self._user_agent},
            )
        return self._session

    async def fetch(self, url: str) -> FetchResult:
        """GET *url* following redirects and return a :class:`FetchResult`."""
        session = self._get_session()
        try:
            async with session.get(
                url, allow_redirects=True, max_redirects=self._max_redirects
            ) as resp:
                content_type = resp.headers.get("Content-Type", "")
                body = await resp.text(errors="replace")
                return FetchResult(
                    url=url,
                    status=resp.status,
                    body=body,
                    content_type=content_type,
                )
        except asyncio.TimeoutError:
            logger.warning("Timeout fetching %s", url)
            return FetchResult(url=url, status=0, error="timeout")
        except aiohttp.TooManyRedirects as exc:
            logger.warning("Too many redirects for %s: %s", url, exc)
            return FetchResult(url=url, status=0, error="too many redirects")
        except (aiohttp.ClientError, ValueError) as exc:
            logger.warning("Error fetching %s: %s", url, exc)
            return FetchResult(url=url, status=0, error=str(exc) or exc.__class__.__name__)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
