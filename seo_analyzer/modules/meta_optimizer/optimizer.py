"""AI meta-tag optimizer.

Wraps :class:`LLMClient` with one prompt and one fixed response schema per
call kind.  Every call degrades to a safe default (the original text, the
original keyword list, or empty arrays) when the provider fails or answers
with something that does not match the schema.  Nothing here raises.
"""

import json
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

CONTENT_ANALYSIS_FIELDS: tuple[str, ...] = (
    "mainKeywords",
    "longTailKeywords",
    "relatedTopics",
    "contentStructure",
    "seoSuggestions",
)

_DEFAULT_LIMITS: dict[str, dict[str, float]] = {
    "title": {"max_tokens": 100, "temperature": 0.7},
    "description": {"max_tokens": 200, "temperature": 0.7},
    "content": {"max_tokens": 300, "temperature": 0.7},
    "keywords": {"max_tokens": 500, "temperature": 0.7},
    "page_analysis": {"max_tokens": 2048, "temperature": 1.0},
}

_SYSTEM_PROMPT = "You are an expert SEO copywriter. Respond ONLY with a valid JSON object."


def empty_content_analysis() -> dict[str, list]:
    return {name: [] for name in CONTENT_ANALYSIS_FIELDS}


def _string_field(payload: Any, name: str) -> Optional[str]:
    """Return ``payload[name]`` when it is a non-blank string."""
    if not isinstance(payload, dict):
        return None
    value = payload.get(name)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _list_field(payload: Any, name: str) -> Optional[list]:
    """Return ``payload[name]`` when it is a list; scalars inside are kept as-is."""
    if not isinstance(payload, dict):
        return None
    value = payload.get(name)
    if isinstance(value, list):
        return value
    return None


class MetaOptimizer:
    """Generate AI suggestions for titles, descriptions and page content."""

    def __init__(
        self,
        llm_client: Any,
        industry: str = "",
        limits: Optional[dict[str, dict[str, float]]] = None,
        title_max_length: int = 60,
        description_max_length: int = 160,
    ) -> None:
        self._llm = llm_client
        self._industry = industry
        self._limits = {k: dict(v) for k, v in _DEFAULT_LIMITS.items()}
        for kind, values in (limits or {}).items():
            self._limits.setdefault(kind, {}).update(values)
        self._title_max = title_max_length
        self._description_max = description_max_length

    # ------------------------------------------------------------------
    # Single-field optimisations
    # ------------------------------------------------------------------

    async def optimize_title(
        self, current_title: str, keywords: list[str], max_length: Optional[int] = None
    ) -> str:
        max_length = max_length or self._title_max
        prompt = (
            "Optimise the following page title for SEO, using these keywords: "
            f"{', '.join(keywords)}.\n"
            "The title must read naturally, attract attention and contain the most "
            f"important keywords. Maximum length: {max_length} characters.\n"
            f'Current title: "{current_title}"\n'
            'Respond with JSON: {"optimizedTitle": "..."}'
        )
        payload = await self._ask("title", prompt)
        return _string_field(payload, "optimizedTitle") or current_title

    async def optimize_description(
        self, current_description: str, keywords: list[str], max_length: Optional[int] = None
    ) -> str:
        max_length = max_length or self._description_max
        prompt = (
            "Optimise the following meta description for SEO, using these keywords: "
            f"{', '.join(keywords)}.\n"
            "The description must read naturally, encourage the click and contain "
            f"the most important keywords. Maximum length: {max_length} characters.\n"
            f'Current description: "{current_description}"\n'
            'Respond with JSON: {"optimizedDescription": "..."}'
        )
        payload = await self._ask("description", prompt)
        return _string_field(payload, "optimizedDescription") or current_description

    async def analyze_content(self, content: str, keywords: list[str]) -> list:
        """Short list of improvement suggestions for a block of text."""
        prompt = (
            "Analyse the following text for SEO and suggest improvements.\n"
            f'Text: "{content}"\n'
            f"Keywords: {', '.join(keywords)}\n"
            "Consider keyword density, naturalness, structure and readability.\n"
            'Respond with JSON: {"suggestions": ["...", "..."]}'
        )
        payload = await self._ask("content", prompt)
        suggestions = _list_field(payload, "suggestions")
        return suggestions if suggestions is not None else []

    async def generate_keyword_suggestions(
        self, current_keywords: list[str], industry: Optional[str] = None
    ) -> list:
        industry = industry if industry is not None else self._industry
        scope = f" for the {industry} industry" if industry else ""
        prompt = (
            f"Suggest additional keywords{scope} that would complement this list: "
            f"{', '.join(current_keywords)}.\n"
            "Include long-tail phrases, synonyms, related services and local keywords.\n"
            'Respond with JSON: {"suggestions": ["...", "..."]}'
        )
        payload = await self._ask("keywords", prompt)
        suggestions = _list_field(payload, "suggestions")
        return suggestions if suggestions is not None else list(current_keywords)

    # ------------------------------------------------------------------
    # Composite calls used by the crawler
    # ------------------------------------------------------------------

    async def optimize_meta_tags(
        self, title: str, description: str, keywords: list[str]
    ) -> dict[str, Any]:
        """Title, description and keyword suggestions for one page."""
        return {
            "optimizedTitle": await self.optimize_title(title, keywords),
            "optimizedDescription": await self.optimize_description(description, keywords),
            "keywordSuggestions": await self.generate_keyword_suggestions(keywords),
        }

    async def analyze_page_content(self, content: Any, url: str) -> dict[str, list]:
        """Keyword and structure analysis of a whole page.

        Always returns all of :data:`CONTENT_ANALYSIS_FIELDS`; a field that is
        missing or not an array becomes ``[]``.
        """
        if not isinstance(content, str):
            content = json.dumps(content, ensure_ascii=False)
        logger.debug("Analysing content of %s (%d chars)", url, len(content))
        prompt = (
            "Analyse the page content below and produce:\n"
            "1. main keywords (max 10)\n"
            "2. long-tail keywords (max 15)\n"
            "3. related topics (max 10)\n"
            "4. content structure suggestions\n"
            "5. SEO optimisation suggestions\n\n"
            f"Page content:\n{content}\n\nURL: {url}\n\n"
            "Respond with JSON: "
            + json.dumps({name: [] for name in CONTENT_ANALYSIS_FIELDS})
        )
        payload = await self._ask("page_analysis", prompt)
        result = empty_content_analysis()
        if payload is None:
            return result
        for name in CONTENT_ANALYSIS_FIELDS:
            value = _list_field(payload, name)
            if value is None:
                logger.warning("Content analysis for %s: field %s missing or not a list", url, name)
                continue
            result[name] = value
        return result

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _ask(self, kind: str, prompt: str) -> Optional[dict[str, Any]]:
        """Run one JSON prompt; ``None`` on any failure."""
        limits = self._limits.get(kind, {})
        try:
            payload = await self._llm.generate_json(
                prompt,
                system_prompt=_SYSTEM_PROMPT,
                max_tokens=int(limits.get("max_tokens", 500)),
                temperature=limits.get("temperature"),
            )
        except Exception as exc:
            logger.warning("AI %s request failed: %s", kind, exc)
            return None
        if not isinstance(payload, dict):
            logger.warning("AI %s response is not a JSON object", kind)
            return None
        return payload
