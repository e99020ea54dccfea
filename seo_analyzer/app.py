"""Application wiring for SEO Analyzer: configuration, credentials, collaborators."""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "app": {
        "name": "SEO Analyzer",
        "output_dir": ".",
    },
    "crawler": {
        "max_depth": 10,
        "request_timeout": 10,
        "max_redirects": 5,
        "user_agent": "SEOAnalyzer/1.0",
        "concurrency": 1,
    },
    "sitemap": {
        "max_index_depth": 5,
    },
    "seo": {
        "title_length": {"min": 30, "max": 60},
        "description_length": {"min": 120, "max": 160},
        "industry": "",
        "keywords": [],
    },
    "llm": {
        "primary": {"model": "gpt-4o-mini", "timeout": 60},
        "fallback": {"model": "gemini-2.0-flash"},
        "calls": {
            "title": {"max_tokens": 100, "temperature": 0.7},
            "description": {"max_tokens": 200, "temperature": 0.7},
            "content": {"max_tokens": 300, "temperature": 0.7},
            "keywords": {"max_tokens": 500, "temperature": 0.7},
            "page_analysis": {"max_tokens": 2048, "temperature": 1.0},
        },
    },
    "cache": {"enabled": True, "ttl_hours": 24, "max_size": 1000},
    "rate_limits": {
        "openai": {"requests_per_minute": 60},
        "gemini": {"requests_per_minute": 15},
    },
    "report": {
        "json_file": "seo-report.json",
        "html_file": "seo-report.html",
        "pdf_file": "seo-report.pdf",
        "pdf": True,
    },
}


class ConfigurationError(RuntimeError):
    """Invalid configuration or missing credentials; fatal before any crawling."""


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class SEOAnalyzerApp:
    """Central application object that builds a ready-to-run analyzer.

    Usage::

        app = SEOAnalyzerApp()
        app.initialize()
        analyzer = app.create_analyzer("https://example.com/", max_depth=3)
        report = await analyzer.analyze()
    """

    def __init__(
        self,
        config_path: str = "config/settings.yaml",
        env_path: str = ".env",
    ):
        self._config_path = config_path
        self._env_path = env_path
        self.config: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        self._initialized = False
        self._llm_client = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load .env and the YAML configuration."""
        if self._initialized:
            return

        env_file = Path(self._env_path)
        if env_file.exists():
            load_dotenv(env_file)
            logger.info("Loaded environment from %s", self._env_path)

        self.config = _deep_merge(DEFAULT_CONFIG, self._load_config())
        self._initialized = True

    def _load_config(self) -> dict[str, Any]:
        """Load the YAML configuration file."""
        config_file = Path(self._config_path)
        if not config_file.exists():
            logger.warning("Config file not found: %s; using defaults.", self._config_path)
            return {}
        try:
            with open(config_file, "r", encoding="utf-8") as fh:
                config = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {self._config_path}: {exc}") from exc
        if not isinstance(config, dict):
            raise ConfigurationError(f"{self._config_path} must contain a mapping")
        logger.info("Configuration loaded from %s", self._config_path)
        return config

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    @staticmethod
    def credentials_status() -> dict[str, bool]:
        return {
            "OPENAI_API_KEY": bool(os.getenv("OPENAI_API_KEY")),
            "GEMINI_API_KEY": bool(os.getenv("GEMINI_API_KEY")),
        }

    def require_credentials(self) -> None:
        """Raise :class:`ConfigurationError` when no LLM key is available."""
        if not any(self.credentials_status().values()):
            raise ConfigurationError(
                "Missing AI credentials. Set OPENAI_API_KEY (or GEMINI_API_KEY) "
                "in the environment or in " + self._env_path + "."
            )

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    def _get_llm_client(self):
        """Lazy-initialise and return the LLM client."""
        if self._llm_client is None:
            from seo_analyzer.integrations.llm_client import LLMClient
            llm_cfg = self.config.get("llm", {})
            primary = llm_cfg.get("primary", {})
            fallback = llm_cfg.get("fallback", {})
            cache_cfg = self.config.get("cache", {})
            rl_cfg = self.config.get("rate_limits", {})

            self._llm_client = LLMClient(
                openai_model=primary.get("model", "gpt-4o-mini"),
                gemini_model=fallback.get("model", "gemini-2.0-flash"),
                timeout=primary.get("timeout", 60),
                openai_rpm=rl_cfg.get("openai", {}).get("requests_per_minute", 60),
                gemini_rpm=rl_cfg.get("gemini", {}).get("requests_per_minute", 15),
                cache_enabled=cache_cfg.get("enabled", True),
                cache_ttl_hours=cache_cfg.get("ttl_hours", 24),
                cache_max_size=cache_cfg.get("max_size", 1000),
            )
        return self._llm_client

    def _get_meta_optimizer(self):
        from seo_analyzer.modules.meta_optimizer import MetaOptimizer
        seo_cfg = self.config.get("seo", {})
        return MetaOptimizer(
            self._get_llm_client(),
            industry=seo_cfg.get("industry", ""),
            limits=self.config.get("llm", {}).get("calls", {}),
            title_max_length=seo_cfg.get("title_length", {}).get("max", 60),
            description_max_length=seo_cfg.get("description_length", {}).get("max", 160),
        )

    def _bounds(self, key: str) -> tuple[int, int]:
        section = self.config.get("seo", {}).get(key, {})
        defaults = DEFAULT_CONFIG["seo"][key]
        low = int(section.get("min", defaults["min"]))
        high = int(section.get("max", defaults["max"]))
        if low > high:
            raise ConfigurationError(f"seo.{key}: min ({low}) is greater than max ({high})")
        return low, high

    def create_analyzer(
        self,
        start_url: str,
        max_depth: Optional[int] = None,
        use_ai: bool = True,
        concurrency: Optional[int] = None,
    ):
        """Build an :class:`SEOAnalyzer` for *start_url* from the loaded config.

        With *use_ai* the AI credential check runs first and raises
        :class:`ConfigurationError` before any network activity.
        """
        from seo_analyzer.integrations.page_fetcher import PageFetcher
        from seo_analyzer.modules.reporting import ReportEngine
        from seo_analyzer.modules.site_audit.analyzer import SEOAnalyzer

        self.initialize()
        if use_ai:
            self.require_credentials()

        crawler_cfg = self.config.get("crawler", {})
        max_depth = crawler_cfg.get("max_depth", 10) if max_depth is None else max_depth
        concurrency = crawler_cfg.get("concurrency", 1) if concurrency is None else concurrency
        if max_depth < 0:
            raise ConfigurationError("max_depth must be >= 0")
        if concurrency < 1:
            raise ConfigurationError("concurrency must be >= 1")

        fetcher = PageFetcher(
            timeout=crawler_cfg.get("request_timeout", 10),
            max_redirects=crawler_cfg.get("max_redirects", 5),
            user_agent=crawler_cfg.get("user_agent", "SEOAnalyzer/1.0"),
        )
        try:
            return SEOAnalyzer(
                start_url,
                max_depth=max_depth,
                keywords=list(self.config.get("seo", {}).get("keywords") or []),
                fetcher=fetcher,
                owns_fetcher=True,
                optimizer=self._get_meta_optimizer() if use_ai else None,
                concurrency=concurrency,
                max_index_depth=self.config.get("sitemap", {}).get("max_index_depth", 5),
                report_engine=ReportEngine(
                    title_length=self._bounds("title_length"),
                    description_length=self._bounds("description_length"),
                ),
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid start URL {start_url!r}: {exc}") from exc

    def get_usage_summary(self) -> dict[str, Any]:
        if self._llm_client is None:
            return {}
        return self._llm_client.get_usage_summary()
