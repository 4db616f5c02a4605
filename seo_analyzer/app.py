"""Application wiring for the keyphrase SEO analyzer.

Loads ``config/settings.yaml`` and ``.env``, then builds the LLM client,
recommendation provider and analyzer that the CLI and HTTP API share.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from seo_analyzer.modules.onpage_seo.analyzer import OnPageAnalyzer
from seo_analyzer.modules.onpage_seo.document import AnalysisResult
from seo_analyzer.modules.onpage_seo.recommendations import LLMRecommendationProvider

logger = logging.getLogger(__name__)

_FALSE_VALUES = {"0", "false", "no", "off"}


class SEOAnalyzerApp:
    """Central application object.

    Usage::

        app = SEOAnalyzerApp()
        result = await app.analyze("https://example.com/blue-widgets", "blue widgets")
    """

    def __init__(
        self,
        config_path: str = "config/settings.yaml",
        env_path: str = ".env",
    ):
        self._config_path = config_path
        self._env_path = env_path
        self.config: dict[str, Any] = {}
        self._initialized = False
        self._llm_client = None
        self._db_ready = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load environment and configuration (idempotent)."""
        if self._initialized:
            return

        env_file = Path(self._env_path)
        if env_file.exists():
            load_dotenv(env_file)
            logger.info("Loaded environment from %s", self._env_path)

        self.config = self._load_config()
        self._initialized = True
        logger.debug("SEOAnalyzerApp initialised.")

    def _load_config(self) -> dict[str, Any]:
        """Load the YAML configuration file."""
        config_file = Path(self._config_path)
        if not config_file.exists():
            logger.warning("Config file not found: %s, using defaults.", self._config_path)
            return {}
        with open(config_file, "r", encoding="utf-8") as fh:
            config = yaml.safe_load(fh) or {}
        logger.info("Configuration loaded from %s", self._config_path)
        return config

    def section(self, name: str) -> dict[str, Any]:
        self.initialize()
        return self.config.get(name, {}) or {}

    # ------------------------------------------------------------------
    # Component factories
    # ------------------------------------------------------------------

    @property
    def recommendations_enabled(self) -> bool:
        env_value = os.getenv("USE_GPT_RECOMMENDATIONS")
        if env_value is not None:
            return env_value.strip().lower() not in _FALSE_VALUES
        return bool(self.section("llm").get("recommendations_enabled", True))

    def get_llm_client(self):
        """Lazy-initialise and return the LLM client."""
        if self._llm_client is None:
            from seo_analyzer.integrations.llm_client import LLMClient
            llm_cfg = self.section("llm")
            primary = llm_cfg.get("primary", {})
            fallback = llm_cfg.get("fallback", {})
            cache_cfg = llm_cfg.get("cache", {})
            rl_cfg = self.section("rate_limits")

            self._llm_client = LLMClient(
                openai_model=primary.get("model", "gpt-4o-mini"),
                gemini_model=fallback.get("model", "gemini-2.0-flash"),
                max_tokens=primary.get("max_tokens", 150),
                temperature=primary.get("temperature", 0.7),
                timeout=primary.get("timeout", 30),
                openai_rpm=rl_cfg.get("openai", {}).get("requests_per_minute", 60),
                gemini_rpm=rl_cfg.get("gemini", {}).get("requests_per_minute", 15),
                cache_enabled=cache_cfg.get("enabled", True),
                cache_ttl_hours=cache_cfg.get("ttl_hours", 24),
                cache_max_size=cache_cfg.get("max_size", 1000),
            )
            if not self._llm_client.is_configured:
                logger.warning(
                    "No OPENAI_API_KEY or GEMINI_API_KEY set; using fallback recommendations."
                )
        return self._llm_client

    def get_analyzer(self, use_ai: Optional[bool] = None) -> OnPageAnalyzer:
        """Build a fresh analyzer; one per request is cheap and keeps state request-scoped."""
        from seo_analyzer.modules.onpage_seo.extractor import PageExtractor

        enabled = self.recommendations_enabled if use_ai is None else use_ai
        analysis_cfg = self.section("analysis")
        llm_client = self.get_llm_client() if enabled else None
        provider = LLMRecommendationProvider(
            llm_client,
            enabled=enabled,
            max_tokens=self.section("llm").get("primary", {}).get("max_tokens", 150),
        )
        extractor = PageExtractor(
            timeout=analysis_cfg.get("fetch_timeout", 30),
            verify_ssl=analysis_cfg.get("verify_ssl", True),
        )
        return OnPageAnalyzer(provider=provider, extractor=extractor)

    def ensure_database(self) -> None:
        if self._db_ready:
            return
        from seo_analyzer.database import init_db
        db_cfg = self.section("database")
        database_url = os.getenv("DATABASE_URL") or db_cfg.get("url")
        init_db(database_url=database_url, echo=db_cfg.get("echo", False))
        self._db_ready = True

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def analyze(
        self,
        url: str,
        keyphrase: str,
        save: Optional[bool] = None,
        use_ai: Optional[bool] = None,
    ) -> AnalysisResult:
        """Analyse one page and optionally store it in the history database."""
        analyzer = self.get_analyzer(use_ai=use_ai)
        result = await analyzer.analyze(url, keyphrase)

        should_save = self.section("analysis").get("save_history", False) if save is None else save
        if should_save:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self.save_history, result)
        return result

    def save_history(self, result: AnalysisResult) -> int:
        """Store *result* in the history database (blocking)."""
        from seo_analyzer.models.analysis import save_analysis
        self.ensure_database()
        record_id = save_analysis(result)
        logger.info("Saved analysis %d for %s", record_id, result.url)
        return record_id
