"""Application wiring: configuration, database and the report engine."""

import functools
import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from brand_audit.modules.site_audit.fetcher import FETCH_TIMEOUT_MS, USER_AGENT, fetch_text

logger = logging.getLogger(__name__)


class BrandAuditApp:
    """Loads settings and builds the crawler, stores and report engine.

    Usage::

        app = BrandAuditApp()
        app.initialize()
        result = await app.get_report_engine().request_report("cfg-1")
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
        self._llm_checked = False
        self._engine = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, init_database: bool = True) -> None:
        """Load ``.env`` and YAML settings, then create missing tables."""
        if self._initialized:
            return

        env_file = Path(self._env_path)
        if env_file.exists():
            load_dotenv(env_file)
            logger.info("Loaded environment from %s", self._env_path)

        self.config = self._load_config()

        if init_database:
            from brand_audit.database import init_db
            db_cfg = self.config.get("database", {})
            init_db(database_url=db_cfg.get("url"), echo=db_cfg.get("echo", False))

        self._initialized = True
        logger.info("BrandAuditApp initialised.")

    def _load_config(self) -> dict[str, Any]:
        config_file = Path(self._config_path)
        if not config_file.exists():
            logger.warning("Config file not found: %s; using defaults.", self._config_path)
            return {}
        with open(config_file, "r", encoding="utf-8") as fh:
            config = yaml.safe_load(fh) or {}
        logger.info("Configuration loaded from %s", self._config_path)
        return config

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            self.initialize()

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def max_pages(self) -> int:
        return int(self.config.get("crawler", {}).get("max_pages", 30))

    def build_crawler(self):
        from brand_audit.modules.site_audit.crawler import SiteCrawler
        crawler_cfg = self.config.get("crawler", {})
        fetcher = functools.partial(
            fetch_text,
            timeout_ms=crawler_cfg.get("timeout_ms", FETCH_TIMEOUT_MS),
            user_agent=crawler_cfg.get("user_agent", USER_AGENT),
        )
        return SiteCrawler(fetcher=fetcher)

    def get_llm_client(self):
        """Lazily build the LLM client; None when no provider key is set."""
        if not self._llm_checked:
            from brand_audit.integrations.llm_client import LLMClient
            llm_cfg = self.config.get("llm", {})
            primary = llm_cfg.get("primary", {})
            fallback = llm_cfg.get("fallback", {})
            budget_cfg = llm_cfg.get("budget", {})
            rl_cfg = self.config.get("rate_limits", {})

            client = LLMClient(
                openai_model=primary.get("model", "gpt-4o-mini"),
                gemini_model=fallback.get("model", "gemini-2.0-flash"),
                max_tokens=primary.get("max_tokens", 4096),
                temperature=primary.get("temperature", 0.7),
                timeout=primary.get("timeout", 60),
                openai_rpm=rl_cfg.get("openai", {}).get("requests_per_minute", 60),
                gemini_rpm=rl_cfg.get("gemini", {}).get("requests_per_minute", 15),
                max_monthly_budget=budget_cfg.get("max_monthly_usd", 100.0),
                budget_warning_pct=budget_cfg.get("warning_threshold_pct", 80.0),
            )
            self._llm_checked = True
            if not client.is_configured:
                logger.warning("No LLM provider key set; AI tips will be skipped.")
                return None
            self._llm_client = client
        return self._llm_client

    def get_report_engine(self):
        self._ensure_initialized()
        if self._engine is None:
            from brand_audit.modules.reporting.brand_report_engine import BrandReportEngine
            from brand_audit.modules.reporting.stores import (
                AnalyticsStore,
                BrandConfigStore,
                MentionScanStore,
                ReportStore,
                SerpScanStore,
            )
            self._engine = BrandReportEngine(
                report_store=ReportStore(),
                config_store=BrandConfigStore(),
                analytics_store=AnalyticsStore(),
                mention_store=MentionScanStore(),
                serp_store=SerpScanStore(),
                llm_client=self.get_llm_client(),
                crawler=self.build_crawler(),
            )
        return self._engine

    async def crawl(self, url: str, max_pages: Optional[int] = None) -> dict[str, Any]:
        """Crawl and audit *url* without persisting anything."""
        crawler = self.build_crawler()
        return await crawler.crawl_site(url, max_pages=max_pages or self.max_pages)
