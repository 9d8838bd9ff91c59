"""Brand report engine: one persisted site intelligence report per request.

Generation sequence:

1. Load and validate the brand configuration (before any row exists).
2. Create the report row in ``running`` state.
3. Concurrently load Search Console rows, the brand-mention score and the
   search-presence score.
4. Crawl and audit the site.
5. Ask the text generator for prioritised tips (failure is tolerated).
6. Compute the weighted overall score.
7. Mark the row ``completed``; any unexpected error marks it ``failed``
   and is re-raised.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from brand_audit.modules.reporting.ai_tips import AITipsResponse, build_tips_prompt, filter_affected_pages
from brand_audit.modules.site_audit.crawler import SiteCrawler
from brand_audit.utils.helpers import clamp, round_half_up

logger = logging.getLogger(__name__)

REPORT_MAX_PAGES = 30
TIPS_TEMPERATURE = 0.3

SCORE_WEIGHTS = {
    "seo": 0.30,
    "llmo": 0.30,
    "mention": 0.25,
    "serp": 0.15,
}
SERP_SENTIMENT_WEIGHT = 0.6
SERP_IMPORTANCE_WEIGHT = 0.4


class BrandConfigError(ValueError):
    """The brand configuration is missing or unusable."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


# ---------------------------------------------------------------------------
# Score helpers
# ---------------------------------------------------------------------------

def fetch_mention_score(mention_store, config_id: str) -> tuple[int, dict[str, Any]]:
    """Brand-mention score (0-100) from the latest completed scan."""
    scan = mention_store.get_latest_completed_scan(config_id)
    if not scan:
        return 0, {}
    score = int(round_half_up(scan.get("score") or 0))
    return score, {
        "scan_id": scan.get("id"),
        "geo_score": score,
        "scanned_at": _iso(scan.get("completed_at")),
    }


def compute_serp_score(scan: dict[str, Any]) -> int:
    """Composite search-presence score: 60 % sentiment, 40 % importance."""
    total = scan.get("total_results") or 1
    positive_ratio = (scan.get("positive_count") or 0) / total
    avg_importance = scan.get("avg_importance") or 0
    raw = (
        positive_ratio * 100 * SERP_SENTIMENT_WEIGHT
        + avg_importance * 100 * SERP_IMPORTANCE_WEIGHT
    )
    return int(clamp(round_half_up(raw)))


def fetch_serp_score(serp_store, config_id: str) -> tuple[int, dict[str, Any]]:
    """Search-presence score (0-100) from the latest completed scan."""
    scan = serp_store.get_latest_completed_scan(config_id)
    if not scan:
        return 0, {}
    return compute_serp_score(scan), {
        "scan_id": scan.get("id"),
        "total_results": scan.get("total_results"),
        "positive_count": scan.get("positive_count"),
        "negative_count": scan.get("negative_count"),
        "neutral_count": scan.get("neutral_count"),
        "avg_importance": scan.get("avg_importance"),
        "scanned_at": _iso(scan.get("completed_at")),
    }


def compute_overall_score(seo: float, llmo: float, mention: float, serp: float) -> int:
    return int(round_half_up(
        seo * SCORE_WEIGHTS["seo"]
        + llmo * SCORE_WEIGHTS["llmo"]
        + mention * SCORE_WEIGHTS["mention"]
        + serp * SCORE_WEIGHTS["serp"]
    ))


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class BrandReportEngine:
    """Orchestrates crawl, scores and AI tips into a persisted brand report.

    All collaborators are injected; the stores are synchronous and run in
    worker threads.

    Usage::

        engine = BrandReportEngine(ReportStore(), BrandConfigStore(), ...)
        report_id = await engine.generate("cfg-1")
    """

    def __init__(
        self,
        report_store,
        config_store,
        analytics_store,
        mention_store,
        serp_store,
        llm_client,
        crawler: Optional[SiteCrawler] = None,
    ) -> None:
        self.report_store = report_store
        self.config_store = config_store
        self.analytics_store = analytics_store
        self.mention_store = mention_store
        self.serp_store = serp_store
        self.llm = llm_client
        self.crawler = crawler or SiteCrawler()

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def _load_config(self, config_id: str) -> dict[str, Any]:
        config = await asyncio.to_thread(self.config_store.get_config, config_id)
        if not config:
            raise BrandConfigError(f"Brand config {config_id} not found")
        if not config.get("website_url"):
            raise BrandConfigError(f"No website URL configured for brand config {config_id}")
        return config

    async def _generate_ai_tips(
        self,
        crawl: dict[str, Any],
        mention_score: int,
        serp_score: int,
        gsc_data: Optional[dict[str, Any]],
        config: dict[str, Any],
    ) -> Optional[dict[str, Any]]:
        """Structured tips, or None when generation fails for any reason."""
        if self.llm is None:
            logger.warning("No text generator configured; report will have no AI tips")
            return None
        try:
            prompt = build_tips_prompt(crawl, mention_score, serp_score, gsc_data, config)
            response = await self.llm.generate_structured(
                prompt, AITipsResponse, temperature=TIPS_TEMPERATURE,
            )
            audited_urls = {page["url"] for page in crawl["pages"]}
            response = filter_affected_pages(response, audited_urls)
            return response.model_dump()
        except Exception as exc:
            logger.warning("AI tips generation failed: %s", exc)
            return None

    async def generate(self, config_id: str) -> int:
        """Generate a full brand report and return its id.

        Raises:
            BrandConfigError: Missing config or website URL; no row is created.
            Exception: Any other failure, after the row is marked ``failed``.
        """
        config = await self._load_config(config_id)

        created = await asyncio.to_thread(self.report_store.create_report, config_id)
        report_id = created["id"]

        try:
            gsc_data, (mention_score, mention_data), (serp_score, serp_data) = await asyncio.gather(
                asyncio.to_thread(self.analytics_store.get_latest_analytics, config.get("organization_id")),
                asyncio.to_thread(fetch_mention_score, self.mention_store, config_id),
                asyncio.to_thread(fetch_serp_score, self.serp_store, config_id),
            )

            crawl = await self.crawler.crawl_site(
                config["website_url"],
                gsc_pages=(gsc_data or {}).get("top_search_pages") or [],
                max_pages=REPORT_MAX_PAGES,
            )
            agg = crawl["aggregated"]

            ai_tips = await self._generate_ai_tips(crawl, mention_score, serp_score, gsc_data, config)

            overall = compute_overall_score(
                agg["avg_seo_score"], agg["avg_llmo_score"], mention_score, serp_score,
            )

            await asyncio.to_thread(self.report_store.update_report, report_id, {
                "status": "completed",
                "overall_score": overall,
                "seo_score": agg["avg_seo_score"],
                "llmo_score": agg["avg_llmo_score"],
                "geo_score": mention_score,
                "serp_score": serp_score,
                "pages_audited": crawl["pages_audited"],
                "seo_audit_data": crawl,
                "geo_data": mention_data,
                "serp_data": serp_data,
                "gsc_insights": gsc_data,
                "ai_tips": ai_tips,
                "generated_at": _utcnow(),
            })
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.error("Brand report %s failed: %s", report_id, message)
            await asyncio.to_thread(self.report_store.update_report, report_id, {
                "status": "failed",
                "error_message": message,
            })
            raise

        logger.info("Brand report %s completed (overall score %d)", report_id, overall)
        return report_id

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    async def get_latest(self, config_id: str) -> Optional[dict[str, Any]]:
        """Most recent completed report for *config_id*."""
        return await asyncio.to_thread(self.report_store.find_latest_completed, config_id)

    async def get_running(self, config_id: str) -> Optional[dict[str, Any]]:
        """Most recent report still in progress for *config_id*."""
        return await asyncio.to_thread(self.report_store.find_running, config_id)

    async def request_report(self, config_id: str) -> dict[str, Any]:
        """Start a report unless one is already running for *config_id*."""
        running = await self.get_running(config_id)
        if running:
            logger.info("Report %s already running for config %s", running["id"], config_id)
            return {"report_id": running["id"], "status": "already_running"}
        report_id = await self.generate(config_id)
        return {"report_id": report_id, "status": "completed"}

    async def get_status(self, config_id: str) -> dict[str, Any]:
        """Latest completed report plus whether a new one is in progress."""
        latest, running = await asyncio.gather(
            self.get_latest(config_id),
            self.get_running(config_id),
        )
        return {
            "report": latest,
            "is_running": running is not None,
            "running_report_id": running["id"] if running else None,
        }
