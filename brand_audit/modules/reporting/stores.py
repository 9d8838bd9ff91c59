"""SQLAlchemy-backed collaborators consumed by the brand report engine.

Each store is synchronous and returns plain dicts so the engine never holds
ORM instances across threads.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select

from brand_audit.database import get_session
from brand_audit.models.analytics import WebsiteAnalytics
from brand_audit.models.brand import BrandConfig
from brand_audit.models.report import STATUS_COMPLETED, STATUS_RUNNING, BrandReport
from brand_audit.models.scans import MentionScan, SerpMonitoringScan

logger = logging.getLogger(__name__)

# Fields a report patch may set.
REPORT_PATCH_FIELDS = frozenset({
    "status",
    "overall_score",
    "seo_score",
    "llmo_score",
    "geo_score",
    "serp_score",
    "pages_audited",
    "seo_audit_data",
    "geo_data",
    "serp_data",
    "gsc_insights",
    "ai_tips",
    "error_message",
    "generated_at",
})


class ReportStore:
    """Persistence for :class:`BrandReport` rows."""

    def create_report(self, config_id: str) -> dict[str, Any]:
        with get_session() as session:
            report = BrandReport(config_id=config_id, status=STATUS_RUNNING)
            session.add(report)
            session.flush()
            report_id = report.id
        logger.info("Brand report %d created (running) for config %s", report_id, config_id)
        return {"id": report_id}

    def update_report(self, report_id: int, patch: dict[str, Any]) -> None:
        """Apply *patch* to a running report.

        Raises:
            ValueError: Unknown field in *patch*.
            LookupError: No report with *report_id*.
            RuntimeError: The report is already completed or failed.
        """
        unknown = set(patch) - REPORT_PATCH_FIELDS
        if unknown:
            raise ValueError(f"Unknown report fields: {sorted(unknown)}")

        with get_session() as session:
            report = session.get(BrandReport, report_id)
            if report is None:
                raise LookupError(f"Brand report {report_id} not found")
            if report.is_terminal:
                raise RuntimeError(
                    f"Brand report {report_id} is already {report.status} and cannot change"
                )
            for key, value in patch.items():
                setattr(report, key, value)

    def get_report(self, report_id: int) -> Optional[dict[str, Any]]:
        with get_session() as session:
            report = session.get(BrandReport, report_id)
            return report.to_dict() if report else None

    def _find_latest(self, config_id: str, status: str) -> Optional[dict[str, Any]]:
        stmt = (
            select(BrandReport)
            .where(BrandReport.config_id == config_id, BrandReport.status == status)
            .order_by(BrandReport.created_at.desc(), BrandReport.id.desc())
            .limit(1)
        )
        with get_session() as session:
            report = session.scalars(stmt).first()
            return report.to_dict() if report else None

    def find_latest_completed(self, config_id: str) -> Optional[dict[str, Any]]:
        return self._find_latest(config_id, STATUS_COMPLETED)

    def find_running(self, config_id: str) -> Optional[dict[str, Any]]:
        return self._find_latest(config_id, STATUS_RUNNING)


class BrandConfigStore:

    def get_config(self, config_id: str) -> Optional[dict[str, Any]]:
        with get_session() as session:
            config = session.get(BrandConfig, config_id)
            if config is None:
                return None
            return {
                "id": config.id,
                "brand_name": config.brand_name,
                "website_url": config.website_url,
                "language": config.language,
                "organization_id": config.organization_id,
                "description": config.description,
                "strategic_plan": config.strategic_plan,
            }


class AnalyticsStore:
    """Latest Search Console / Analytics snapshot for an organization."""

    def get_latest_analytics(self, organization_id: Optional[str]) -> Optional[dict[str, Any]]:
        if not organization_id:
            return None
        stmt = (
            select(WebsiteAnalytics)
            .where(WebsiteAnalytics.organization_id == organization_id)
            .order_by(WebsiteAnalytics.snapshot_date.desc(), WebsiteAnalytics.id.desc())
            .limit(1)
        )
        with get_session() as session:
            row = session.scalars(stmt).first()
            if row is None:
                return None
            return {
                "top_search_pages": row.top_search_pages or [],
                "top_search_queries": row.top_search_queries or [],
                "avg_bounce_rate": row.bounce_rate,
                "avg_session_duration": row.avg_session_duration,
            }


class MentionScanStore:

    def get_latest_completed_scan(self, config_id: str) -> Optional[dict[str, Any]]:
        stmt = (
            select(MentionScan)
            .where(MentionScan.config_id == config_id, MentionScan.status == STATUS_COMPLETED)
            .order_by(MentionScan.completed_at.desc(), MentionScan.id.desc())
            .limit(1)
        )
        with get_session() as session:
            scan = session.scalars(stmt).first()
            if scan is None:
                return None
            return {"id": scan.id, "score": scan.score, "completed_at": scan.completed_at}


class SerpScanStore:

    def get_latest_completed_scan(self, config_id: str) -> Optional[dict[str, Any]]:
        stmt = (
            select(SerpMonitoringScan)
            .where(
                SerpMonitoringScan.config_id == config_id,
                SerpMonitoringScan.status == STATUS_COMPLETED,
            )
            .order_by(SerpMonitoringScan.started_at.desc(), SerpMonitoringScan.id.desc())
            .limit(1)
        )
        with get_session() as session:
            scan = session.scalars(stmt).first()
            if scan is None:
                return None
            return {
                "id": scan.id,
                "total_results": scan.total_results,
                "positive_count": scan.positive_count,
                "negative_count": scan.negative_count,
                "neutral_count": scan.neutral_count,
                "avg_importance": scan.avg_importance,
                "completed_at": scan.completed_at,
            }
