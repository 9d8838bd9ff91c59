"""Brand reporting module: AI tips, persistence stores and the report engine."""

from brand_audit.modules.reporting.ai_tips import AITip, AITipsResponse
from brand_audit.modules.reporting.brand_report_engine import BrandConfigError, BrandReportEngine
from brand_audit.modules.reporting.stores import (
    AnalyticsStore,
    BrandConfigStore,
    MentionScanStore,
    ReportStore,
    SerpScanStore,
)

__all__ = [
    "AITip",
    "AITipsResponse",
    "AnalyticsStore",
    "BrandConfigError",
    "BrandConfigStore",
    "BrandReportEngine",
    "MentionScanStore",
    "ReportStore",
    "SerpScanStore",
]
