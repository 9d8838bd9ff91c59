"""SQLAlchemy ORM models; importing this package registers every table."""

from brand_audit.models.analytics import WebsiteAnalytics
from brand_audit.models.brand import BrandConfig
from brand_audit.models.report import BrandReport
from brand_audit.models.scans import MentionScan, SerpMonitoringScan

__all__ = [
    "BrandConfig",
    "BrandReport",
    "MentionScan",
    "SerpMonitoringScan",
    "WebsiteAnalytics",
]
