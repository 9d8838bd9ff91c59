"""Brand report SQLAlchemy model."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from brand_audit.database import Base

STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_FAILED})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BrandReport(Base):
    """One generation of the site intelligence report for a brand.

    Rows start ``running``; ``completed`` and ``failed`` are terminal.
    """

    __tablename__ = "brand_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    config_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), default=STATUS_RUNNING, nullable=False, index=True)

    overall_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    seo_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    llmo_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    geo_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    serp_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    pages_audited: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    seo_audit_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    geo_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    serp_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    gsc_insights: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    ai_tips: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    generated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "config_id": self.config_id,
            "status": self.status,
            "overall_score": self.overall_score,
            "seo_score": self.seo_score,
            "llmo_score": self.llmo_score,
            "geo_score": self.geo_score,
            "serp_score": self.serp_score,
            "pages_audited": self.pages_audited,
            "seo_audit_data": self.seo_audit_data,
            "geo_data": self.geo_data,
            "serp_data": self.serp_data,
            "gsc_insights": self.gsc_insights,
            "ai_tips": self.ai_tips,
            "error_message": self.error_message,
            "generated_at": self.generated_at,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<BrandReport id={self.id} config={self.config_id!r} status={self.status}>"
