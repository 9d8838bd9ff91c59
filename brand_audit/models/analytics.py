"""Website analytics snapshot model (Search Console + Analytics sync)."""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Date, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from brand_audit.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WebsiteAnalytics(Base):
    """Daily analytics snapshot for an organization's site."""

    __tablename__ = "website_analytics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    top_search_pages: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    top_search_queries: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    bounce_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    avg_session_duration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return f"<WebsiteAnalytics id={self.id} org={self.organization_id!r} date={self.snapshot_date}>"
