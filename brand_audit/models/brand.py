"""Brand configuration SQLAlchemy model."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from brand_audit.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class BrandConfig(Base):
    """A monitored brand: its website, language and strategic context."""

    __tablename__ = "brand_configs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    brand_name: Mapped[str] = mapped_column(String(255), nullable=False)
    website_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    language: Mapped[str] = mapped_column(String(10), default="en", nullable=False)
    organization_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    strategic_plan: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return f"<BrandConfig id={self.id!r} brand={self.brand_name!r}>"
