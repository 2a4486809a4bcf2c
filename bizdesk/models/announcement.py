"""
models/announcement.py
----------------------
Platform announcements published by super-admins.

target == "all"      → visible to every company (company_id is NULL)
target == "company"  → visible only to company_id
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bizdesk.db.base import Base, TenantScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin, utcnow


class Announcement(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "announcements"

    company_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), index=True
    )
    target: Mapped[str] = mapped_column(String(20), nullable=False, default="all")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="info")
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_by_email: Mapped[Optional[str]] = mapped_column(String(320))


class AnnouncementRead(UUIDPrimaryKeyMixin, TenantScopedMixin, Base):
    __tablename__ = "announcement_reads"
    __table_args__ = (
        UniqueConstraint("announcement_id", "user_id", name="uq_announcement_reads_user"),
    )

    announcement_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("announcements.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    read_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
