"""
models/analytics.py
-------------------
Anonymous visitor sessions recorded by the public tracking endpoint.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bizdesk.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class VisitorSession(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "visitor_sessions"

    session_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64))
    user_agent: Mapped[Optional[str]] = mapped_column(String(500))
    device_type: Mapped[str] = mapped_column(String(20), nullable=False, default="unknown")
    browser: Mapped[Optional[str]] = mapped_column(String(100))
    os: Mapped[Optional[str]] = mapped_column(String(100))
    referrer: Mapped[Optional[str]] = mapped_column(String(500))
    # [{page, timestamp, duration}]
    page_views: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    total_page_views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    duration: Mapped[Optional[int]] = mapped_column(Integer)  # seconds
    is_authenticated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(36))
    company_id: Mapped[Optional[str]] = mapped_column(String(36))
