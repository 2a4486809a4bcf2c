"""
models/audit_log.py
-------------------
Append-only audit trail.

company_id is nullable and deliberately has no foreign key: entries about a
company (including its deletion) must outlive the company itself.
"""

from typing import Any, Optional

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from bizdesk.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class AuditLog(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "audit_logs"

    company_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    actor_type: Mapped[str] = mapped_column(String(20), nullable=False)  # user | superadmin
    actor_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    actor_email: Mapped[Optional[str]] = mapped_column(String(320))
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entity_type: Mapped[Optional[str]] = mapped_column(String(50))
    entity_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    entity_name: Mapped[Optional[str]] = mapped_column(String(255))
    details: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64))
    user_agent: Mapped[Optional[str]] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="success")
