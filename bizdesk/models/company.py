"""
models/company.py
-----------------
Company (tenant) ORM model.

Every tenant-owned table references companies.id through company_id.
Lifecycle (driven by the super-admin console, see CompanyAdminService):

    pending_approval → active → {suspended ⇄ active, blocked, banned}
    pending_approval → rejected
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizdesk.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class CompanyStatus(str, PyEnum):
    pending_approval = "pending_approval"
    active = "active"
    suspended = "suspended"
    blocked = "blocked"
    banned = "banned"
    rejected = "rejected"


class Company(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "companies"

    company_name: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    business_type: Mapped[str] = mapped_column(String(50), default="general", nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(320))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    alternate_phone: Mapped[Optional[str]] = mapped_column(String(50))
    website: Mapped[Optional[str]] = mapped_column(String(255))
    address: Mapped[Optional[str]] = mapped_column(Text)
    city: Mapped[Optional[str]] = mapped_column(String(100))
    country: Mapped[Optional[str]] = mapped_column(String(100))
    tax_id: Mapped[Optional[str]] = mapped_column(String(100))
    currency: Mapped[str] = mapped_column(String(10), default="UGX", nullable=False)

    status: Mapped[str] = mapped_column(
        String(30), default=CompanyStatus.pending_approval.value, nullable=False, index=True
    )
    # Only "shared" (single schema, company_id filtered) is supported
    database_type: Mapped[str] = mapped_column(String(20), default="shared", nullable=False)
    subscription_tier: Mapped[str] = mapped_column(String(30), default="standard", nullable=False)

    settings: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    industry_features: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    approval_requested_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    approved_by: Mapped[Optional[str]] = mapped_column(String(36))

    status_reason: Mapped[Optional[str]] = mapped_column(Text)
    status_changed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    status_changed_by: Mapped[Optional[str]] = mapped_column(String(36))
    suspended_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.company_name} status={self.status}>"
