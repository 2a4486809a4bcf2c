"""
models/user.py
--------------
Tenant user. Belongs to exactly one company.

Roles (see core/permissions.py for what each may do):
  - 'admin'   full control of the company, including users
  - 'manager' catalogue, returns and customer management
  - 'sales'   day-to-day selling and invoicing

The hashed_password column stores bcrypt hashes only; plain text is
never stored and never logged.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bizdesk.core.permissions import Role
from bizdesk.db.base import Base, TenantScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin


class UserStatus(str, PyEnum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"


BLOCKED_USER_STATUSES = frozenset({UserStatus.inactive.value, UserStatus.suspended.value})


class User(UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("company_id", "email", name="uq_users_company_email"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.sales.value)
    is_company_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserStatus.active.value
    )
    # Extra actions granted on top of the role (values of permissions.Action)
    permissions: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"
