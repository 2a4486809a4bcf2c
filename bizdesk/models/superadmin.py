"""
models/superadmin.py
--------------------
Platform operator. Not attached to any company; authenticates through its
own table and its own token type.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from bizdesk.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class SuperAdmin(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "superadmins"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_by: Mapped[Optional[str]] = mapped_column(String(36))

    def __repr__(self) -> str:
        return f"<SuperAdmin id={self.id} email={self.email}>"
