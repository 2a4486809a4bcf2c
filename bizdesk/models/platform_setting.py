"""
models/platform_setting.py
--------------------------
Key/value platform configuration editable from the super-admin console.
Values are stored JSON-encoded alongside their declared data_type.
"""

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizdesk.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class PlatformSetting(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "platform_settings"

    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general", index=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    data_type: Mapped[str] = mapped_column(String(20), nullable=False, default="string")
    description: Mapped[Optional[str]] = mapped_column(Text)
    updated_by: Mapped[Optional[str]] = mapped_column(String(36))
