"""
models/document.py
------------------
An uploaded receipt, invoice or ID scan and the fields read from it.
Only the extraction result is kept; the uploaded bytes are discarded.
"""

from typing import Any, Optional

from sqlalchemy import JSON, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bizdesk.db.base import Base, TenantScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin


class ProcessedDocument(UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "processed_documents"

    user_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    document_type: Mapped[str] = mapped_column(String(20), nullable=False, default="receipt")
    extracted_data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")
    expense_id: Mapped[Optional[str]] = mapped_column(String(36))
