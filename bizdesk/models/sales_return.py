"""
models/sales_return.py
----------------------
Customer return against an existing sale.

A return is created `pending` and does not touch stock until it is
approved; approval restores stock and reduces the sale (ReturnService).
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizdesk.db.base import Base, TenantScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin
from bizdesk.models.product import Money


class ReturnStatus(str, PyEnum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class SalesReturn(UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "returns"

    return_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    sale_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # [{sale_item_id, product_id, product_name, quantity, unit_price, refund_amount}]
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    total_refund: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReturnStatus.pending.value, index=True
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)
    processed_by: Mapped[Optional[str]] = mapped_column(String(36))
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
