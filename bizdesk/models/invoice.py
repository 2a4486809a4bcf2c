"""
models/invoice.py
-----------------
Invoice document. Line items are stored as a JSON snapshot so later
catalogue edits never change an issued invoice.
"""

from datetime import date
from typing import Any, Optional

from sqlalchemy import JSON, Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizdesk.db.base import Base, TenantScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin
from bizdesk.models.product import Money


class Invoice(UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "invoices"

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    sale_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("sales.id", ondelete="SET NULL"), index=True
    )
    customer_name: Mapped[Optional[str]] = mapped_column(String(255))
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50))
    customer_email: Mapped[Optional[str]] = mapped_column(String(320))
    customer_address: Mapped[Optional[str]] = mapped_column(Text)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    subtotal: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    tax: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    discount: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    total_amount: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="UGX")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="generated")
    due_date: Mapped[Optional[date]] = mapped_column(Date)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
