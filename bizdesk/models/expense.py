"""
models/expense.py
-----------------
Operating expense entry.
"""

from datetime import date
from typing import Optional

from sqlalchemy import Date, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizdesk.db.base import Base, TenantScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin
from bizdesk.models.product import Money


class Expense(UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "expenses"

    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[float] = mapped_column(Money, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="other", index=True)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(50))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
