"""
models/support_ticket.py
------------------------
Support requests raised by a company towards the platform operators,
plus the message thread on each ticket.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizdesk.db.base import Base, TenantScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin


class TicketStatus(str, PyEnum):
    open = "open"
    in_progress = "in-progress"
    resolved = "resolved"
    closed = "closed"


class SupportTicket(UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "support_tickets"

    ticket_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    category: Mapped[Optional[str]] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TicketStatus.open.value, index=True
    )
    created_by_user_id: Mapped[Optional[str]] = mapped_column(String(36))
    created_by_name: Mapped[Optional[str]] = mapped_column(String(255))
    assigned_to: Mapped[Optional[str]] = mapped_column(String(255))
    admin_response: Mapped[Optional[str]] = mapped_column(Text)
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class TicketMessage(UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "ticket_messages"

    ticket_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("support_tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_type: Mapped[str] = mapped_column(String(20), nullable=False)  # company | superadmin
    author_id: Mapped[Optional[str]] = mapped_column(String(36))
    author_name: Mapped[Optional[str]] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text, nullable=False)
