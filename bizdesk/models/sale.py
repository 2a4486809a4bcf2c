"""
models/sale.py
--------------
Sales order and its line items.

Amounts are stored in the company's base currency. A sale taken in USD
keeps the original currency and the rate applied in `currency` and
`exchange_rate` for the receipt.
"""

from enum import Enum as PyEnum
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bizdesk.db.base import Base, TenantScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin
from bizdesk.models.product import Money


class SaleStatus(str, PyEnum):
    completed = "completed"
    pending = "pending"
    cancelled = "cancelled"
    refunded = "refunded"


class Sale(UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "sales"

    sale_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    customer_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("customers.id", ondelete="SET NULL"), index=True
    )
    customer_name: Mapped[Optional[str]] = mapped_column(String(255))
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50))
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="UGX")
    exchange_rate: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    total_amount: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    total_profit: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SaleStatus.completed.value
    )
    payment_method: Mapped[Optional[str]] = mapped_column(String(50))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    has_returns: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    total_refunded: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    edit_history: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))

    items: Mapped[list["SaleItem"]] = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SaleItem.position",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} number={self.sale_number} total={self.total_amount}>"


class SaleItem(UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "sale_items"

    sale_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="SET NULL"), index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    returned_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unit_price: Mapped[float] = mapped_column(Money, nullable=False)
    cost_price: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    item_total: Mapped[float] = mapped_column(Money, nullable=False)
    item_profit: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    custom_price_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    sale: Mapped["Sale"] = relationship("Sale", back_populates="items")
