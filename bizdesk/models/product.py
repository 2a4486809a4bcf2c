"""
models/product.py
-----------------
Catalogue item and its stock ledger.

Product.quantity is the on-hand stock and never goes negative: sales
decrement it with a conditional UPDATE (see SaleService). Every change is
mirrored by a StockTransaction row with a signed quantity.
"""

from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from bizdesk.db.base import Base, TenantScopedMixin, TimestampMixin, UUIDPrimaryKeyMixin

Money = Numeric(14, 2, asdecimal=False)


class Product(UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("company_id", "sku", name="uq_products_company_sku"),
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    selling_price: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    cost_price: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reorder_level: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.reorder_level

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku} qty={self.quantity}>"


class StockTransactionType(str, PyEnum):
    initial = "initial"
    adjustment = "adjustment"
    sale = "sale"
    sale_deleted = "sale_deleted"
    return_ = "return"


class StockTransaction(UUIDPrimaryKeyMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "stock_transactions"

    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    # Signed: negative for stock leaving, positive for stock arriving
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reference_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
