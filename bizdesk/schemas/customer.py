"""
schemas/customer.py
-------------------
Customer payloads and the purchase-history view.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, computed_field

from bizdesk.schemas.common import Pagination


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    phone: str = Field(..., min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    phone: Optional[str] = Field(default=None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class CustomerRead(BaseModel):
    id: str
    company_id: str
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @computed_field(alias="_id")
    @property
    def legacy_id(self) -> str:
        return self.id


class CustomerList(BaseModel):
    customers: List[CustomerRead]
    pagination: Pagination


class CustomerOrder(BaseModel):
    id: str
    sale_number: str
    total_amount: float
    status: str
    item_count: int
    created_at: datetime


class TopProduct(BaseModel):
    name: str
    quantity: int


class PurchaseStats(BaseModel):
    total_orders: int
    total_spent: float
    avg_order_value: float
    last_order_date: Optional[datetime] = None
    top_products: List[TopProduct]


class PurchaseHistory(BaseModel):
    customer: CustomerRead
    orders: List[CustomerOrder]
    invoice_count: int
    stats: PurchaseStats
