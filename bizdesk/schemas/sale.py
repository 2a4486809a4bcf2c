"""
schemas/sale.py
---------------
Sales order payloads.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, computed_field

from bizdesk.models.sale import SaleStatus
from bizdesk.schemas.common import Pagination

SaleCurrency = Literal["UGX", "USD", "EUR", "GBP"]


class SaleItemIn(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    custom_price: Optional[float] = Field(default=None, gt=0)


class SaleCreate(BaseModel):
    customer_name: Optional[str] = Field(default=None, max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    items: List[SaleItemIn] = Field(..., min_length=1)
    currency: SaleCurrency = "UGX"
    payment_method: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None


class SaleUpdate(BaseModel):
    customer_name: Optional[str] = Field(default=None, max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    status: Optional[SaleStatus] = None


class SaleItemRead(BaseModel):
    id: str
    product_id: Optional[str] = None
    product_name: str
    quantity: int
    returned_quantity: int
    unit_price: float
    cost_price: float
    item_total: float
    item_profit: float
    custom_price_used: bool

    model_config = {"from_attributes": True}


class SaleRead(BaseModel):
    id: str
    company_id: str
    sale_number: str
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    currency: str
    exchange_rate: float
    total_amount: float
    total_profit: float
    status: str
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    has_returns: bool
    total_refunded: float
    edit_history: List[Dict[str, Any]]
    created_by: Optional[str] = None
    items: List[SaleItemRead]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field(alias="_id")
    @property
    def legacy_id(self) -> str:
        return self.id

    @computed_field
    @property
    def total(self) -> float:
        return self.total_amount

    @computed_field
    @property
    def subtotal(self) -> float:
        return self.total_amount


class SaleList(BaseModel):
    data: List[SaleRead]
    pagination: Pagination


class SaleUpdated(BaseModel):
    message: str
    order: SaleRead
