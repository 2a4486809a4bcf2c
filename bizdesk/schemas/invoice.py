"""
schemas/invoice.py
------------------
Invoice payloads. An invoice is generated either from an existing sale
(`sales_order_id`) or from an explicit list of items.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, EmailStr, Field, computed_field, model_validator

from bizdesk.schemas.common import Pagination
from bizdesk.schemas.sale import SaleCurrency, SaleItemIn

InvoiceStatus = Literal["generated", "sent", "paid", "overdue", "cancelled"]


class InvoiceGenerate(BaseModel):
    sales_order_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("sales_order_id", "sale_id")
    )
    items: Optional[List[SaleItemIn]] = None
    customer_name: Optional[str] = Field(default=None, max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    customer_email: Optional[EmailStr] = None
    customer_address: Optional[str] = None
    currency: SaleCurrency = "UGX"
    tax: float = Field(default=0, ge=0)
    discount: float = Field(default=0, ge=0)
    due_date: Optional[date] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def source_required(self) -> "InvoiceGenerate":
        if not self.sales_order_id and not self.items:
            raise ValueError("Please add at least one item to create an invoice.")
        return self


class InvoiceUpdate(BaseModel):
    status: Optional[InvoiceStatus] = None
    notes: Optional[str] = None
    due_date: Optional[date] = None
    customer_name: Optional[str] = Field(default=None, max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    customer_email: Optional[EmailStr] = None
    customer_address: Optional[str] = None


class InvoiceRead(BaseModel):
    id: str
    company_id: str
    invoice_number: str
    sale_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    customer_address: Optional[str] = None
    items: List[Dict[str, Any]]
    subtotal: float
    tax: float
    discount: float
    total_amount: float
    currency: str
    status: str
    due_date: Optional[date] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field(alias="_id")
    @property
    def legacy_id(self) -> str:
        return self.id

    @computed_field
    @property
    def sales_order_id(self) -> Optional[str]:
        return self.sale_id


class InvoiceList(BaseModel):
    data: List[InvoiceRead]
    pagination: Pagination
