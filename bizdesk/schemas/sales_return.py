"""
schemas/sales_return.py
-----------------------
Return (refund) requests against a sale.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, model_validator

from bizdesk.schemas.common import Pagination


class ReturnItemIn(BaseModel):
    """A line to return, identified by sale line or by product."""
    sale_item_id: Optional[str] = None
    product_id: Optional[str] = None
    quantity: int = Field(..., gt=0)

    @model_validator(mode="after")
    def identifies_a_line(self) -> "ReturnItemIn":
        if not self.sale_item_id and not self.product_id:
            raise ValueError("Each return item needs a sale_item_id or a product_id")
        return self


class ReturnCreate(BaseModel):
    sale_id: str = Field(..., validation_alias=AliasChoices("sale_id", "order_id", "sales_order_id"))
    items: List[ReturnItemIn] = Field(..., min_length=1)
    reason: Optional[str] = Field(default=None, max_length=2000)


class ReturnReject(BaseModel):
    rejection_reason: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("rejection_reason", "reason")
    )


class ReturnRead(BaseModel):
    id: str
    company_id: str
    return_number: str
    sale_id: str
    items: List[Dict[str, Any]]
    total_refund: float
    reason: Optional[str] = None
    status: str
    rejection_reason: Optional[str] = None
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @computed_field(alias="_id")
    @property
    def legacy_id(self) -> str:
        return self.id

    @computed_field
    @property
    def order_id(self) -> str:
        return self.sale_id

    @computed_field
    @property
    def total_refund_amount(self) -> float:
        return self.total_refund


class ReturnList(BaseModel):
    data: List[ReturnRead]
    pagination: Pagination


class ReturnResponse(BaseModel):
    message: str
    model_config = ConfigDict(populate_by_name=True)

    return_: ReturnRead = Field(alias="return")
