"""
schemas/expense.py
------------------
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from bizdesk.schemas.common import Pagination


class ExpenseCreate(BaseModel):
    description: str = Field(..., max_length=2000)
    amount: float = Field(..., gt=0)
    category: Optional[str] = Field(default=None, max_length=100)
    expense_date: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("expense_date", "date")
    )
    payment_method: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Description is required")
        return v.strip()


class ExpenseUpdate(BaseModel):
    description: Optional[str] = Field(default=None, max_length=2000)
    amount: Optional[float] = Field(default=None, gt=0)
    category: Optional[str] = Field(default=None, max_length=100)
    expense_date: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("expense_date", "date")
    )
    payment_method: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Description cannot be empty")
        return v.strip() if v else v


class ExpenseRead(BaseModel):
    id: str
    company_id: str
    description: str
    amount: float
    category: str
    expense_date: date
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ExpenseList(BaseModel):
    data: List[ExpenseRead]
    pagination: Pagination


class CategoryTotal(BaseModel):
    category: str
    total: float
    count: int


class ExpenseSummary(BaseModel):
    totalExpenses: float
    totalCount: int
    byCategory: List[CategoryTotal]
