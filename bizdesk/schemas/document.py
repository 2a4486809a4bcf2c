"""
schemas/document.py
-------------------
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from bizdesk.schemas.common import Pagination


class DocumentRead(BaseModel):
    id: str
    company_id: str
    user_id: Optional[str] = None
    original_name: str
    mime_type: str
    file_size: int
    document_type: str
    extracted_data: Dict[str, Any]
    status: str
    expense_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class DocumentProcessed(BaseModel):
    success: bool = True
    message: str = "Document processed successfully"
    document: DocumentRead
    validation: Dict[str, Any]
    suggestions: List[Dict[str, Any]]


class DocumentList(BaseModel):
    documents: List[DocumentRead]
    pagination: Pagination


class ExpenseFromReceipt(BaseModel):
    category: str = Field(default="supplies", max_length=100)
    amount: Optional[float] = Field(default=None, gt=0)
    payment_method: Optional[str] = Field(default=None, max_length=50)
