"""
schemas/notification.py
-----------------------
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class NotificationCreate(BaseModel):
    user_id: Optional[str] = Field(
        default=None, description="Recipient inside the company; defaults to the caller"
    )
    type: str = Field(default="info", max_length=50)
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    link: Optional[str] = Field(default=None, max_length=500)
    priority: Literal["low", "normal", "high", "urgent"] = "normal"


class NotificationRead(BaseModel):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    link: Optional[str] = None
    priority: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationList(BaseModel):
    notifications: List[NotificationRead]
    unread_count: int
    total: int


class NotificationCount(BaseModel):
    message: str
    count: int
