"""
schemas/support.py
------------------
Announcements (platform → companies) and support tickets
(companies → platform).
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from bizdesk.models.support_ticket import TicketStatus
from bizdesk.schemas.common import Pagination

# ── Announcements ─────────────────────────────────────────────────────────────


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    type: Literal["info", "warning", "success", "error", "maintenance"] = "info"
    target: Literal["all", "company"] = "all"
    company_id: Optional[str] = None

    @model_validator(mode="after")
    def company_for_targeted(self) -> "AnnouncementCreate":
        if self.target == "company" and not self.company_id:
            raise ValueError("company_id is required when target is 'company'")
        if self.target == "all":
            self.company_id = None
        return self


class AnnouncementRead(BaseModel):
    id: str
    title: str
    content: str
    type: str
    target: str
    company_id: Optional[str] = None
    created_by_email: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CompanyAnnouncement(AnnouncementRead):
    is_read: bool = False


class AnnouncementList(BaseModel):
    announcements: List[AnnouncementRead]
    pagination: Pagination


class CompanyAnnouncementList(BaseModel):
    announcements: List[CompanyAnnouncement]
    unread_count: int


# ── Support tickets ───────────────────────────────────────────────────────────

TicketPriority = Literal["low", "medium", "high", "urgent"]


class TicketCreate(BaseModel):
    subject: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    priority: TicketPriority = "medium"
    category: Optional[str] = Field(default=None, max_length=100)


class TicketMessageCreate(BaseModel):
    message: str = Field(..., min_length=1)


class TicketStatusUpdate(BaseModel):
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    assigned_to: Optional[str] = Field(default=None, max_length=255)
    response: Optional[str] = None


class TicketMessageRead(BaseModel):
    id: str
    author_type: str
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    message: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TicketRead(BaseModel):
    id: str
    company_id: str
    ticket_number: str
    subject: str
    description: str
    priority: str
    category: Optional[str] = None
    status: str
    created_by_user_id: Optional[str] = None
    created_by_name: Optional[str] = None
    assigned_to: Optional[str] = None
    admin_response: Optional[str] = None
    responded_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TicketDetail(TicketRead):
    messages: List[TicketMessageRead] = []
    company_name: Optional[str] = None


class TicketList(BaseModel):
    tickets: List[TicketDetail]
    pagination: Pagination
