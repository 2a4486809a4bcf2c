"""
schemas/superadmin.py
---------------------
Payloads of the super-admin console: operator accounts, company
lifecycle actions, platform-wide listings and the audit trail.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from bizdesk.schemas.common import Pagination
from bizdesk.schemas.company import CompanyRead
from bizdesk.schemas.user import UserRead


# ── Operator accounts ─────────────────────────────────────────────────────────

class SuperAdminLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SuperAdminCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class SuperAdminUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    is_active: Optional[bool] = None


class SuperAdminRead(BaseModel):
    id: str
    name: str
    email: str
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SuperAdminToken(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    expires_in: int
    admin: SuperAdminRead


class SuperAdminList(BaseModel):
    superAdmins: List[SuperAdminRead]


# ── Company lifecycle ─────────────────────────────────────────────────────────

class StatusReason(BaseModel):
    """Body of reject / block / ban."""
    reason: str = Field(..., min_length=1, max_length=1000)


class SuspendRequest(StatusReason):
    duration_days: Optional[int] = Field(
        default=None, gt=0, le=3650, description="Omit for an open-ended suspension"
    )


class CompanyStatusResult(BaseModel):
    message: str
    company: CompanyRead


class CompanyList(BaseModel):
    companies: List[CompanyRead]
    pagination: Pagination


class PendingCompanyList(BaseModel):
    companies: List[CompanyRead]
    count: int


class CompanyStatistics(BaseModel):
    userCount: int
    productCount: int
    customerCount: int
    salesCount: int
    totalRevenue: float


class CompanyProfile(BaseModel):
    company: CompanyRead
    admin: Optional[UserRead] = None
    statistics: CompanyStatistics


# ── Platform-wide ─────────────────────────────────────────────────────────────

class PlatformUser(UserRead):
    company_name: Optional[str] = None


class PlatformUserList(BaseModel):
    users: List[PlatformUser]
    pagination: Pagination


class PlatformStatistics(BaseModel):
    statistics: Dict[str, Any]
    recentActivity: Dict[str, Any]
    businessTypes: List[Dict[str, Any]]


# ── Audit trail ───────────────────────────────────────────────────────────────

class AuditLogRead(BaseModel):
    id: str
    company_id: Optional[str] = None
    actor_type: str
    actor_id: Optional[str] = None
    actor_email: Optional[str] = None
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    details: Dict[str, Any]
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogList(BaseModel):
    logs: List[AuditLogRead]
    pagination: Pagination


class AuditLogTarget(BaseModel):
    logs: List[AuditLogRead]


class AuditStats(BaseModel):
    total: int
    last_24_hours: int
    by_action: List[Dict[str, Any]]
    by_status: Dict[str, int]
