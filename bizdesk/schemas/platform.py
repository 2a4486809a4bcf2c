"""
schemas/platform.py
-------------------
Platform settings (super-admin) and anonymous visitor analytics.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# ── Platform settings ─────────────────────────────────────────────────────────

SettingType = Literal["string", "number", "boolean", "json"]


class PlatformSettingUpdate(BaseModel):
    category: str = Field(default="general", min_length=1, max_length=50)
    key: str = Field(..., min_length=1, max_length=100)
    value: Any
    description: Optional[str] = None
    data_type: Optional[SettingType] = None


class SettingValue(BaseModel):
    value: Any
    description: Optional[str] = None
    data_type: str
    updated_at: Optional[datetime] = None


class PlatformSettings(BaseModel):
    """{category: {key: SettingValue}}"""
    settings: Dict[str, Dict[str, SettingValue]]


# ── Visitor analytics ─────────────────────────────────────────────────────────

class TrackVisit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., min_length=1, max_length=100, alias="sessionId")
    page: str = Field(..., min_length=1, max_length=500)
    referrer: Optional[str] = Field(default=None, max_length=500)
    user_agent: Optional[str] = Field(default=None, max_length=500, alias="userAgent")
    is_authenticated: bool = Field(default=False, alias="isAuthenticated")
    user_id: Optional[str] = Field(default=None, alias="userId")
    company_id: Optional[str] = Field(default=None, alias="companyId")
    previous_page_duration: int = Field(default=0, ge=0, alias="previousPageDuration")


class SessionUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., min_length=1, max_length=100, alias="sessionId")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")
    final_page_duration: int = Field(default=0, ge=0, alias="finalPageDuration")


class TrackResult(BaseModel):
    success: bool = True
    sessionId: str


class SessionResult(BaseModel):
    success: bool = True
    duration: int


class AnalyticsOverview(BaseModel):
    totalVisitors: int
    totalSessions: int
    totalPageViews: int
    averageDuration: int
    todayVisitors: int
    todayPageViews: int
    authenticatedSessions: int


class VisitorRead(BaseModel):
    id: str
    session_id: str
    ip_address: Optional[str] = None
    device_type: str
    browser: Optional[str] = None
    os: Optional[str] = None
    referrer: Optional[str] = None
    page_views: List[Dict[str, Any]]
    total_page_views: int
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    is_authenticated: bool

    model_config = {"from_attributes": True}


class VisitorList(BaseModel):
    visitors: List[VisitorRead]
    total: int
    page: int
    limit: int
    totalPages: int


class PageCount(BaseModel):
    page: str
    count: int


class PopularPages(BaseModel):
    pages: List[PageCount]


class Share(BaseModel):
    name: str
    count: int
    percentage: int


class DeviceStats(BaseModel):
    deviceTypes: List[Share]
    browsers: List[Share]
    os: List[Share]
