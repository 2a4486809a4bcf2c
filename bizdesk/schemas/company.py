"""
schemas/company.py
------------------
Company registration, profile and settings payloads.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field

from bizdesk.schemas.user import UserRead


class CompanyRegister(BaseModel):
    """Public sign-up: creates the company and its first admin."""
    companyName: str = Field(..., min_length=2, max_length=255, examples=["Kampala Hardware Ltd"])
    businessType: str = Field(default="general", examples=["hardware"])
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    currency: str = Field(default="UGX", min_length=3, max_length=10)
    adminname: str = Field(..., min_length=2, max_length=255)
    adminEmail: EmailStr
    adminPassword: str = Field(..., min_length=8, max_length=128)


class CompanyRead(BaseModel):
    id: str
    company_name: str
    business_type: str
    email: Optional[str] = None
    phone: Optional[str] = None
    alternate_phone: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    tax_id: Optional[str] = None
    currency: str
    status: str
    database_type: str
    subscription_tier: str
    settings: Dict[str, Any]
    industry_features: Dict[str, Any]
    approval_requested_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    status_reason: Optional[str] = None
    suspended_until: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CompanyUpdate(BaseModel):
    company_name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    alternate_phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    tax_id: Optional[str] = Field(default=None, max_length=100)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=10)
    business_type: Optional[str] = None


class CompanySettingsUpdate(CompanyUpdate):
    """Profile fields plus free-form preferences merged into `settings`."""
    timezone: Optional[str] = None
    date_format: Optional[str] = None
    language: Optional[str] = None


class CompanyRegistered(BaseModel):
    message: str
    token: str
    company: CompanyRead
    user: UserRead
