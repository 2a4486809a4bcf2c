"""
schemas/user.py
---------------
Pydantic models for registration, login, tokens and user management.

Security note:
  - hashed_password is NEVER included in any response schema.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from bizdesk.core.permissions import Role


class UserRegister(BaseModel):
    """Self-registration into an existing, active company."""
    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(..., max_length=128)
    company_id: str = Field(..., description="UUID of the company to join")
    phone: Optional[str] = Field(default=None, max_length=50)


class LoginRequest(BaseModel):
    username: EmailStr = Field(..., description="The account email address")
    password: str
    companyName: Optional[str] = None


class UserCreate(BaseModel):
    """Used by a company admin to add a user to the company."""
    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: Role = Role.sales
    phone: Optional[str] = Field(default=None, max_length=50)


class UserRead(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    is_company_admin: bool
    status: str
    permissions: List[str]
    company_id: str
    last_login: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class RoleUpdate(BaseModel):
    role: Role


class PermissionsUpdate(BaseModel):
    permissions: List[str]


class AdminPasswordReset(BaseModel):
    newPassword: str = Field(..., min_length=6, max_length=128)


class PasswordChange(BaseModel):
    currentPassword: str
    newPassword: str = Field(..., min_length=6, max_length=128)


class CompanySummary(BaseModel):
    id: str
    company_name: str
    status: str
    currency: str
    business_type: str

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserRead
    company: Optional[CompanySummary] = None
