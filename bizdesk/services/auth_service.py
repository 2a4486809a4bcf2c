"""
services/auth_service.py
------------------------
Tenant user registration and login.

Login is also where a lapsed suspension ends: a suspended company whose
suspended_until is in the past is reactivated as a side effect of the
next successful credential check by one of its users. Nothing else
reactivates it.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.config import settings
from bizdesk.core.exceptions import (
    AuthenticationFailed,
    Conflict,
    NotFound,
    PermissionDenied,
    ValidationFailed,
)
from bizdesk.core.logging import get_logger
from bizdesk.core.permissions import Role
from bizdesk.core.security import (
    create_access_token,
    hash_password,
    password_strength_error,
    verify_password,
)
from bizdesk.db.base import as_utc, utcnow
from bizdesk.models import Company, CompanyStatus, User
from bizdesk.models.user import BLOCKED_USER_STATUSES
from bizdesk.repositories import UserRepository
from bizdesk.schemas.user import UserRegister
from bizdesk.services.audit_service import AuditService

logger = get_logger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


def suspension_lapsed(company: Company, now: Optional[datetime] = None) -> bool:
    """True for a suspended company whose suspended_until has passed."""
    if company.status != CompanyStatus.suspended.value or company.suspended_until is None:
        return False
    return as_utc(company.suspended_until) < (now or utcnow())


def company_access_error(company: Company) -> Optional[PermissionDenied]:
    """The 403 a user of this company gets, or None when the company is active."""
    status = company.status
    if status == CompanyStatus.active.value:
        return None
    if status == CompanyStatus.pending_approval.value:
        return PermissionDenied(
            "Your business account is pending admin approval.",
            code="pending_approval",
            company={
                "id": company.id,
                "name": company.company_name,
                "status": status,
                "requested_at": _iso(company.approval_requested_at),
            },
        )
    if status == CompanyStatus.rejected.value:
        return PermissionDenied(
            "Your business registration was not approved.",
            code="account_rejected",
            reason=company.status_reason or "Not specified",
        )
    if status == CompanyStatus.blocked.value:
        return PermissionDenied(
            "Your business account has been blocked.",
            code="account_blocked",
            reason=company.status_reason or "Policy violation",
        )
    if status == CompanyStatus.suspended.value:
        return PermissionDenied(
            "Your business account is temporarily suspended.",
            code="account_suspended",
            reason=company.status_reason or "Policy violation",
            suspended_until=_iso(company.suspended_until),
        )
    if status == CompanyStatus.banned.value:
        return PermissionDenied(
            "Your business account has been permanently banned.",
            code="account_banned",
            reason=company.status_reason or "Serious policy violation",
        )
    return PermissionDenied("Your business account is not active.", code="account_inactive")


def issue_token(user: User) -> tuple[str, int]:
    """(token, expires_in_seconds) for a tenant user."""
    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = create_access_token(
        subject=user.id,
        company_id=user.company_id,
        role=user.role,
        is_company_admin=user.is_company_admin,
        email=user.email,
        expires_delta=expires,
    )
    return token, int(expires.total_seconds())


class AuthService:

    @staticmethod
    async def register_user(db: AsyncSession, data: UserRegister) -> tuple[User, Company]:
        """
        Self-registration into an existing active company with the 'sales' role.
        Raises on weak password, unknown/inactive company or duplicate email.
        """
        weakness = password_strength_error(data.password)
        if weakness:
            raise ValidationFailed(weakness)

        company = await db.get(Company, data.company_id)
        if company is None:
            raise NotFound("Company not found")
        if company.status != CompanyStatus.active.value:
            raise ValidationFailed("This business is not currently accepting registrations")

        users = UserRepository(db)
        email = data.email.lower()
        if await users.first(func.lower(User.email) == email, company_id=company.id):
            raise Conflict("Email already registered for this business")

        user = users.add(
            User(
                name=data.name,
                email=email,
                phone=data.phone,
                hashed_password=hash_password(data.password),
                role=Role.sales.value,
                is_company_admin=False,
            ),
            company_id=company.id,
        )
        await db.flush()
        logger.info("User registered", user_id=user.id, company_id=company.id)
        return user, company

    @staticmethod
    async def login(
        db: AsyncSession,
        email: str,
        password: str,
        company_name: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> tuple[User, Company]:
        """
        Verify credentials and the company's lifecycle state.
        Email lookup is case-insensitive; the same email may exist in
        several companies, `company_name` disambiguates.
        """
        stmt = select(User).where(func.lower(User.email) == email.lower())
        if company_name:
            result = await db.execute(
                select(Company).where(
                    func.lower(Company.company_name) == company_name.strip().lower()
                )
            )
            named = result.scalar_one_or_none()
            if named is None:
                raise AuthenticationFailed("Company not found. Please check the company name.")
            stmt = stmt.where(User.company_id == named.id)

        candidates = list((await db.execute(stmt.order_by(User.created_at))).scalars().all())
        if not candidates:
            raise AuthenticationFailed(
                "Email not found. Please check your credentials and try again."
            )
        user = next(
            (u for u in candidates if verify_password(password, u.hashed_password)), None
        )
        if user is None:
            logger.info("Login failed: bad password", email=email.lower())
            raise AuthenticationFailed("Incorrect password. Please try again.")

        company = await db.get(Company, user.company_id)
        if company is None:
            raise NotFound("Company not found. Please contact support.")

        if suspension_lapsed(company):
            company.status = CompanyStatus.active.value
            company.suspended_until = None
            company.status_reason = None
            company.status_changed_at = utcnow()
            company.status_changed_by = None
            await AuditService.log(
                db,
                "company.suspension_expired",
                actor=None,
                company_id=company.id,
                entity_type="company",
                entity_id=company.id,
                entity_name=company.company_name,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            logger.info("Suspension expired, company reactivated", company_id=company.id)

        error = company_access_error(company)
        if error is not None:
            logger.info("Login refused", company_id=company.id, status=company.status)
            raise error

        if user.status in BLOCKED_USER_STATUSES:
            raise PermissionDenied("Your account has been suspended. Please contact support.")

        user.last_login = utcnow()
        await db.flush()
        logger.info("User logged in", user_id=user.id, company_id=company.id)
        return user, company
