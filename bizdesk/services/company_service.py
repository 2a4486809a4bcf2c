"""
services/company_service.py
---------------------------
Company sign-up and the company's own profile/settings.

Service layer is responsible for:
  - Constructing queries
  - Enforcing business rules (e.g. unique, case-insensitive company names)
  - Returning domain objects (ORM models) to the route layer
  - Never returning HTTP responses (that's the route's job)
"""

from typing import Any, Dict

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import Conflict, NotFound, ValidationFailed
from bizdesk.core.logging import get_logger
from bizdesk.core.permissions import Role
from bizdesk.core.security import hash_password, password_strength_error
from bizdesk.db.base import utcnow
from bizdesk.models import Company, CompanyStatus, User
from bizdesk.repositories import UserRepository
from bizdesk.schemas.company import CompanyRegister, CompanySettingsUpdate, CompanyUpdate
from bizdesk.services.industry import industry_features

logger = get_logger(__name__)

PREFERENCE_FIELDS = ("currency", "timezone", "date_format", "language")


def default_settings(currency: str) -> Dict[str, Any]:
    return {
        "currency": currency,
        "timezone": "UTC",
        "date_format": "MM/DD/YYYY",
        "language": "en",
    }


class CompanyService:

    @staticmethod
    async def register_company(db: AsyncSession, data: CompanyRegister) -> tuple[Company, User]:
        """
        Create a company in `pending_approval` together with its first admin.
        The company cannot be used until a super-admin approves it.
        """
        weakness = password_strength_error(data.adminPassword)
        if weakness:
            raise ValidationFailed(weakness)

        name = data.companyName.strip()
        existing = await db.execute(
            select(Company.id).where(func.lower(Company.company_name) == name.lower())
        )
        if existing.first() is not None:
            raise Conflict("A business with this name is already registered")

        currency = data.currency.upper()
        business_type = (data.businessType or "general").strip().lower()
        company = Company(
            company_name=name,
            business_type=business_type,
            email=data.email.lower() if data.email else data.adminEmail.lower(),
            phone=data.phone,
            currency=currency,
            status=CompanyStatus.pending_approval.value,
            database_type="shared",
            subscription_tier="standard",
            approval_requested_at=utcnow(),
            settings=default_settings(currency),
            industry_features=industry_features(business_type),
        )
        db.add(company)
        try:
            await db.flush()
        except IntegrityError:
            raise Conflict("A business with this name is already registered")

        admin = UserRepository(db).add(
            User(
                name=data.adminname,
                email=data.adminEmail.lower(),
                hashed_password=hash_password(data.adminPassword),
                role=Role.admin.value,
                is_company_admin=True,
            ),
            company_id=company.id,
        )
        await db.flush()
        logger.info(
            "Company registered",
            company_id=company.id,
            name=company.company_name,
            admin_id=admin.id,
        )
        return company, admin

    @staticmethod
    async def get_company(db: AsyncSession, company_id: str) -> Company:
        company = await db.get(Company, company_id)
        if company is None:
            raise NotFound("Company not found")
        return company

    @staticmethod
    async def update_profile(
        db: AsyncSession, company_id: str, data: CompanyUpdate
    ) -> Company:
        company = await CompanyService.get_company(db, company_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        preferences = {k: changes.pop(k) for k in PREFERENCE_FIELDS if k in changes and k != "currency"}
        if not changes and not preferences:
            raise ValidationFailed("No fields to update")

        new_name = changes.get("company_name")
        if new_name and new_name.strip().lower() != company.company_name.lower():
            clash = await db.execute(
                select(Company.id).where(
                    func.lower(Company.company_name) == new_name.strip().lower(),
                    Company.id != company_id,
                )
            )
            if clash.first() is not None:
                raise Conflict("A business with this name is already registered")
            changes["company_name"] = new_name.strip()

        if "currency" in changes:
            changes["currency"] = changes["currency"].upper()
            preferences["currency"] = changes["currency"]
        if "business_type" in changes:
            changes["business_type"] = changes["business_type"].strip().lower()
            company.industry_features = industry_features(changes["business_type"])

        for field, value in changes.items():
            setattr(company, field, value)
        if preferences:
            # Reassign so the JSON column is flagged dirty
            company.settings = {**(company.settings or {}), **preferences}

        await db.flush()
        logger.info("Company updated", company_id=company_id, fields=sorted(changes) + sorted(preferences))
        return company

    @staticmethod
    async def update_settings(
        db: AsyncSession, company_id: str, data: CompanySettingsUpdate
    ) -> Company:
        return await CompanyService.update_profile(db, company_id, data)
