"""
api/routes/company.py
---------------------
Company sign-up and the company's own profile.

POST /register           — Public: create a company and its first admin.
GET  /industry-features  — Public: starter catalogue metadata per business type.
GET  /me, PUT /me        — Current company profile.
GET  /settings, PUT /settings
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from bizdesk.core.permissions import Action
from bizdesk.dependencies import DbSession, Tenant, TenantContext, require
from bizdesk.schemas.company import (
    CompanyRead,
    CompanyRegister,
    CompanyRegistered,
    CompanySettingsUpdate,
    CompanyUpdate,
)
from bizdesk.schemas.user import UserRead
from bizdesk.services.auth_service import issue_token
from bizdesk.services.company_service import CompanyService
from bizdesk.services.industry import INDUSTRY_FEATURES, industry_features

router = APIRouter(prefix="/company", tags=["Company"])

CompanyAdmin = Annotated[TenantContext, Depends(require(Action.company_update))]


@router.post(
    "/register",
    response_model=CompanyRegistered,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new business",
)
async def register_company(body: CompanyRegister, db: DbSession) -> CompanyRegistered:
    """
    Public endpoint. The company starts in `pending_approval` and its users
    cannot sign in until a super-admin approves it.
    """
    company, admin = await CompanyService.register_company(db, body)
    token, _ = issue_token(admin)
    return CompanyRegistered(
        message="Business registered successfully. Your account is pending admin approval.",
        token=token,
        company=CompanyRead.model_validate(company),
        user=UserRead.model_validate(admin),
    )


@router.get("/industry-features", summary="Starter metadata for a business type")
async def get_industry_features(
    business_type: Optional[str] = Query(default=None),
) -> Dict[str, Any]:
    return {
        "business_type": (business_type or "general").strip().lower(),
        "features": industry_features(business_type),
        "available_types": sorted(INDUSTRY_FEATURES),
    }


@router.get("/me", response_model=CompanyRead, summary="Current company profile")
async def get_company(ctx: Tenant, db: DbSession) -> CompanyRead:
    company = await CompanyService.get_company(db, ctx.company_id)
    return CompanyRead.model_validate(company)


@router.put("/me", response_model=CompanyRead, summary="Update the company profile")
async def update_company(body: CompanyUpdate, ctx: CompanyAdmin, db: DbSession) -> CompanyRead:
    company = await CompanyService.update_profile(db, ctx.company_id, body)
    return CompanyRead.model_validate(company)


@router.get("/settings", summary="Company preferences")
async def get_settings(ctx: Tenant, db: DbSession) -> Dict[str, Any]:
    company = await CompanyService.get_company(db, ctx.company_id)
    return {
        "company": CompanyRead.model_validate(company).model_dump(),
        "settings": company.settings or {},
    }


@router.put("/settings", response_model=CompanyRead, summary="Update company preferences")
async def update_settings(
    body: CompanySettingsUpdate, ctx: CompanyAdmin, db: DbSession
) -> CompanyRead:
    company = await CompanyService.update_settings(db, ctx.company_id, body)
    return CompanyRead.model_validate(company)
