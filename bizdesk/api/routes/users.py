"""
api/routes/users.py
-------------------
User management within the current company.

POST   /users                  — Admin creates a user (any role).
GET    /users
GET    /users/audit-logs       — Admin: audit trail of the company.
PUT    /users/change-password  — Any user, own password.
PUT    /users/{id}/role
PUT    /users/{id}/permissions
PUT    /users/{id}/password    — Admin reset.
DELETE /users/{id}
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Query, status

from bizdesk.core.permissions import Action
from bizdesk.dependencies import CurrentUser, DbSession, Meta, TenantContext, require
from bizdesk.schemas.common import MessageResponse, Pagination
from bizdesk.schemas.superadmin import AuditLogList, AuditLogRead
from bizdesk.schemas.user import (
    AdminPasswordReset,
    PasswordChange,
    PermissionsUpdate,
    RoleUpdate,
    UserCreate,
    UserRead,
)
from bizdesk.services.audit_service import AuditService
from bizdesk.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

CompanyAdmin = Annotated[TenantContext, Depends(require(Action.users_manage))]


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Admin: create a new user in the current company",
)
async def create_user(body: UserCreate, ctx: CompanyAdmin, db: DbSession) -> UserRead:
    """
    The company_id is taken from the admin's own record, so admins cannot
    create users in other companies.
    """
    user = await UserService.create_user(db, ctx.company_id, body)
    return UserRead.model_validate(user)


@router.get("", response_model=List[UserRead], summary="List users of the company")
async def list_users(ctx: CompanyAdmin, db: DbSession) -> List[UserRead]:
    users = await UserService.list_users(db, ctx.company_id)
    return [UserRead.model_validate(u) for u in users]


@router.get("/audit-logs", response_model=AuditLogList, summary="Audit trail of the company")
async def company_audit_logs(
    ctx: CompanyAdmin,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
) -> AuditLogList:
    total, logs = await AuditService.list_company_logs(
        db, ctx.company_id, offset=(page - 1) * limit, limit=limit
    )
    return AuditLogList(
        logs=[AuditLogRead.model_validate(entry) for entry in logs],
        pagination=Pagination.build(page, limit, total),
    )


@router.put("/change-password", response_model=MessageResponse, summary="Change own password")
async def change_password(body: PasswordChange, user: CurrentUser, db: DbSession) -> MessageResponse:
    await UserService.change_own_password(db, user, body.currentPassword, body.newPassword)
    return MessageResponse(message="Password changed successfully")


@router.put("/{user_id}/role", response_model=UserRead, summary="Change a user's role")
async def update_role(
    user_id: str, body: RoleUpdate, ctx: CompanyAdmin, db: DbSession, meta: Meta
) -> UserRead:
    user = await UserService.update_role(db, ctx.company_id, user_id, body.role)
    await AuditService.log(
        db,
        "user.role_change",
        actor=ctx.user,
        entity_type="user",
        entity_id=user.id,
        entity_name=user.email,
        details={"role": user.role},
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    return UserRead.model_validate(user)


@router.put("/{user_id}/permissions", response_model=UserRead, summary="Grant actions to a user")
async def update_permissions(
    user_id: str, body: PermissionsUpdate, ctx: CompanyAdmin, db: DbSession
) -> UserRead:
    user = await UserService.update_permissions(db, ctx.company_id, user_id, body.permissions)
    return UserRead.model_validate(user)


@router.put("/{user_id}/password", response_model=MessageResponse, summary="Reset a user's password")
async def reset_password(
    user_id: str, body: AdminPasswordReset, ctx: CompanyAdmin, db: DbSession
) -> MessageResponse:
    await UserService.reset_password(db, ctx.company_id, user_id, body.newPassword)
    return MessageResponse(message="Password reset successfully")


@router.delete("/{user_id}", response_model=MessageResponse, summary="Delete a user")
async def delete_user(
    user_id: str, ctx: CompanyAdmin, db: DbSession, meta: Meta
) -> MessageResponse:
    user = await UserService.delete_user(db, ctx.company_id, user_id, acting_user_id=ctx.user_id)
    await AuditService.log(
        db,
        "user.delete",
        actor=ctx.user,
        entity_type="user",
        entity_id=user.id,
        entity_name=user.email,
        details={"role": user.role},
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    return MessageResponse(message="User deleted successfully")
