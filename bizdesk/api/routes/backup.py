"""
api/routes/backup.py
--------------------
GET /backup/export — Admin downloads every row the company owns as JSON.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from bizdesk.core.permissions import Action
from bizdesk.dependencies import DbSession, Meta, TenantContext, require
from bizdesk.services.audit_service import AuditService
from bizdesk.services.backup_service import BackupService

router = APIRouter(prefix="/backup", tags=["Backup"])


@router.get("/export", summary="Export all company data")
async def export_backup(
    db: DbSession,
    meta: Meta,
    ctx: Annotated[TenantContext, Depends(require(Action.backup_export))],
) -> JSONResponse:
    backup = await BackupService.export_company(db, ctx.company_id, exported_by=ctx.user.email)
    await AuditService.log(
        db,
        "backup.export",
        actor=ctx.user,
        entity_type="company",
        entity_id=ctx.company_id,
        details=backup["counts"],
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    filename = f"backup-{ctx.company_id}-{backup['exported_at'][:10]}.json"
    return JSONResponse(
        backup,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
