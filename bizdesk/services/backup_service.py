"""
services/backup_service.py
--------------------------
JSON export of everything one company owns.

Rows are read through the tenant repositories, so the export can only
ever contain the caller's company: its tenant tables, its audit trail and
the announcements addressed to it. Password hashes are left out.
"""

from typing import Any, Dict, List

from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.logging import get_logger
from bizdesk.db.base import utcnow
from bizdesk.repositories import EXPORTED_REPOSITORIES
from bizdesk.services.company_service import CompanyService

logger = get_logger(__name__)

EXCLUDED_COLUMNS = frozenset({"hashed_password"})
BACKUP_VERSION = "1.0"


def row_to_dict(row: Any) -> Dict[str, Any]:
    return {
        column.key: getattr(row, column.key)
        for column in row.__table__.columns
        if column.key not in EXCLUDED_COLUMNS
    }


class BackupService:

    @staticmethod
    async def export_company(db: AsyncSession, company_id: str, exported_by: str) -> Dict[str, Any]:
        company = await CompanyService.get_company(db, company_id)
        tables: Dict[str, List[Dict[str, Any]]] = {}
        for repository in EXPORTED_REPOSITORIES:
            repo = repository(db)
            rows = await repo.list(company_id=company_id, order_by=(repo.model.id,))
            tables[repo.model.__tablename__] = [row_to_dict(r) for r in rows]

        counts = {name: len(rows) for name, rows in tables.items()}
        logger.info("Backup exported", company_id=company_id, counts=counts)
        return jsonable_encoder(
            {
                "version": BACKUP_VERSION,
                "exported_at": utcnow(),
                "exported_by": exported_by,
                "company": row_to_dict(company),
                "counts": counts,
                "data": tables,
            }
        )
