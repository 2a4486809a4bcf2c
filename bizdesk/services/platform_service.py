"""
services/platform_service.py
----------------------------
Key/value platform settings edited from the super-admin console.

Values are stored JSON-encoded so that numbers, booleans and objects
come back as the type they were written with.
"""

import json
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.logging import get_logger
from bizdesk.models import PlatformSetting, SuperAdmin
from bizdesk.schemas.platform import PlatformSettingUpdate
from bizdesk.services.audit_service import AuditService

logger = get_logger(__name__)


def infer_data_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, (dict, list)):
        return "json"
    return "string"


def decode_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        # Rows written by hand before values were JSON-encoded
        return raw


class PlatformSettingsService:

    @staticmethod
    async def grouped(db: AsyncSession) -> Dict[str, Dict[str, Dict[str, Any]]]:
        result = await db.execute(
            select(PlatformSetting).order_by(PlatformSetting.category, PlatformSetting.key)
        )
        grouped: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for setting in result.scalars():
            grouped.setdefault(setting.category, {})[setting.key] = {
                "value": decode_value(setting.value),
                "description": setting.description,
                "data_type": setting.data_type,
                "updated_at": setting.updated_at,
            }
        return grouped

    @staticmethod
    async def upsert(
        db: AsyncSession,
        data: PlatformSettingUpdate,
        admin: SuperAdmin,
        ip_address: Optional[str] = None,
    ) -> PlatformSetting:
        result = await db.execute(select(PlatformSetting).where(PlatformSetting.key == data.key))
        setting = result.scalar_one_or_none()
        encoded = json.dumps(data.value)
        data_type = data.data_type or infer_data_type(data.value)

        if setting is None:
            setting = PlatformSetting(key=data.key)
            db.add(setting)
            previous = None
        else:
            previous = decode_value(setting.value)

        setting.category = data.category
        setting.value = encoded
        setting.data_type = data_type
        if data.description is not None:
            setting.description = data.description
        setting.updated_by = admin.id
        await db.flush()

        await AuditService.log(
            db,
            "platform_setting.update",
            actor=admin,
            entity_type="platform_setting",
            entity_id=setting.id,
            entity_name=setting.key,
            details={"category": setting.category, "old": previous, "new": data.value},
            ip_address=ip_address,
        )
        logger.info("Platform setting saved", key=setting.key, category=setting.category)
        return setting
